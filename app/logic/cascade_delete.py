"""Delete an entity together with everything that hangs off it.

The subtree is collected first by walking owned children and the practice
rows that point at a content node, then removed deepest-first with each
owner's details record going right before the owner. Every collection is
deleted in its own statement; nothing is rolled back on a later failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from app.logic.errors import NotFound, PartialDeleteFailure
from app.logic.hierarchy import DELETE_ORDER, HIERARCHY, get_descriptor

if TYPE_CHECKING:
    from app.logic.entity_store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class DeleteResult:
    entity: dict[str, Any]
    # Rows removed per table, details tables included.
    deleted: dict[str, int] = field(default_factory=dict)

    @property
    def deleted_count(self) -> int:
        return sum(self.deleted.values())


def collect_subtree(store: "EntityStore", entity_type: str, entity_id: str) -> dict[str, list[str]]:
    """Return the ids of the root and every dependent row, grouped by type."""
    collected: dict[str, list[str]] = {entity_type: [entity_id]}
    frontier: list[tuple[str, list[str]]] = [(entity_type, [entity_id])]
    while frontier:
        next_frontier: list[tuple[str, list[str]]] = []
        for parent_type, parent_ids in frontier:
            desc = HIERARCHY[parent_type]
            for link in desc.children + desc.linked:
                found = store.repository(link.child_type).find_ids_by_parent(
                    link.parent_ref, parent_ids
                )
                known = collected.setdefault(link.child_type, [])
                fresh = [i for i in found if i not in known]
                if fresh:
                    known.extend(fresh)
                    next_frontier.append((link.child_type, fresh))
        frontier = next_frontier
    return {t: ids for t, ids in collected.items() if ids}


def delete_entity(store: "EntityStore", entity_type: str, entity_id: str) -> DeleteResult:
    desc = get_descriptor(entity_type)
    root = store.repository(entity_type).find_by_id(entity_id)
    if root is None:
        raise NotFound(f"{desc.label} not found")

    subtree = collect_subtree(store, entity_type, entity_id)
    result = DeleteResult(entity=root)
    try:
        for t in DELETE_ORDER:
            ids = subtree.get(t)
            if not ids:
                continue
            tdesc = HIERARCHY[t]
            if tdesc.details is not None:
                result.deleted[tdesc.details.table] = store.details(t).delete_by_owners(ids)
            result.deleted[tdesc.table] = store.repository(t).delete_by_filter("id", ids)
    except SQLAlchemyError as exc:
        logger.error(
            "cascade delete failed type=%s id=%s deleted=%s",
            entity_type,
            entity_id,
            result.deleted,
            exc_info=True,
        )
        if not result.deleted:
            raise
        raise PartialDeleteFailure(
            f"Failed to delete {desc.label.lower()} completely", deleted=result.deleted
        ) from exc
    finally:
        store.cache.invalidate()

    logger.info(
        "cascade delete type=%s id=%s deleted=%s", entity_type, entity_id, result.deleted
    )
    return result


__all__ = ["DeleteResult", "collect_subtree", "delete_entity"]
