"""Status cascade: push an active/inactive change down a whole subtree.

The root row is updated first, then every descendant generation in turn,
parent to child. Each generation is collected by parent id regardless of the
rows' current status and written with one bulk update, so cascading to
``inactive`` overrides every descendant (and cascading to ``active`` does the
same in the other direction).

Generations commit one by one. When a deeper generation fails the shallower
writes stay in place and ``PartialCascadeFailure`` reports what was done.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from app.logic.errors import InvalidInput, NotFound, PartialCascadeFailure
from app.logic.hierarchy import HIERARCHY, camelize, get_descriptor

if TYPE_CHECKING:
    from app.logic.entity_store import EntityStore

logger = logging.getLogger(__name__)

CASCADE_STATUSES = ("active", "inactive")


@dataclass(frozen=True)
class GenerationCount:
    depth: int
    entity_type: str
    parent_field: str
    matched: int
    modified: int


@dataclass
class CascadeResult:
    entity: dict[str, Any]
    generations: list[GenerationCount] = field(default_factory=list)

    @property
    def modified_count(self) -> int:
        return sum(g.modified for g in self.generations)

    def counts_by_type(self) -> dict[str, int]:
        out: dict[str, int] = {}
        for g in self.generations:
            out[g.entity_type] = out.get(g.entity_type, 0) + g.modified
        return out

    def as_dict(self) -> dict[str, Any]:
        return {
            "entity": self.entity,
            "generations": [
                {camelize(k): v for k, v in asdict(g).items()} for g in self.generations
            ],
            "modifiedCount": self.modified_count,
        }


def validate_status(status: Any) -> str:
    if not isinstance(status, str) or status not in CASCADE_STATUSES:
        raise InvalidInput(
            "Valid status is required (active or inactive)",
            details={"allowed": list(CASCADE_STATUSES)},
        )
    return status


def cascade_status(
    store: "EntityStore", entity_type: str, entity_id: Any, status: Any
) -> CascadeResult:
    """Set ``status`` on one entity and every descendant below it."""
    desc = get_descriptor(entity_type)
    status = validate_status(status)
    if not isinstance(entity_id, str) or not entity_id.strip():
        raise InvalidInput(f"Invalid {desc.label.lower()} ID")

    root = store.repository(entity_type).update_by_id(entity_id, {"status": status})
    if root is None:
        raise NotFound(f"{desc.label} not found")
    store.cache.invalidate(entity_type)
    logger.info("status cascade start type=%s id=%s status=%s", entity_type, entity_id, status)

    generations: list[GenerationCount] = []
    frontier: list[tuple[str, list[str]]] = [(entity_type, [entity_id])]
    depth = 0
    while frontier:
        depth += 1
        next_frontier: list[tuple[str, list[str]]] = []
        for parent_type, parent_ids in frontier:
            for link in HIERARCHY[parent_type].children:
                repo = store.repository(link.child_type)
                try:
                    child_ids = repo.find_ids_by_parent(link.parent_ref, parent_ids)
                    modified = 0
                    if child_ids:
                        modified = repo.bulk_update_by_filter(
                            link.parent_ref, parent_ids, {"status": status}
                        )
                except SQLAlchemyError as exc:
                    logger.error(
                        "status cascade failed type=%s id=%s depth=%d child=%s",
                        entity_type,
                        entity_id,
                        depth,
                        link.child_type,
                        exc_info=True,
                    )
                    raise PartialCascadeFailure(
                        f"Status cascade stopped at {HIERARCHY[link.child_type].label.lower()} level",
                        completed=generations,
                        failed_type=link.child_type,
                    ) from exc
                if child_ids:
                    store.cache.invalidate(link.child_type)
                generations.append(
                    GenerationCount(
                        depth=depth,
                        entity_type=link.child_type,
                        parent_field=link.parent_ref,
                        matched=len(child_ids),
                        modified=modified,
                    )
                )
                logger.info(
                    "status cascade generation depth=%d type=%s matched=%d modified=%d",
                    depth,
                    link.child_type,
                    len(child_ids),
                    modified,
                )
                next_frontier.append((link.child_type, child_ids))
        frontier = next_frontier

    return CascadeResult(entity=root, generations=generations)


__all__ = [
    "CASCADE_STATUSES",
    "GenerationCount",
    "CascadeResult",
    "validate_status",
    "cascade_status",
]
