"""Sibling reordering under a per-parent unique ``order_number``.

Target numbers are written in two phases so a swap never trips the unique
index on (parent, order_number):

1. every row in the batch is parked on ``TEMP_ORDER_OFFSET + index``;
2. every row gets its requested number.

Each phase is one transaction. Temporary numbers start at
``TEMP_ORDER_OFFSET``, which is also the exclusive upper bound of a valid
target, so a parked row can never collide with a final one. If phase 2 fails
the parked numbers stay; sending the same batch again completes the reorder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

from sqlalchemy.exc import SQLAlchemyError

from app.logic.errors import (
    ConflictScope,
    InvalidInput,
    NotFound,
    PartialReorderFailure,
    StoreFailure,
)
from app.logic.hierarchy import camelize, get_descriptor

if TYPE_CHECKING:
    from app.logic.entity_store import EntityStore

logger = logging.getLogger(__name__)

MAX_REORDER_BATCH_SIZE = 10_000
TEMP_ORDER_OFFSET = MAX_REORDER_BATCH_SIZE


@dataclass(frozen=True)
class ReorderResult:
    entity_type: str
    requested: int
    modified_count: int


def is_valid_order_number(order: Any) -> bool:
    """True for an int (not bool) in `[1, TEMP_ORDER_OFFSET)`; the rest is the parking range."""
    return not isinstance(order, bool) and isinstance(order, int) and 1 <= order < TEMP_ORDER_OFFSET


def check_order_number(values: Mapping[str, Any]) -> None:
    """Reject a directly written ``orderNumber`` that a reorder could not park around."""
    for name in ("orderNumber", "order_number"):
        if name in values and values[name] is not None and not is_valid_order_number(values[name]):
            raise InvalidInput(
                f"orderNumber must be an integer between 1 and {TEMP_ORDER_OFFSET - 1}"
            )


def items_from_body(entity_type: str, body: Any) -> Any:
    """Pull the batch out of a request body keyed by the type's plural name."""
    desc = get_descriptor(entity_type)
    if not isinstance(body, Mapping):
        raise InvalidInput(f"{desc.batch_key} array is required")
    return body.get(desc.batch_key)


def validate_reorder_items(entity_type: str, items: Any) -> list[tuple[str, int]]:
    desc = get_descriptor(entity_type)
    if not isinstance(items, list) or not items:
        raise InvalidInput(f"{desc.batch_key} array is required")
    if len(items) > MAX_REORDER_BATCH_SIZE:
        raise InvalidInput(
            f"Cannot reorder more than {MAX_REORDER_BATCH_SIZE} {desc.batch_key} at once"
        )
    pairs: list[tuple[str, int]] = []
    seen_ids: set[str] = set()
    seen_orders: set[int] = set()
    for item in items:
        if not isinstance(item, Mapping):
            raise InvalidInput(f"Each {desc.label.lower()} must be an object")
        entity_id = item.get("id")
        if not isinstance(entity_id, str) or not entity_id.strip():
            raise InvalidInput(f"Invalid {desc.label.lower()} ID: {entity_id}")
        order = item.get("orderNumber")
        if not is_valid_order_number(order):
            raise InvalidInput(f"Each {desc.label.lower()} must have a valid orderNumber")
        if entity_id in seen_ids:
            raise InvalidInput(f"Duplicate {desc.label.lower()} ID: {entity_id}")
        if order in seen_orders:
            raise InvalidInput(f"Duplicate orderNumber: {order}")
        seen_ids.add(entity_id)
        seen_orders.add(order)
        pairs.append((entity_id, order))
    return pairs


def _scope_key(doc: Mapping[str, Any], scope_fields: tuple[str, ...]) -> tuple:
    return tuple(doc.get(camelize(f)) for f in scope_fields)


def reorder_siblings(store: "EntityStore", entity_type: str, items: Any) -> ReorderResult:
    """Assign new ``orderNumber`` values to a batch of siblings."""
    desc = get_descriptor(entity_type)
    pairs = validate_reorder_items(entity_type, items)
    ids = [entity_id for entity_id, _ in pairs]
    repo = store.repository(entity_type)

    docs = repo.find_many_by_ids(ids)
    if len(docs) != len(ids):
        raise NotFound(f"Some {desc.batch_key} not found")
    first = _scope_key(docs[0], desc.scope_fields)
    for doc in docs[1:]:
        if _scope_key(doc, desc.scope_fields) != first:
            raise ConflictScope(
                f"All {desc.batch_key} must belong to the same {desc.scope_label}"
            )

    parked = [(entity_id, TEMP_ORDER_OFFSET + i) for i, entity_id in enumerate(ids)]
    try:
        repo.bulk_write_order_numbers(parked)
    except SQLAlchemyError as exc:
        # Phase 1 is one transaction; nothing was written
        logger.error("reorder phase 1 failed type=%s ids=%s", entity_type, ids, exc_info=True)
        raise StoreFailure(
            f"Failed to reorder {desc.batch_key}; no order numbers were changed"
        ) from exc
    finally:
        store.cache.invalidate(entity_type)
    logger.info("reorder phase 1 parked type=%s count=%d", entity_type, len(parked))

    try:
        modified = repo.bulk_write_order_numbers(pairs)
    except SQLAlchemyError as exc:
        logger.error(
            "reorder phase 2 failed type=%s ids=%s", entity_type, ids, exc_info=True
        )
        raise PartialReorderFailure(
            f"Failed to reorder {desc.batch_key}; resend the same batch to finish",
            entity_type=entity_type,
            ids=ids,
        ) from exc
    finally:
        store.cache.invalidate(entity_type)
    logger.info(
        "reorder phase 2 done type=%s requested=%d modified=%d", entity_type, len(pairs), modified
    )
    return ReorderResult(entity_type=entity_type, requested=len(pairs), modified_count=modified)


__all__ = [
    "MAX_REORDER_BATCH_SIZE",
    "TEMP_ORDER_OFFSET",
    "ReorderResult",
    "is_valid_order_number",
    "check_order_number",
    "items_from_body",
    "validate_reorder_items",
    "reorder_siblings",
]
