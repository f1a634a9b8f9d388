"""Static description of the content and practice hierarchies.

Single source of truth for how entity types relate to each other. The
status cascade, the sibling reorder and the cascade delete all walk these
descriptors instead of hardcoding per-type chains, so adding a level means
adding one entry here.

Field names are storage column names (``unit_id``); the API-facing camelCase
names (``unitId``) are derived from them by the entity store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from app.logic.errors import InvalidInput

# Bumped whenever a descriptor below changes shape.
REGISTRY_VERSION = 1


class EntityType:
    EXAM = "exam"
    SUBJECT = "subject"
    UNIT = "unit"
    CHAPTER = "chapter"
    TOPIC = "topic"
    SUB_TOPIC = "sub_topic"
    DEFINITION = "definition"
    PRACTICE_CATEGORY = "practice_category"
    PRACTICE_SUB_CATEGORY = "practice_sub_category"
    PRACTICE_QUESTION = "practice_question"


@dataclass(frozen=True)
class ChildLink:
    """Edge from a parent type to a child type.

    ``parent_ref`` is the column on the child's table holding the parent id.
    """

    child_type: str
    parent_ref: str


@dataclass(frozen=True)
class DetailsTable:
    table: str
    owner_field: str


@dataclass(frozen=True)
class EntityDescriptor:
    entity_type: str
    label: str
    table: str
    batch_key: str
    columns: tuple[str, ...]
    parent_field: Optional[str] = None
    # Fields that together identify the sibling group used for ordering.
    scope_fields: tuple[str, ...] = ()
    children: tuple[ChildLink, ...] = ()
    # Non-owning references (practice sub-categories placed under a unit, ...).
    # Followed by cascade delete only, never by the status cascade.
    linked: tuple[ChildLink, ...] = ()
    details: Optional[DetailsTable] = None
    required: tuple[str, ...] = field(default=("name",))
    # Name of the parent in reorder scope messages ("the same unit").
    scope_label: Optional[str] = None


_COMMON = ("name", "slug", "order_number", "status")

_DESCRIPTORS = (
    EntityDescriptor(
        entity_type=EntityType.EXAM,
        label="Exam",
        table="exams",
        batch_key="exams",
        columns=_COMMON,
        children=(ChildLink(EntityType.SUBJECT, "exam_id"),),
        linked=(ChildLink(EntityType.PRACTICE_CATEGORY, "exam_id"),),
        details=DetailsTable("exam_details", "exam_id"),
        required=("name", "order_number"),
    ),
    EntityDescriptor(
        entity_type=EntityType.SUBJECT,
        label="Subject",
        table="subjects",
        batch_key="subjects",
        columns=_COMMON + ("exam_id",),
        parent_field="exam_id",
        scope_label="exam",
        scope_fields=("exam_id",),
        children=(ChildLink(EntityType.UNIT, "subject_id"),),
        linked=(ChildLink(EntityType.PRACTICE_CATEGORY, "subject_id"),),
        details=DetailsTable("subject_details", "subject_id"),
        required=("name", "exam_id"),
    ),
    EntityDescriptor(
        entity_type=EntityType.UNIT,
        label="Unit",
        table="units",
        batch_key="units",
        columns=_COMMON + ("exam_id", "subject_id"),
        parent_field="subject_id",
        # Units are ordered per subject, and a subject never moves between exams.
        scope_fields=("subject_id", "exam_id"),
        scope_label="subject and exam",
        children=(ChildLink(EntityType.CHAPTER, "unit_id"),),
        linked=(ChildLink(EntityType.PRACTICE_SUB_CATEGORY, "unit_id"),),
        details=DetailsTable("unit_details", "unit_id"),
        required=("name", "order_number", "exam_id", "subject_id"),
    ),
    EntityDescriptor(
        entity_type=EntityType.CHAPTER,
        label="Chapter",
        table="chapters",
        batch_key="chapters",
        columns=_COMMON + ("weightage", "time", "questions", "exam_id", "subject_id", "unit_id"),
        parent_field="unit_id",
        scope_fields=("unit_id",),
        scope_label="unit",
        children=(ChildLink(EntityType.TOPIC, "chapter_id"),),
        linked=(ChildLink(EntityType.PRACTICE_SUB_CATEGORY, "chapter_id"),),
        details=DetailsTable("chapter_details", "chapter_id"),
        required=("name", "order_number", "exam_id", "subject_id", "unit_id"),
    ),
    EntityDescriptor(
        entity_type=EntityType.TOPIC,
        label="Topic",
        table="topics",
        batch_key="topics",
        columns=_COMMON + ("exam_id", "subject_id", "unit_id", "chapter_id"),
        parent_field="chapter_id",
        scope_fields=("chapter_id",),
        scope_label="chapter",
        children=(ChildLink(EntityType.SUB_TOPIC, "topic_id"),),
        linked=(ChildLink(EntityType.PRACTICE_SUB_CATEGORY, "topic_id"),),
        details=DetailsTable("topic_details", "topic_id"),
        required=("name", "order_number", "exam_id", "subject_id", "unit_id", "chapter_id"),
    ),
    EntityDescriptor(
        entity_type=EntityType.SUB_TOPIC,
        label="SubTopic",
        table="sub_topics",
        batch_key="subTopics",
        columns=_COMMON + ("exam_id", "subject_id", "unit_id", "chapter_id", "topic_id"),
        parent_field="topic_id",
        scope_fields=("topic_id",),
        scope_label="topic",
        children=(ChildLink(EntityType.DEFINITION, "sub_topic_id"),),
        linked=(ChildLink(EntityType.PRACTICE_SUB_CATEGORY, "sub_topic_id"),),
        details=DetailsTable("sub_topic_details", "sub_topic_id"),
        required=("name", "order_number", "exam_id", "subject_id", "unit_id", "chapter_id", "topic_id"),
    ),
    EntityDescriptor(
        entity_type=EntityType.DEFINITION,
        label="Definition",
        table="definitions",
        batch_key="definitions",
        columns=_COMMON + ("exam_id", "subject_id", "unit_id", "chapter_id", "topic_id", "sub_topic_id"),
        parent_field="sub_topic_id",
        scope_fields=("sub_topic_id",),
        scope_label="subtopic",
        details=DetailsTable("definition_details", "definition_id"),
        required=("name", "order_number", "exam_id", "subject_id", "unit_id", "topic_id", "sub_topic_id"),
    ),
    EntityDescriptor(
        entity_type=EntityType.PRACTICE_CATEGORY,
        label="Practice category",
        table="practice_categories",
        batch_key="categories",
        columns=(
            "name", "exam_id", "subject_id", "status", "order_number", "description",
            "no_of_tests", "mode", "duration", "language",
        ),
        parent_field="exam_id",
        scope_label="exam",
        scope_fields=("exam_id",),
        children=(ChildLink(EntityType.PRACTICE_SUB_CATEGORY, "category_id"),),
        required=("name", "exam_id"),
    ),
    EntityDescriptor(
        entity_type=EntityType.PRACTICE_SUB_CATEGORY,
        label="Practice subcategory",
        table="practice_sub_categories",
        batch_key="subCategories",
        columns=(
            "name", "category_id", "unit_id", "chapter_id", "topic_id", "sub_topic_id",
            "duration", "maximum_marks", "number_of_questions", "negative_marks",
            "status", "order_number", "description",
        ),
        parent_field="category_id",
        scope_fields=("category_id",),
        scope_label="category",
        children=(ChildLink(EntityType.PRACTICE_QUESTION, "sub_category_id"),),
        required=("name", "category_id"),
    ),
    EntityDescriptor(
        entity_type=EntityType.PRACTICE_QUESTION,
        label="Practice question",
        table="practice_questions",
        batch_key="questions",
        columns=(
            "question", "option_a", "option_b", "option_c", "option_d", "answer",
            "video_link", "details_explanation", "sub_category_id", "status", "order_number",
        ),
        parent_field="sub_category_id",
        scope_fields=("sub_category_id",),
        scope_label="subcategory",
        required=("question", "option_a", "option_b", "option_c", "option_d", "answer", "sub_category_id"),
    ),
)

HIERARCHY: Mapping[str, EntityDescriptor] = MappingProxyType(
    {d.entity_type: d for d in _DESCRIPTORS}
)

# Types owning a details side-record, in tree order.
DETAILED_TYPES: tuple[str, ...] = tuple(d.entity_type for d in _DESCRIPTORS if d.details)

# Deepest first; details are removed right before their owners.
DELETE_ORDER: tuple[str, ...] = (
    EntityType.PRACTICE_QUESTION,
    EntityType.PRACTICE_SUB_CATEGORY,
    EntityType.PRACTICE_CATEGORY,
    EntityType.DEFINITION,
    EntityType.SUB_TOPIC,
    EntityType.TOPIC,
    EntityType.CHAPTER,
    EntityType.UNIT,
    EntityType.SUBJECT,
    EntityType.EXAM,
)


def camelize(column: str) -> str:
    """Map a storage column to its API field name (sub_topic_id -> subTopicId)."""
    head, *rest = column.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def get_descriptor(entity_type: str) -> EntityDescriptor:
    try:
        return HIERARCHY[entity_type]
    except KeyError:
        raise InvalidInput(f"Unknown entity type: {entity_type}") from None


def descendant_types(entity_type: str) -> list[str]:
    """Return every type reachable through ``children``, parent to child."""
    out: list[str] = []
    frontier = [entity_type]
    while frontier:
        nxt: list[str] = []
        for parent in frontier:
            for link in HIERARCHY[parent].children:
                if link.child_type not in out:
                    out.append(link.child_type)
                    nxt.append(link.child_type)
        frontier = nxt
    return out


__all__ = [
    "REGISTRY_VERSION",
    "EntityType",
    "ChildLink",
    "DetailsTable",
    "EntityDescriptor",
    "HIERARCHY",
    "DETAILED_TYPES",
    "DELETE_ORDER",
    "camelize",
    "get_descriptor",
    "descendant_types",
]
