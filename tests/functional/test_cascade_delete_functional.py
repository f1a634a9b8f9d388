"""Functional tests for deleting a node with its subtree."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from app.logic.cascade_delete import collect_subtree, delete_entity
from app.logic.entity_store import Repository
from app.logic.errors import NotFound, PartialDeleteFailure
from app.logic.hierarchy import EntityType as T
from app.logic.repository_details import upsert_details


def test_collect_subtree_of_unit_includes_linked_practice_rows(store, tree):
    subtree = collect_subtree(store, T.UNIT, "unit-1")

    assert {t: set(ids) for t, ids in subtree.items()} == {
        T.UNIT: {"unit-1"},
        T.CHAPTER: {"chapter-1"},
        T.PRACTICE_SUB_CATEGORY: {"subcategory-1"},
        T.TOPIC: {"topic-1"},
        T.PRACTICE_QUESTION: {"question-1", "question-2"},
        T.SUB_TOPIC: {"subtopic-1"},
        T.DEFINITION: {"definition-1", "definition-2"},
    }
    assert set(subtree[T.PRACTICE_QUESTION]) == {"question-1", "question-2"}
    assert set(subtree[T.DEFINITION]) == {"definition-1", "definition-2"}


def test_category_reached_through_exam_and_subject_is_collected_once(store, tree):
    subtree = collect_subtree(store, T.EXAM, "exam-1")

    assert subtree[T.PRACTICE_CATEGORY] == ["category-1"]


def test_deleting_an_exam_removes_its_whole_tree(client, tree, store, fetch, admin_headers):
    upsert_details(store, T.EXAM, "exam-1", {"title": "JEE"})
    upsert_details(store, T.DEFINITION, "definition-2", {"title": "Range"})

    resp = client.delete("/api/exam/exam-1", headers=admin_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Exam deleted successfully"
    assert body["data"]["entity"]["id"] == "exam-1"
    deleted = body["data"]["deleted"]
    assert deleted["exams"] == 1
    assert deleted["subjects"] == 2
    assert deleted["definitions"] == 2
    assert deleted["practice_questions"] == 2
    assert deleted["exam_details"] == 1
    assert deleted["definition_details"] == 1
    assert body["deletedCount"] == sum(deleted.values())

    for entity_type, entity_id in [
        (T.EXAM, "exam-1"),
        (T.SUBJECT, "subject-2"),
        (T.SUB_TOPIC, "subtopic-1"),
        (T.PRACTICE_CATEGORY, "category-1"),
        (T.PRACTICE_QUESTION, "question-2"),
    ]:
        assert fetch(entity_type, entity_id) is None, entity_id
    assert store.details(T.EXAM).find_by_owner("exam-1") is None
    # Assert: the other exam is untouched
    assert fetch(T.EXAM, "exam-2") is not None
    assert fetch(T.SUBJECT, "subject-3") is not None


def test_deleting_a_unit_keeps_the_practice_category(store, tree, fetch):
    result = delete_entity(store, T.UNIT, "unit-1")

    assert result.entity["id"] == "unit-1"
    assert fetch(T.CHAPTER, "chapter-1") is None
    assert fetch(T.DEFINITION, "definition-1") is None
    assert fetch(T.PRACTICE_SUB_CATEGORY, "subcategory-1") is None
    assert fetch(T.PRACTICE_QUESTION, "question-1") is None
    assert fetch(T.PRACTICE_CATEGORY, "category-1") is not None
    assert fetch(T.UNIT, "unit-2") is not None
    assert fetch(T.SUBJECT, "subject-1") is not None


def test_deleting_a_leaf_removes_only_it(store, tree, fetch):
    result = delete_entity(store, T.PRACTICE_QUESTION, "question-1")

    assert result.deleted == {"practice_questions": 1}
    assert result.deleted_count == 1
    assert fetch(T.PRACTICE_QUESTION, "question-2") is not None


def test_deleting_a_missing_node_is_404(client, tree, admin_headers):
    resp = client.delete("/api/topic/topic-404", headers=admin_headers)

    assert resp.status_code == 404
    assert resp.json()["message"] == "Topic not found"


def test_failure_after_some_deletes_is_partial(store, tree, fetch, mocker):
    real = Repository.delete_by_filter

    def flaky(self, field, ids):
        if self.entity_type == T.TOPIC:
            raise OperationalError("DELETE FROM topics", {}, Exception("database is locked"))
        return real(self, field, ids)

    mocker.patch.object(Repository, "delete_by_filter", autospec=True, side_effect=flaky)

    with pytest.raises(PartialDeleteFailure) as ei:
        delete_entity(store, T.CHAPTER, "chapter-1")

    assert ei.value.deleted["definitions"] == 2
    assert fetch(T.SUB_TOPIC, "subtopic-1") is None
    assert fetch(T.TOPIC, "topic-1") is not None
    assert fetch(T.CHAPTER, "chapter-1") is not None


def test_failure_before_any_delete_propagates_unchanged(store, tree, mocker):
    mocker.patch.object(
        Repository,
        "delete_by_filter",
        autospec=True,
        side_effect=OperationalError("DELETE", {}, Exception("database is locked")),
    )

    with pytest.raises(OperationalError):
        delete_entity(store, T.PRACTICE_QUESTION, "question-1")


def test_engine_not_found(store, tree):
    with pytest.raises(NotFound):
        delete_entity(store, T.EXAM, "exam-404")
