"""Functional tests for two-phase sibling reordering."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.logic.entity_store import Repository
from app.logic.errors import ConflictScope, InvalidInput, NotFound, PartialReorderFailure, StoreFailure
from app.logic.hierarchy import EntityType as T
from app.logic.order_sequences import (
    MAX_REORDER_BATCH_SIZE,
    TEMP_ORDER_OFFSET,
    reorder_siblings,
)


def _orders(fetch, entity_type, *ids):
    return [fetch(entity_type, i)["orderNumber"] for i in ids]


def test_swap_two_subjects(client, tree, fetch, admin_headers):
    """Scenario: two siblings exchange positions without a unique violation."""
    resp = client.patch(
        "/api/subject/reorder",
        json={"subjects": [{"id": "subject-1", "orderNumber": 2}, {"id": "subject-2", "orderNumber": 1}]},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Subjects reordered successfully"
    assert body["modifiedCount"] == 2
    assert _orders(fetch, T.SUBJECT, "subject-1", "subject-2") == [2, 1]


def test_post_is_accepted_for_reorder(client, tree, fetch, admin_headers):
    resp = client.post(
        "/api/unit/reorder",
        json={"units": [{"id": "unit-1", "orderNumber": 2}, {"id": "unit-2", "orderNumber": 1}]},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert _orders(fetch, T.UNIT, "unit-1", "unit-2") == [2, 1]


def test_single_item_batch(store, tree, fetch):
    result = reorder_siblings(store, T.DEFINITION, [{"id": "definition-2", "orderNumber": 5}])

    assert result.requested == 1
    assert result.modified_count == 1
    assert _orders(fetch, T.DEFINITION, "definition-1", "definition-2") == [1, 5]


def test_reapplying_the_same_batch_is_stable(store, tree, fetch):
    batch = [{"id": "definition-1", "orderNumber": 2}, {"id": "definition-2", "orderNumber": 1}]

    reorder_siblings(store, T.DEFINITION, batch)
    reorder_siblings(store, T.DEFINITION, batch)

    assert _orders(fetch, T.DEFINITION, "definition-1", "definition-2") == [2, 1]


def test_exams_reorder_without_parent_scope(store, tree, fetch):
    reorder_siblings(
        store, T.EXAM, [{"id": "exam-1", "orderNumber": 2}, {"id": "exam-2", "orderNumber": 1}]
    )

    assert _orders(fetch, T.EXAM, "exam-1", "exam-2") == [2, 1]


def test_practice_questions_reorder(client, tree, fetch, admin_headers):
    resp = client.patch(
        "/api/practice/question/reorder",
        json={"questions": [{"id": "question-1", "orderNumber": 2}, {"id": "question-2", "orderNumber": 1}]},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.json()["message"] == "Questions reordered successfully"
    assert _orders(fetch, T.PRACTICE_QUESTION, "question-1", "question-2") == [2, 1]


def test_unknown_id_returns_404_and_leaves_orders(client, tree, fetch, admin_headers):
    """Scenario: any id missing from the store aborts before writing."""
    resp = client.patch(
        "/api/subject/reorder",
        json={"subjects": [{"id": "subject-1", "orderNumber": 2}, {"id": "ghost", "orderNumber": 1}]},
        headers=admin_headers,
    )

    assert resp.status_code == 404
    assert resp.json()["message"] == "Some subjects not found"
    assert _orders(fetch, T.SUBJECT, "subject-1", "subject-2") == [1, 2]


def test_siblings_from_different_parents_are_rejected(client, tree, fetch, admin_headers):
    """Scenario: a batch spanning two exams is a scope conflict."""
    resp = client.patch(
        "/api/subject/reorder",
        json={"subjects": [{"id": "subject-1", "orderNumber": 2}, {"id": "subject-3", "orderNumber": 1}]},
        headers=admin_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["message"] == "All subjects must belong to the same exam"
    assert _orders(fetch, T.SUBJECT, "subject-1", "subject-3") == [1, 1]


def test_engine_scope_conflict_kind(store, tree):
    with pytest.raises(ConflictScope):
        reorder_siblings(
            store, T.SUBJECT, [{"id": "subject-2", "orderNumber": 1}, {"id": "subject-3", "orderNumber": 2}]
        )


def test_engine_not_found_kind(store, tree):
    with pytest.raises(NotFound):
        reorder_siblings(store, T.UNIT, [{"id": "unit-9", "orderNumber": 1}])


@pytest.mark.parametrize(
    "items",
    [
        [],
        None,
        "subject-1",
        [{"id": "subject-1", "orderNumber": 0}],
        [{"id": "subject-1", "orderNumber": -3}],
        [{"id": "subject-1", "orderNumber": "2"}],
        [{"id": "subject-1", "orderNumber": 1.5}],
        [{"id": "subject-1", "orderNumber": True}],
        [{"id": "subject-1"}],
        [{"orderNumber": 1}],
        [{"id": "", "orderNumber": 1}],
        [{"id": "subject-1", "orderNumber": TEMP_ORDER_OFFSET}],
        [{"id": "subject-1", "orderNumber": 1}, {"id": "subject-1", "orderNumber": 2}],
        [{"id": "subject-1", "orderNumber": 1}, {"id": "subject-2", "orderNumber": 1}],
        ["subject-1"],
    ],
)
def test_invalid_batches_never_reach_the_store(store, tree, fetch, mocker, items):
    """Scenario: malformed input is rejected before any lookup or write."""
    lookup = mocker.spy(Repository, "find_many_by_ids")
    write = mocker.spy(Repository, "bulk_write_order_numbers")

    with pytest.raises(InvalidInput):
        reorder_siblings(store, T.SUBJECT, items)

    assert lookup.call_count == 0
    assert write.call_count == 0
    assert _orders(fetch, T.SUBJECT, "subject-1", "subject-2") == [1, 2]


def test_batch_larger_than_limit_is_rejected(store, tree):
    items = [{"id": f"subject-{i}", "orderNumber": 1} for i in range(MAX_REORDER_BATCH_SIZE + 1)]

    with pytest.raises(InvalidInput):
        reorder_siblings(store, T.SUBJECT, items)


def test_missing_batch_key_returns_400(client, tree, admin_headers):
    resp = client.patch(
        "/api/chapter/reorder", json={"units": [{"id": "chapter-1", "orderNumber": 1}]}, headers=admin_headers
    )

    assert resp.status_code == 400
    assert resp.json()["message"] == "chapters array is required"


def test_phase_two_failure_leaves_parked_orders_and_retry_recovers(store, tree, fetch, mocker):
    """Scenario: a failure between phases is reported and a resend completes the reorder."""
    real = Repository.bulk_write_order_numbers
    calls = {"n": 0}

    def flaky(self, pairs):
        calls["n"] += 1
        if calls["n"] == 2:
            raise OperationalError("UPDATE subjects", {}, Exception("connection reset"))
        return real(self, pairs)

    mocker.patch.object(Repository, "bulk_write_order_numbers", autospec=True, side_effect=flaky)
    batch = [{"id": "subject-1", "orderNumber": 2}, {"id": "subject-2", "orderNumber": 1}]

    with pytest.raises(PartialReorderFailure) as ei:
        reorder_siblings(store, T.SUBJECT, batch)

    assert ei.value.ids == ["subject-1", "subject-2"]
    assert isinstance(ei.value.__cause__, OperationalError)
    assert _orders(fetch, T.SUBJECT, "subject-1", "subject-2") == [TEMP_ORDER_OFFSET, TEMP_ORDER_OFFSET + 1]

    result = reorder_siblings(store, T.SUBJECT, batch)

    assert result.modified_count == 2
    assert _orders(fetch, T.SUBJECT, "subject-1", "subject-2") == [2, 1]


def test_target_taken_by_sibling_outside_batch_fails_in_phase_two(client, tree, fetch, admin_headers):
    resp = client.patch(
        "/api/subject/reorder",
        json={"subjects": [{"id": "subject-1", "orderNumber": 2}]},
        headers=admin_headers,
    )

    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert fetch(T.SUBJECT, "subject-1")["orderNumber"] == TEMP_ORDER_OFFSET
    assert fetch(T.SUBJECT, "subject-2")["orderNumber"] == 2


def test_reorder_invalidates_cached_lists(client, tree, admin_headers):
    before = client.get("/api/subject", params={"parentId": "exam-1"}, headers=admin_headers)
    assert [s["id"] for s in before.json()["data"]] == ["subject-1", "subject-2"]

    client.patch(
        "/api/subject/reorder",
        json={"subjects": [{"id": "subject-1", "orderNumber": 2}, {"id": "subject-2", "orderNumber": 1}]},
        headers=admin_headers,
    )

    after = client.get("/api/subject", params={"parentId": "exam-1"}, headers=admin_headers)
    assert [s["id"] for s in after.json()["data"]] == ["subject-2", "subject-1"]


def test_phase_one_collision_with_leftover_parked_row_is_500(client, store, tree, fetch, admin_headers):
    """A row still parked from an earlier partial failure blocks phase 1; nothing moves."""
    store.repository(T.DEFINITION).bulk_write_order_numbers([("definition-2", TEMP_ORDER_OFFSET)])

    resp = client.patch(
        "/api/definition/reorder",
        json={"definitions": [{"id": "definition-1", "orderNumber": 3}]},
        headers=admin_headers,
    )

    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Failed to reorder definitions; no order numbers were changed"
    assert _orders(fetch, T.DEFINITION, "definition-1", "definition-2") == [1, TEMP_ORDER_OFFSET]


def test_phase_one_store_error_is_reported_as_store_failure(store, tree, fetch, mocker):
    mocker.patch.object(
        Repository,
        "bulk_write_order_numbers",
        autospec=True,
        side_effect=IntegrityError("UPDATE units", {}, Exception("UNIQUE constraint failed")),
    )

    with pytest.raises(StoreFailure) as ei:
        reorder_siblings(store, T.UNIT, [{"id": "unit-1", "orderNumber": 2}, {"id": "unit-2", "orderNumber": 1}])

    assert isinstance(ei.value.__cause__, IntegrityError)
    assert _orders(fetch, T.UNIT, "unit-1", "unit-2") == [1, 2]
