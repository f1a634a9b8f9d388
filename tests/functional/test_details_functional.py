"""Functional tests for the per-node details side-records."""

from __future__ import annotations

import pytest
from sqlalchemy import text as sql_text

from app.logic.errors import InvalidInput, NotFound
from app.logic.hierarchy import EntityType as T
from app.logic.repository_details import default_details, delete_details, upsert_details


def _count(store, table: str) -> int:
    with store.engine.connect() as conn:
        return int(conn.execute(sql_text(f"SELECT COUNT(*) FROM {table}")).scalar_one())


def test_get_returns_defaults_when_no_record_exists(client, tree, admin_headers):
    resp = client.get("/api/exam/exam-1/details", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "examId": "exam-1",
        "content": "",
        "title": "",
        "metaDescription": "",
        "keywords": "",
        "status": "draft",
    }


def test_get_for_unknown_owner_is_404(client, tree, admin_headers):
    resp = client.get("/api/unit/unit-404/details", headers=admin_headers)

    assert resp.status_code == 404
    assert resp.json()["message"] == "Unit not found"


def test_put_twice_keeps_a_single_record(client, tree, store, admin_headers):
    first = client.put(
        "/api/chapter/chapter-1/details",
        json={"title": "  Kinematics basics ", "content": "<p>v = u + at</p>", "status": "published"},
        headers=admin_headers,
    )
    assert first.status_code == 200
    assert first.json()["message"] == "Chapter details saved successfully"
    assert first.json()["data"]["title"] == "Kinematics basics"

    second = client.put(
        "/api/chapter/chapter-1/details",
        json={"title": "Kinematics", "keywords": " motion, velocity "},
        headers=admin_headers,
    )

    data = second.json()["data"]
    assert data["id"] == first.json()["data"]["id"]
    assert data["chapterId"] == "chapter-1"
    assert data["title"] == "Kinematics"
    assert data["keywords"] == "motion, velocity"
    # Omitted fields fall back to their defaults
    assert data["content"] == ""
    assert data["status"] == "draft"
    assert _count(store, "chapter_details") == 1


def test_content_is_stored_untrimmed(store, tree):
    saved = upsert_details(store, T.TOPIC, "topic-1", {"content": "  body  "})

    assert saved["content"] == "  body  "


def test_get_after_put_returns_the_record(client, tree, admin_headers):
    client.put("/api/subtopic/subtopic-1/details", json={"title": "Range"}, headers=admin_headers)

    resp = client.get("/api/subtopic/subtopic-1/details", headers=admin_headers)

    assert resp.json()["data"]["title"] == "Range"
    assert resp.json()["data"]["subTopicId"] == "subtopic-1"


def test_delete_then_delete_again(client, tree, admin_headers):
    client.put("/api/definition/definition-1/details", json={"title": "Range"}, headers=admin_headers)

    first = client.delete("/api/definition/definition-1/details", headers=admin_headers)
    second = client.delete("/api/definition/definition-1/details", headers=admin_headers)

    assert first.status_code == 200
    assert first.json()["message"] == "Definition details deleted successfully"
    assert first.json()["data"]["definitionId"] == "definition-1"
    assert second.status_code == 404
    assert second.json()["message"] == "Definition details not found"


@pytest.mark.parametrize("payload", [{"title": 5}, {"keywords": ["a", "b"]}, ["title"]])
def test_non_string_fields_are_rejected(store, tree, payload):
    with pytest.raises(InvalidInput):
        upsert_details(store, T.EXAM, "exam-1", payload)


def test_put_for_unknown_owner_writes_nothing(store, tree):
    with pytest.raises(NotFound):
        upsert_details(store, T.SUBJECT, "subject-404", {"title": "x"})

    assert _count(store, "subject_details") == 0


def test_practice_types_have_no_details(store, tree):
    with pytest.raises(InvalidInput):
        delete_details(store, T.PRACTICE_CATEGORY, "category-1")


def test_practice_paths_have_no_details_route(client, tree, admin_headers):
    resp = client.get("/api/practice/category/category-1/details", headers=admin_headers)

    assert resp.status_code in (404, 405)
    assert resp.json()["success"] is False


def test_default_details_names_the_owner_field():
    assert default_details("sub_topic_id", "st-1")["subTopicId"] == "st-1"
