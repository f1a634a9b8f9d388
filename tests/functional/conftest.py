"""Functional test bootstrap for the content service.

Every test gets its own application built on a private in-memory SQLite
database (StaticPool keeps one connection per engine), with the SQL
migrations applied at app creation. Environment is fixed before `app` is
imported so `load_config()` picks it up.
"""

from __future__ import annotations

import os
import pathlib
import time
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient
from jose import jwt

_ROOT = pathlib.Path(__file__).resolve().parents[2]

TEST_SECRET = "functional-test-secret"

os.environ["TEST_DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["MIGRATIONS_DIR"] = str(_ROOT / "migrations")
os.environ["AUTO_APPLY_MIGRATIONS"] = "1"
os.environ["AUTH_ENABLED"] = "1"
os.environ["JWT_SECRET"] = TEST_SECRET
os.environ["JWT_ALGORITHM"] = "HS256"


def make_token(role: str, secret: str = TEST_SECRET, ttl: int = 3600) -> str:
    claims = {"sub": f"user-{role}", "role": role, "exp": int(time.time()) + ttl}
    return jwt.encode(claims, secret, algorithm="HS256")


def bearer(role: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(role)}"}


@pytest.fixture()
def app():
    from app.main import create_app

    return create_app()


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def store(app):
    return app.state.store


@pytest.fixture()
def admin_headers() -> Dict[str, str]:
    return bearer("admin")


def seed_tree(store) -> Dict[str, Any]:
    """Insert a small content tree plus a practice branch and return their ids.

    exam-1
      subject-1 (1)
        unit-1 (1)
          chapter-1 (1) > topic-1 (1) > subtopic-1 (1) > definition-1 (1), definition-2 (2)
        unit-2 (2)
      subject-2 (2)
    exam-2
      subject-3 (1)
    category-1 (exam-1, subject-1) > subcategory-1 (placed on unit-1) > question-1 (1), question-2 (2)
    """
    from app.logic.hierarchy import EntityType as T

    def put(entity_type: str, **values: Any) -> str:
        return store.repository(entity_type).insert(values)["id"]

    put(T.EXAM, id="exam-1", name="JEE", orderNumber=1)
    put(T.EXAM, id="exam-2", name="NEET", orderNumber=2)
    put(T.SUBJECT, id="subject-1", name="Physics", examId="exam-1", orderNumber=1)
    put(T.SUBJECT, id="subject-2", name="Chemistry", examId="exam-1", orderNumber=2)
    put(T.SUBJECT, id="subject-3", name="Biology", examId="exam-2", orderNumber=1)
    put(T.UNIT, id="unit-1", name="Mechanics", examId="exam-1", subjectId="subject-1", orderNumber=1)
    put(T.UNIT, id="unit-2", name="Optics", examId="exam-1", subjectId="subject-1", orderNumber=2)
    put(
        T.CHAPTER, id="chapter-1", name="Kinematics", orderNumber=1,
        examId="exam-1", subjectId="subject-1", unitId="unit-1",
    )
    put(
        T.TOPIC, id="topic-1", name="Projectiles", orderNumber=1,
        examId="exam-1", subjectId="subject-1", unitId="unit-1", chapterId="chapter-1",
    )
    put(
        T.SUB_TOPIC, id="subtopic-1", name="Range", orderNumber=1,
        examId="exam-1", subjectId="subject-1", unitId="unit-1", chapterId="chapter-1", topicId="topic-1",
    )
    for i in (1, 2):
        put(
            T.DEFINITION, id=f"definition-{i}", name=f"Definition {i}", orderNumber=i,
            examId="exam-1", subjectId="subject-1", unitId="unit-1", chapterId="chapter-1",
            topicId="topic-1", subTopicId="subtopic-1",
        )
    put(T.PRACTICE_CATEGORY, id="category-1", name="Mock tests", examId="exam-1", subjectId="subject-1", orderNumber=1)
    put(T.PRACTICE_SUB_CATEGORY, id="subcategory-1", name="Mechanics set", categoryId="category-1", unitId="unit-1", orderNumber=1)
    for i in (1, 2):
        put(
            T.PRACTICE_QUESTION, id=f"question-{i}", question=f"Q{i}?", optionA="a", optionB="b",
            optionC="c", optionD="d", answer="A", subCategoryId="subcategory-1", orderNumber=i,
        )
    return {"exam": "exam-1"}


@pytest.fixture()
def tree(store) -> Dict[str, Any]:
    return seed_tree(store)


def row(store, entity_type: str, entity_id: str) -> Dict[str, Any] | None:
    return store.repository(entity_type).find_by_id(entity_id)


@pytest.fixture()
def headers_for():
    return bearer


@pytest.fixture()
def token_for():
    return make_token


@pytest.fixture()
def fetch(store):
    def _fetch(entity_type: str, entity_id: str):
        return row(store, entity_type, entity_id)

    return _fetch
