from __future__ import annotations

"""Functional test bootstrap.

Each test gets a fresh file-backed SQLite database with the SQLite
migrations applied, so store-backed tests never see each other's rows. The
engine singleton, the plan cache and the event buffer are reset around every
test.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text as sql_text

from questionnaire_engine.db.base import dispose_engine, get_engine
from questionnaire_engine.db.migrations_runner import apply_migrations
from questionnaire_engine.http.request_context import issue_csrf_token
from questionnaire_engine.logic import events, plan_cache

TEST_CSRF_SECRET = "functional-test-secret"
EDITOR_ID = "editor-1"


@pytest.fixture(autouse=True)
def engine(tmp_path, monkeypatch):
    """Point the engine at a per-test SQLite file and apply migrations."""
    url = f"sqlite:///{tmp_path / 'engine.db'}"
    monkeypatch.setenv("TEST_DATABASE_URL", url)
    monkeypatch.setenv("CSRF_SECRET", TEST_CSRF_SECRET)
    monkeypatch.setenv("REQUIRE_CSRF", "true")
    monkeypatch.setenv("SEED_FIXED_CONTACT_FIELDS", "false")
    monkeypatch.setenv("AUTO_APPLY_MIGRATIONS", "1")
    dispose_engine()
    eng = get_engine(url)
    apply_migrations(eng)
    plan_cache.clear()
    events.get_buffered_events(clear=True)
    yield eng
    plan_cache.clear()
    events.get_buffered_events(clear=True)
    dispose_engine()


@pytest.fixture
def client():
    from questionnaire_engine.main import create_app

    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def editor_headers() -> dict[str, str]:
    return {
        "X-Editor-Id": EDITOR_ID,
        "X-CSRF-Token": issue_csrf_token(EDITOR_ID, TEST_CSRF_SECRET),
    }


def _insert(conn, sql: str, params: dict) -> int:
    return int(conn.execute(sql_text(sql + " RETURNING id"), params).scalar_one())


class Seeder:
    """Writes fixture rows straight into the store, bypassing the builder."""

    def __init__(self, eng):
        self.engine = eng

    def service(self, slug: str, *, is_active: bool = True) -> int:
        with self.engine.begin() as conn:
            return _insert(
                conn,
                "INSERT INTO service (slug, name, is_active) VALUES (:slug, :name, :active)",
                {"slug": slug, "name": slug.title(), "active": is_active},
            )

    def questionnaire(self, title: str = "Anfrage", *, status: str = "active", service_id: int | None = None,
                      created_at: str | None = None) -> int:
        with self.engine.begin() as conn:
            if created_at is None:
                return _insert(
                    conn,
                    "INSERT INTO questionnaire (service_id, title, status) VALUES (:sid, :title, :status)",
                    {"sid": service_id, "title": title, "status": status},
                )
            return _insert(
                conn,
                "INSERT INTO questionnaire (service_id, title, status, created_at) "
                "VALUES (:sid, :title, :status, :created)",
                {"sid": service_id, "title": title, "status": status, "created": created_at},
            )

    def group(self, questionnaire_id: int, name: str, sort_order: int, *, is_fixed: bool = False,
              is_active: bool = True) -> int:
        with self.engine.begin() as conn:
            return _insert(
                conn,
                "INSERT INTO question_group (questionnaire_id, name, sort_order, is_fixed, is_active) "
                "VALUES (:qid, :name, :ord, :fixed, :active)",
                {"qid": questionnaire_id, "name": name, "ord": sort_order, "fixed": is_fixed, "active": is_active},
            )

    def question(self, questionnaire_id: int, text: str, *, group_id: int | None = None, sort_order: int = 0,
                 question_type: str = "text", options: str = "[]", is_fixed: bool = False) -> int:
        with self.engine.begin() as conn:
            qid = _insert(
                conn,
                "INSERT INTO question (question_text, question_type, options, is_fixed) "
                "VALUES (:text, :type, :options, :fixed)",
                {"text": text, "type": question_type, "options": options, "fixed": is_fixed},
            )
            conn.execute(
                sql_text(
                    "INSERT INTO questionnaire_question (questionnaire_id, question_id, group_id, sort_order) "
                    "VALUES (:qn, :q, :g, :ord)"
                ),
                {"qn": questionnaire_id, "q": qid, "g": group_id, "ord": sort_order},
            )
            return qid

    def attach(self, questionnaire_id: int, question_id: int, *, group_id: int | None = None,
               sort_order: int = 0) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                sql_text(
                    "INSERT INTO questionnaire_question (questionnaire_id, question_id, group_id, sort_order) "
                    "VALUES (:qn, :q, :g, :ord)"
                ),
                {"qn": questionnaire_id, "q": question_id, "g": group_id, "ord": sort_order},
            )

    def snapshot(self) -> dict:
        """Return every row of the composition tables, for before/after comparison."""
        tables = ("questionnaire", "question_group", "question", "questionnaire_question")
        with self.engine.connect() as conn:
            return {
                t: [tuple(r) for r in conn.execute(sql_text(f"SELECT * FROM {t} ORDER BY id")).fetchall()]
                for t in tables
            }

    def memberships(self, questionnaire_id: int) -> list[tuple]:
        """Return (question_id, group_id, sort_order) ordered by scope then sort_order."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                sql_text(
                    "SELECT question_id, group_id, sort_order FROM questionnaire_question "
                    "WHERE questionnaire_id = :qn ORDER BY COALESCE(group_id, -1), sort_order, question_id"
                ),
                {"qn": questionnaire_id},
            ).fetchall()
            return [tuple(r) for r in rows]


@pytest.fixture
def seed(engine) -> Seeder:
    return Seeder(engine)


@pytest.fixture
def scenario(seed) -> dict:
    """Questionnaire with group A (2 questions), group B (1 question) and one ungrouped question."""
    qn = seed.questionnaire("Umzug")
    a = seed.group(qn, "A", 0)
    b = seed.group(qn, "B", 1)
    q1 = seed.question(qn, "Q1", group_id=a, sort_order=0)
    q2 = seed.question(qn, "Q2", group_id=a, sort_order=1)
    q3 = seed.question(qn, "Q3", group_id=b, sort_order=0)
    q4 = seed.question(qn, "Q4", sort_order=0)
    return {"qn": qn, "A": a, "B": b, "Q1": q1, "Q2": q2, "Q3": q3, "Q4": q4}
