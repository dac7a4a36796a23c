"""Questionnaire and service data access helpers."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from questionnaire_engine.models.entities import Questionnaire, Service

_QUESTIONNAIRE_COLUMNS = "id, service_id, title, description, status, created_at"


def _to_questionnaire(row: Mapping[str, Any]) -> Questionnaire:
    created = row.get("created_at")
    return Questionnaire(
        id=int(row["id"]),
        service_id=int(row["service_id"]) if row.get("service_id") is not None else None,
        title=str(row["title"]),
        description=str(row.get("description") or ""),
        status=str(row["status"]),
        created_at=str(created) if created is not None else None,
    )


def get_questionnaire(conn: Connection, questionnaire_id: int) -> Optional[Questionnaire]:
    row = conn.execute(
        sql_text(f"SELECT {_QUESTIONNAIRE_COLUMNS} FROM questionnaire WHERE id = :id"),
        {"id": int(questionnaire_id)},
    ).mappings().fetchone()
    return _to_questionnaire(row) if row else None


def get_latest_questionnaire_for_service(
    conn: Connection, service_id: int, statuses: tuple[str, ...]
) -> Optional[Questionnaire]:
    """Return the most recently created questionnaire of a service in ``statuses``.

    Ties on created_at are broken by the highest id.
    """
    params: dict[str, Any] = {"sid": int(service_id)}
    placeholders = []
    for i, status in enumerate(statuses):
        params[f"st{i}"] = status
        placeholders.append(f":st{i}")
    row = conn.execute(
        sql_text(
            f"""
            SELECT {_QUESTIONNAIRE_COLUMNS}
            FROM questionnaire
            WHERE service_id = :sid AND status IN ({", ".join(placeholders)})
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """
        ),
        params,
    ).mappings().fetchone()
    return _to_questionnaire(row) if row else None


def insert_questionnaire(
    conn: Connection,
    *,
    service_id: Optional[int],
    title: str,
    description: str,
    status: str,
) -> Questionnaire:
    row = conn.execute(
        sql_text(
            f"""
            INSERT INTO questionnaire (service_id, title, description, status)
            VALUES (:sid, :title, :description, :status)
            RETURNING {_QUESTIONNAIRE_COLUMNS}
            """
        ),
        {"sid": service_id, "title": title, "description": description, "status": status},
    ).mappings().fetchone()
    return _to_questionnaire(row)


def update_questionnaire_status(conn: Connection, questionnaire_id: int, status: str) -> None:
    conn.execute(
        sql_text("UPDATE questionnaire SET status = :status WHERE id = :id"),
        {"status": status, "id": int(questionnaire_id)},
    )


def get_service_by_slug(conn: Connection, slug: str) -> Optional[Service]:
    row = conn.execute(
        sql_text("SELECT id, slug, name, is_active FROM service WHERE slug = :slug"),
        {"slug": str(slug)},
    ).mappings().fetchone()
    if not row:
        return None
    return Service(id=int(row["id"]), slug=str(row["slug"]), name=str(row["name"]), is_active=bool(row["is_active"]))


def get_service(conn: Connection, service_id: int) -> Optional[Service]:
    row = conn.execute(
        sql_text("SELECT id, slug, name, is_active FROM service WHERE id = :id"),
        {"id": int(service_id)},
    ).mappings().fetchone()
    if not row:
        return None
    return Service(id=int(row["id"]), slug=str(row["slug"]), name=str(row["name"]), is_active=bool(row["is_active"]))
