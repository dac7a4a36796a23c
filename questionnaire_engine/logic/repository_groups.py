"""Group-related repository helpers.

Encapsulates DB reads/writes on `question_group`, keeping the builder free
of direct SQL. Functions take the caller's connection so several calls can
share one transaction.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from questionnaire_engine.errors import NotFoundError
from questionnaire_engine.models.entities import Group

_GROUP_COLUMNS = "id, questionnaire_id, name, description, sort_order, is_fixed, is_active"


def _to_group(row: Mapping[str, Any]) -> Group:
    return Group(
        id=int(row["id"]),
        questionnaire_id=int(row["questionnaire_id"]),
        name=str(row["name"]),
        description=str(row.get("description") or ""),
        sort_order=int(row.get("sort_order") or 0),
        is_fixed=bool(row.get("is_fixed")),
        is_active=bool(row.get("is_active")),
    )


def get_group(conn: Connection, group_id: int) -> Optional[Group]:
    row = conn.execute(
        sql_text(f"SELECT {_GROUP_COLUMNS} FROM question_group WHERE id = :id"),
        {"id": int(group_id)},
    ).mappings().fetchone()
    return _to_group(row) if row else None


def list_groups(conn: Connection, questionnaire_id: int, *, active_only: bool = True) -> List[Group]:
    """Return groups of a questionnaire ordered by sort_order, then id."""
    where = "questionnaire_id = :qid"
    if active_only:
        where += " AND is_active = TRUE"
    rows = conn.execute(
        sql_text(f"SELECT {_GROUP_COLUMNS} FROM question_group WHERE {where} ORDER BY sort_order ASC, id ASC"),
        {"qid": int(questionnaire_id)},
    ).mappings().all()
    return [_to_group(r) for r in rows]


def get_fixed_group(conn: Connection, questionnaire_id: int) -> Optional[Group]:
    row = conn.execute(
        sql_text(
            f"SELECT {_GROUP_COLUMNS} FROM question_group "
            "WHERE questionnaire_id = :qid AND is_fixed = TRUE ORDER BY id ASC LIMIT 1"
        ),
        {"qid": int(questionnaire_id)},
    ).mappings().fetchone()
    return _to_group(row) if row else None


def max_group_sort_order(conn: Connection, questionnaire_id: int) -> Optional[int]:
    """Return the highest group sort_order of a questionnaire, or None without groups."""
    row = conn.execute(
        sql_text("SELECT MAX(sort_order) FROM question_group WHERE questionnaire_id = :qid"),
        {"qid": int(questionnaire_id)},
    ).fetchone()
    return int(row[0]) if row and row[0] is not None else None


def upsert_group(
    conn: Connection,
    *,
    questionnaire_id: int,
    name: str,
    description: str = "",
    sort_order: int = 0,
    is_fixed: bool = False,
    is_active: bool = True,
    group_id: Optional[int] = None,
) -> Group:
    """Insert a group, or update name/description/sort_order/is_active when ``group_id`` is given."""
    params = {
        "qid": int(questionnaire_id),
        "name": name,
        "description": description,
        "sort_order": int(sort_order),
        "is_fixed": bool(is_fixed),
        "is_active": bool(is_active),
    }
    if group_id is None:
        row = conn.execute(
            sql_text(
                f"""
                INSERT INTO question_group (questionnaire_id, name, description, sort_order, is_fixed, is_active)
                VALUES (:qid, :name, :description, :sort_order, :is_fixed, :is_active)
                RETURNING {_GROUP_COLUMNS}
                """
            ),
            params,
        ).mappings().fetchone()
        return _to_group(row)

    conn.execute(
        sql_text(
            """
            UPDATE question_group
            SET name = :name, description = :description, sort_order = :sort_order, is_active = :is_active
            WHERE id = :gid AND questionnaire_id = :qid
            """
        ),
        {**params, "gid": int(group_id)},
    )
    group = get_group(conn, int(group_id))
    if group is None or group.questionnaire_id != int(questionnaire_id):
        raise NotFoundError(f"group {group_id} not found in questionnaire {questionnaire_id}")
    return group


def update_group_sort_order(conn: Connection, group_id: int, sort_order: int) -> None:
    conn.execute(
        sql_text("UPDATE question_group SET sort_order = :ord WHERE id = :gid"),
        {"ord": int(sort_order), "gid": int(group_id)},
    )


def delete_group(conn: Connection, group_id: int) -> None:
    conn.execute(sql_text("DELETE FROM question_group WHERE id = :gid"), {"gid": int(group_id)})
