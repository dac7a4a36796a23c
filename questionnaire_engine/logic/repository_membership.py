"""Membership (questionnaire↔question junction) repository helpers.

`list_membership` is the canonical storage-order query consumed by the
composition resolver. The remaining helpers read and write one ordering
scope at a time (a group, or the ungrouped bucket, of one questionnaire).
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from questionnaire_engine.logic.repository_questions import to_question
from questionnaire_engine.models.entities import Group, MembershipRow

logger = logging.getLogger(__name__)

_MEMBERSHIP_SELECT = """
    SELECT m.questionnaire_id, m.question_id, m.group_id, m.sort_order,
           q.id AS q_id, q.question_text AS q_question_text, q.question_type AS q_question_type,
           q.options AS q_options, q.placeholder_text AS q_placeholder_text,
           q.help_text AS q_help_text, q.is_required AS q_is_required, q.is_fixed AS q_is_fixed,
           g.id AS g_id, g.name AS g_name, g.description AS g_description,
           g.sort_order AS g_sort_order, g.is_fixed AS g_is_fixed, g.is_active AS g_is_active
    FROM questionnaire_question m
    JOIN question q ON q.id = m.question_id
    LEFT JOIN question_group g
           ON g.id = m.group_id AND g.questionnaire_id = m.questionnaire_id AND g.is_active = TRUE
    WHERE m.questionnaire_id = :qid
"""


def _to_membership(row: Mapping[str, Any]) -> MembershipRow:
    group: Optional[Group] = None
    if row.get("g_id") is not None:
        group = Group(
            id=int(row["g_id"]),
            questionnaire_id=int(row["questionnaire_id"]),
            name=str(row["g_name"]),
            description=str(row.get("g_description") or ""),
            sort_order=int(row.get("g_sort_order") or 0),
            is_fixed=bool(row.get("g_is_fixed")),
            is_active=bool(row.get("g_is_active")),
        )
    return MembershipRow(
        questionnaire_id=int(row["questionnaire_id"]),
        question_id=int(row["question_id"]),
        group_id=int(row["group_id"]) if row.get("group_id") is not None else None,
        sort_order=int(row.get("sort_order") or 0),
        question=to_question(row, prefix="q_"),
        group=group,
    )


def list_membership(conn: Connection, questionnaire_id: int) -> List[MembershipRow]:
    """Return membership rows in canonical storage order.

    Ordering: grouped rows first by group sort_order (tie: group id), then
    membership sort_order, then question id; ungrouped rows last. Within the
    ungrouped rows, members of inactive groups come first (by former group
    id, then sort_order), followed by truly ungrouped rows, so questions
    appended to the ungrouped scope stay at the end.
    """
    rows = conn.execute(
        sql_text(
            _MEMBERSHIP_SELECT
            + """
    ORDER BY CASE WHEN g.id IS NULL THEN 1 ELSE 0 END ASC,
             g.sort_order ASC, g.id ASC,
             CASE WHEN m.group_id IS NULL THEN 1 ELSE 0 END ASC, m.group_id ASC,
             m.sort_order ASC, q.id ASC
            """
        ),
        {"qid": int(questionnaire_id)},
    ).mappings().all()
    return [_to_membership(r) for r in rows]


def get_membership(conn: Connection, questionnaire_id: int, question_id: int) -> Optional[MembershipRow]:
    row = conn.execute(
        sql_text(_MEMBERSHIP_SELECT + " AND m.question_id = :question_id"),
        {"qid": int(questionnaire_id), "question_id": int(question_id)},
    ).mappings().fetchone()
    return _to_membership(row) if row else None


def list_scope_question_ids(conn: Connection, questionnaire_id: int, group_id: Optional[int]) -> List[int]:
    """Return question ids of one scope ordered by sort_order, then question id."""
    if group_id is None:
        rows = conn.execute(
            sql_text(
                "SELECT question_id FROM questionnaire_question "
                "WHERE questionnaire_id = :qid AND group_id IS NULL "
                "ORDER BY sort_order ASC, question_id ASC"
            ),
            {"qid": int(questionnaire_id)},
        ).fetchall()
    else:
        rows = conn.execute(
            sql_text(
                "SELECT question_id FROM questionnaire_question "
                "WHERE questionnaire_id = :qid AND group_id = :gid "
                "ORDER BY sort_order ASC, question_id ASC"
            ),
            {"qid": int(questionnaire_id), "gid": int(group_id)},
        ).fetchall()
    return [int(r[0]) for r in rows]


def upsert_membership(
    conn: Connection,
    *,
    questionnaire_id: int,
    question_id: int,
    group_id: Optional[int],
    sort_order: int,
) -> None:
    """Create the association, or move it to ``group_id``/``sort_order`` if present."""
    params = {
        "qid": int(questionnaire_id),
        "question_id": int(question_id),
        "gid": int(group_id) if group_id is not None else None,
        "ord": int(sort_order),
    }
    updated = conn.execute(
        sql_text(
            "UPDATE questionnaire_question SET group_id = :gid, sort_order = :ord "
            "WHERE questionnaire_id = :qid AND question_id = :question_id"
        ),
        params,
    )
    if updated.rowcount:
        return
    conn.execute(
        sql_text(
            "INSERT INTO questionnaire_question (questionnaire_id, question_id, group_id, sort_order) "
            "VALUES (:qid, :question_id, :gid, :ord)"
        ),
        params,
    )


def delete_membership(conn: Connection, questionnaire_id: int, question_id: int) -> None:
    conn.execute(
        sql_text("DELETE FROM questionnaire_question WHERE questionnaire_id = :qid AND question_id = :question_id"),
        {"qid": int(questionnaire_id), "question_id": int(question_id)},
    )


def next_scope_sort_order(conn: Connection, questionnaire_id: int, group_id: Optional[int]) -> int:
    """Return the sort_order that appends to the end of a scope (0 for an empty scope)."""
    if group_id is None:
        row = conn.execute(
            sql_text(
                "SELECT COALESCE(MAX(sort_order), -1) FROM questionnaire_question "
                "WHERE questionnaire_id = :qid AND group_id IS NULL"
            ),
            {"qid": int(questionnaire_id)},
        ).fetchone()
    else:
        row = conn.execute(
            sql_text(
                "SELECT COALESCE(MAX(sort_order), -1) FROM questionnaire_question "
                "WHERE questionnaire_id = :qid AND group_id = :gid"
            ),
            {"qid": int(questionnaire_id), "gid": int(group_id)},
        ).fetchone()
    return (int(row[0]) if row and row[0] is not None else -1) + 1
