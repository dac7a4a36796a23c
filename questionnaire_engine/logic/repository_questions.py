"""Question-related repository helpers.

Encapsulates DB reads/writes on `question`. Options are decoded through the
option codec on the way out and stored in canonical form on the way in.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from questionnaire_engine.logic import option_codec
from questionnaire_engine.models.entities import Question

_QUESTION_COLUMNS = (
    "id, question_text, question_type, options, placeholder_text, help_text, is_required, is_fixed"
)


def to_question(row: Mapping[str, Any], *, prefix: str = "") -> Question:
    """Decode a (possibly prefixed) result row into a Question."""
    return Question(
        id=int(row[f"{prefix}id"]),
        question_text=str(row[f"{prefix}question_text"]),
        question_type=str(row[f"{prefix}question_type"]),
        options=option_codec.decode(row.get(f"{prefix}options")),
        placeholder_text=str(row.get(f"{prefix}placeholder_text") or ""),
        help_text=str(row.get(f"{prefix}help_text") or ""),
        is_required=bool(row.get(f"{prefix}is_required")),
        is_fixed=bool(row.get(f"{prefix}is_fixed")),
    )


def get_question(conn: Connection, question_id: int) -> Optional[Question]:
    row = conn.execute(
        sql_text(f"SELECT {_QUESTION_COLUMNS} FROM question WHERE id = :id"),
        {"id": int(question_id)},
    ).mappings().fetchone()
    return to_question(row) if row else None


def upsert_question(
    conn: Connection,
    *,
    question_text: str,
    question_type: str,
    options: Iterable[str] = (),
    placeholder_text: str = "",
    help_text: str = "",
    is_required: bool = False,
    is_fixed: bool = False,
    question_id: Optional[int] = None,
) -> Question:
    """Insert a question, or update its editable fields when ``question_id`` is given.

    ``is_fixed`` is only written on insert.
    """
    params = {
        "text": question_text,
        "type": question_type,
        "options": option_codec.encode(options),
        "placeholder": placeholder_text,
        "help": help_text,
        "required": bool(is_required),
        "fixed": bool(is_fixed),
    }
    if question_id is None:
        row = conn.execute(
            sql_text(
                f"""
                INSERT INTO question (question_text, question_type, options, placeholder_text, help_text, is_required, is_fixed)
                VALUES (:text, :type, :options, :placeholder, :help, :required, :fixed)
                RETURNING {_QUESTION_COLUMNS}
                """
            ),
            params,
        ).mappings().fetchone()
        return to_question(row)

    conn.execute(
        sql_text(
            """
            UPDATE question
            SET question_text = :text, question_type = :type, options = :options,
                placeholder_text = :placeholder, help_text = :help, is_required = :required
            WHERE id = :qid
            """
        ),
        {**params, "qid": int(question_id)},
    )
    question = get_question(conn, int(question_id))
    assert question is not None
    return question


def count_memberships(conn: Connection, question_id: int) -> int:
    """Return how many questionnaires reference the question."""
    row = conn.execute(
        sql_text("SELECT COUNT(*) FROM questionnaire_question WHERE question_id = :qid"),
        {"qid": int(question_id)},
    ).fetchone()
    return int(row[0]) if row and row[0] is not None else 0


def delete_question(conn: Connection, question_id: int) -> None:
    conn.execute(sql_text("DELETE FROM question WHERE id = :qid"), {"qid": int(question_id)})


def list_questionnaire_ids(conn: Connection, question_id: int) -> list[int]:
    """Return ids of every questionnaire the question belongs to."""
    rows = conn.execute(
        sql_text(
            "SELECT questionnaire_id FROM questionnaire_question "
            "WHERE question_id = :qid ORDER BY questionnaire_id ASC"
        ),
        {"qid": int(question_id)},
    ).fetchall()
    return [int(r[0]) for r in rows]
