"""Builder order reindexing helpers.

Provides backend-authoritative, contiguous 0-based reindexing for membership
``sort_order`` when inserting, moving or detaching questions within/between
scopes, and slot-preserving reindexing for group ``sort_order``. These
helpers are the single source of truth for final order values.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from sqlalchemy.engine import Connection

from questionnaire_engine.logic import repository_membership

logger = logging.getLogger(__name__)


def clamp_index(proposed_index: int, length: int) -> int:
    """Clamp a 0-based insert position into [0..length]."""
    return max(0, min(int(proposed_index), int(length)))


def insert_at(keys: Sequence[int], key: int, proposed_index: int) -> List[int]:
    """Return ``keys`` with ``key`` removed (if present) and inserted at the clamped position."""
    out = [k for k in keys if k != key]
    out.insert(clamp_index(proposed_index, len(out)), key)
    return out


def append_unique(keys: Sequence[int], extra: Sequence[int]) -> List[int]:
    """Return ``keys`` followed by the members of ``extra`` not already present."""
    out = list(keys)
    for k in extra:
        if k not in out:
            out.append(k)
    return out


def assign_slots(slots: Sequence[int], count: int) -> List[int]:
    """Return ``count`` strictly increasing sort values reusing ``slots`` where possible.

    Duplicate legacy values are bumped so that the requested order is the
    only ordering signal.
    """
    values = sorted(int(s) for s in slots)[:count]
    for i in range(1, len(values)):
        if values[i] <= values[i - 1]:
            values[i] = values[i - 1] + 1
    return values


def persist_scope_order(
    conn: Connection,
    questionnaire_id: int,
    group_id: Optional[int],
    question_ids: Sequence[int],
) -> None:
    """Write contiguous 0..n-1 sort_order values for one scope.

    Every listed question is (re)assigned to ``group_id``; callers pass the
    complete final member list of the scope.
    """
    for idx, question_id in enumerate(question_ids):
        repository_membership.upsert_membership(
            conn,
            questionnaire_id=questionnaire_id,
            question_id=int(question_id),
            group_id=group_id,
            sort_order=idx,
        )
    logger.info(
        "persist_scope_order qid=%s group_id=%s order=%s",
        questionnaire_id,
        group_id,
        list(question_ids),
    )


__all__ = [
    "clamp_index",
    "insert_at",
    "append_unique",
    "assign_slots",
    "persist_scope_order",
]
