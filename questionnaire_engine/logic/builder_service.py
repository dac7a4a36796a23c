"""Builder mutation service.

The only writer of groups, questions and memberships. Each operation runs
in one write transaction serialized per questionnaire, so it is applied as a
whole or not at all. Fixed groups and fixed questions are never modified.
After a successful commit the questionnaire's cached plan is dropped and one
domain event is published.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy.engine import Connection

from questionnaire_engine.db.base import write_transaction
from questionnaire_engine.errors import FixedElementError, NotFoundError, ValidationError
from questionnaire_engine.logic import events, option_codec, order_sequences, plan_cache
from questionnaire_engine.logic import repository_groups, repository_membership, repository_questionnaires
from questionnaire_engine.logic import repository_questions
from questionnaire_engine.models.entities import Group, MembershipRow, Question
from questionnaire_engine.models.question_type import QuestionType
from questionnaire_engine.models.requests import QuestionFields

logger = logging.getLogger(__name__)


def _require_questionnaire(conn: Connection, questionnaire_id: int) -> None:
    if repository_questionnaires.get_questionnaire(conn, questionnaire_id) is None:
        raise NotFoundError(f"questionnaire {questionnaire_id} not found")


def _require_group(conn: Connection, questionnaire_id: int, group_id: int) -> Group:
    """Return an active group of the questionnaire or raise NotFoundError."""
    group = repository_groups.get_group(conn, group_id)
    if group is None or group.questionnaire_id != int(questionnaire_id) or not group.is_active:
        raise NotFoundError(f"group {group_id} not found in questionnaire {questionnaire_id}")
    return group


def _require_membership(conn: Connection, questionnaire_id: int, question_id: int) -> MembershipRow:
    row = repository_membership.get_membership(conn, questionnaire_id, question_id)
    if row is None:
        raise NotFoundError(f"question {question_id} not found in questionnaire {questionnaire_id}")
    return row


def _reject_fixed_source(conn: Connection, row: MembershipRow) -> None:
    """Raise FixedElementError when the question or the group holding it is fixed."""
    if row.question.is_fixed:
        raise FixedElementError(f"question {row.question_id} is fixed")
    if row.group_id is not None:
        source = repository_groups.get_group(conn, row.group_id)
        if source is not None and source.is_fixed:
            raise FixedElementError(f"group {source.id} is fixed")


def _required_text(value: Optional[str], what: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{what} must not be empty")
    return text


def _next_group_sort_order(conn: Connection, questionnaire_id: int) -> int:
    current = repository_groups.max_group_sort_order(conn, questionnaire_id)
    return (current if current is not None else -1) + 1


def _committed(questionnaire_ids: Iterable[int], event_type: str, payload: dict) -> None:
    for qid in questionnaire_ids:
        plan_cache.invalidate(qid)
    events.publish(event_type, payload)


def reorder_membership(
    questionnaire_id: int,
    question_id: int,
    target_group_id: Optional[int],
    target_index: int,
) -> MembershipRow:
    """Move a question to ``target_index`` of a group, or of the ungrouped bucket.

    Both the source and the destination scope end up with contiguous
    0..n-1 sort_order values. Repeating the call with the same arguments
    leaves the membership state unchanged.
    """
    if int(target_index) < 0:
        raise ValidationError("target_index must be >= 0")
    with write_transaction(questionnaire_id) as conn:
        _require_questionnaire(conn, questionnaire_id)
        row = _require_membership(conn, questionnaire_id, question_id)
        _reject_fixed_source(conn, row)
        if target_group_id is not None:
            target = _require_group(conn, questionnaire_id, target_group_id)
            if target.is_fixed:
                raise FixedElementError(f"group {target.id} is fixed")

        source_ids = repository_membership.list_scope_question_ids(conn, questionnaire_id, row.group_id)
        if row.group_id == target_group_id:
            final = order_sequences.insert_at(source_ids, int(question_id), target_index)
            order_sequences.persist_scope_order(conn, questionnaire_id, target_group_id, final)
        else:
            remaining = [k for k in source_ids if k != int(question_id)]
            target_ids = repository_membership.list_scope_question_ids(conn, questionnaire_id, target_group_id)
            final = order_sequences.insert_at(target_ids, int(question_id), target_index)
            order_sequences.persist_scope_order(conn, questionnaire_id, row.group_id, remaining)
            order_sequences.persist_scope_order(conn, questionnaire_id, target_group_id, final)
        moved = _require_membership(conn, questionnaire_id, question_id)

    logger.info(
        "reorder_membership qid=%s question_id=%s from_group=%s to_group=%s order=%s",
        questionnaire_id,
        question_id,
        row.group_id,
        target_group_id,
        final,
    )
    _committed(
        [questionnaire_id],
        events.QUESTION_MOVED,
        {
            "questionnaire_id": questionnaire_id,
            "question_id": int(question_id),
            "group_id": target_group_id,
            "sort_order": moved.sort_order,
        },
    )
    return moved


def create_group_from_questions(
    questionnaire_id: int,
    question_ids: Iterable[int],
    name: str,
    description: str = "",
) -> Group:
    """Combine two or more loose questions into a new group appended after existing groups.

    Questions keep the order in which their ids were given. Not idempotent:
    every call creates a new group.
    """
    ids: List[int] = []
    for qid in question_ids:
        if int(qid) not in ids:
            ids.append(int(qid))
    if len(ids) < 2:
        raise ValidationError("at least two distinct questions are required to create a group")
    name = _required_text(name, "group name")

    with write_transaction(questionnaire_id) as conn:
        _require_questionnaire(conn, questionnaire_id)
        source_scopes: List[Optional[int]] = []
        for qid in ids:
            row = _require_membership(conn, questionnaire_id, qid)
            if row.question.is_fixed:
                raise ValidationError(f"fixed question {qid} cannot be grouped")
            _reject_fixed_source(conn, row)
            if row.group_id not in source_scopes:
                source_scopes.append(row.group_id)

        group = repository_groups.upsert_group(
            conn,
            questionnaire_id=questionnaire_id,
            name=name,
            description=description or "",
            sort_order=_next_group_sort_order(conn, questionnaire_id),
        )
        order_sequences.persist_scope_order(conn, questionnaire_id, group.id, ids)
        for scope in source_scopes:
            left = repository_membership.list_scope_question_ids(conn, questionnaire_id, scope)
            order_sequences.persist_scope_order(conn, questionnaire_id, scope, left)

    logger.info(
        "create_group_from_questions qid=%s group_id=%s sort_order=%s members=%s",
        questionnaire_id,
        group.id,
        group.sort_order,
        ids,
    )
    _committed(
        [questionnaire_id],
        events.GROUP_CREATED,
        {"questionnaire_id": questionnaire_id, "group_id": group.id, "question_ids": ids},
    )
    return group


def create_group(questionnaire_id: int, name: str, description: str = "") -> Group:
    """Create an empty group after the existing ones."""
    name = _required_text(name, "group name")
    with write_transaction(questionnaire_id) as conn:
        _require_questionnaire(conn, questionnaire_id)
        group = repository_groups.upsert_group(
            conn,
            questionnaire_id=questionnaire_id,
            name=name,
            description=description or "",
            sort_order=_next_group_sort_order(conn, questionnaire_id),
        )
    logger.info("create_group qid=%s group_id=%s sort_order=%s", questionnaire_id, group.id, group.sort_order)
    _committed(
        [questionnaire_id],
        events.GROUP_CREATED,
        {"questionnaire_id": questionnaire_id, "group_id": group.id, "question_ids": []},
    )
    return group


def delete_group(questionnaire_id: int, group_id: int) -> None:
    """Detach every member to the end of the ungrouped order, then delete the group."""
    with write_transaction(questionnaire_id) as conn:
        group = _require_group(conn, questionnaire_id, group_id)
        if group.is_fixed:
            raise FixedElementError(f"group {group.id} is fixed")
        members = repository_membership.list_scope_question_ids(conn, questionnaire_id, group.id)
        loose = repository_membership.list_scope_question_ids(conn, questionnaire_id, None)
        order_sequences.persist_scope_order(
            conn, questionnaire_id, None, order_sequences.append_unique(loose, members)
        )
        repository_groups.delete_group(conn, group.id)

    logger.info("delete_group qid=%s group_id=%s detached=%s", questionnaire_id, group_id, members)
    _committed(
        [questionnaire_id],
        events.GROUP_DELETED,
        {"questionnaire_id": questionnaire_id, "group_id": int(group_id), "detached": members},
    )


def delete_question(questionnaire_id: int, question_id: int) -> None:
    """Remove a question from the questionnaire; drop the question once nothing references it."""
    with write_transaction(questionnaire_id) as conn:
        row = _require_membership(conn, questionnaire_id, question_id)
        _reject_fixed_source(conn, row)
        repository_membership.delete_membership(conn, questionnaire_id, question_id)
        left = repository_membership.list_scope_question_ids(conn, questionnaire_id, row.group_id)
        order_sequences.persist_scope_order(conn, questionnaire_id, row.group_id, left)
        orphaned = repository_questions.count_memberships(conn, question_id) == 0
        if orphaned:
            repository_questions.delete_question(conn, question_id)

    logger.info(
        "delete_question qid=%s question_id=%s orphan_deleted=%s", questionnaire_id, question_id, orphaned
    )
    _committed(
        [questionnaire_id],
        events.QUESTION_DELETED,
        {"questionnaire_id": questionnaire_id, "question_id": int(question_id), "question_deleted": orphaned},
    )


def edit_group_metadata(
    questionnaire_id: int,
    group_id: int,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Group:
    with write_transaction(questionnaire_id) as conn:
        group = _require_group(conn, questionnaire_id, group_id)
        if group.is_fixed:
            raise FixedElementError(f"group {group.id} is fixed")
        new_name = _required_text(name if name is not None else group.name, "group name")
        new_description = description if description is not None else group.description
        updated = repository_groups.upsert_group(
            conn,
            questionnaire_id=questionnaire_id,
            name=new_name,
            description=new_description,
            sort_order=group.sort_order,
            is_fixed=group.is_fixed,
            is_active=group.is_active,
            group_id=group.id,
        )

    logger.info("edit_group_metadata qid=%s group_id=%s", questionnaire_id, group_id)
    _committed(
        [questionnaire_id],
        events.GROUP_UPDATED,
        {"questionnaire_id": questionnaire_id, "group_id": int(group_id)},
    )
    return updated


def _merge_question_fields(current: Optional[Question], fields: QuestionFields) -> dict:
    """Return validated column values for a question from ``fields`` over ``current``."""
    text = fields.question_text if fields.question_text is not None else (current.question_text if current else None)
    raw_type = fields.question_type if fields.question_type is not None else (current.question_type if current else None)
    qtype = QuestionType.normalize(raw_type)
    if qtype is None:
        raise ValidationError(f"unsupported question type {raw_type!r}")
    if fields.options is not None:
        options = option_codec.decode(fields.options)
    else:
        options = list(current.options) if current else []
    if qtype not in QuestionType.CHOICE:
        options = []

    def _pick(value, fallback):  # type: ignore[no-untyped-def]
        return value if value is not None else fallback

    return {
        "question_text": _required_text(text, "question text"),
        "question_type": qtype,
        "options": options,
        "placeholder_text": _pick(fields.placeholder_text, current.placeholder_text if current else ""),
        "help_text": _pick(fields.help_text, current.help_text if current else ""),
        "is_required": bool(_pick(fields.is_required, current.is_required if current else False)),
    }


def edit_question_metadata(questionnaire_id: int, question_id: int, fields: QuestionFields) -> Question:
    """Update a question's editable fields.

    Questions may be shared; every questionnaire referencing the question
    sees the change.
    """
    with write_transaction(questionnaire_id) as conn:
        row = _require_membership(conn, questionnaire_id, question_id)
        if row.question.is_fixed:
            raise FixedElementError(f"question {question_id} is fixed")
        values = _merge_question_fields(row.question, fields)
        question = repository_questions.upsert_question(conn, question_id=int(question_id), **values)
        affected = repository_questions.list_questionnaire_ids(conn, question_id)

    logger.info("edit_question_metadata qid=%s question_id=%s type=%s", questionnaire_id, question_id, question.question_type)
    _committed(
        affected,
        events.QUESTION_UPDATED,
        {"questionnaire_id": questionnaire_id, "question_id": int(question_id)},
    )
    return question


def reorder_groups(questionnaire_id: int, group_ids: Iterable[int]) -> List[Group]:
    """Apply a new order to the non-fixed groups; fixed groups keep their position.

    The requested groups take over the ascending set of sort_order values
    they already occupied, so their placement relative to fixed groups does
    not change.
    """
    requested = [int(g) for g in group_ids]
    with write_transaction(questionnaire_id) as conn:
        _require_questionnaire(conn, questionnaire_id)
        groups = repository_groups.list_groups(conn, questionnaire_id)
        fixed_ids = {g.id for g in groups if g.is_fixed}
        for gid in requested:
            if gid in fixed_ids:
                raise FixedElementError(f"group {gid} is fixed")
        movable = [g for g in groups if not g.is_fixed]
        if len(requested) != len(set(requested)) or set(requested) != {g.id for g in movable}:
            raise ValidationError("group_ids must list every non-fixed group exactly once")
        slots = order_sequences.assign_slots([g.sort_order for g in movable], len(movable))
        for gid, slot in zip(requested, slots):
            repository_groups.update_group_sort_order(conn, gid, slot)
        result = repository_groups.list_groups(conn, questionnaire_id)

    logger.info("reorder_groups qid=%s order=%s", questionnaire_id, requested)
    _committed(
        [questionnaire_id],
        events.GROUPS_REORDERED,
        {"questionnaire_id": questionnaire_id, "group_ids": requested},
    )
    return result


def _check_target_group(conn: Connection, questionnaire_id: int, group_id: Optional[int]) -> None:
    if group_id is None:
        return
    group = _require_group(conn, questionnaire_id, group_id)
    if group.is_fixed:
        raise FixedElementError(f"group {group.id} is fixed")


def add_question(questionnaire_id: int, fields: QuestionFields, group_id: Optional[int] = None) -> MembershipRow:
    """Create a question and append it to the end of its scope."""
    values = _merge_question_fields(None, fields)
    with write_transaction(questionnaire_id) as conn:
        _require_questionnaire(conn, questionnaire_id)
        _check_target_group(conn, questionnaire_id, group_id)
        question = repository_questions.upsert_question(conn, **values)
        repository_membership.upsert_membership(
            conn,
            questionnaire_id=questionnaire_id,
            question_id=question.id,
            group_id=group_id,
            sort_order=repository_membership.next_scope_sort_order(conn, questionnaire_id, group_id),
        )
        row = _require_membership(conn, questionnaire_id, question.id)

    logger.info(
        "add_question qid=%s question_id=%s group_id=%s sort_order=%s",
        questionnaire_id,
        question.id,
        group_id,
        row.sort_order,
    )
    _committed(
        [questionnaire_id],
        events.QUESTION_CREATED,
        {"questionnaire_id": questionnaire_id, "question_id": question.id, "group_id": group_id},
    )
    return row


def attach_question(questionnaire_id: int, question_id: int, group_id: Optional[int] = None) -> MembershipRow:
    """Reuse an existing question definition in this questionnaire."""
    with write_transaction(questionnaire_id) as conn:
        _require_questionnaire(conn, questionnaire_id)
        if repository_questions.get_question(conn, question_id) is None:
            raise NotFoundError(f"question {question_id} not found")
        if repository_membership.get_membership(conn, questionnaire_id, question_id) is not None:
            raise ValidationError(f"question {question_id} already belongs to questionnaire {questionnaire_id}")
        _check_target_group(conn, questionnaire_id, group_id)
        repository_membership.upsert_membership(
            conn,
            questionnaire_id=questionnaire_id,
            question_id=question_id,
            group_id=group_id,
            sort_order=repository_membership.next_scope_sort_order(conn, questionnaire_id, group_id),
        )
        row = _require_membership(conn, questionnaire_id, question_id)

    logger.info("attach_question qid=%s question_id=%s group_id=%s", questionnaire_id, question_id, group_id)
    _committed(
        [questionnaire_id],
        events.QUESTION_ATTACHED,
        {"questionnaire_id": questionnaire_id, "question_id": int(question_id), "group_id": group_id},
    )
    return row


__all__ = [
    "reorder_membership",
    "create_group_from_questions",
    "create_group",
    "delete_group",
    "delete_question",
    "edit_group_metadata",
    "edit_question_metadata",
    "reorder_groups",
    "add_question",
    "attach_question",
]
