"""Questionnaire read path and lifecycle operations.

End users only ever see active or published questionnaires; the builder
sees every questionnaire regardless of status. Plans are served from the
plan cache and rebuilt from the canonical membership query on a miss.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy.engine import Connection

from questionnaire_engine.config import load_config
from questionnaire_engine.db.base import read_connection, write_transaction
from questionnaire_engine.errors import NotFoundError, ValidationError
from questionnaire_engine.logic import events, plan_cache
from questionnaire_engine.logic import repository_groups, repository_membership, repository_questionnaires
from questionnaire_engine.logic.composition import resolve_composition
from questionnaire_engine.logic.fixed_contact_fields import seed_contact_fields
from questionnaire_engine.logic.presentation_planner import plan_steps
from questionnaire_engine.models.composition import BuilderView, GroupBucket
from questionnaire_engine.models.entities import Question, Questionnaire
from questionnaire_engine.models.question_type import QuestionnaireStatus
from questionnaire_engine.models.steps import Plan

logger = logging.getLogger(__name__)


def _require_questionnaire(conn: Connection, questionnaire_id: int) -> Questionnaire:
    questionnaire = repository_questionnaires.get_questionnaire(conn, questionnaire_id)
    if questionnaire is None:
        raise NotFoundError(f"questionnaire {questionnaire_id} not found")
    return questionnaire


def _build_plan(conn: Connection, questionnaire_id: int) -> Plan:
    rows = repository_membership.list_membership(conn, questionnaire_id)
    return plan_steps(questionnaire_id, resolve_composition(rows))


def resolve(questionnaire_id: int) -> Plan:
    """Return the presentation plan of an active or published questionnaire."""
    with read_connection() as conn:
        questionnaire = _require_questionnaire(conn, questionnaire_id)
        if questionnaire.status not in QuestionnaireStatus.PRESENTABLE:
            raise NotFoundError(f"questionnaire {questionnaire_id} is not available")
        return plan_cache.get_or_build(questionnaire.id, lambda: _build_plan(conn, questionnaire.id))


def resolve_for_service(slug: str) -> Plan:
    """Return the plan of the service's most recently created presentable questionnaire."""
    with read_connection() as conn:
        service = repository_questionnaires.get_service_by_slug(conn, slug)
        if service is None or not service.is_active:
            raise NotFoundError(f"service {slug!r} not found")
        questionnaire = repository_questionnaires.get_latest_questionnaire_for_service(
            conn, service.id, QuestionnaireStatus.PRESENTABLE
        )
        if questionnaire is None:
            raise NotFoundError(f"service {slug!r} has no active questionnaire")
        return plan_cache.get_or_build(questionnaire.id, lambda: _build_plan(conn, questionnaire.id))


def preview(questionnaire_id: int) -> Plan:
    """Return the plan of any questionnaire, whatever its status."""
    with read_connection() as conn:
        questionnaire = _require_questionnaire(conn, questionnaire_id)
        return plan_cache.get_or_build(questionnaire.id, lambda: _build_plan(conn, questionnaire.id))


def builder_view(questionnaire_id: int) -> BuilderView:
    with read_connection() as conn:
        questionnaire = _require_questionnaire(conn, questionnaire_id)
        groups = repository_groups.list_groups(conn, questionnaire_id)
        rows = repository_membership.list_membership(conn, questionnaire_id)

    buckets: Dict[int, GroupBucket] = {g.id: GroupBucket(group=g) for g in groups}
    ungrouped: List[Question] = []
    for row in rows:
        bucket = buckets.get(row.group_id) if row.group is not None else None
        if bucket is None:
            ungrouped.append(row.question)
        else:
            bucket.questions.append(row.question)
    return BuilderView(questionnaire=questionnaire, groups=list(buckets.values()), ungrouped=ungrouped)


def create_questionnaire(
    *,
    title: str,
    description: str = "",
    status: str = QuestionnaireStatus.DRAFT,
    service_id: Optional[int] = None,
    seed_fixed_contact_fields: Optional[bool] = None,
) -> Questionnaire:
    """Create a questionnaire, seeding the fixed contact section when enabled.

    ``seed_fixed_contact_fields`` overrides the configured default when given.
    """
    title = (title or "").strip()
    if not title:
        raise ValidationError("questionnaire title must not be empty")
    if status not in QuestionnaireStatus.ALL:
        raise ValidationError(f"unsupported questionnaire status {status!r}")
    seed = seed_fixed_contact_fields
    if seed is None:
        seed = load_config().builder.seed_fixed_contact_fields

    with write_transaction() as conn:
        if service_id is not None and repository_questionnaires.get_service(conn, service_id) is None:
            raise NotFoundError(f"service {service_id} not found")
        questionnaire = repository_questionnaires.insert_questionnaire(
            conn, service_id=service_id, title=title, description=description or "", status=status
        )
        if seed:
            seed_contact_fields(conn, questionnaire.id)

    logger.info("create_questionnaire qid=%s status=%s seeded=%s", questionnaire.id, status, bool(seed))
    events.publish(events.QUESTIONNAIRE_CREATED, {"questionnaire_id": questionnaire.id})
    return questionnaire


def transition_status(questionnaire_id: int, status: str) -> Questionnaire:
    """Move a questionnaire along draft → active/published → archived."""
    with write_transaction(questionnaire_id) as conn:
        questionnaire = _require_questionnaire(conn, questionnaire_id)
        allowed = QuestionnaireStatus.TRANSITIONS.get(questionnaire.status, frozenset())
        if status not in allowed:
            raise ValidationError(
                f"cannot change questionnaire status from {questionnaire.status!r} to {status!r}"
            )
        repository_questionnaires.update_questionnaire_status(conn, questionnaire_id, status)
        updated = _require_questionnaire(conn, questionnaire_id)

    plan_cache.invalidate(questionnaire_id)
    logger.info("transition_status qid=%s from=%s to=%s", questionnaire_id, questionnaire.status, status)
    events.publish(
        events.QUESTIONNAIRE_STATUS_CHANGED,
        {"questionnaire_id": questionnaire_id, "from": questionnaire.status, "to": status},
    )
    return updated


__all__ = [
    "resolve",
    "resolve_for_service",
    "preview",
    "builder_view",
    "create_questionnaire",
    "transition_status",
]
