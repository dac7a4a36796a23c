"""End-user read path: presentation plans for active questionnaires."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Header, Response

from questionnaire_engine.logic import questionnaire_service
from questionnaire_engine.logic.etag import compute_plan_etag, etag_matches
from questionnaire_engine.models.steps import Plan

router = APIRouter()
logger = logging.getLogger(__name__)


def _plan_response(plan: Plan, response: Response, if_none_match: str | None) -> Plan | Response:
    etag = compute_plan_etag(plan)
    if etag_matches(etag, if_none_match):
        return Response(status_code=304, headers={"ETag": etag})
    response.headers["ETag"] = etag
    return plan


@router.get(
    "/questionnaires/{questionnaire_id}/steps",
    summary="Get the presentation plan of an active questionnaire",
    operation_id="getQuestionnaireSteps",
    response_model=Plan,
)
def get_questionnaire_steps(
    questionnaire_id: int,
    response: Response,
    if_none_match: str | None = Header(default=None, alias="If-None-Match"),
):
    plan = questionnaire_service.resolve(questionnaire_id)
    logger.info("plan_served qid=%s total_steps=%s", questionnaire_id, plan.total_steps)
    return _plan_response(plan, response, if_none_match)


@router.get(
    "/services/{slug}/questionnaire/steps",
    summary="Get the presentation plan of a service's current questionnaire",
    operation_id="getServiceQuestionnaireSteps",
    response_model=Plan,
)
def get_service_questionnaire_steps(
    slug: str,
    response: Response,
    if_none_match: str | None = Header(default=None, alias="If-None-Match"),
):
    plan = questionnaire_service.resolve_for_service(slug)
    logger.info("plan_served service=%s qid=%s total_steps=%s", slug, plan.questionnaire_id, plan.total_steps)
    return _plan_response(plan, response, if_none_match)


__all__ = ["router"]
