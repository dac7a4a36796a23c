"""Builder (authoring) routes.

Every endpoint requires the editor request context. Handlers only translate
between HTTP payloads and the builder/questionnaire services; engine errors
are rendered by the problem+json handlers registered in ``main``.
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Response

from questionnaire_engine.http.request_context import RequestContext, require_editor_context
from questionnaire_engine.logic import builder_service, questionnaire_service
from questionnaire_engine.logic.etag import compute_plan_etag
from questionnaire_engine.models.composition import BuilderView
from questionnaire_engine.models.entities import Group, MembershipRow, Question, Questionnaire
from questionnaire_engine.models.requests import (
    GroupCombine,
    GroupCreate,
    GroupEdit,
    GroupReorder,
    QuestionAttach,
    QuestionCreate,
    QuestionFields,
    QuestionMove,
    QuestionnaireCreate,
    StatusChange,
)
from questionnaire_engine.models.steps import Plan

# Mounted under '/api/v1' by the application
router = APIRouter(prefix="/authoring", tags=["Authoring"])
logger = logging.getLogger(__name__)


@router.post("/questionnaires", status_code=201, response_model=Questionnaire)
def create_questionnaire(payload: QuestionnaireCreate, ctx: RequestContext = Depends(require_editor_context)):
    questionnaire = questionnaire_service.create_questionnaire(
        title=payload.title,
        description=payload.description,
        status=payload.status,
        service_id=payload.service_id,
        seed_fixed_contact_fields=payload.seed_fixed_contact_fields,
    )
    logger.info("authoring.create_questionnaire editor=%s request_id=%s qid=%s", ctx.editor_id, ctx.request_id, questionnaire.id)
    return questionnaire


@router.get("/questionnaires/{questionnaire_id}", response_model=BuilderView)
def get_builder_view(questionnaire_id: int, ctx: RequestContext = Depends(require_editor_context)):
    return questionnaire_service.builder_view(questionnaire_id)


@router.get("/questionnaires/{questionnaire_id}/preview", response_model=Plan)
def preview_questionnaire(
    questionnaire_id: int, response: Response, ctx: RequestContext = Depends(require_editor_context)
):
    plan = questionnaire_service.preview(questionnaire_id)
    response.headers["ETag"] = compute_plan_etag(plan)
    return plan


@router.post("/questionnaires/{questionnaire_id}/status", response_model=Questionnaire)
def change_status(
    questionnaire_id: int, payload: StatusChange, ctx: RequestContext = Depends(require_editor_context)
):
    return questionnaire_service.transition_status(questionnaire_id, payload.status)


@router.post("/questionnaires/{questionnaire_id}/groups", status_code=201, response_model=Group)
def create_group(
    questionnaire_id: int, payload: GroupCreate, ctx: RequestContext = Depends(require_editor_context)
):
    return builder_service.create_group(questionnaire_id, payload.name, payload.description)


@router.post("/questionnaires/{questionnaire_id}/groups/combine", status_code=201, response_model=Group)
def combine_questions(
    questionnaire_id: int, payload: GroupCombine, ctx: RequestContext = Depends(require_editor_context)
):
    return builder_service.create_group_from_questions(
        questionnaire_id, payload.question_ids, payload.name, payload.description
    )


@router.post("/questionnaires/{questionnaire_id}/groups/reorder", response_model=List[Group])
def reorder_groups(
    questionnaire_id: int, payload: GroupReorder, ctx: RequestContext = Depends(require_editor_context)
):
    return builder_service.reorder_groups(questionnaire_id, payload.group_ids)


@router.patch("/questionnaires/{questionnaire_id}/groups/{group_id}", response_model=Group)
def edit_group(
    questionnaire_id: int,
    group_id: int,
    payload: GroupEdit,
    ctx: RequestContext = Depends(require_editor_context),
):
    return builder_service.edit_group_metadata(questionnaire_id, group_id, payload.name, payload.description)


@router.delete("/questionnaires/{questionnaire_id}/groups/{group_id}", status_code=204)
def delete_group(questionnaire_id: int, group_id: int, ctx: RequestContext = Depends(require_editor_context)):
    builder_service.delete_group(questionnaire_id, group_id)
    return Response(status_code=204)


@router.post("/questionnaires/{questionnaire_id}/questions", status_code=201, response_model=MembershipRow)
def create_question(
    questionnaire_id: int, payload: QuestionCreate, ctx: RequestContext = Depends(require_editor_context)
):
    return builder_service.add_question(questionnaire_id, payload, group_id=payload.group_id)


@router.post("/questionnaires/{questionnaire_id}/questions/attach", status_code=201, response_model=MembershipRow)
def attach_question(
    questionnaire_id: int, payload: QuestionAttach, ctx: RequestContext = Depends(require_editor_context)
):
    return builder_service.attach_question(questionnaire_id, payload.question_id, payload.group_id)


@router.patch("/questionnaires/{questionnaire_id}/questions/{question_id}", response_model=Question)
def edit_question(
    questionnaire_id: int,
    question_id: int,
    payload: QuestionFields,
    ctx: RequestContext = Depends(require_editor_context),
):
    return builder_service.edit_question_metadata(questionnaire_id, question_id, payload)


@router.post("/questionnaires/{questionnaire_id}/questions/{question_id}/move", response_model=MembershipRow)
def move_question(
    questionnaire_id: int,
    question_id: int,
    payload: QuestionMove,
    ctx: RequestContext = Depends(require_editor_context),
):
    return builder_service.reorder_membership(
        questionnaire_id, question_id, payload.target_group_id, payload.target_index
    )


@router.delete("/questionnaires/{questionnaire_id}/questions/{question_id}", status_code=204)
def delete_question(
    questionnaire_id: int, question_id: int, ctx: RequestContext = Depends(require_editor_context)
):
    builder_service.delete_question(questionnaire_id, question_id)
    return Response(status_code=204)


__all__ = ["router"]
