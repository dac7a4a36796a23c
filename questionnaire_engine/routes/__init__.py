"""APIRouter registration for the questionnaire engine."""

from __future__ import annotations

from fastapi import APIRouter

from questionnaire_engine.routes.authoring import router as authoring_router
from questionnaire_engine.routes.questionnaires import router as questionnaires_router

api_router = APIRouter()
api_router.include_router(questionnaires_router, tags=["Questionnaires"])
api_router.include_router(authoring_router)

__all__ = ["api_router"]
