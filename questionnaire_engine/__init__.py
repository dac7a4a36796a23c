"""Questionnaire composition and mutation engine.

Exposes the FastAPI application factory. Business logic lives in
`questionnaire_engine/logic/`, route handlers in `questionnaire_engine/routes/`.
"""

from __future__ import annotations

from questionnaire_engine.main import create_app

__all__ = ["create_app"]
