from __future__ import annotations

import logging
import os

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from questionnaire_engine.config import load_config
from questionnaire_engine.db.base import get_engine
from questionnaire_engine.db.migrations_runner import apply_migrations
from questionnaire_engine.errors import EngineError
from questionnaire_engine.http.problem import (
    handle_engine_error,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from questionnaire_engine.http.request_id import RequestIdMiddleware
from questionnaire_engine.logging_setup import configure_logging
from questionnaire_engine.middleware.cors import apply_cors
from questionnaire_engine.routes import api_router

logger = logging.getLogger(__name__)


def _auto_apply_migrations() -> bool:
    flag = os.getenv("AUTO_APPLY_MIGRATIONS", "1").strip().lower()
    return flag not in {"0", "false", "no", "off"}


def _health() -> dict:
    try:
        with get_engine().connect() as conn:
            conn.execute(sql_text("SELECT 1"))
        return {"status": "ok", "db": True}
    except SQLAlchemyError as e:
        logger.error("Health DB check failed", exc_info=True)
        return {"status": "degraded", "db": False, "reason": str(e)}


def create_app() -> FastAPI:
    # Configure global logging before app instantiation so all modules emit
    configure_logging()
    config = load_config()

    app = FastAPI(title="Questionnaire Engine")
    app.state.config = config

    app.add_exception_handler(EngineError, handle_engine_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    apply_cors(app)
    app.add_middleware(RequestIdMiddleware)

    # Apply migrations at construction time so TestClient and uvicorn share one path
    if _auto_apply_migrations():
        applied = apply_migrations(get_engine())
        logger.info("startup_migrations applied=%s", applied)
    else:
        logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")

    app.include_router(api_router, prefix="/api/v1")

    # Health endpoint (out of prefix for simplicity in local runs)
    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return _health()

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
