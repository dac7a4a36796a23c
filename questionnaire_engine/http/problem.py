"""Problem+JSON rendering and global exception handlers.

Engine errors map to stable HTTP statuses and codes; FastAPI's own request
validation failures and unexpected exceptions are rendered in the same
RFC 7807 shape.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from questionnaire_engine.errors import (
    EngineError,
    FixedElementError,
    NotFoundError,
    StorageError,
    ValidationError,
)

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)

# error class -> (status, title)
ERROR_STATUS = {
    NotFoundError: (404, "Not Found"),
    FixedElementError: (403, "Fixed Element"),
    ValidationError: (422, "Validation Failed"),
    StorageError: (503, "Storage Unavailable"),
}


def problem_for(exc: EngineError) -> tuple[int, dict]:
    status, title = 500, "Internal Server Error"
    for cls, mapped in ERROR_STATUS.items():
        if isinstance(exc, cls):
            status, title = mapped
            break
    body = {
        "title": title,
        "status": status,
        "detail": exc.message,
        "code": exc.code,
        "message": exc.message,
        "retryable": isinstance(exc, StorageError),
    }
    return status, body


async def handle_engine_error(request: Request, exc: EngineError) -> JSONResponse:
    status, body = problem_for(exc)
    if status >= 500:
        logger.error("engine_error path=%s code=%s", request.url.path, exc.code)
    else:
        logger.info("engine_error path=%s code=%s detail=%s", request.url.path, exc.code, exc.message)
    return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    status = int(exc.status_code or 500)
    detail = exc.detail if isinstance(exc.detail, dict) else {
        "title": "Error",
        "status": status,
        "detail": str(exc.detail or ""),
    }
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(detail, status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=headers or None)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "code": ValidationError.code,
        "errors": [
            {"loc": list(err.get("loc", ())), "msg": str(err.get("msg", "")), "type": str(err.get("type", ""))}
            for err in exc.errors()
        ],
    }
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "ERROR_STATUS",
    "problem_for",
    "handle_engine_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
