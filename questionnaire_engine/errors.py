"""Domain error kinds raised by the engine.

Every failure a caller can observe is one of these four kinds. The HTTP
layer maps them to problem+json responses in `questionnaire_engine.http.problem`.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for engine failures carrying a stable error code."""

    code = "ENGINE_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(EngineError):
    code = "NOT_FOUND"


class FixedElementError(EngineError):
    code = "FIXED_ELEMENT"


class ValidationError(EngineError):
    code = "VALIDATION_FAILED"


class StorageError(EngineError):
    code = "STORAGE_FAILURE"


__all__ = [
    "EngineError",
    "NotFoundError",
    "FixedElementError",
    "ValidationError",
    "StorageError",
]
