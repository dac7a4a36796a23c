"""Logging for the questionnaire engine.

One stdout handler on the root logger; the ``questionnaire_engine`` namespace
follows ``LOG_LEVEL`` (default INFO) and SQLAlchemy engine chatter is held
at WARNING.
"""
from __future__ import annotations

import logging
import os
from logging.config import dictConfig

_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _build_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
        "loggers": {
            "questionnaire_engine": {"level": level, "propagate": True},
            "sqlalchemy.engine": {"level": "WARNING", "propagate": True},
            "uvicorn.error": {"level": "INFO", "propagate": True},
        },
    }


def configure_logging() -> None:
    """Install the handler once; later calls are no-ops."""
    root = logging.getLogger()
    if root.handlers:
        return
    level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if level not in _LEVELS:
        level = "INFO"
    dictConfig(_build_config(level))
