"""Database bootstrap utilities for the questionnaire engine.

This module exposes convenience imports for engine construction, the
transaction helpers used by the builder, and the migrations runner. The DB
layer does not leak ORM models into route handlers.
"""

from questionnaire_engine.db.base import (
    dispose_engine,
    get_engine,
    read_connection,
    write_transaction,
)
from questionnaire_engine.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "dispose_engine",
    "read_connection",
    "write_transaction",
    "apply_migrations",
]
