"""Builder domain event constants and publisher.

Every successful Mutation Service write publishes exactly one event after
its transaction commits.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

QUESTIONNAIRE_CREATED = "questionnaire.created"
QUESTIONNAIRE_STATUS_CHANGED = "questionnaire.status_changed"
GROUP_CREATED = "group.created"
GROUP_UPDATED = "group.updated"
GROUP_DELETED = "group.deleted"
GROUPS_REORDERED = "groups.reordered"
QUESTION_CREATED = "question.created"
QUESTION_ATTACHED = "question.attached"
QUESTION_UPDATED = "question.updated"
QUESTION_MOVED = "question.moved"
QUESTION_DELETED = "question.deleted"


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    """Log the event and keep it in the in-process buffer."""
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append({"type": event_type, "payload": payload})


# In-memory buffer of published events, read by tests
EVENT_BUFFER: List[Dict[str, Any]] = []


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered domain events; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "QUESTIONNAIRE_CREATED",
    "QUESTIONNAIRE_STATUS_CHANGED",
    "GROUP_CREATED",
    "GROUP_UPDATED",
    "GROUP_DELETED",
    "GROUPS_REORDERED",
    "QUESTION_CREATED",
    "QUESTION_ATTACHED",
    "QUESTION_UPDATED",
    "QUESTION_MOVED",
    "QUESTION_DELETED",
    "publish",
    "get_buffered_events",
    "EVENT_BUFFER",
]
