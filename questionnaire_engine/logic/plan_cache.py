"""In-process cache of presentation plans, keyed by questionnaire id.

A cached plan is a point-in-time view; the Mutation Service drops the entry
after every successful write touching the questionnaire. Each invalidation
bumps the questionnaire's version so a plan built from rows read before the
write is never stored.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional, Tuple

from questionnaire_engine.models.steps import Plan

logger = logging.getLogger(__name__)

PLANS: Dict[int, Plan] = {}
_VERSIONS: Dict[int, int] = {}
_EPOCH = 0
_GUARD = threading.Lock()


def _version(questionnaire_id: int) -> Tuple[int, int]:
    return _EPOCH, _VERSIONS.get(questionnaire_id, 0)


def get(questionnaire_id: int) -> Optional[Plan]:
    with _GUARD:
        return PLANS.get(int(questionnaire_id))


def get_or_build(questionnaire_id: int, build: Callable[[], Plan]) -> Plan:
    """Return the cached plan, building and storing it on a miss.

    The build runs outside the guard. Its result is stored only when no
    invalidation happened since the miss; otherwise it is returned to this
    caller and the next call rebuilds.
    """
    key = int(questionnaire_id)
    with _GUARD:
        cached = PLANS.get(key)
        if cached is not None:
            return cached
        seen = _version(key)
    plan = build()
    with _GUARD:
        if _version(key) == seen:
            PLANS[key] = plan
        else:
            logger.info("plan_cache_store_skipped qid=%s reason=invalidated_during_build", key)
    return plan


def invalidate(questionnaire_id: int) -> None:
    key = int(questionnaire_id)
    with _GUARD:
        _VERSIONS[key] = _VERSIONS.get(key, 0) + 1
        dropped = PLANS.pop(key, None)
    if dropped is not None:
        logger.info("plan_cache_invalidated qid=%s", key)


def clear() -> None:
    global _EPOCH
    with _GUARD:
        _EPOCH += 1
        PLANS.clear()
        _VERSIONS.clear()


__all__ = ["PLANS", "get", "get_or_build", "invalidate", "clear"]
