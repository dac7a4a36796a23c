"""ETag computation for presentation plans."""

from __future__ import annotations

import hashlib
import json

from questionnaire_engine.models.steps import Plan

__all__ = ["compute_plan_etag", "etag_matches"]


def compute_plan_etag(plan: Plan) -> str:
    """Compute a weak ETag over the serialized plan.

    Token: canonical JSON of the plan (sorted keys) -> SHA1 -> W/"…".
    """
    token = json.dumps(plan.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
    return f'W/"{hashlib.sha1(token.encode("utf-8")).hexdigest()}"'


def etag_matches(current: str, if_none_match: str | None) -> bool:
    """Return True when any tag in an If-None-Match header equals ``current``.

    Weak prefixes are ignored on both sides; ``*`` matches anything.
    """
    if not if_none_match:
        return False
    header = if_none_match.strip()
    if header == "*":
        return True

    def _opaque(tag: str) -> str:
        t = tag.strip()
        if t[:2].upper() == "W/":
            t = t[2:].lstrip()
        return t.strip('"')

    wanted = _opaque(current)
    return any(_opaque(part) == wanted for part in header.split(",") if part.strip())
