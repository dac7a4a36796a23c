"""Editor request context for builder endpoints.

The builder is only reachable with an editor identity (``X-Editor-Id``) and
an anti-forgery token (``X-CSRF-Token``) bound to that identity. Validation
happens here, at the transport layer; the engine core never sees either.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass

from fastapi import Header, HTTPException, Request

from questionnaire_engine.config import AppConfig, load_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    editor_id: str
    request_id: str


def issue_csrf_token(editor_id: str, secret: str) -> str:
    """Return the anti-forgery token expected for ``editor_id``."""
    return hmac.new(secret.encode("utf-8"), editor_id.encode("utf-8"), hashlib.sha256).hexdigest()


def _config(request: Request) -> AppConfig:
    cfg = getattr(request.app.state, "config", None)
    return cfg if isinstance(cfg, AppConfig) else load_config()


def require_editor_context(
    request: Request,
    x_editor_id: str | None = Header(default=None, alias="X-Editor-Id"),
    x_csrf_token: str | None = Header(default=None, alias="X-CSRF-Token"),
) -> RequestContext:
    editor_id = (x_editor_id or "").strip()
    if not editor_id:
        raise HTTPException(
            status_code=401,
            detail={"title": "Unauthorized", "status": 401, "detail": "X-Editor-Id header is required", "code": "EDITOR_REQUIRED"},
        )
    cfg = _config(request)
    if cfg.security.require_csrf:
        expected = issue_csrf_token(editor_id, cfg.security.csrf_secret)
        if not x_csrf_token or not hmac.compare_digest(expected, x_csrf_token.strip()):
            logger.info("csrf_rejected editor_id=%s path=%s", editor_id, request.url.path)
            raise HTTPException(
                status_code=403,
                detail={"title": "Forbidden", "status": 403, "detail": "invalid anti-forgery token", "code": "CSRF_INVALID"},
            )
    request_id = str(getattr(request.state, "request_id", "") or "")
    return RequestContext(editor_id=editor_id, request_id=request_id)


__all__ = ["RequestContext", "issue_csrf_token", "require_editor_context"]
