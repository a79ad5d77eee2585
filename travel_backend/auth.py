"""
Request authentication gate.

Identity is resolved from the browser session cookie first, then from a bearer
token. `require_user` and `require_admin` are FastAPI dependencies layered on
top; neither touches session or token state.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request

from travel_backend.config import get_settings
from travel_backend.errors import Forbidden, Unauthenticated
from travel_backend.security import (
    Identity,
    decode_access_token,
    extract_bearer_token,
)

logger = logging.getLogger(__name__)


def _identity_from_session(request: Request) -> Optional[Identity]:
    settings = get_settings()
    cookie = request.cookies.get(settings.session_cookie_name)
    if not cookie:
        return None
    return decode_access_token(cookie)


def resolve_identity(request: Request) -> Optional[Identity]:
    try:
        identity = _identity_from_session(request)
    except Exception:
        # A broken session falls through to the bearer token.
        logger.debug("Session resolution failed", exc_info=True)
        identity = None
    if identity is not None:
        return identity

    token = extract_bearer_token(request.headers.get("authorization"))
    if token:
        return decode_access_token(token)
    return None


def require_user(request: Request) -> Identity:
    identity = resolve_identity(request)
    if identity is None:
        raise Unauthenticated()
    return identity


def require_admin(identity: Identity = Depends(require_user)) -> Identity:
    if not identity.is_admin:
        raise Forbidden()
    return identity
