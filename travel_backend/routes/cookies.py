"""
Cookie-backed visit counter and display preferences.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote, unquote

from fastapi import APIRouter, Request, Response

from travel_backend.config import get_settings
from travel_backend.errors import ValidationError
from travel_backend.schemas import PreferencesRequest, envelope

logger = logging.getLogger(__name__)

router = APIRouter()

VISIT_COOKIE = "visit-info"
PREFERENCES_COOKIE = "user-preferences"
ONE_YEAR_SECONDS = 365 * 24 * 60 * 60

VALID_CURRENCIES = ("USD", "INR", "EUR")
VALID_THEMES = ("light", "dark", "system")
DEFAULT_PREFERENCES = {"currency": "USD", "theme": "system", "language": "en"}


def _read_json_cookie(request: Request, name: str) -> Optional[dict]:
    raw = request.cookies.get(name)
    if not raw:
        return None
    try:
        value = json.loads(unquote(raw))
    except ValueError:
        logger.debug("Ignoring malformed %s cookie", name)
        return None
    return value if isinstance(value, dict) else None


def _write_json_cookie(response: Response, name: str, value: dict, httponly: bool) -> None:
    response.set_cookie(
        name,
        quote(json.dumps(value, separators=(",", ":")), safe=""),
        max_age=ONE_YEAR_SECONDS,
        httponly=httponly,
        secure=get_settings().cookie_secure,
        samesite="lax",
    )


@router.get("/visit")
def visit(request: Request, response: Response):
    now = datetime.now(timezone.utc).isoformat()
    info = _read_json_cookie(request, VISIT_COOKIE)
    count = info.get("count") if info else None
    if not isinstance(count, int) or count < 0:
        info = None

    if info is None:
        count, first_visit = 1, now
    else:
        count, first_visit = count + 1, str(info.get("firstVisit") or now)

    _write_json_cookie(
        response,
        VISIT_COOKIE,
        {"count": count, "firstVisit": first_visit, "lastVisit": now},
        httponly=True,
    )
    return envelope(data={"count": count, "firstVisit": first_visit, "lastVisit": now})


@router.get("/preferences")
def get_preferences(request: Request):
    stored = _read_json_cookie(request, PREFERENCES_COOKIE) or {}
    preferences = {
        key: stored.get(key) or default for key, default in DEFAULT_PREFERENCES.items()
    }
    return envelope(data=preferences)


@router.post("/preferences")
def update_preferences(
    payload: PreferencesRequest, request: Request, response: Response
):
    if payload.currency and payload.currency not in VALID_CURRENCIES:
        raise ValidationError("Invalid currency")
    if payload.theme and payload.theme not in VALID_THEMES:
        raise ValidationError("Invalid theme")

    stored = _read_json_cookie(request, PREFERENCES_COOKIE) or {}
    preferences = {**DEFAULT_PREFERENCES, **stored}
    preferences.update(payload.model_dump(exclude_none=True))
    preferences = {key: preferences[key] for key in DEFAULT_PREFERENCES}

    _write_json_cookie(response, PREFERENCES_COOKIE, preferences, httponly=False)
    return envelope(data=preferences, message="Preferences updated")
