"""
Credential endpoints: register, login and logout.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Request, Response

from travel_backend.auth import resolve_identity
from travel_backend.config import get_settings
from travel_backend.db import USERS, DocumentStore
from travel_backend.dependencies import get_document_store
from travel_backend.errors import (
    DuplicateKeyError,
    Forbidden,
    Unauthenticated,
    ValidationError,
    conflict_from_duplicate,
)
from travel_backend.query import Query
from travel_backend.schemas import LoginRequest, RegisterRequest, envelope
from travel_backend.security import (
    Identity,
    Role,
    create_access_token,
    get_password_hash,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_PASSWORD_LENGTH = 6

_DUPLICATE_MESSAGES = {
    "username": "Username already exists",
    "email": "Email already exists",
}


def _public_user(user: dict) -> dict:
    return {
        "id": user["id"],
        "username": user.get("username"),
        "email": user.get("email"),
        "name": user.get("name"),
        "role": Role.parse(user.get("role")).value,
    }


@router.post("/register")
def register(
    payload: RegisterRequest,
    request: Request,
    store: DocumentStore = Depends(get_document_store),
):
    username = (payload.username or "").strip()
    if not username or not payload.password:
        raise ValidationError("Username and password are required")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )

    role = Role.USER
    if Role.parse(payload.role) is Role.ADMIN:
        caller = resolve_identity(request)
        if caller is None or not caller.is_admin:
            raise Forbidden("Only admins can create admin accounts")
        role = Role.ADMIN

    doc = {
        "username": username,
        "password": get_password_hash(payload.password),
        "role": role.value,
    }
    if payload.email:
        doc["email"] = str(payload.email).lower()
    if payload.name:
        doc["name"] = payload.name

    try:
        user = store.insert(USERS, doc)
    except DuplicateKeyError as exc:
        raise conflict_from_duplicate(exc, _DUPLICATE_MESSAGES)

    logger.info("Registered user %s (%s)", user["id"], role.value)
    token = create_access_token(Identity.from_user(user))
    return envelope(
        message="User registered successfully",
        userId=user["id"],
        token=token,
        user=_public_user(user),
    )


def _find_login_user(store: DocumentStore, identifier: str):
    user = store.find_one(USERS, Query(equals={"username": identifier}))
    if user is None:
        user = store.find_one(USERS, Query(equals={"email": identifier.lower()}))
    return user


@router.post("/login")
def login(
    payload: LoginRequest,
    response: Response,
    store: DocumentStore = Depends(get_document_store),
):
    identifier = (payload.username or payload.email or "").strip()
    if not identifier or not payload.password:
        raise ValidationError("Username/email and password are required")

    user = _find_login_user(store, identifier)
    # Unknown user, password-less (OAuth) user and bad password look the same.
    if user is None or not user.get("password"):
        raise Unauthenticated("Invalid credentials")
    if not verify_password(payload.password, user["password"]):
        raise Unauthenticated("Invalid credentials")

    settings = get_settings()
    identity = Identity.from_user(user)
    response.set_cookie(
        settings.session_cookie_name,
        create_access_token(
            identity, timedelta(seconds=settings.session_max_age_seconds)
        ),
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return envelope(
        message="Login successful",
        token=create_access_token(identity),
        user=_public_user(user),
    )


@router.post("/logout")
def logout(response: Response):
    settings = get_settings()
    response.delete_cookie(settings.session_cookie_name)
    return envelope(message="Logged out")
