"""
Password hashing, signed tokens and the role enumeration.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from travel_backend.config import get_settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: object) -> "Role":
        """Map a stored role onto the enum; anything unknown is an ordinary user."""
        if isinstance(value, Role):
            return value
        for role in cls:
            if role.value == value:
                return role
        return cls.USER


@dataclass(frozen=True)
class Identity:
    id: str
    role: Role
    email: Optional[str] = None
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def claims(self) -> dict:
        payload = {"id": self.id, "role": self.role.value}
        if self.email:
            payload["email"] = self.email
        if self.username:
            payload["username"] = self.username
        return payload

    @classmethod
    def from_claims(cls, claims: dict) -> Optional["Identity"]:
        user_id = claims.get("id")
        if not user_id:
            return None
        return cls(
            id=str(user_id),
            role=Role.parse(claims.get("role")),
            email=claims.get("email"),
            username=claims.get("username"),
        )

    @classmethod
    def from_user(cls, user: dict) -> "Identity":
        return cls(
            id=user["id"],
            role=Role.parse(user.get("role")),
            email=user.get("email"),
            username=user.get("username"),
        )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised or corrupt hash
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(identity: Identity, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    to_encode = identity.claims()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[Identity]:
    """Verify signature and expiry; None when the token is unusable."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None
    return Identity.from_claims(payload)


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
