"""Password hashing, token issuing and caller identity resolution."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Optional, Protocol

import jwt

from ..models import User
from .config import Settings
from .errors import UnauthenticatedError


def _scrypt(password: str, salt: str) -> str:
    return hashlib.scrypt(
        password.encode(), salt=salt.encode(), n=2**14, r=8, p=1, dklen=32
    ).hex()


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    return f"{salt}${_scrypt(password, salt)}"


def verify_password(password: str, stored: str) -> bool:
    salt, _, digest = stored.partition("$")
    return hmac.compare_digest(_scrypt(password, salt), digest)


def create_access_token(subject: str, settings: Settings) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": subject,
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class IdentityResolver(Protocol):
    def current_user_id(self, token: Optional[str]) -> int:
        """Map the caller's credential to an internal user id or raise UnauthenticatedError."""


class JwtIdentityResolver:
    """Resolves a bearer JWT whose subject is the user's email."""

    def __init__(
        self,
        settings: Settings,
        find_user_by_email: Callable[[str], Optional[User]],
    ) -> None:
        self.settings = settings
        self.find_user_by_email = find_user_by_email

    def current_user_id(self, token: Optional[str]) -> int:
        if not token:
            raise UnauthenticatedError("Not authenticated")
        try:
            payload = jwt.decode(
                token, self.settings.jwt_secret, algorithms=[self.settings.jwt_algorithm]
            )
        except jwt.ExpiredSignatureError as exc:
            raise UnauthenticatedError("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise UnauthenticatedError("Invalid token") from exc

        email = payload.get("sub")
        if not email:
            raise UnauthenticatedError("Invalid token")
        user = self.find_user_by_email(email)
        if user is None:
            raise UnauthenticatedError("Authenticated user no longer exists")
        return user.id
