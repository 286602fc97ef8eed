from datetime import UTC, datetime, timedelta

import jwt
import pytest

from ..core.config import Settings
from ..core.errors import UnauthenticatedError
from ..core.security import (
    JwtIdentityResolver,
    create_access_token,
    hash_password,
    verify_password,
)
from ..models import User


def make_user(email: str) -> User:
    now = datetime.now(UTC)
    return User(
        id=42,
        name="Alice",
        email=email,
        phone_number="07700900123",
        password_hash="unused",
        created_timestamp=now,
        updated_timestamp=now,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_secret="test-secret-key-long-enough-for-hs256")


@pytest.fixture
def resolver(settings: Settings) -> JwtIdentityResolver:
    users = {"alice@example.com": make_user("alice@example.com")}
    return JwtIdentityResolver(settings, users.get)


def test_password_hash_round_trip() -> None:
    stored = hash_password("correct-horse")
    assert "correct-horse" not in stored
    assert verify_password("correct-horse", stored)
    assert not verify_password("wrong-horse", stored)
    assert hash_password("correct-horse") != stored

def test_token_resolves_to_user_id(settings, resolver) -> None:
    token = create_access_token("alice@example.com", settings)
    assert resolver.current_user_id(token) == 42

@pytest.mark.parametrize("token", [None, "", "garbage"])
def test_missing_or_malformed_token(resolver, token) -> None:
    with pytest.raises(UnauthenticatedError):
        resolver.current_user_id(token)

def test_expired_token(settings, resolver) -> None:
    token = jwt.encode(
        {"sub": "alice@example.com", "exp": datetime.now(UTC) - timedelta(minutes=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(UnauthenticatedError, match="expired"):
        resolver.current_user_id(token)

def test_token_signed_with_other_secret(settings, resolver) -> None:
    token = create_access_token("alice@example.com", Settings(jwt_secret="another-secret-key-long-enough-for-hs256"))
    with pytest.raises(UnauthenticatedError):
        resolver.current_user_id(token)

def test_unknown_subject(settings, resolver) -> None:
    token = create_access_token("mallory@example.com", settings)
    with pytest.raises(UnauthenticatedError):
        resolver.current_user_id(token)
