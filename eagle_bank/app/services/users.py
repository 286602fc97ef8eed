from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime
from typing import Optional

from ..core.config import Settings, get_settings
from ..core.errors import (
    ConflictError,
    UnauthenticatedError,
    UserForbiddenError,
    UserNotFoundError,
)
from ..core.security import create_access_token, hash_password, verify_password
from ..models import (
    Address,
    LoginRequest,
    TokenResponse,
    User,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from .stores import Storage


logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, storage: Storage, settings: Optional[Settings] = None) -> None:
        self.storage = storage
        self.settings = settings or get_settings()

    def _get_for_caller(self, user_id: int, caller_id: int) -> User:
        user = self.storage.users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(f"User not found with ID: {user_id}")
        if user.id != caller_id:
            raise UserForbiddenError(
                f"You are not authorized to access the details of user ID: {user_id}"
            )
        return user

    def register(self, payload: UserCreate) -> UserResponse:
        user = self.storage.users.insert(
            name=payload.name,
            email=payload.email,
            phone_number=payload.phone_number,
            password_hash=hash_password(payload.password),
            address=Address(**payload.address.model_dump()),
            created_at=datetime.now(UTC),
        )
        self.storage.commit()
        logger.info("user.created", extra={"user_id": user.id})
        return UserResponse.from_domain(user)

    def login(self, payload: LoginRequest) -> TokenResponse:
        user = self.storage.users.find_by_email(payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            logger.warning("auth.login.failed", extra={"email": payload.email})
            raise UnauthenticatedError("Invalid email or password")
        return TokenResponse(access_token=create_access_token(user.email, self.settings))

    def get_user(self, user_id: int, caller_id: int) -> UserResponse:
        return UserResponse.from_domain(self._get_for_caller(user_id, caller_id))

    def update_user(self, user_id: int, caller_id: int, payload: UserUpdate) -> UserResponse:
        user = self._get_for_caller(user_id, caller_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "address" in changes:
            changes["address"] = Address(**changes["address"])
        updated = self.storage.users.update(
            replace(user, **changes, updated_timestamp=datetime.now(UTC))
        )
        self.storage.commit()
        return UserResponse.from_domain(updated)

    def delete_user(self, user_id: int, caller_id: int) -> None:
        self._get_for_caller(user_id, caller_id)
        if self.storage.accounts.owner_has_accounts(user_id):
            raise ConflictError(
                "User cannot be deleted while they still own bank accounts"
            )
        self.storage.users.delete(user_id)
        self.storage.commit()
        logger.info("user.deleted", extra={"user_id": user_id})
