from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from ..services import AccountService, InMemoryStorage, SqlStorage, Storage, UserService
from .config import Settings, get_settings
from .db import get_session
from .security import IdentityResolver, JwtIdentityResolver

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def get_memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


def get_storage(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> Storage:
    if settings.store_backend == "memory":
        return get_memory_storage()
    return SqlStorage(session)


def get_account_service(
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> AccountService:
    return AccountService(storage, settings)


def get_user_service(
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> UserService:
    return UserService(storage, settings)


def get_identity_resolver(
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> IdentityResolver:
    return JwtIdentityResolver(settings, storage.users.find_by_email)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> int:
    token = credentials.credentials if credentials is not None else None
    return resolver.current_user_id(token)
