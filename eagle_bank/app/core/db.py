from __future__ import annotations

from collections.abc import Generator
from typing import Any, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from ..models import db as _db_models  # noqa: F401 - registers the tables
from .config import get_settings


def create_engine_for_url(database_url: str, busy_timeout: Optional[float] = None) -> Engine:
    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        # Writers wait for the database lock instead of failing immediately.
        timeout = busy_timeout if busy_timeout is not None else get_settings().sqlite_busy_timeout
        connect_args = {"check_same_thread": False, "timeout": timeout}
    return create_engine(database_url, echo=False, connect_args=connect_args)


engine = create_engine_for_url(get_settings().database_url)


def init_db() -> None:
    SQLModel.metadata.create_all(engine)


def reset_db(target: Engine) -> None:
    SQLModel.metadata.drop_all(target)
    SQLModel.metadata.create_all(target)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def set_engine(new_engine: Engine) -> Engine:
    """Swap the module engine and return the previous one."""
    global engine
    previous, engine = engine, new_engine
    return previous
