"""Database base classes, engine/session lifecycle and FastAPI dependencies."""

from second_brain.db.base import Base, BaseModel, String50, String255, String2048
from second_brain.db.deps import DBSession, get_db, get_db_override
from second_brain.db.session import (
    AsyncSessionLocal,
    build_engine,
    check_db_health,
    close_db,
    engine,
    get_session,
    init_db,
)

__all__ = [
    "Base",
    "BaseModel",
    "String50",
    "String255",
    "String2048",
    "engine",
    "build_engine",
    "AsyncSessionLocal",
    "get_session",
    "init_db",
    "close_db",
    "check_db_health",
    "get_db",
    "DBSession",
    "get_db_override",
]
