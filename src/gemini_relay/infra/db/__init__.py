"""History persistence (engine builder, ORM models, stores)."""

from .engine import MEMORY_URI, build_db, create_engine, get_history_store
from .history import HistoryStore, InMemoryHistoryStore, SqlHistoryStore
from .models import (
    ROLE_ASSISTANT,
    ROLE_USER,
    Base,
    ChatTurn,
    ChatTurnRow,
    HistoryResult,
    Role,
)

__all__ = [
    "Base",
    "build_db",
    "ChatTurn",
    "ChatTurnRow",
    "create_engine",
    "get_history_store",
    "HistoryResult",
    "HistoryStore",
    "InMemoryHistoryStore",
    "MEMORY_URI",
    "Role",
    "ROLE_ASSISTANT",
    "ROLE_USER",
    "SqlHistoryStore",
]
