"""Append-only per-user chat history.

``SqlHistoryStore`` writes one ``chat_turns`` row per turn; a row insert
is the atomic append primitive, so concurrent requests for the same user
never lose turns.  ``InMemoryHistoryStore`` keeps the same contract in
process memory (``memory://`` credentials, tests).

Neither store raises to its caller: write failures come back as
``False`` and read failures as an empty ``HistoryResult`` with ``error``
set.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gemini_relay.core.service.metrics import (
    HISTORY_READ_FAILURES_TOTAL,
    HISTORY_WRITE_FAILURES_TOTAL,
)
from gemini_relay.infra.telemetry import (
    ATTR_HISTORY_ROLE,
    ATTR_HISTORY_TURN_COUNT,
    ATTR_HISTORY_UID,
    SPAN_HISTORY_APPEND,
    SPAN_HISTORY_LOAD,
    tracer,
)

from .models import ChatTurn, ChatTurnRow, HistoryResult, Role

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HistoryStore(ABC):
    """Append-only store of chat turns keyed by user id."""

    def __init__(self, max_turns: int | None = None) -> None:
        self._max_turns = max_turns

    @abstractmethod
    async def append(self, uid: str, role: Role, text: str) -> bool:
        """Append one turn, creating the history if absent."""

    @abstractmethod
    async def get(self, uid: str) -> HistoryResult:
        """Return the user's turns oldest-first (empty for unknown users)."""


class SqlHistoryStore(HistoryStore):
    """SQLAlchemy-backed history store."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_turns: int | None = None,
    ) -> None:
        super().__init__(max_turns)
        self._session_factory = session_factory

    async def append(self, uid: str, role: Role, text: str) -> bool:
        with tracer.start_as_current_span(SPAN_HISTORY_APPEND) as span:
            span.set_attribute(ATTR_HISTORY_UID, uid)
            span.set_attribute(ATTR_HISTORY_ROLE, role)
            row = ChatTurnRow(uid=uid, role=role, text=text, created_at=_now())
            try:
                async with self._session_factory() as session:
                    session.add(row)
                    await session.commit()
            except Exception:
                logger.warning(
                    "Failed to append %s turn for %s", role, uid, exc_info=True
                )
                HISTORY_WRITE_FAILURES_TOTAL.labels(role=role).inc()
                return False
            return True

    async def get(self, uid: str) -> HistoryResult:
        with tracer.start_as_current_span(SPAN_HISTORY_LOAD) as span:
            span.set_attribute(ATTR_HISTORY_UID, uid)
            stmt = (
                select(ChatTurnRow)
                .where(ChatTurnRow.uid == uid)
                .order_by(ChatTurnRow.id.desc())
            )
            if self._max_turns:
                stmt = stmt.limit(self._max_turns)
            try:
                async with self._session_factory() as session:
                    rows = (await session.execute(stmt)).scalars().all()
            except Exception as exc:
                logger.warning("Failed to load history for %s", uid, exc_info=True)
                HISTORY_READ_FAILURES_TOTAL.inc()
                return HistoryResult(error=str(exc) or type(exc).__name__)

            turns = [row.to_turn() for row in reversed(rows)]
            span.set_attribute(ATTR_HISTORY_TURN_COUNT, len(turns))
            logger.debug("Loaded %d turns for %s", len(turns), uid)
            return HistoryResult(turns=turns)


class InMemoryHistoryStore(HistoryStore):
    """Process-local history store.  Lost on restart."""

    def __init__(self, max_turns: int | None = None) -> None:
        super().__init__(max_turns)
        self._histories: defaultdict[str, list[ChatTurn]] = defaultdict(list)

    async def append(self, uid: str, role: Role, text: str) -> bool:
        self._histories[uid].append(ChatTurn(role=role, text=text, timestamp=_now()))
        return True

    async def get(self, uid: str) -> HistoryResult:
        turns = list(self._histories.get(uid, ()))
        if self._max_turns:
            turns = turns[-self._max_turns :]
        return HistoryResult(turns=turns)
