"""SQLAlchemy ORM models and the ChatTurn domain shape.

The ``chat_turns`` table is managed by Alembic migrations.  Each row is
one immutable turn; a user's history is every row with that ``uid``,
ordered by the autoincrement ``id``.
"""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# ---------------------------------------------------------------------------
# Role constants & type
# ---------------------------------------------------------------------------

ROLE_USER: Literal["user"] = "user"
ROLE_ASSISTANT: Literal["assistant"] = "assistant"

Role = Literal["user", "assistant"]


# ---------------------------------------------------------------------------
# Domain model
# ---------------------------------------------------------------------------


class ChatTurn(BaseModel):
    """One message in a user's conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="Who produced this turn")
    text: str = Field(description="Message content")
    timestamp: datetime = Field(description="Creation time (UTC), set at append")


class HistoryResult(BaseModel):
    """Outcome of a history read.  ``error`` is set when the read failed."""

    turns: list[ChatTurn] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Declarative base with naming convention
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    """Shared declarative base.

    The naming convention keeps constraint names deterministic for
    Alembic ``--autogenerate`` diffs.
    """


Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


# ---------------------------------------------------------------------------
# Chat turns table
# ---------------------------------------------------------------------------


class ChatTurnRow(Base):
    """A persisted chat turn.

    Rows are only ever inserted, so concurrent appends for the same
    ``uid`` cannot overwrite each other.
    """

    __tablename__ = "chat_turns"

    # SQLite only autoincrements INTEGER primary keys.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    uid: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    __table_args__ = (Index("ix_chat_turns_uid_id", "uid", "id"),)

    def to_turn(self) -> ChatTurn:
        created_at = self.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return ChatTurn(role=self.role, text=self.text, timestamp=created_at)

    def __repr__(self) -> str:
        return f"<ChatTurnRow(id={self.id}, uid={self.uid!r}, role={self.role!r})>"
