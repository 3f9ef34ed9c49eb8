"""Pydantic models for the HTTP API."""

from typing import Literal

from pydantic import BaseModel, Field

from gemini_relay.infra.db.models import ChatTurn


class PromptRequest(BaseModel):
    """Body of ``POST /api/gemini``.

    Both fields are optional at the schema level so that a missing
    prompt is answered with the relay's own 400 envelope rather than a
    validation error.
    """

    uid: str | None = Field(default=None, description="Opaque user identifier")
    prompt: str | None = Field(default=None, description="User prompt")


class PromptResponse(BaseModel):
    success: bool = Field(description="False when the relay failed")
    reply: str = Field(description="Assistant reply or error description")


class HistoryResponse(BaseModel):
    success: bool = Field(description="False when the history read failed")
    history: list[ChatTurn] = Field(
        default_factory=list, description="Turns, oldest first"
    )
    message: str | None = Field(default=None, description="Read error, if any")


class HealthResponse(BaseModel):
    status: Literal["OK"] = "OK"
    port: int = Field(description="Port the server was configured with")
    timestamp: str = Field(description="Current time, ISO-8601")
