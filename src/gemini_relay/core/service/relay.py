"""Prompt relay: validate, persist, complete, persist, reply.

``RelayService.handle_prompt`` is the only place where request-level
decisions are made:

- an empty prompt is rejected with ``PromptRequired`` (HTTP 400);
- a failed user-turn write is logged and the request carries on;
- a fallback reply is reported as success unless
  ``ChatConfig.expose_completion_failures`` is set;
- any other exception becomes ``success=False`` with the message in
  ``reply``.

Requests are not idempotent: a retried request appends a second pair of
turns.
"""

import logging

from pydantic import BaseModel, Field

from gemini_relay.configs.system import ChatConfig
from gemini_relay.core.llm.completion import CompletionClient
from gemini_relay.infra.db.history import HistoryStore
from gemini_relay.infra.db.models import ROLE_ASSISTANT, ROLE_USER, HistoryResult
from gemini_relay.infra.telemetry import ATTR_HISTORY_UID, SPAN_HANDLE_PROMPT, tracer

from .metrics import PROMPTS_TOTAL

logger = logging.getLogger(__name__)

PROMPT_REQUIRED_MESSAGE = "Prompt is required"
SERVER_ERROR_PREFIX = "Server error: "


class PromptRequired(Exception):
    """The request carried no prompt."""

    def __init__(self, message: str = PROMPT_REQUIRED_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


class PromptOutcome(BaseModel):
    """Result of relaying one prompt."""

    success: bool = Field(description="False when the relay itself failed")
    reply: str = Field(description="Assistant reply or error description")


class RelayService:
    """Orchestrates history writes around a completion call."""

    def __init__(
        self,
        store: HistoryStore,
        completion: CompletionClient,
        config: ChatConfig,
    ) -> None:
        self._store = store
        self._completion = completion
        self._config = config

    async def handle_prompt(self, uid: str | None, prompt: str | None) -> PromptOutcome:
        if not prompt:
            PROMPTS_TOTAL.labels(status="rejected").inc()
            raise PromptRequired()

        with tracer.start_as_current_span(SPAN_HANDLE_PROMPT) as span:
            span.set_attribute(ATTR_HISTORY_UID, uid or "")
            try:
                return await self._relay(uid, prompt)
            except Exception as exc:
                logger.exception("Relay failed for uid=%s", uid)
                PROMPTS_TOTAL.labels(status="error").inc()
                return PromptOutcome(success=False, reply=f"{SERVER_ERROR_PREFIX}{exc}")

    async def _relay(self, uid: str | None, prompt: str) -> PromptOutcome:
        if not uid:
            raise ValueError("uid is required")

        if not await self._store.append(uid, ROLE_USER, prompt):
            logger.warning("User turn for %s not saved; continuing with completion", uid)

        result = await self._completion.complete(prompt)

        if not await self._store.append(uid, ROLE_ASSISTANT, result.text):
            logger.warning("Assistant turn for %s not saved", uid)

        if result.fallback:
            PROMPTS_TOTAL.labels(status="fallback").inc()
            success = not self._config.expose_completion_failures
        else:
            PROMPTS_TOTAL.labels(status="ok").inc()
            success = True

        logger.info(
            "Relayed prompt for %s (attempts=%d, demo=%s, fallback=%s)",
            uid,
            result.attempts,
            result.demo,
            result.fallback,
        )
        return PromptOutcome(success=success, reply=result.text)

    async def get_history(self, uid: str) -> HistoryResult:
        return await self._store.get(uid)
