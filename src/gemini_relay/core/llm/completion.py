"""Gemini completion with bounded retry and a deterministic demo mode.

Every attempt produces an explicit outcome (``CompletionSuccess`` or
``CompletionFailure``); the retry loop inspects that outcome instead of
catching exceptions itself.  Transport errors never escape
``CompletionClient.complete``: after ``max_attempts`` failures, or at once
when Gemini answers with no text, the configured fallback reply is
returned with the last failure cause kept on the result for logging and
metrics.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage

from gemini_relay.configs.system import LLMConfig
from gemini_relay.core.service.metrics import (
    COMPLETION_ATTEMPTS_TOTAL,
    COMPLETION_DEMO_TOTAL,
    COMPLETION_FALLBACKS_TOTAL,
)
from gemini_relay.infra.telemetry import (
    ATTR_COMPLETION_ATTEMPTS,
    ATTR_COMPLETION_DEMO,
    ATTR_COMPLETION_FALLBACK,
    ATTR_COMPLETION_MODEL,
    SPAN_COMPLETION,
    tracer,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class EmptyCompletion(Exception):
    """The service answered without any text."""


@dataclass(frozen=True)
class CompletionSuccess:
    text: str


@dataclass(frozen=True)
class CompletionFailure:
    cause: Exception


CompletionAttempt = CompletionSuccess | CompletionFailure


@dataclass(frozen=True)
class CompletionResult:
    """Reply text plus how it was obtained."""

    text: str
    attempts: int = 0
    fallback: bool = False
    demo: bool = False
    last_error: Exception | None = None


def message_text(message: BaseMessage) -> str:
    """Flatten a chat model reply into plain text.

    Gemini may return content as a list of parts; only text parts count.
    """
    content = message.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class CompletionClient:
    """Turns a prompt into reply text, never failing the caller.

    With ``llm=None`` the client runs in demo mode and echoes the prompt
    through ``LLMConfig.demo_reply_template``.
    """

    def __init__(
        self,
        config: LLMConfig,
        llm: BaseChatModel | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config
        self._llm = llm
        self._sleep = sleep

    @property
    def demo_mode(self) -> bool:
        return self._llm is None

    def demo_reply(self, prompt: str) -> str:
        return self._config.demo_reply_template.format(prompt=prompt)

    async def complete(self, prompt: str) -> CompletionResult:
        """Generate a reply for *prompt*, retrying with a fixed delay."""
        with tracer.start_as_current_span(SPAN_COMPLETION) as span:
            span.set_attribute(ATTR_COMPLETION_MODEL, self._config.model_name)
            span.set_attribute(ATTR_COMPLETION_DEMO, self.demo_mode)

            if self._llm is None:
                COMPLETION_DEMO_TOTAL.inc()
                return CompletionResult(text=self.demo_reply(prompt), demo=True)

            result = await self._complete_with_retry(self._llm, prompt)
            span.set_attribute(ATTR_COMPLETION_ATTEMPTS, result.attempts)
            span.set_attribute(ATTR_COMPLETION_FALLBACK, result.fallback)
            return result

    async def _complete_with_retry(
        self, llm: BaseChatModel, prompt: str
    ) -> CompletionResult:
        max_attempts = self._config.max_attempts
        delay = self._config.retry_delay_ms / 1000
        last_error: Exception | None = None

        attempt = 0
        for attempt in range(1, max_attempts + 1):
            outcome = await self._attempt(llm, prompt)
            if isinstance(outcome, CompletionSuccess):
                return CompletionResult(text=outcome.text, attempts=attempt)

            last_error = outcome.cause
            logger.warning(
                "Gemini attempt %d/%d failed: %s",
                attempt,
                max_attempts,
                outcome.cause,
            )
            # An answered-but-empty reply will not improve on retry.
            if isinstance(outcome.cause, EmptyCompletion):
                break
            if attempt < max_attempts:
                await self._sleep(delay)

        COMPLETION_FALLBACKS_TOTAL.inc()
        logger.error(
            "Gemini gave no reply after %d attempt(s), sending fallback reply "
            "(last error: %r)",
            attempt,
            last_error,
        )
        return CompletionResult(
            text=self._config.fallback_reply,
            attempts=attempt,
            fallback=True,
            last_error=last_error,
        )

    async def _attempt(self, llm: BaseChatModel, prompt: str) -> CompletionAttempt:
        try:
            message = await llm.ainvoke(prompt)
        except Exception as exc:
            COMPLETION_ATTEMPTS_TOTAL.labels(outcome="error").inc()
            return CompletionFailure(exc)

        text = message_text(message)
        if not text.strip():
            COMPLETION_ATTEMPTS_TOTAL.labels(outcome="empty").inc()
            return CompletionFailure(EmptyCompletion("Gemini returned no text"))

        COMPLETION_ATTEMPTS_TOTAL.labels(outcome="success").inc()
        return CompletionSuccess(text)
