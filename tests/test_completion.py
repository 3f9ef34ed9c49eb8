"""Tests for the Gemini completion client: demo mode, retry, fallback."""

import asyncio

import pytest
from langchain_core.messages import AIMessage

from gemini_relay.configs.config import AppConfig
from gemini_relay.configs.system import DEMO_API_KEY, LLMConfig
from gemini_relay.core.llm.completion import (
    CompletionClient,
    EmptyCompletion,
    message_text,
)
from gemini_relay.core.llm.deps import get_llm

FALLBACK = LLMConfig().fallback_reply

# ---------------------------------------------------------------------------
# Demo mode
# ---------------------------------------------------------------------------


class TestDemoMode:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", ["hello", "What's 2+2?", 'quote "me"', "{x}"])
    async def test_demo_reply_is_exact_template(self, prompt):
        client = CompletionClient(LLMConfig())
        result = await client.complete(prompt)

        assert result.text == (
            f'I\'m Gemini AI! You said: "{prompt}". '
            "Set GEMINI_API_KEY in .env for real responses."
        )
        assert result.demo is True
        assert result.fallback is False
        assert result.attempts == 0

    def test_demo_mode_without_llm(self):
        assert CompletionClient(LLMConfig()).demo_mode is True

    @pytest.mark.parametrize("key", [None, "", DEMO_API_KEY])
    def test_no_llm_without_real_key(self, key):
        assert get_llm(AppConfig(gemini_api_key=key)) is None


# ---------------------------------------------------------------------------
# Retry loop
# ---------------------------------------------------------------------------


class TestRetry:
    @pytest.mark.asyncio
    async def test_first_attempt_success_does_not_sleep(
        self, make_completion_client, sleep
    ):
        client = make_completion_client("Hi there")
        result = await client.complete("hello")

        assert result.text == "Hi there"
        assert result.attempts == 1
        assert result.fallback is False
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(
        self, make_completion_client, sleep
    ):
        client = make_completion_client(RuntimeError("503 overloaded"), "Recovered")
        result = await client.complete("hello")

        assert result.text == "Recovered"
        assert result.attempts == 2
        assert sleep.delays == [2.0]

    @pytest.mark.asyncio
    async def test_three_failures_yield_fallback(self, make_completion_client, sleep):
        errors = [RuntimeError(f"overloaded {i}") for i in range(3)]
        client = make_completion_client(*errors)
        result = await client.complete("hello")

        assert result.text == FALLBACK
        assert result.fallback is True
        assert result.attempts == 3
        assert result.last_error is errors[-1]
        # Two backoff intervals between three attempts.
        assert sleep.delays == [2.0, 2.0]
        assert sleep.total >= 2 * 2.0

    @pytest.mark.asyncio
    async def test_each_attempt_sends_the_prompt(self, make_completion_client):
        client = make_completion_client(RuntimeError("x"), RuntimeError("y"), "ok")
        await client.complete("the prompt")

        calls = client._llm.ainvoke.await_args_list
        assert [c.args[0] for c in calls] == ["the prompt"] * 3

    @pytest.mark.asyncio
    async def test_empty_completion_falls_back_without_retrying(
        self, make_completion_client, sleep
    ):
        client = make_completion_client("   ", "never requested")
        result = await client.complete("hello")

        assert result.text == FALLBACK
        assert result.fallback is True
        assert result.attempts == 1
        assert isinstance(result.last_error, EmptyCompletion)
        assert sleep.delays == []
        assert client._llm.ainvoke.await_count == 1

    @pytest.mark.asyncio
    async def test_empty_completion_after_transient_failure(
        self, make_completion_client, sleep
    ):
        client = make_completion_client(RuntimeError("503"), "")
        result = await client.complete("hello")

        assert result.fallback is True
        assert result.attempts == 2
        assert sleep.delays == [2.0]

    @pytest.mark.asyncio
    async def test_attempt_budget_and_delay_are_configurable(
        self, make_completion_client, sleep
    ):
        client = make_completion_client(
            *[RuntimeError("down")] * 5, max_attempts=5, retry_delay_ms=250
        )
        result = await client.complete("hello")

        assert result.attempts == 5
        assert sleep.delays == [0.25] * 4

    @pytest.mark.asyncio
    async def test_real_sleep_waits_between_attempts(self, make_llm):
        client = CompletionClient(
            LLMConfig(retry_delay_ms=50),
            llm=make_llm(RuntimeError("a"), RuntimeError("b"), RuntimeError("c")),
        )
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await client.complete("hello")

        assert result.fallback is True
        assert loop.time() - started >= 2 * 0.05

    @pytest.mark.asyncio
    async def test_cancellation_is_not_swallowed(self, make_completion_client):
        client = make_completion_client(asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            await client.complete("hello")


# ---------------------------------------------------------------------------
# Message flattening
# ---------------------------------------------------------------------------


class TestMessageText:
    def test_string_content(self):
        assert message_text(AIMessage(content="plain")) == "plain"

    def test_list_content_keeps_text_parts(self):
        message = AIMessage(
            content=[
                "a",
                {"type": "text", "text": "b"},
                {"type": "thinking", "thinking": "ignored"},
            ]
        )
        assert message_text(message) == "ab"
