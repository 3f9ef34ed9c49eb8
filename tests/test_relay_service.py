"""Tests for RelayService: validation, persistence order, failure policy."""

from unittest.mock import AsyncMock

import pytest

from gemini_relay.configs.system import ChatConfig, LLMConfig
from gemini_relay.core.llm.completion import CompletionClient
from gemini_relay.core.service.relay import (
    PROMPT_REQUIRED_MESSAGE,
    PromptRequired,
    RelayService,
)
from gemini_relay.infra.db import InMemoryHistoryStore, Role

FALLBACK = LLMConfig().fallback_reply


class _FlakyStore(InMemoryHistoryStore):
    """In-memory store whose appends fail for the given roles."""

    def __init__(self, failing_roles: set[str]) -> None:
        super().__init__()
        self.failing_roles = failing_roles
        self.attempted: list[tuple[str, str]] = []

    async def append(self, uid: str, role: Role, text: str) -> bool:
        self.attempted.append((role, text))
        if role in self.failing_roles:
            return False
        return await super().append(uid, role, text)


def _service(store=None, completion=None, **chat) -> RelayService:
    return RelayService(
        store or InMemoryHistoryStore(),
        completion or CompletionClient(LLMConfig()),
        ChatConfig(**chat),
    )


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", [None, ""])
    async def test_missing_prompt_is_rejected(self, prompt):
        store = InMemoryHistoryStore()
        with pytest.raises(PromptRequired) as exc_info:
            await _service(store).handle_prompt("u1", prompt)

        assert exc_info.value.message == PROMPT_REQUIRED_MESSAGE
        assert (await store.get("u1")).turns == []

    @pytest.mark.asyncio
    async def test_missing_uid_is_a_server_error(self):
        outcome = await _service().handle_prompt(None, "hello")

        assert outcome.success is False
        assert outcome.reply == "Server error: uid is required"


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_persists_user_then_assistant_turn(self):
        store = InMemoryHistoryStore()
        outcome = await _service(store).handle_prompt("u1", "hello")

        assert outcome.success is True
        turns = (await store.get("u1")).turns
        assert [(t.role, t.text) for t in turns] == [
            ("user", "hello"),
            ("assistant", outcome.reply),
        ]

    @pytest.mark.asyncio
    async def test_repeated_requests_append_duplicate_pairs(self):
        store = InMemoryHistoryStore()
        service = _service(store)
        await service.handle_prompt("u1", "same")
        await service.handle_prompt("u1", "same")

        turns = (await store.get("u1")).turns
        assert [t.role for t in turns] == ["user", "assistant"] * 2

    @pytest.mark.asyncio
    async def test_whitespace_prompt_is_relayed(self):
        outcome = await _service().handle_prompt("u1", "   ")
        assert outcome.success is True


class TestFailurePolicy:
    @pytest.mark.asyncio
    async def test_user_turn_write_failure_does_not_block_completion(self):
        store = _FlakyStore(failing_roles={"user"})
        completion = CompletionClient(LLMConfig())
        completion.complete = AsyncMock(wraps=completion.complete)

        outcome = await _service(store, completion).handle_prompt("u1", "hello")

        assert outcome.success is True
        completion.complete.assert_awaited_once_with("hello")
        assert [t.role for t in (await store.get("u1")).turns] == ["assistant"]

    @pytest.mark.asyncio
    async def test_assistant_turn_write_failure_still_replies(self):
        store = _FlakyStore(failing_roles={"assistant"})
        outcome = await _service(store).handle_prompt("u1", "hello")

        assert outcome.success is True
        assert ("assistant", outcome.reply) in store.attempted

    @pytest.mark.asyncio
    async def test_fallback_is_reported_as_success_by_default(
        self, make_completion_client
    ):
        completion = make_completion_client(*[RuntimeError("503")] * 3)
        store = InMemoryHistoryStore()
        outcome = await _service(store, completion).handle_prompt("u1", "hello")

        assert outcome.success is True
        assert outcome.reply == FALLBACK
        assert (await store.get("u1")).turns[-1].text == FALLBACK

    @pytest.mark.asyncio
    async def test_fallback_can_be_exposed_as_failure(self, make_completion_client):
        completion = make_completion_client(*[RuntimeError("503")] * 3)
        outcome = await _service(
            completion=completion, expose_completion_failures=True
        ).handle_prompt("u1", "hello")

        assert outcome.success is False
        assert outcome.reply == FALLBACK

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_server_error(self):
        store = InMemoryHistoryStore()
        store.append = AsyncMock(side_effect=KeyError("boom"))

        outcome = await _service(store).handle_prompt("u1", "hello")

        assert outcome.success is False
        assert outcome.reply.startswith("Server error: ")
        assert "boom" in outcome.reply
