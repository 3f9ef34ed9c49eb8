"""Shared fixtures: configs, fake Gemini models, a running app."""

import json
from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from gemini_relay.app import create_app
from gemini_relay.configs.config import AppConfig
from gemini_relay.configs.system import DEMO_API_KEY, APIConfig, LLMConfig
from gemini_relay.core.llm.completion import CompletionClient


def write_credentials(path: Path, uri: str) -> Path:
    path.write_text(json.dumps({"uri": uri}), encoding="utf-8")
    return path


@pytest.fixture
def memory_credentials(tmp_path: Path) -> Path:
    return write_credentials(tmp_path / "store-credentials.json", "memory://")


@pytest.fixture
def make_config(memory_credentials: Path, tmp_path: Path) -> Callable[..., AppConfig]:
    """Build an ``AppConfig`` isolated from the host environment."""

    def factory(**overrides) -> AppConfig:
        values = dict(
            port=5000,
            gemini_api_key=DEMO_API_KEY,
            store_credentials_file=memory_credentials,
            api=APIConfig(metrics_enabled=False, static_dir=tmp_path / "no-public"),
        )
        values.update(overrides)
        return AppConfig(**values)

    return factory


@pytest.fixture
def config(make_config) -> AppConfig:
    return make_config()


@pytest.fixture
def app(config: AppConfig):
    return create_app(config)


@pytest.fixture
def client(app):
    """A ``TestClient`` with the lifespan running (demo mode, memory store)."""
    with TestClient(app) as test_client:
        yield test_client


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    @property
    def total(self) -> float:
        return sum(self.delays)


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


def fake_llm(*outcomes) -> MagicMock:
    """A chat model whose ``ainvoke`` yields each outcome in turn.

    Strings become ``AIMessage`` replies, exceptions are raised.
    """
    llm = MagicMock()
    llm.ainvoke = AsyncMock(
        side_effect=[
            AIMessage(content=o) if isinstance(o, str) else o for o in outcomes
        ]
    )
    return llm


@pytest.fixture
def make_completion_client(sleep: SleepRecorder):
    def factory(*outcomes, **llm_overrides) -> CompletionClient:
        return CompletionClient(
            LLMConfig(**llm_overrides), llm=fake_llm(*outcomes), sleep=sleep
        )

    return factory


@pytest.fixture
def make_llm():
    return fake_llm


@pytest.fixture
def make_credentials():
    return write_credentials
