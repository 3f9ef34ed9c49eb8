"""FastAPI dependency factories for the relay service.

Long-lived resources (history store, completion client, config) are
built once by the lifespan and read from ``app.state``;
``get_relay_service`` wires them per request with no hidden lookups.
"""

from typing import Annotated

from fastapi import Depends, Request

from gemini_relay.configs.config import AppConfig
from gemini_relay.core.llm.completion import CompletionClient
from gemini_relay.core.llm.deps import get_completion_client
from gemini_relay.infra.db.engine import get_history_store
from gemini_relay.infra.db.history import HistoryStore

from .relay import RelayService


def get_config(request: Request) -> AppConfig:
    """Return the ``AppConfig`` loaded at startup."""
    return request.app.state.config


def get_relay_service(
    store: Annotated[HistoryStore, Depends(get_history_store)],
    completion: Annotated[CompletionClient, Depends(get_completion_client)],
    config: Annotated[AppConfig, Depends(get_config)],
) -> RelayService:
    return RelayService(store, completion, config.chat)
