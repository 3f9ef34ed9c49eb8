"""LLM factory functions and the completion client lifespan builder."""

import logging
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from langchain_core.language_models import BaseChatModel

from gemini_relay.configs.config import AppConfig

from .completion import CompletionClient

logger = logging.getLogger(__name__)


def get_llm(config: AppConfig) -> BaseChatModel | None:
    """Create the Gemini chat model, or ``None`` when running in demo mode.

    ``max_retries=1`` leaves retrying to ``CompletionClient`` so the
    attempt budget and backoff stay fixed.
    """
    if not config.has_api_key:
        return None

    from langchain_google_genai import ChatGoogleGenerativeAI

    llm = config.llm
    return ChatGoogleGenerativeAI(
        model=llm.model_name,
        google_api_key=config.gemini_api_key,
        temperature=llm.temperature,
        top_k=llm.top_k,
        top_p=llm.top_p,
        max_retries=1,
    )


async def build_completion_client(
    app: FastAPI, config: AppConfig
) -> AsyncGenerator[None, None]:
    """Build the process-wide ``CompletionClient`` on ``app.state``."""
    client = CompletionClient(config.llm, get_llm(config))
    app.state.completion_client = client
    if client.demo_mode:
        logger.warning("DEMO MODE - set GEMINI_API_KEY in .env for real AI")
    else:
        logger.info("GEMINI_API_KEY is set (model=%s)", config.llm.model_name)
    yield


def get_completion_client(request: Request) -> CompletionClient:
    """Return the ``CompletionClient`` built by the lifespan."""
    return request.app.state.completion_client
