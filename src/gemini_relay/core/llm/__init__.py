"""Gemini completion client."""

from .completion import (  # noqa: F401
    CompletionAttempt,
    CompletionClient,
    CompletionFailure,
    CompletionResult,
    CompletionSuccess,
    EmptyCompletion,
)
from .deps import build_completion_client, get_completion_client, get_llm  # noqa: F401
