"""Prometheus metrics for the relay.

Business counters that complement the HTTP metrics provided by
``prometheus-fastapi-instrumentator``.  All metrics use the ``relay_``
prefix.
"""

import logging

from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

from gemini_relay.configs.config import AppConfig

logger = logging.getLogger(__name__)

COMPLETION_ATTEMPTS_TOTAL = Counter(
    "relay_completion_attempts_total",
    "Gemini generation attempts, by outcome",
    ["outcome"],  # "success" | "error" | "empty"
)

COMPLETION_FALLBACKS_TOTAL = Counter(
    "relay_completion_fallbacks_total",
    "Requests answered with the fallback reply after every attempt failed",
)

COMPLETION_DEMO_TOTAL = Counter(
    "relay_completion_demo_total",
    "Requests answered in demo mode",
)

HISTORY_WRITE_FAILURES_TOTAL = Counter(
    "relay_history_write_failures_total",
    "Turns that could not be appended to the history store",
    ["role"],
)

HISTORY_READ_FAILURES_TOTAL = Counter(
    "relay_history_read_failures_total",
    "History reads that failed and were reported as empty",
)

PROMPTS_TOTAL = Counter(
    "relay_prompts_total",
    "Prompt requests handled, by result",
    ["status"],  # "ok" | "fallback" | "rejected" | "error"
)


def setup_metrics(app: FastAPI, config: AppConfig) -> None:
    """Attach HTTP instrumentation and the ``/metrics`` endpoint to *app*.

    Must run before the application starts: the instrumentator adds a
    middleware.
    """
    if not config.api.metrics_enabled:
        logger.info("Prometheus metrics disabled")
        return

    Instrumentator(
        should_instrument_requests_inprogress=True,
        excluded_handlers=config.tracing.excluded_urls,
    ).instrument(app).expose(app, endpoint="/metrics")

    logger.info("Prometheus metrics initialised")
