"""Tracing for the relay: span names, attribute keys and OTLP export.

Spans are always created through ``tracer``; until ``init_telemetry`` installs
an SDK provider they are non-recording, so call sites never check whether
tracing is on.

Span layout of one ``POST /api/gemini``::

    relay.handle_prompt
    ├── history.append   (role=user)
    ├── completion.generate
    └── history.append   (role=assistant)
"""

from __future__ import annotations

import logging

from opentelemetry import trace

from gemini_relay.configs.system import TracingConfig

logger = logging.getLogger(__name__)

tracer = trace.get_tracer("gemini_relay")

SPAN_HANDLE_PROMPT = "relay.handle_prompt"
SPAN_COMPLETION = "completion.generate"
SPAN_HISTORY_APPEND = "history.append"
SPAN_HISTORY_LOAD = "history.load"

ATTR_COMPLETION_MODEL = "completion.model"
ATTR_COMPLETION_ATTEMPTS = "completion.attempts"
ATTR_COMPLETION_FALLBACK = "completion.fallback"
ATTR_COMPLETION_DEMO = "completion.demo"
ATTR_HISTORY_UID = "history.uid"
ATTR_HISTORY_ROLE = "history.role"
ATTR_HISTORY_TURN_COUNT = "history.turn_count"


class _TracingState:
    exporting = False


def tracing_active() -> bool:
    """True once spans are exported to an OTLP collector."""
    return _TracingState.exporting


def _install_provider(settings: TracingConfig) -> None:
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter,
    )
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
    from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

    provider = TracerProvider(
        resource=Resource.create({"service.name": settings.service_name}),
        sampler=ParentBased(root=TraceIdRatioBased(settings.sample_rate)),
    )
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.endpoint))
    )
    trace.set_tracer_provider(provider)


def init_telemetry(app: object | None, settings: TracingConfig | None) -> bool:
    """Start exporting relay spans when ``settings.enabled`` and an endpoint is set.

    The FastAPI app, when given, gets HTTP server spans for every route
    except ``settings.excluded_urls`` (health probes and the metrics scrape).
    """
    if settings is None or not settings.enabled:
        logger.debug("Tracing disabled; relay spans stay non-recording.")
        return False
    if not settings.endpoint:
        logger.warning("tracing.enabled is set without tracing.endpoint; ignoring.")
        return False

    _install_provider(settings)

    if app is not None:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(
            app, excluded_urls=",".join(settings.excluded_urls)
        )

    _TracingState.exporting = True
    logger.info(
        "Exporting spans for %s to %s", settings.service_name, settings.endpoint
    )
    return True


def instrument_sqlalchemy(engine: object) -> None:
    """Emit DB spans for the history engine while tracing is active."""
    if not tracing_active():
        return

    from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

    SQLAlchemyInstrumentor().instrument(
        engine=getattr(engine, "sync_engine", engine)
    )
