"""Root logger setup for the relay and the uvicorn server it runs under.

Two output modes, picked by ``LoggingConfig.json_output``:

* coloured one-line records (uvicorn's formatter) for a terminal, or
* JSON lines via python-json-logger for log shippers.

Every record carries ``trace_id``/``span_id`` (empty outside a recording
span) so relay logs can be joined with exported traces.
"""

from __future__ import annotations

import logging
import sys

from opentelemetry import trace

from gemini_relay.configs.system import LoggingConfig

TEXT_FORMAT = "%(levelprefix)s %(asctime)s [%(name)s] %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"
JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s %(trace_id)s %(span_id)s"

# Client libraries that log every HTTP call to the Gemini API at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "google_genai", "grpc", "opentelemetry")
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        span_ctx = trace.get_current_span().get_span_context()
        if span_ctx.is_valid:
            record.trace_id = f"{span_ctx.trace_id:032x}"
            record.span_id = f"{span_ctx.span_id:016x}"
        else:
            record.trace_id = ""
            record.span_id = ""
        return True


def build_formatter(json_output: bool) -> logging.Formatter:
    """Return the formatter for the chosen output mode."""
    if not json_output:
        from uvicorn.logging import DefaultFormatter

        return DefaultFormatter(fmt=TEXT_FORMAT, datefmt=TEXT_DATEFMT)

    from pythonjsonlogger.json import JsonFormatter

    return JsonFormatter(
        JSON_FIELDS,
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        defaults={"trace_id": "", "span_id": ""},
    )


def setup_logging(config: LoggingConfig | None = None) -> logging.Handler:
    """Route the root and uvicorn loggers through one stdout handler.

    Call once before the server starts; ``uvicorn.run`` must be given
    ``log_config=None`` so it keeps these handlers.
    """
    config = config or LoggingConfig()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(TraceIdFilter())
    handler.setFormatter(build_formatter(config.json_output))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(config.level.upper())

    for name in UVICORN_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler
