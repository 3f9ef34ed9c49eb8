"""FastAPI application factory.

Run with ``python -m gemini_relay`` or
``uvicorn --factory gemini_relay.app:create_app``.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from gemini_relay import __version__
from gemini_relay.api import chat_router, health_router
from gemini_relay.api.exceptions import register_exception_handlers
from gemini_relay.configs.config import AppConfig, get_app_config
from gemini_relay.core.llm.deps import build_completion_client
from gemini_relay.core.service.metrics import setup_metrics
from gemini_relay.infra.db.engine import build_db
from gemini_relay.infra.telemetry import init_telemetry

logger = logging.getLogger(__name__)

# Lifespan builders, entered in order and torn down in reverse.
LIFESPAN_BUILDERS = (build_db, build_completion_client)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the history store and completion client, once per process."""
    config: AppConfig = app.state.config
    async with AsyncExitStack() as stack:
        for builder in LIFESPAN_BUILDERS:
            await stack.enter_async_context(asynccontextmanager(builder)(app, config))
        logger.info("Server running on http://localhost:%d", config.port)
        yield
    logger.info("Shut down")


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if config is None:
        config = get_app_config()

    app = FastAPI(
        title="Gemini Relay",
        description="Relays prompts to Gemini and keeps per-user chat history",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(chat_router)
    app.include_router(health_router)

    init_telemetry(app, config.tracing)
    setup_metrics(app, config)

    # Mounted last: "/" would otherwise shadow the API routes.
    static_dir = config.api.static_dir
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="public")
    else:
        logger.info("Static directory %s not found, not serving assets", static_dir)

    return app
