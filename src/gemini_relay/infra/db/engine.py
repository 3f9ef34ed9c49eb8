"""History store construction and per-request access.

``build_db`` is a lifespan builder: it loads the store credentials file,
creates the engine + session factory, attaches the ``HistoryStore`` to
``app.state`` and disposes the engine on shutdown.  A missing
credentials file raises, which aborts startup.
"""

import logging
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from gemini_relay.configs.config import AppConfig, load_store_credentials
from gemini_relay.configs.system import StoreCredentials
from gemini_relay.infra.telemetry import instrument_sqlalchemy

from .history import HistoryStore, InMemoryHistoryStore, SqlHistoryStore

logger = logging.getLogger(__name__)

MEMORY_URI = "memory://"


def create_engine(credentials: StoreCredentials) -> AsyncEngine:
    """Create the async engine described by *credentials*."""
    kwargs: dict = {"echo": credentials.echo}
    # SQLite pools do not take sizing arguments.
    if make_url(credentials.uri).get_backend_name() != "sqlite":
        kwargs.update(
            pool_pre_ping=True,
            pool_size=credentials.pool_size,
            max_overflow=credentials.max_overflow,
        )
    return create_async_engine(credentials.uri, **kwargs)


async def build_db(app: FastAPI, config: AppConfig) -> AsyncGenerator[None, None]:
    """Create the history store and attach it to ``app.state``."""
    credentials = load_store_credentials(config.credentials_path)

    if credentials.uri == MEMORY_URI:
        logger.warning("Using in-memory history store; turns are lost on restart")
        app.state.history_store = InMemoryHistoryStore(config.history.max_turns)
        yield
        return

    engine = create_engine(credentials)
    instrument_sqlalchemy(engine)
    factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
        engine, expire_on_commit=False
    )
    app.state.engine = engine
    app.state.history_store = SqlHistoryStore(factory, config.history.max_turns)
    logger.info("History store connected (%s)", make_url(credentials.uri).drivername)
    try:
        yield
    finally:
        await engine.dispose()


def get_history_store(request: Request) -> HistoryStore:
    """Return the ``HistoryStore`` built by the lifespan."""
    return request.app.state.history_store
