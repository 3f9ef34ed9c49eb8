"""HTTP API routers."""

from .chat import router as chat_router  # noqa: F401
from .health import router as health_router  # noqa: F401
