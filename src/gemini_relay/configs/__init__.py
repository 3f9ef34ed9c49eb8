"""Application configuration."""

from .config import AppConfig, get_app_config, load_store_credentials  # noqa: F401
from .system import DEMO_API_KEY, StoreCredentials  # noqa: F401
