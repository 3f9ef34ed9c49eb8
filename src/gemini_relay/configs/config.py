"""Configuration management using pydantic-settings.

The config is loaded once per process (``create_app`` stores it on
``app.state``) and handed to the store, the completion client and the
request handler explicitly.

Priority order (highest first):

1. Init kwargs (tests, ``create_app(config=...)``)
2. Environment variables (``RELAY_`` prefix, plus the bare ``PORT``,
   ``HOST``, ``GEMINI_API_KEY`` and ``STORE_CREDENTIALS_FILE``)
3. ``.env`` dotenv file
4. Static YAML (``configs/config.yaml``)
5. Field defaults
"""

from pathlib import Path

import yaml
from pydantic import AliasChoices, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .system import (
    DEMO_API_KEY,
    APIConfig,
    ChatConfig,
    HistoryConfig,
    LLMConfig,
    LoggingConfig,
    StoreConfig,
    StoreCredentials,
    TracingConfig,
)

CONFIG_PY_PATH = Path(__file__).resolve()
PROJECT_ROOT = CONFIG_PY_PATH.parent.parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "configs"
STATIC_CONFIG_FILE = CONFIG_DIR / "config.yaml"

DOTENV_FILE_PATH = ".env"
ENV_DELIMITER = "__"
ENV_PREFIX = "RELAY_"

DEFAULT_ENCODING = "utf-8"


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=DOTENV_FILE_PATH,
        env_file_encoding=DEFAULT_ENCODING,
        env_nested_delimiter=ENV_DELIMITER,
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        yaml_file=STATIC_CONFIG_FILE,
        yaml_file_encoding=DEFAULT_ENCODING,
    )

    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("HOST", "RELAY_HOST"),
        description="API server host",
    )
    port: int = Field(
        default=5000,
        validation_alias=AliasChoices("PORT", "RELAY_PORT"),
        description="API server port",
    )
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "RELAY_GEMINI_API_KEY"),
        description="Gemini API key; unset or 'demo-key' enables demo mode",
    )
    store_credentials_file: Path | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "STORE_CREDENTIALS_FILE", "RELAY_STORE_CREDENTIALS_FILE"
        ),
        description="Shortcut for store.credentials_file",
    )

    store: StoreConfig = Field(default_factory=StoreConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    tracing: TracingConfig = Field(default_factory=TracingConfig)

    @property
    def has_api_key(self) -> bool:
        """True when a real (non-demo) Gemini key is configured."""
        return bool(self.gemini_api_key) and self.gemini_api_key != DEMO_API_KEY

    @property
    def credentials_path(self) -> Path:
        return self.store_credentials_file or self.store.credentials_file

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def get_app_config() -> AppConfig:
    """Build the application configuration from all sources."""
    return AppConfig()


def load_store_credentials(path: Path) -> StoreCredentials:
    """Load the history store credentials file.

    The file is JSON or YAML (JSON parses as YAML).  A missing file is
    fatal: the caller lets ``FileNotFoundError`` abort startup.
    """
    if not path.exists():
        raise FileNotFoundError(f"Store credentials file not found: {path}")

    with open(path, encoding=DEFAULT_ENCODING) as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Store credentials file must hold a mapping: {path}")

    return StoreCredentials(**data)
