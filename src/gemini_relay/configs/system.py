from pathlib import Path

from pydantic import BaseModel, Field

DEMO_API_KEY = "demo-key"


class StoreConfig(BaseModel):
    """Where to find the history store credentials."""

    credentials_file: Path = Field(
        default=Path("store-credentials.json"),
        description="JSON/YAML file holding the history database URI",
    )


class StoreCredentials(BaseModel):
    """Contents of the store credentials file."""

    uri: str = Field(description="SQLAlchemy async URI, or memory:// for in-process")
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Connections above pool_size")
    echo: bool = Field(default=False, description="Log emitted SQL")


class LLMConfig(BaseModel):
    """Gemini completion settings (operator-level, never per request)."""

    model_name: str = Field(default="gemini-2.5-pro", description="Gemini model")
    temperature: float = Field(default=0.7, description="Sampling temperature")
    top_k: int = Field(default=40, description="Top-k sampling parameter")
    top_p: float = Field(default=0.95, description="Top-p sampling parameter")
    max_attempts: int = Field(
        default=3, ge=1, description="Generation attempts before falling back"
    )
    retry_delay_ms: int = Field(
        default=2000, ge=0, description="Fixed wait between failed attempts"
    )
    fallback_reply: str = Field(
        default="Gemini API is currently busy. Please try again later.",
        description="Reply used once every attempt has failed",
    )
    demo_reply_template: str = Field(
        default=(
            "I'm Gemini AI! You said: \"{prompt}\". "
            "Set GEMINI_API_KEY in .env for real responses."
        ),
        description="Reply template used when no API key is configured",
    )


class ChatConfig(BaseModel):
    """Request handler behaviour."""

    expose_completion_failures: bool = Field(
        default=False,
        description="Report fallback replies with success=false",
    )


class HistoryConfig(BaseModel):
    """Chat history read policy."""

    max_turns: int | None = Field(
        default=None,
        ge=1,
        description="Return only the newest N turns (unset = whole history)",
    )


class APIConfig(BaseModel):
    """HTTP surface settings."""

    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"], description="Allowed CORS origins"
    )
    static_dir: Path = Field(
        default=Path("public"), description="Directory served at /"
    )
    metrics_enabled: bool = Field(
        default=True, description="Expose Prometheus metrics at /metrics"
    )


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Root log level")
    json_output: bool = Field(
        default=False, description="Emit JSON lines instead of coloured text"
    )


class TracingConfig(BaseModel):
    """OpenTelemetry export settings. Disabled by default."""

    enabled: bool = Field(default=False, description="Enable OTLP span export")
    endpoint: str = Field(default="", description="OTLP HTTP traces endpoint")
    service_name: str = Field(default="gemini-relay", description="service.name")
    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    excluded_urls: list[str] = Field(
        default_factory=lambda: ["/api/health", "/metrics"],
        description="Paths that produce no spans or HTTP metrics",
    )
