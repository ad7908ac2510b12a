from __future__ import annotations

from pydantic import AliasChoices, ConfigDict, Field
from pydantic_settings import BaseSettings

LOCAL_FRONTEND_ORIGIN = "http://localhost:3000"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Lead Validator"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Model provider
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    scoring_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("scoring_model", "openai_model", "model"),
    )
    scoring_temperature: float = 0.2
    scoring_max_tokens: int = 800
    scoring_json_mode: bool = True
    enrich_with_freshness: bool = True

    # Batch analysis
    batch_concurrency: int = 3
    batch_delay_seconds: float = 1.0

    # Scraping actor
    apify_api_token: str | None = None
    apify_cookies: str | None = None  # JSON list of session-cookie records
    apify_actor_id: str = "apify~facebook-posts-scraper"
    apify_base_url: str = "https://api.apify.com"
    upstream_timeout_seconds: float = 120.0

    # Security
    frontend_origin: str | None = None
    allowed_origins: str | None = None
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 60
    max_body_bytes: int = 1_048_576

    # Sentry
    sentry_dsn: str | None = None

    # Server
    host: str = "0.0.0.0"
    port: int = 4000

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "lead_validator"
    metrics_disable: bool = False
    metrics_sample_rate: float = 1.0
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125

    @property
    def cors_allowlist(self) -> list[str]:
        """Local dev origin plus any comma-separated origins from the environment."""
        raw = self.frontend_origin or self.allowed_origins or ""
        origins = [LOCAL_FRONTEND_ORIGIN]
        origins.extend(part.strip() for part in raw.split(","))
        return [origin for origin in origins if origin]

    @property
    def chat_base_url(self) -> str:
        """Base URL for the SDK; a full chat-completions endpoint is trimmed back."""
        base = self.openai_base_url.rstrip("/")
        suffix = "/chat/completions"
        if base.endswith(suffix):
            base = base[: -len(suffix)]
        return base

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


settings = Settings()
