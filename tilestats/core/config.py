"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Cross-field requirements (e.g. SUPABASE_URL when tile
configs live in the data store) are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    Everything has a default so the service starts with file-based tile
    configs and no cache; validate_sources enforces the data store settings
    when tile_config_source is 'datastore'.
    """

    # App
    app_name: str = "tilestats"
    app_version: str = "1.0.0"
    debug: bool = False

    # Hosted data store (PostgREST / Supabase REST API)
    supabase_url: str = ""
    supabase_service_key: SecretStr = SecretStr("")
    query_timeout_seconds: float = 10.0
    # RPC that runs a read-only parameterized query: fn(query_text text, params jsonb)
    custom_query_function: str = "execute_tile_query"
    # Upper bound on rows scanned for count_distinct (PostgREST has no COUNT(DISTINCT))
    distinct_scan_limit: int = 10_000

    # Tile configuration: "file" (JSON documents on disk) or "datastore" (REST table)
    tile_config_source: str = "file"
    tile_config_path: str = "tiles"
    tile_config_table: str = "core_tile_configs"

    # Resolution / formatting
    strict_placeholders: bool = False
    currency_symbol: str = "$"

    # Security (bearer tokens are verified, never issued, by this service)
    secret_key: SecretStr = SecretStr("")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    organization_header_name: str = "X-Organization-ID"

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Request / middleware
    request_timeout_seconds: int = 60
    request_id_header: str = "X-Request-ID"
    refresh_rate_limit: str = "30/minute"

    # Redis Cache
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    cache_ttl_tile_stats: int = 60

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @property
    def cors_origins(self) -> list[str]:
        """ALLOWED_ORIGINS as a list (comma separated in the environment)."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @model_validator(mode="after")
    def validate_sources(self) -> "Settings":
        """Validate tile config source and the data store settings it needs."""
        if self.tile_config_source == "datastore":
            if not self.supabase_url:
                raise ValueError(
                    "SUPABASE_URL is required when tile_config_source is 'datastore'. "
                    "Set in environment or .env file."
                )
        elif self.tile_config_source != "file":
            raise ValueError(
                f"tile_config_source must be 'file' or 'datastore', got: {self.tile_config_source!r}"
            )
        if self.query_timeout_seconds <= 0:
            raise ValueError("QUERY_TIMEOUT_SECONDS must be positive")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
