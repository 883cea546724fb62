"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Cache namespace overrides are checked against the
registered namespaces when the cache registry is built at startup.
"""

import uuid
from functools import lru_cache

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    Every setting has a default so the service boots with an in-process
    cache only. Redis and Postgres are enabled through their own settings.
    """

    # App
    app_name: str = "mentoring-cache"
    app_version: str = "1.0.0"
    debug: bool = False
    # Origin tag stamped on published invalidation events (one per process).
    instance_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Request / middleware
    request_id_header: str = "X-Request-ID"

    # Database (authoritative read sources for loaders and warm-up).
    # Empty database_url = SQL sources not configured.
    database_url: str = ""
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None
    db_command_timeout: int | None = None

    # Redis
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_socket_timeout: float = 2.0

    # Cache core
    cache_enabled: bool = True
    cache_store_timeout_seconds: float = 0.5
    # Prefix scans (scope invalidation, entry counts) walk the keyspace.
    cache_scan_timeout_seconds: float = 30.0
    cache_sweep_interval_seconds: int = 60
    cache_negative_ttl_seconds: int = 60
    # Per-namespace default TTL override in seconds; null means never expires.
    cache_ttl_overrides: dict[str, int | None] = Field(default_factory=dict)
    cache_disabled_namespaces: list[str] = Field(default_factory=list)
    # Namespaces kept in the per-process store even when Redis is enabled.
    cache_internal_namespaces: list[str] = Field(default_factory=list)

    # Invalidation bus
    cache_invalidation_channel: str = "cache:invalidate"
    # Delay before the listener re-subscribes after losing its subscription.
    cache_invalidation_retry_seconds: float = 1.0

    # Admin surface: when set, /cache/* requires X-Admin-Key with this value.
    admin_api_key: SecretStr | None = None
    admin_api_key_header: str = "X-Admin-Key"

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

    @model_validator(mode="after")
    def validate_cache_settings(self) -> "Settings":
        """Validate numeric cache settings.

        Namespace names in overrides are validated later by build_registry,
        which knows the registered namespaces.
        """
        if self.cache_store_timeout_seconds <= 0:
            raise ValueError("CACHE_STORE_TIMEOUT_SECONDS must be greater than 0")
        if self.cache_scan_timeout_seconds <= 0:
            raise ValueError("CACHE_SCAN_TIMEOUT_SECONDS must be greater than 0")
        if self.cache_sweep_interval_seconds < 0:
            raise ValueError("CACHE_SWEEP_INTERVAL_SECONDS must be >= 0 (0 disables)")
        if self.cache_negative_ttl_seconds <= 0:
            raise ValueError("CACHE_NEGATIVE_TTL_SECONDS must be greater than 0")
        for name, ttl in self.cache_ttl_overrides.items():
            if ttl is not None and ttl <= 0:
                raise ValueError(
                    f"CACHE_TTL_OVERRIDES[{name!r}] must be a positive number of seconds or null"
                )
        if not self.cache_invalidation_channel:
            raise ValueError("CACHE_INVALIDATION_CHANNEL must not be empty")
        if self.cache_invalidation_retry_seconds < 0:
            raise ValueError("CACHE_INVALIDATION_RETRY_SECONDS must be >= 0")
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
