from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "Tenant Platform"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = ""  # Loaded from environment, validated in model_validator
    database_echo: bool = False

    # CORS - comma-separated list of allowed origins
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Tenant resolution
    tenant_header_name: str = "X-Tenant-ID"
    tenant_base_domain: str | None = None  # e.g. "example.com" -> acme.example.com resolves "acme"

    # Tenant validation cache TTL in seconds
    tenant_validation_cache_ttl: int = 60

    # Idempotent creation
    idempotency_backend: str = "memory"  # Options: "memory", "redis"
    idempotency_ttl: int = 24 * 60 * 60  # 24 hours

    # Transactions and requests
    transaction_timeout: float | None = None  # seconds, None = no limit
    request_timeout: float = 30.0

    # Domain events
    event_topic: str = "tenant-events"

    # Redis (cache, idempotency store, event bus)
    redis_enabled: bool = True
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str | None = None

    # OpenTelemetry Distributed Tracing
    telemetry_enabled: bool = True
    telemetry_exporter: str = "console"  # Options: "console", "otlp", "none"
    telemetry_otlp_endpoint: str | None = None  # e.g., "http://localhost:4317"
    telemetry_sample_rate: float = 1.0  # Sampling rate (0.0-1.0, 1.0 = 100%)
    telemetry_environment: str = "development"

    @model_validator(mode="after")
    def validate_config(self) -> "Settings":
        """Validate required and interdependent settings"""
        if not self.database_url:
            raise ValueError("DATABASE_URL is required. Set in environment or .env file.")

        if self.idempotency_backend not in ("memory", "redis"):
            raise ValueError(
                f"Invalid idempotency_backend '{self.idempotency_backend}'. "
                f"Must be one of: 'memory', 'redis'"
            )
        if self.idempotency_backend == "redis" and not self.redis_enabled:
            raise ValueError("idempotency_backend 'redis' requires REDIS_ENABLED=true")

        if self.tenant_validation_cache_ttl <= 0:
            raise ValueError("tenant_validation_cache_ttl must be positive")
        if self.idempotency_ttl <= 0:
            raise ValueError("idempotency_ttl must be positive")
        if self.transaction_timeout is not None and self.transaction_timeout <= 0:
            raise ValueError("transaction_timeout must be positive when set")
        return self

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="allow", case_sensitive=False
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
