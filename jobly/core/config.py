from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "jobly-api"
    environment: str = "dev"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    secret_key: str = "secret-dev"
    token_algorithm: str = "HS256"
    token_ttl_minutes: int | None = None
    bcrypt_work_factor: int = 12
    log_level: str = "INFO"
    otel_enabled: bool = True
    otel_service_name: str = "jobly-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="JOBLY_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
