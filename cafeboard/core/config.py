from pydantic_settings import BaseSettings, SettingsConfigDict

from cafeboard.constants.policy import (
    CACHE_REFRESH_INTERVAL_SECONDS,
    CACHE_TTL_SECONDS,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # iCafeCloud
    icafe_base_url: str = "https://api.icafecloud.com/api/v2/cafe"
    icafe_cafe_id: str = ""
    icafe_auth_token: str = ""
    icafe_request_timeout_seconds: float = 15.0
    icafe_member_fanout_concurrency: int = 5

    # HTTP
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = [
        "http://localhost:5173",  # Vite dev server
        "http://127.0.0.1:5173",
    ]

    # Cache
    cache_backend: str = "memory"  # memory|redis
    cache_ttl_seconds: int = CACHE_TTL_SECONDS
    cache_max_entries: int = 100

    # Redis (only used when cache_backend == "redis")
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_db: int = 0
    redis_key_prefix: str = "cafeboard:"

    # Refresh scheduler
    cache_refresh_enabled: bool = True
    cache_refresh_interval_seconds: int = CACHE_REFRESH_INTERVAL_SECONDS
    cache_warm_on_startup: bool = True

    # Rankings
    ranking_max_pages: int = 500  # per event type, guards runaway paging

    # Logging
    app_log_level: str = "INFO"
    app_log_redaction_patterns: list[str] = [
        "password",
        "token",
        "secret",
        "api_key",
        "authorization",
        "cookie",
    ]

    service_name: str = "cafeboard"
    app_environment: str = "production"


settings = Settings()
