from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Tollgate API"
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float | None = 1.0
    rate_limit_key_prefix: str = "rate_limit"
    rate_limit_resource: str = "api"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="TOLLGATE_", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
