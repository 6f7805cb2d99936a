from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="IONOS_PROVIDER_", env_file=".env", extra="ignore"
    )

    api_url: str = Field(default="https://api.ionos.com/cloudapi/v5")
    http_timeout_sec: float = Field(default=30.0, gt=0)

    poll_interval_sec: float = Field(default=15.0, ge=0)
    poll_max_retries: int = Field(default=20, ge=1)
    request_timeout_sec: float | None = Field(default=1800.0, gt=0)

    volume_type: str = Field(default="SSD")
    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
