from functools import lru_cache
from typing import List, Optional

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore", populate_by_name=True
    )

    app_name: str = "KTS Device Registry"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False

    database_url: str = "sqlite+aiosqlite:///./kts.db"
    redis_url: str = "redis://localhost:6379/0"

    # Mixed into every derived address; changing it relocates all records.
    program_domain: str = "kts"

    # JWT
    jwt_secret_key: Optional[str] = None  # HS* only
    jwt_private_key: Optional[str] = Field(default=None, validation_alias="JWT_PRIVATE_KEY_PEM")  # dev/test signing only
    jwt_public_key: Optional[str] = Field(default=None, validation_alias="JWT_PUBLIC_KEY_PEM")
    jwt_algorithm: str = "RS256"
    jwt_expire_minutes: int = 15
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None
    jwt_clock_skew_seconds: int = 30
    jwt_active_kid: Optional[str] = None

    cors_origins: List[AnyHttpUrl] = Field(default_factory=list)

    write_rate_limit: int = 120
    write_rate_window: int = 60

    events_channel: str = "kts-events"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
