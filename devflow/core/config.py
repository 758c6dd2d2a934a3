from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "DevFlow"
    debug: bool = False
    log_level: str = "INFO"

    # API
    frontend_url: str = "http://localhost:5173"
    cors_allowed_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Database
    database_url: str = "sqlite+aiosqlite:///./devflow.db"

    # Fixed offset applied to every generated timestamp (UTC+8 by default)
    utc_offset_hours: float = 8.0

    @field_validator("utc_offset_hours")
    @classmethod
    def _offset_in_range(cls, value: float) -> float:
        if not -24 < value < 24:
            raise ValueError("utc_offset_hours must be strictly between -24 and 24")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
