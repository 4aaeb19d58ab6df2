from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal
from functools import lru_cache

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Ledger Engine"
    app_version: str = "1.0.0"
    debug: bool = False

    # HTTP service
    host: str = "0.0.0.0"
    port: int = 8000
    rate_limit_per_minute: int = 600
    allowed_origins: List[str] = ["*"]
    allowed_methods: List[str] = ["GET", "POST", "OPTIONS"]
    allowed_headers: List[str] = ["*"]
    enable_request_logging: bool = True

    # Logs always go to stderr
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # How the CLI feeds events to the ledger
    transport: Literal["sync", "channel"] = "sync"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("rate_limit_per_minute")
    @classmethod
    def validate_rate_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("rate_limit_per_minute must be positive")
        return v


@lru_cache()
def get_settings() -> Settings:
    return Settings()


class DevelopmentSettings(Settings):
    debug: bool = True
    log_level: str = "DEBUG"
    log_format: Literal["json", "console"] = "console"
    rate_limit_per_minute: int = 6000


class ProductionSettings(Settings):
    allowed_origins: List[str] = []
    enable_request_logging: bool = False


class TestingSettings(Settings):
    log_level: str = "WARNING"
    rate_limit_per_minute: int = 100000
    enable_request_logging: bool = False
    transport: Literal["sync", "channel"] = "channel"


_PROFILES = {
    "development": DevelopmentSettings,
    "production": ProductionSettings,
    "testing": TestingSettings,
}


def get_settings_for_environment(env: str = "development") -> Settings:
    """Build the settings profile for ``env``; unknown names get the base defaults."""
    return _PROFILES.get(env.lower(), Settings)()
