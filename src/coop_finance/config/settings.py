"""Configuration settings for the cooperative finance engine."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Flat settings read from environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ERP transport
    erp_timeout: float = Field(
        default=30.0, gt=0, validation_alias="ERP_TIMEOUT",
        description="XML-RPC request timeout in seconds",
    )
    # Self-signed ERP deployments are common; certificate checks stay off
    # unless explicitly enabled.
    erp_verify_tls: bool = Field(default=False, validation_alias="ERP_VERIFY_TLS")

    # Ratio history fan-out
    ratio_history_months: int = Field(
        default=6, ge=1, validation_alias="RATIO_HISTORY_MONTHS"
    )
    ratio_history_concurrency: int = Field(
        default=3, ge=1, validation_alias="RATIO_HISTORY_CONCURRENCY",
        description="Max periods recomputed in parallel against the ERP",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
