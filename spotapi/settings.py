"""Connector settings powered by Pydantic BaseSettings."""

from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from spotapi.http.constants import DEFAULT_BASE_ADDRESS, DEFAULT_TIMEOUT_SECONDS


class ConnectorSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SPOTAPI_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = DEFAULT_BASE_ADDRESS
    timeout_seconds: Annotated[float, Field(gt=0.0, le=300.0)] = (
        DEFAULT_TIMEOUT_SECONDS
    )
    access_token: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    max_retries: Annotated[int, Field(ge=0, le=50)] = 10
    retry_enabled: bool = True
    log_level: str = "INFO"
    log_json: bool = True


def get_settings() -> ConnectorSettings:
    """Get a settings instance."""
    return ConnectorSettings()
