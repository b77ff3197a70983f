"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app and the operator scripts
share a consistent configuration surface.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

OAUTH1_TOKEN_KEY = "oauth1_token"
OAUTH2_TOKEN_KEY = "oauth2_token"
OAUTH_CONSUMER_KEY = "oauth_consumer"


class _EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class GarminSettings(_EnvSettings):
    """Endpoints and identity used when talking to Garmin Connect."""

    api_base_url: str = Field(
        "https://connectapi.garmin.com", validation_alias="GARMIN_API_BASE_URL"
    )
    exchange_url: str = Field(
        "https://connectapi.garmin.com/oauth-service/oauth/exchange/user/2.0",
        validation_alias="GARMIN_EXCHANGE_URL",
    )
    consumer_url: str = Field(
        "https://thegarth.s3.amazonaws.com/oauth_consumer.json",
        validation_alias="GARMIN_CONSUMER_URL",
    )
    user_agent: str = Field(
        "com.garmin.android.apps.connectmobile",
        validation_alias="GARMIN_USER_AGENT",
    )
    display_name: str = Field(..., validation_alias="GARMIN_DISPLAY_NAME")
    timeout_seconds: float = Field(10.0, validation_alias="GARMIN_HTTP_TIMEOUT")


class StorageSettings(_EnvSettings):
    """Durable credential storage configuration."""

    backend: Literal["sqlite", "dynamodb"] = Field(
        "sqlite", validation_alias="CREDENTIAL_STORE_BACKEND"
    )
    sqlite_path: str = Field(
        "data/credentials.db", validation_alias="CREDENTIAL_DB_PATH"
    )
    dynamodb_table_name: Optional[str] = Field(
        None, validation_alias="DYNAMODB_TABLE_NAME"
    )
    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")
    encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored records."
        ),
    )


class SecuritySettings(_EnvSettings):
    """Security-related configuration."""

    api_key: str = Field(
        ...,
        validation_alias="API_KEY",
        description="Bearer key required on every tool request.",
    )


class AppSettings(_EnvSettings):
    """Root settings object for the FastAPI application."""

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    garmin: GarminSettings = Field(default_factory=GarminSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "GarminSettings",
    "OAUTH1_TOKEN_KEY",
    "OAUTH2_TOKEN_KEY",
    "OAUTH_CONSUMER_KEY",
    "SecuritySettings",
    "StorageSettings",
    "get_settings",
]
