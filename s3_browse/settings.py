from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Configuration for the backing object store."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    backend: Literal["s3", "memory"] = Field(
        default="s3",
        validation_alias="S3_BROWSE_BACKEND",
    )
    endpoint: str | None = Field(
        default=None,
        validation_alias="S3_BROWSE_ENDPOINT",
    )
    access_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "S3_BROWSE_ACCESS_KEY",
            "AWS_ACCESS_KEY_ID",
        ),
    )
    secret_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "S3_BROWSE_SECRET_KEY",
            "AWS_SECRET_ACCESS_KEY",
        ),
    )
    session_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "S3_BROWSE_SESSION_TOKEN",
            "AWS_SESSION_TOKEN",
        ),
    )
    region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices(
            "S3_BROWSE_REGION",
            "AWS_REGION",
        ),
    )
    bucket: str = Field(
        default="public",
        validation_alias="S3_BROWSE_BUCKET",
    )
    addressing_style: Literal["auto", "virtual", "path"] = Field(
        default="auto",
        validation_alias="S3_BROWSE_ADDRESSING_STYLE",
    )
    page_size: int = Field(
        default=1000,
        ge=1,
        le=1000,
        validation_alias="S3_BROWSE_PAGE_SIZE",
    )
    read_chunk_size: int = Field(
        default=64 * 1024,
        gt=0,
        validation_alias="S3_BROWSE_READ_CHUNK_SIZE",
    )


class GatewaySettings(BaseSettings):
    """Configuration for the HTTP side of the gateway."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    public_prefix: str = Field(
        default="/public",
        validation_alias="S3_BROWSE_PUBLIC_PREFIX",
    )
    index_title: str = Field(
        default="Object Storage",
        validation_alias="S3_BROWSE_INDEX_TITLE",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        validation_alias="S3_BROWSE_LOG_LEVEL",
    )
    host: str = Field(default="127.0.0.1", validation_alias="S3_BROWSE_HOST")
    port: int = Field(default=8000, ge=1, le=65535, validation_alias="S3_BROWSE_PORT")

    @field_validator("public_prefix", mode="before")
    @classmethod
    def _normalize_public_prefix(cls, value: object) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            msg = "Invalid public prefix"
            raise ValueError(msg)
        stripped = value.strip().strip("/")
        return f"/{stripped}" if stripped else ""

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    def is_public(self, path: str) -> bool:
        """Check whether a request path falls under the public prefix."""
        if not self.public_prefix:
            return True
        return path == self.public_prefix or path.startswith(f"{self.public_prefix}/")


def load_store_settings_from_env() -> StoreSettings:
    """Load object store settings from environment variables.

    Returns:
        StoreSettings instance populated from environment variables.
    """
    return StoreSettings()


def load_gateway_settings_from_env() -> GatewaySettings:
    """Load gateway settings from environment variables.

    Returns:
        GatewaySettings instance populated from environment variables.
    """
    return GatewaySettings()
