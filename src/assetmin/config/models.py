"""Configuration models describing assetmin settings."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AssetminBaseModel(BaseModel):
    """Shared configuration for assetmin Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class LoggingSettings(AssetminBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level applied by the CLI.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.upper()
        return value


class AssetminConfig(AssetminBaseModel):
    """Top-level configuration struct for assetmin.

    Attributes:
        document_root: Base directory substituted for the ``//`` path shorthand.
        encoding: Text encoding used when reading file-backed sources.
        logging: Logging configuration.
    """

    document_root: Optional[str] = None
    encoding: str = "utf-8"
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


__all__ = [
    "AssetminBaseModel",
    "LoggingSettings",
    "AssetminConfig",
]
