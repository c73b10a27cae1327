"""
Configuration for TagSoft server.

Uses pydantic-settings for environment variable loading. Every setting
reads ``TAGSOFT_<NAME>``; api_key, host and port also accept the bare
``API_KEY``, ``HOST`` and ``PORT`` names used by existing deployments.

Invariants:
    - All settings have defaults suitable for a local demo
    - Non-demo deployments MUST override api_key
    - The api key is never logged unmasked
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .access import mask_credential

logger = logging.getLogger(__name__)

DEFAULT_API_KEY = "DEMO_KEY"


class Settings(BaseSettings):
    """TagSoft configuration loaded from environment."""

    # Auth
    api_key: str = Field(
        default=DEFAULT_API_KEY,
        min_length=1,
        validation_alias=AliasChoices("TAGSOFT_API_KEY", "API_KEY"),
        description="Shared secret expected in the x-api-key header",
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("TAGSOFT_HOST", "HOST"),
        description="Bind host",
    )
    port: int = Field(
        default=8787,
        validation_alias=AliasChoices("TAGSOFT_PORT", "PORT"),
        description="Bind port",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # Observability
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: Literal["text", "json"] = Field(default="text", description="Log output format")

    # Store / analytics
    id_max_attempts: int = Field(default=1000, ge=1, description="Id suffix draws before giving up")
    analytics_window_hours: int = Field(default=24, ge=1, description="Width of the last24h window")

    model_config = SettingsConfigDict(env_prefix="TAGSOFT_", populate_by_name=True)

    @property
    def uses_default_api_key(self) -> bool:
        return self.api_key == DEFAULT_API_KEY

    def log_config(self) -> None:
        """Log effective configuration (api key masked)."""
        logger.info(
            f"TagSoft config: host={self.host} port={self.port} "
            f"api_key={mask_credential(self.api_key)} log_level={self.log_level} "
            f"log_format={self.log_format} window_hours={self.analytics_window_hours}"
        )
        if self.uses_default_api_key:
            logger.warning("Using the default demo API key; set TAGSOFT_API_KEY in production")
