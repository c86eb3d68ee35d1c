"""
Application settings - pydantic-settings configuration.

This module defines gateway configuration using pydantic-settings
for environment variable loading with validation and defaults.
Invalid settings are fatal at boot: no traffic is served until they
are fixed.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kitsu_verify.domain.exceptions import ConfigurationError
from kitsu_verify.domain.policy import Action, RequiresInputPolicy
from kitsu_verify.domain.registry import RESERVED_IDENTITIES


class Settings(BaseSettings):
    """Gateway settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["debug", "production"] = "production"

    # Moderation platform (Misskey)
    misskey_url: HttpUrl
    misskey_key: str = Field(..., min_length=1)

    # Verification provider (Stripe Identity)
    stripe_secret_key: str = ""
    stripe_api_base: str = "https://api.stripe.com/v1/"
    http_timeout_seconds: float = Field(10.0, gt=0)  # Applies to both collaborators

    # Public surface
    host: str = "0.0.0.0"
    port: int = Field(3000, ge=1, le=65535)
    public_url: HttpUrl | None = None  # Webhook registered at <public_url>/callback
    signup_verify_host: str = "verify.kitsunes.gay"

    # Identities
    identity_prefix: str = "M_"  # Alternate namespace marker, stripped before lookups
    reserved_identities: frozenset[str] = RESERVED_IDENTITIES

    # Outcome policy
    consent_declined_action: Action = Action.FAIL
    requires_input_webhook_policy: RequiresInputPolicy = RequiresInputPolicy.CLASSIFY

    log_level: Literal["debug", "info", "warning", "error", "fatal"] = "info"

    @field_validator("log_level", mode="before")
    @classmethod
    def _lowercase_level(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _no_test_keys_in_production(self) -> "Settings":
        if self.environment == "production" and self.stripe_secret_key.startswith("sk_test_"):
            raise ValueError("Stripe testing keys are not permitted in production")
        return self

    @property
    def webhook_url(self) -> str | None:
        if self.public_url is None:
            return None
        return str(self.public_url).rstrip("/") + "/callback"


def load_settings() -> Settings:
    """
    Build settings from the environment.

    Raises:
        ConfigurationError: If any setting is missing or invalid
    """
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return load_settings()
