"""Application settings loaded from environment variables.

Environment Configuration:
    RESTIP_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: SQLAlchemy connection string for the host database (required)

Auth Configuration (required in all environments):
    OAUTH_JWKS_URL: Full URL to the authorization server's JWKS endpoint
    OAUTH_ISSUER: Expected JWT issuer (trailing slash stripped)
    OAUTH_AUDIENCES: Comma-separated list of allowed audiences

Messaging Configuration:
    MESSAGE_CREATION_ENABLED: Allow POST /messages (default false)
    LEGACY_CHARSET: Charset of the legacy php/xml encodings (default windows-1252)
    DEFAULT_LANGUAGE: Language of the default folder names (de | en)
    LOG_JSON: Render logs as JSON (default true)
"""

import codecs
from enum import Enum
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - DATABASE_URL is always required
    - OAUTH_JWKS_URL, OAUTH_ISSUER, OAUTH_AUDIENCES are required in all environments
    - LEGACY_CHARSET must name a codec Python knows
    """

    restip_env: Environment = Field(default=Environment.LOCAL, alias="RESTIP_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]

    # OAuth token verification
    oauth_jwks_url: str | None = Field(default=None, alias="OAUTH_JWKS_URL")
    oauth_issuer: str | None = Field(default=None, alias="OAUTH_ISSUER")
    oauth_audiences: str | None = Field(default=None, alias="OAUTH_AUDIENCES")

    # Messaging
    message_creation_enabled: bool = Field(default=False, alias="MESSAGE_CREATION_ENABLED")
    legacy_charset: str = Field(default="windows-1252", alias="LEGACY_CHARSET")
    default_language: Literal["de", "en"] = Field(default="de", alias="DEFAULT_LANGUAGE")

    log_json: bool = Field(default=True, alias="LOG_JSON")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("legacy_charset")
    @classmethod
    def validate_legacy_charset(cls, value: str) -> str:
        """Reject charsets the codec registry cannot resolve."""
        try:
            codecs.lookup(value)
        except LookupError as e:
            raise ValueError(f"Unknown LEGACY_CHARSET: {value}") from e
        return value

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure OAuth settings are set for all environments."""
        missing_auth = []
        if not self.oauth_jwks_url:
            missing_auth.append("OAUTH_JWKS_URL")
        if not self.oauth_issuer:
            missing_auth.append("OAUTH_ISSUER")
        if not self.oauth_audiences:
            missing_auth.append("OAUTH_AUDIENCES")

        if missing_auth:
            raise ValueError(
                f"Missing required OAuth settings: {', '.join(missing_auth)}. "
                "Point them at the host system's authorization server."
            )

        return self

    @property
    def audience_list(self) -> list[str]:
        """Parse comma-separated audiences into a list."""
        if self.oauth_audiences:
            return [a.strip() for a in self.oauth_audiences.split(",") if a.strip()]
        return []

    @property
    def normalized_issuer(self) -> str | None:
        """Return issuer with trailing slash stripped."""
        if self.oauth_issuer:
            return self.oauth_issuer.rstrip("/")
        return None


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
