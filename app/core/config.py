"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (tokens, issuer identity, timeouts)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # WhatsApp Cloud API (Meta)
    META_TOKEN: Optional[str] = Field(
        default=None,
        description="Bearer token for the WhatsApp Cloud API"
    )
    PHONE_NUMBER_ID: Optional[str] = Field(
        default=None,
        description="WhatsApp business phone number ID"
    )
    VERIFY_TOKEN: Optional[str] = Field(
        default=None,
        description="Token Meta echoes back during webhook verification"
    )
    WHATSAPP_API_BASE: str = Field(
        default="https://graph.facebook.com",
        description="Graph API base URL"
    )
    WHATSAPP_API_VERSION: str = Field(
        default="v20.0",
        description="Graph API version"
    )

    # Facturapi
    FACTURAPI_KEY: Optional[str] = Field(
        default=None,
        description="Facturapi secret key"
    )
    FACTURAPI_BASE_URL: str = Field(
        default="https://www.facturapi.io/v2",
        description="Facturapi base URL"
    )

    # Issuer identity (emisor)
    EMISOR_RFC: Optional[str] = Field(
        default=None,
        description="Issuer RFC"
    )
    EMISOR_REGIMEN: Optional[str] = Field(
        default=None,
        description="Issuer tax regime (clave SAT)"
    )
    LUGAR_EXP: Optional[str] = Field(
        default=None,
        description="Place of issue (issuer postal code)"
    )

    # Conversation
    START_KEYWORD: str = Field(
        default="factura",
        description="Keyword that starts a new invoice conversation"
    )
    SESSION_TIMEOUT_MINUTES: int = Field(
        default=30,
        description="Idle minutes before an unfinished session is dropped"
    )
    SESSION_SWEEP_INTERVAL_SECONDS: int = Field(
        default=60,
        description="How often the background sweeper looks for idle sessions"
    )
    ADVANCE_ON_BLANK_ANSWER: bool = Field(
        default=False,
        description=(
            "Off by default: a blank answer re-sends the same prompt. "
            "On: legacy behaviour, move to the next step and leave the field empty"
        )
    )
    UPSTREAM_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        description="Timeout for every outbound HTTP call"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @field_validator("META_TOKEN", "FACTURAPI_KEY", "VERIFY_TOKEN")
    @classmethod
    def validate_required_tokens(cls, v, info: ValidationInfo):
        """Ensure API tokens are set in production."""
        if info.data.get("ENVIRONMENT") == "production" and not v:
            raise ValueError(f"{info.field_name} is required in production environment")
        return v

    @field_validator("START_KEYWORD")
    @classmethod
    def validate_start_keyword(cls, v):
        """The start keyword is matched case-insensitively, store it lowered."""
        v = v.strip().lower()
        if not v:
            raise ValueError("START_KEYWORD must not be empty")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# Global settings instance
settings = Settings()


def validate_settings(config: Optional[Settings] = None):
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    config = config or settings
    errors = []

    if config.SESSION_TIMEOUT_MINUTES <= 0:
        errors.append("SESSION_TIMEOUT_MINUTES must be positive")

    if config.SESSION_SWEEP_INTERVAL_SECONDS <= 0:
        errors.append("SESSION_SWEEP_INTERVAL_SECONDS must be positive")

    if config.UPSTREAM_TIMEOUT_SECONDS <= 0:
        errors.append("UPSTREAM_TIMEOUT_SECONDS must be positive")

    # Production-specific validations
    if config.is_production:
        for name in ("META_TOKEN", "FACTURAPI_KEY", "VERIFY_TOKEN", "PHONE_NUMBER_ID"):
            if not getattr(config, name):
                errors.append(f"{name} is required in production")
        if not (config.EMISOR_RFC and config.EMISOR_REGIMEN and config.LUGAR_EXP):
            errors.append("EMISOR_RFC, EMISOR_REGIMEN and LUGAR_EXP are required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
