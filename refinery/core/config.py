"""Configuration management for the refinement engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    REFINERY_ENV: str = Field(default="dev", description="Environment: dev, test, staging, prod")
    LOG_LEVEL: str | None = Field(
        default=None, description="Log level override, DEBUG in dev and INFO elsewhere by default"
    )

    # Text generation provider
    TEXT_GENERATION_PROVIDER: str = Field(
        default="anthropic", description="Provider: anthropic, openai, mock"
    )

    # Anthropic configuration (optional, falls back to mock when absent)
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")
    ANTHROPIC_MODEL: str = Field(
        default="claude-haiku-4-5-20251001", description="Model used for layer refinement"
    )

    # OpenAI configuration (optional, falls back to mock when absent)
    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")
    OPENAI_MODEL: str = Field(default="gpt-4o-mini", description="Model used for layer refinement")

    # Request shaping
    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=30.0, description="Timeout for a single text generation request"
    )
    TEXT_GENERATION_MAX_TOKENS: int = Field(
        default=1000, description="Max output tokens for a refinement"
    )
    TEXT_GENERATION_TEMPERATURE: float = Field(
        default=0.7, description="Sampling temperature for a refinement"
    )
    TEXT_GENERATION_MAX_RETRIES: int = Field(
        default=2, description="SDK-level retries for transient provider errors"
    )

    # Altitude defaults
    DEFAULT_ALTITUDE_DOMAIN: str = Field(
        default="general",
        description="Altitude domain variant: general, career, business, technology, creative, learning, personal",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If environment variables hold values of the wrong type
    """
    return Settings()
