"""
Configuration management using Pydantic Settings.
Loads all environment variables with validation.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses .env file in development, environment variables in production.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Dialogue backend (chat mode only)
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key; required when dialogue_mode is 'chat'"
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI chat model"
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        description="Chat Completions endpoint"
    )
    openai_organization_id: Optional[str] = Field(
        default=None,
        description="OpenAI organization ID"
    )
    backend_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for chat replies"
    )
    backend_max_tokens: int = Field(
        default=500,
        ge=1,
        le=4096,
        description="Response length cap for chat replies"
    )
    backend_timeout_s: float = Field(
        default=30.0,
        gt=0,
        le=120,
        description="Upper bound on one chat completion round trip"
    )

    # Dialogue
    dialogue_mode: str = Field(
        default="scripted",
        description="Dialogue strategy: 'scripted' (booking FSM) or 'chat' (OpenAI)"
    )
    greeting_message: Optional[str] = Field(
        default=None,
        description="Overrides the strategy's built-in greeting"
    )
    idle_return_delay_ms: int = Field(
        default=3000,
        ge=0,
        le=60000,
        description="Delay before a closed booking returns to the greeting state"
    )

    # Speech output/input
    speech_rate: float = Field(default=0.95, ge=0.1, le=10.0)
    speech_pitch: float = Field(default=1.1, ge=0.0, le=2.0)
    speech_volume: float = Field(default=1.0, ge=0.0, le=1.0)
    speech_locale: str = Field(default="en-US")
    speak_start_grace_ms: int = Field(
        default=100,
        ge=10,
        le=5000,
        description="How long to wait for a speak start event before retrying once"
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Environment: development, staging, or production"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    # Server Settings
    host: str = Field(
        default="0.0.0.0",
        description="Server host address"
    )
    port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="Server port"
    )

    # CORS
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Frontend URL for CORS"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v_lower

    @field_validator("dialogue_mode")
    @classmethod
    def validate_dialogue_mode(cls, v: str) -> str:
        allowed = ["scripted", "chat"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"dialogue_mode must be one of {allowed}")
        return v_lower

    @field_validator("openai_api_key", "greeting_message")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings from .env files as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"


# Global settings instance
settings = Settings()
