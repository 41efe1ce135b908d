"""Application configuration with validation."""
from typing import Optional, Literal
from functools import lru_cache
from pydantic import Field, field_validator, model_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Scoring engine settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Loan Verification Scoring"
    APP_VERSION: str = "1.0.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    # External reasoning service (OpenAI-compatible chat completions)
    OPENROUTER_API_KEY: Optional[SecretStr] = None
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    HOLISTIC_MODEL: str = "anthropic/claude-3-haiku"
    HOLISTIC_MAX_TOKENS: int = Field(default=2048, ge=256, le=8192)

    # Holistic scorer call policy
    HOLISTIC_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Per-request HTTP timeout",
    )
    HOLISTIC_MAX_RETRIES: int = Field(default=1, ge=0, le=5)
    HOLISTIC_RETRY_DELAY_SECONDS: float = Field(
        default=2.0,
        ge=0,
        le=30,
        description="Linear backoff unit: attempt n waits n x delay",
    )
    HOLISTIC_MAX_DOCUMENT_CHARS: int = Field(default=15000, ge=1000, le=200000)

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator("LOG_FORMAT", "APP_ENV", mode="before")
    @classmethod
    def lower_choice(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("OPENROUTER_BASE_URL")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("OPENROUTER_BASE_URL must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("OPENROUTER_API_KEY")
    @classmethod
    def blank_key_is_none(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        if v is not None and not v.get_secret_value().strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Production must not run in debug mode."""
        if self.APP_ENV == "production" and self.DEBUG:
            raise ValueError("DEBUG must be False in production")
        return self

    @property
    def reasoning_service_configured(self) -> bool:
        return self.OPENROUTER_API_KEY is not None and bool(self.OPENROUTER_BASE_URL)


@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
