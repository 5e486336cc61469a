# python
# app/core/config.py
"""Configuration settings for the Companion Chat API.

Uses Pydantic BaseSettings for environment variable management.
"""
import secrets
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a warm, friendly AI companion. You're here to chat, listen, and provide "
    "thoughtful responses. You're empathetic, supportive, and genuinely interested in the "
    "person you're talking to. Keep your responses conversational and natural - like talking "
    "to a good friend. Be helpful when asked questions, but also comfortable with casual chat. "
    "Use a warm, caring tone while being authentic and honest."
)


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="Companion Chat API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Security Settings =====
    secret_key: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Secret key for JWT verification",
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    access_token_expire_minutes: int = Field(default=30, description="JWT token expiration time")

    # ===== Database Settings =====
    database_url: str | None = Field(default=None, description="Database connection URL")
    db_pool_size: int = Field(default=20, description="Database connection pool size")
    db_max_overflow: int = Field(default=0, description="Database max overflow connections")

    # Test database URL
    test_database_url: str | None = Field(default=None, description="Test database URL")

    # ===== AI Service (Gemini) =====
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Gemini model to use")
    gemini_max_tokens: int = Field(default=2048, description="Maximum output tokens per reply")
    gemini_temperature: float = Field(default=0.8, description="Sampling temperature for replies")
    ai_request_timeout: int = Field(default=60, description="Upstream transport timeout in seconds")
    ai_max_retry_attempts: int = Field(default=3, description="Attempts to open an upstream stream")
    ai_retry_min_wait: int = Field(default=2, description="Minimum backoff between attempts (seconds)")
    ai_retry_max_wait: int = Field(default=30, description="Maximum backoff between attempts (seconds)")
    ai_retry_backoff_factor: float = Field(default=2.0, description="Exponential backoff multiplier")

    # ===== Chat Settings =====
    assistant_system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT, description="Persona instruction sent ahead of every exchange"
    )
    max_message_length: int = Field(default=50000, description="Maximum characters per user message")
    max_title_length: int = Field(default=200, description="Maximum characters of an explicit title")
    title_preview_length: int = Field(
        default=40, description="Characters of the first message kept in a derived title"
    )
    default_conversation_title: str = Field(default="New Chat", description="Title of new conversations")

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://localhost:8080,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(self.allowed_origins, str):
            return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]
        return self.allowed_origins if isinstance(self.allowed_origins, list) else []

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.json, description="Log format")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    @property
    def has_ai_enabled(self) -> bool:
        return bool(self.gemini_api_key)

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
            if lv in ["test"]:
                return "testing"
            return lv
        return v

    @field_validator("max_message_length")
    @classmethod
    def validate_max_message_length(cls, v):
        if v < 1:
            raise ValueError("Maximum message length must be positive")
        if v > 200000:
            raise ValueError("Maximum message length cannot exceed 200,000 characters")
        return v

    @field_validator("title_preview_length")
    @classmethod
    def validate_title_preview_length(cls, v):
        if v < 1:
            raise ValueError("Title preview length must be positive")
        return v

    @model_validator(mode="after")
    def check_title_lengths(self):
        if self.title_preview_length + 3 > self.max_title_length:
            raise ValueError("title_preview_length must leave room for the ellipsis within max_title_length")
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if not settings.database_url:
            errors.append("DATABASE_URL is required")
        if settings.is_production and not settings.gemini_api_key:
            errors.append("GEMINI_API_KEY is required in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status() -> dict:
        return {
            "ai_enabled": settings.has_ai_enabled,
            "ai_model": settings.gemini_model if settings.has_ai_enabled else None,
            "environment": settings.environment,
        }


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "features": ConfigValidator.get_feature_status(),
        "database_configured": bool(settings.database_url),
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
    "DEFAULT_SYSTEM_PROMPT",
]
