"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from diary_analyzer.core.errors import ConfigurationError

# config.py is at: backend/diary_analyzer/core/config.py
_current_file = Path(__file__).resolve()
_package_dir = _current_file.parent.parent
_backend_dir = _package_dir.parent
_project_root = _backend_dir.parent
ENV_FILE = _project_root / ".env"
# Fallback: try in backend/ directory if not found in project root
if not ENV_FILE.exists():
    ENV_FILE = _backend_dir / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE)

DEFAULT_PROMPT_FILE = _package_dir / "prompts" / "system_prompt.txt"

_MODEL_CONFIG = SettingsConfigDict(
    env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
    env_file_encoding="utf-8",
    case_sensitive=False,
    extra="ignore",
    env_ignore_empty=True,
)


class LoggingSettings(BaseSettings):
    """Logging settings. Every field has a default so logging can start before the credential check."""

    app_env: str = Field(default="development", description="Application environment")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Optional[str] = Field(
        default=None,
        description="Log format: 'json' for structured logging, 'text' for plain text (unset: text in development)"
    )
    log_module_levels: Optional[str] = Field(
        default=None,
        description='Module-specific log levels (JSON string, e.g., {"diary_analyzer.core": "DEBUG"})'
    )
    log_uvicorn_access: bool = Field(default=False, description="Enable Uvicorn access logging")
    log_file_enabled: bool = Field(default=False, description="Enable file logging")
    log_file_path: str = Field(
        default="logs/diary_analyzer.log",
        description="Path to log file (relative to project root)"
    )
    log_file_retention: int = Field(default=14, ge=1, description="Number of days to keep log files")
    log_sensitive_data: bool = Field(
        default=False,
        description="Enable logging of sensitive data (API keys, tokens) - NOT RECOMMENDED"
    )

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v):
        if v is not None and v.lower() not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v.lower() if v else v

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def effective_log_format(self) -> str:
        """Pretty text locally, JSON everywhere else unless explicitly set"""
        if self.log_format:
            return self.log_format
        return "text" if self.app_env.lower() == "development" else "json"

    @property
    def project_root(self) -> Path:
        return _project_root

    model_config = _MODEL_CONFIG


class Settings(LoggingSettings):
    """Application settings"""

    # Application
    app_name: str = "Diary Analyzer"
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("port", "api_port"),
        description="API port"
    )
    allowed_origins: str = Field(default="*", description="Allowed CORS origins (comma-separated)")

    # Gemini
    gemini_api_key: str = Field(..., min_length=1, description="Gemini API key")
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model identifier")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API base URL"
    )
    llm_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Timeout for a single generation request (seconds)"
    )

    # Retry on provider overload
    retry_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts for an overloaded provider, including the first"
    )
    retry_initial_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Delay before the first retry (milliseconds)"
    )
    retry_backoff_factor: float = Field(
        default=2.0,
        ge=1.0,
        description="Multiplier applied to the delay after each attempt"
    )

    # Base prompt
    prompt_file: Path = Field(default=DEFAULT_PROMPT_FILE, description="Path to the base system prompt")

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


def load_settings(**overrides) -> Settings:
    """Build settings, turning validation failures into a ConfigurationError"""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return load_settings()


@lru_cache()
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings (never requires the API key)"""
    return LoggingSettings()
