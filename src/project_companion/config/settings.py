"""Application configuration settings.

This module provides the AppConfig class and the cached settings accessor.
Application objects receive the settings explicitly through the application
context; ``get_settings()`` is only the default source.
"""

from pathlib import Path

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from project_companion.config.env_loader import Environment, get_environment, load_env_files
from project_companion.config.validators import (
    resolve_path,
    validate_log_format,
    validate_log_level,
    validate_ranking_strategy,
)

log = structlog.get_logger(__name__)


class AppConfig(BaseSettings):
    """Unified application configuration.

    Loads configuration from environment variables (``COMPANION_`` prefix),
    .env files and defaults. Validates all values using Pydantic.
    """

    model_config = SettingsConfigDict(
        env_prefix="COMPANION_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Environment = Field(
        default_factory=get_environment, description="Current environment"
    )
    debug: bool = Field(default=False, alias="APP_DEBUG", description="Debug mode flag")

    # Application
    project_name: str = Field(default="Project Companion", description="Project name")
    version: str = Field(default="0.1.0", description="Application version")

    # Telemetry
    log_dir: Path = Field(default=Path("telemetry/logs"), description="Log directory path")
    log_level: str = Field(
        default="INFO",
        alias="APP_LOG_LEVEL",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="console", alias="APP_LOG_FORMAT", description="Console log format (json or console)"
    )

    # Persistence
    data_dir: Path = Field(default=Path("data"), description="Root directory for change logs")
    storage_namespace: str = Field(
        default="default",
        min_length=1,
        description="Namespace under data_dir shared by the graph and session logs",
    )
    persistence_enabled: bool = Field(
        default=True, description="Append every mutation to the on-disk change logs"
    )

    # LLM Client
    llm_base_url: str = Field(
        default="http://localhost:8000/v1", description="Base URL for an OpenAI-compatible API"
    )
    llm_model: str = Field(default="qwen3-8b", description="Model identifier sent to the API")
    llm_api_key: str | None = Field(default=None, description="Optional bearer token")
    llm_timeout_seconds: float = Field(default=60.0, gt=0, description="Request timeout")
    llm_max_retries: int = Field(default=2, ge=0, description="Maximum retry attempts")

    # Intent classification
    classifier_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for one AI intent classification attempt"
    )
    classifier_max_retries: int = Field(
        default=1, ge=0, description="Retries before falling back to keyword classification"
    )

    # Orchestrator
    context_window_size: int = Field(
        default=10, ge=0, description="Raw turn entries carried into each context (5 exchanges)"
    )
    related_intents_size: int = Field(default=3, ge=0, description="Recent intents in context")
    related_facts_limit: int = Field(
        default=5, ge=0, description="Graph search hits carried into each context"
    )
    preferences_path: Path | None = Field(
        default=None, description="Optional YAML file with user preferences"
    )

    # Graph store
    ranking_strategy: str = Field(
        default="recency", description="Search ranking: 'recency' or 'age_weighted'"
    )
    ranking_half_life_hours: float = Field(
        default=24.0, gt=0, description="Half-life of the recency ranking decay"
    )
    memory_max_age_days: float = Field(
        default=30.0, gt=0, description="Age after which low-importance nodes are evicted"
    )
    event_queue_size: int = Field(
        default=1000, ge=1, description="Bound on pending graph change notifications"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        return validate_log_level(v)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        return validate_log_format(v)

    @field_validator("ranking_strategy")
    @classmethod
    def validate_ranking_strategy(cls, v: str) -> str:
        """Validate ranking strategy name."""
        return validate_ranking_strategy(v)

    @field_validator("log_dir", "data_dir", "preferences_path", mode="before")
    @classmethod
    def resolve_paths(cls, v: Path | str | None) -> Path | None:
        """Resolve relative paths to absolute."""
        if v is None or v == "":
            return None
        return resolve_path(v)

    @property
    def storage_dir(self) -> Path:
        """Directory holding this namespace's change logs."""
        return self.data_dir / self.storage_namespace


_settings: AppConfig | None = None


def load_app_config() -> AppConfig:
    """Load and validate application configuration.

    1. Loads .env files in priority order (via env_loader)
    2. Creates AppConfig instance (reads from environment variables)
    3. Validates all values using Pydantic

    Returns:
        Validated AppConfig instance.

    Raises:
        ValidationError: If configuration validation fails.
    """
    log.info("loading_app_config", environment=get_environment().value)

    load_env_files()

    try:
        config = AppConfig()
        log.info(
            "app_config_loaded",
            environment=config.environment.value,
            debug=config.debug,
            log_level=config.log_level,
            storage_namespace=config.storage_namespace,
            ranking_strategy=config.ranking_strategy,
        )
        return config
    except Exception as e:
        log.error("app_config_load_failed", error=str(e), error_type=type(e).__name__)
        raise


def get_settings() -> AppConfig:
    """Get the cached application settings.

    Returns:
        AppConfig instance, loaded on first call.
    """
    global _settings
    if _settings is None:
        _settings = load_app_config()
    return _settings
