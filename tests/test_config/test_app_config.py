"""Tests for application settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from project_companion.config import AppConfig, Environment
from project_companion.config.bootstrap import get_bootstrap_log_format, get_bootstrap_log_level


class TestAppConfig:
    """Environment-driven settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("APP_ENV", raising=False)
        config = AppConfig()

        assert config.environment == Environment.DEVELOPMENT
        assert config.ranking_strategy == "recency"
        assert config.context_window_size == 10
        assert config.related_intents_size == 3
        assert config.persistence_enabled is True
        assert config.preferences_path is None

    def test_prefixed_environment_variables(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setenv("COMPANION_RANKING_STRATEGY", "age-weighted")
        monkeypatch.setenv("COMPANION_CONTEXT_WINDOW_SIZE", "6")
        monkeypatch.setenv("COMPANION_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("COMPANION_STORAGE_NAMESPACE", "shop")
        monkeypatch.setenv("APP_LOG_LEVEL", "debug")
        monkeypatch.setenv("APP_ENV", "test")

        config = AppConfig()

        assert config.ranking_strategy == "age_weighted"
        assert config.context_window_size == 6
        assert config.storage_dir == tmp_path.resolve() / "shop"
        assert config.log_level == "DEBUG"
        assert config.environment == Environment.TEST

    def test_relative_paths_are_resolved(self) -> None:
        config = AppConfig(data_dir="data")
        assert config.data_dir.is_absolute()
        assert config.data_dir.name == "data"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"ranking_strategy": "random"},
            {"log_level": "LOUD"},
            {"log_format": "xml"},
            {"llm_timeout_seconds": 0},
            {"event_queue_size": 0},
            {"storage_namespace": ""},
        ],
    )
    def test_invalid_values(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            AppConfig(**overrides)


class TestBootstrap:
    """Pre-settings log configuration."""

    def test_invalid_level_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_LOG_LEVEL", "chatty")
        assert get_bootstrap_log_level() == "INFO"

    def test_format(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_LOG_FORMAT", "JSON")
        assert get_bootstrap_log_format() == "json"
