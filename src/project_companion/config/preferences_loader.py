"""Load user preferences carried into every conversation context.

Preferences come from an optional YAML file. Missing keys fall back to the
deterministic defaults below so the orchestrator always sees a full set.

Example ``preferences.yaml``::

    preferred_language: python
    framework: fastapi
    testing_framework: pytest
"""

from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from project_companion.config.loader import ConfigLoadError, load_yaml_file

log = structlog.get_logger(__name__)


class PreferencesConfigError(ConfigLoadError):
    """Raised when the preferences file cannot be loaded or is invalid."""

    pass


class UserPreferences(BaseModel):
    """User preferences with deterministic defaults.

    Unknown keys are kept so callers can carry their own preferences through.
    """

    model_config = ConfigDict(extra="allow")

    preferred_language: str = "typescript"
    framework: str = "react"
    testing_framework: str = "jest"
    deployment_target: str = "vercel"


def default_preferences() -> dict[str, Any]:
    """Return the default preference mapping."""
    return UserPreferences().model_dump()


def load_preferences(config_path: Path | str | None) -> dict[str, Any]:
    """Load user preferences from YAML, merged over the defaults.

    Args:
        config_path: Path to the preferences file, or None for defaults only.

    Returns:
        Preference mapping.

    Raises:
        PreferencesConfigError: If the file is missing, unparsable or invalid.
    """
    if config_path is None:
        return default_preferences()

    config_path = Path(config_path)
    content = load_yaml_file(config_path, error_class=PreferencesConfigError)

    try:
        preferences = UserPreferences.model_validate(content)
    except ValidationError as e:
        error_summary = "\n".join(
            f"{' -> '.join(str(loc) for loc in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise PreferencesConfigError(
            f"Preferences validation failed for {config_path}:\n{error_summary}"
        ) from None

    log.info("preferences_loaded", config_path=str(config_path), keys=sorted(content))
    return preferences.model_dump()
