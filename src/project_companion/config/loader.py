"""Shared YAML loading utilities for configuration files."""

from pathlib import Path
from typing import Any

import structlog
import yaml

log = structlog.get_logger(__name__)


class ConfigLoadError(Exception):
    """Base exception for configuration loading errors."""

    pass


def load_yaml_file(
    file_path: Path, error_class: type[Exception] = ConfigLoadError
) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        file_path: Path to the YAML file.
        error_class: Exception class to raise on errors. Defaults to ConfigLoadError.

    Returns:
        Parsed YAML content as a dictionary. Returns empty dict if the file is empty.

    Raises:
        error_class: If file cannot be read or parsed.
    """
    try:
        with file_path.open("r", encoding="utf-8") as f:
            content: dict[str, Any] | None = yaml.safe_load(f)
            if content is None:
                log.debug("yaml_file_empty", file_path=str(file_path))
                return {}
            if not isinstance(content, dict):
                raise error_class(f"Expected a mapping at the top of {file_path}")
            return content
    except FileNotFoundError:
        raise error_class(f"Configuration file not found: {file_path}") from None
    except yaml.YAMLError as e:
        raise error_class(f"Failed to parse YAML file {file_path}: {e}") from None
