"""Custom Pydantic validators for configuration.

This module provides validators for custom type conversions shared by the
settings model and the bootstrap helpers.
"""

from pathlib import Path

RANKING_STRATEGIES = {"recency", "age_weighted"}


def validate_log_level(value: str) -> str:
    """Validate log level is one of the standard levels.

    Args:
        value: Log level string.

    Returns:
        Validated log level.

    Raises:
        ValueError: If log level is not valid.
    """
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if value.upper() not in valid_levels:
        raise ValueError(f"log_level must be one of {valid_levels}, got {value}")
    return value.upper()


def validate_log_format(value: str) -> str:
    """Validate log format is 'json' or 'console'.

    Args:
        value: Log format string.

    Returns:
        Validated log format.

    Raises:
        ValueError: If log format is not valid.
    """
    valid_formats = {"json", "console"}
    if value.lower() not in valid_formats:
        raise ValueError(f"log_format must be one of {valid_formats}, got {value}")
    return value.lower()


def validate_ranking_strategy(value: str) -> str:
    """Validate the search ranking strategy name.

    Args:
        value: Strategy name.

    Returns:
        Normalized strategy name.

    Raises:
        ValueError: If the strategy is unknown.
    """
    normalized = value.strip().lower().replace("-", "_")
    if normalized not in RANKING_STRATEGIES:
        raise ValueError(f"ranking_strategy must be one of {RANKING_STRATEGIES}, got {value}")
    return normalized


def resolve_path(value: Path | str) -> Path:
    """Resolve relative paths against the project root.

    Args:
        value: Path value (can be string or Path).

    Returns:
        Resolved absolute Path.
    """
    path = Path(value) if isinstance(value, str) else value

    if not path.is_absolute():
        # src/project_companion/config -> project root
        project_root = Path(__file__).parent.parent.parent.parent
        path = (project_root / path).resolve()
    else:
        path = path.resolve()

    return path
