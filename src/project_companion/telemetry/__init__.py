"""Telemetry module for structured logging and trace correlation.

This module provides:
- TraceContext for per-turn correlation
- Structured logging via structlog
- Semantic event constants
"""

from project_companion.telemetry.events import (
    EDGE_ADDED,
    EDGE_REJECTED,
    EDGE_REMOVED,
    GRAPH_CLEARED,
    INTENT_CLASSIFICATION_FALLBACK,
    INTENT_CLASSIFIED,
    NODE_ADDED,
    NODE_REMOVED,
    NODE_UPDATED,
    PERSISTENCE_WRITE_FAILED,
    SESSION_ENDED,
    SESSION_PAUSED,
    SESSION_RESUMED,
    SESSION_STARTED,
    TURN_COMPLETED,
    TURN_FAILED,
    TURN_STARTED,
)
from project_companion.telemetry.logger import configure_logging, get_logger
from project_companion.telemetry.trace import TraceContext

__all__ = [
    # Core exports
    "TraceContext",
    "get_logger",
    "configure_logging",
    # Event constants
    "NODE_ADDED",
    "NODE_UPDATED",
    "NODE_REMOVED",
    "EDGE_ADDED",
    "EDGE_REMOVED",
    "EDGE_REJECTED",
    "GRAPH_CLEARED",
    "PERSISTENCE_WRITE_FAILED",
    "SESSION_STARTED",
    "SESSION_RESUMED",
    "SESSION_PAUSED",
    "SESSION_ENDED",
    "TURN_STARTED",
    "TURN_COMPLETED",
    "TURN_FAILED",
    "INTENT_CLASSIFIED",
    "INTENT_CLASSIFICATION_FALLBACK",
]
