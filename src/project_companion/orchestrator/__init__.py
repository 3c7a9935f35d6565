"""Session orchestrator: sessions, intent classification and the turn pipeline.

This module turns user utterances into graph-recorded, agent-dispatched
exchanges while keeping per-session state consistent.
"""

from project_companion.orchestrator.async_utils import (
    OperationTimeoutError,
    with_retry,
    with_timeout,
)
from project_companion.orchestrator.intent import (
    AIClassifier,
    IntentClassifier,
    LLMClassifier,
    extract_intent,
    fallback_intent,
)
from project_companion.orchestrator.orchestrator import APOLOGY, ConversationOrchestrator
from project_companion.orchestrator.session import SessionManager, make_title
from project_companion.orchestrator.types import (
    AgentDispatcher,
    AgentHistoryEntry,
    AgentResponse,
    ConversationContext,
    ConversationSession,
    Intent,
    SessionStatus,
)

__all__ = [
    # Public API
    "ConversationOrchestrator",
    "SessionManager",
    "APOLOGY",
    # Intent classification
    "Intent",
    "IntentClassifier",
    "LLMClassifier",
    "AIClassifier",
    "extract_intent",
    "fallback_intent",
    # Types
    "AgentDispatcher",
    "AgentResponse",
    "AgentHistoryEntry",
    "ConversationContext",
    "ConversationSession",
    "SessionStatus",
    "make_title",
    # Async helpers
    "OperationTimeoutError",
    "with_timeout",
    "with_retry",
]
