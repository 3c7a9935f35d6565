"""Core types for the session orchestrator.

This module defines the data structures used throughout the orchestrator:
- SessionStatus: Session state machine states
- Intent: Closed vocabulary of classified intents
- ConversationSession: One conversation and its histories
- ConversationContext: Bounded context assembled before each dispatch
- AgentResponse: What an agent returns for one message
- AgentDispatcher: Boundary to the agent layer
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, TypedDict

from project_companion.memory.models import utc_now


class SessionStatus(str, Enum):
    """Session lifecycle states. ``completed`` is terminal."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class Intent(str, Enum):
    """Closed vocabulary of intents, in classification priority order."""

    PLAN = "plan"
    BUILD = "build"
    DESIGN = "design"
    TEST = "test"
    DEPLOY = "deploy"
    CODE = "code"
    CLARIFY = "clarify"
    HELP = "help"


@dataclass
class AgentHistoryEntry:
    """One agent invocation within a session."""

    agent: str
    action: str
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class ConversationSession:
    """A bounded conversation with its own history.

    Attributes:
        id: Session identifier (``session_<epoch_ms>_<base36>``).
        title: Derived from the first message.
        start_time: UTC creation time.
        last_activity: UTC time of the last touch; never decreases.
        context: Append-only human-readable turn log (``User: ...``, ``Agent: ...``).
        intent_history: Classified intents in turn order.
        agent_history: Agent invocations in turn order.
        status: Lifecycle state.
        graph_node_id: Id of the graph node recording the session start.
    """

    id: str
    title: str
    start_time: datetime = field(default_factory=utc_now)
    last_activity: datetime = field(default_factory=utc_now)
    context: list[str] = field(default_factory=list)
    intent_history: list[str] = field(default_factory=list)
    agent_history: list[AgentHistoryEntry] = field(default_factory=list)
    status: SessionStatus = SessionStatus.ACTIVE
    graph_node_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation (used by the change log)."""
        data = asdict(self)
        data["status"] = self.status.value
        data["start_time"] = self.start_time.isoformat()
        data["last_activity"] = self.last_activity.isoformat()
        data["agent_history"] = [
            {**entry, "timestamp": entry["timestamp"].isoformat()}
            for entry in data["agent_history"]
        ]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationSession":
        """Rebuild a session from :meth:`to_dict` output."""
        return cls(
            id=data["id"],
            title=data["title"],
            start_time=datetime.fromisoformat(data["start_time"]),
            last_activity=datetime.fromisoformat(data["last_activity"]),
            context=list(data.get("context", [])),
            intent_history=list(data.get("intent_history", [])),
            agent_history=[
                AgentHistoryEntry(
                    agent=entry["agent"],
                    action=entry["action"],
                    timestamp=datetime.fromisoformat(entry["timestamp"]),
                )
                for entry in data.get("agent_history", [])
            ],
            status=SessionStatus(data.get("status", SessionStatus.ACTIVE.value)),
            graph_node_id=data.get("graph_node_id"),
        )


@dataclass
class ConversationContext:
    """Context window assembled for one turn.

    Attributes:
        session_id: Owning session.
        current_intent: Intent of the message being processed (set after classification).
        related_intents: Most recent classified intents.
        active_agent: Agent that handled the previous turn.
        context_window: Most recent raw turn entries.
        related_facts: Graph search hits rendered as ``"<type>: <content>"``.
        user_preferences: Caller preferences.
    """

    session_id: str
    current_intent: str = ""
    related_intents: list[str] = field(default_factory=list)
    active_agent: str = "planner"
    context_window: list[str] = field(default_factory=list)
    related_facts: list[str] = field(default_factory=list)
    user_preferences: dict[str, Any] = field(default_factory=dict)


class AgentResponse(TypedDict, total=False):
    """One agent reply.

    Fields:
        message: Text shown to the user.
        agent: Name of the agent that produced it.
        actions: Follow-up actions the agent suggests.
        metadata: Agent-specific details (``error`` is set on failures).
    """

    message: str
    agent: str
    actions: list[dict[str, Any]]
    metadata: dict[str, Any]


class AgentDispatcher(Protocol):
    """External collaborator that routes a message to agents."""

    async def dispatch(self, message: str, context: dict[str, Any]) -> list[AgentResponse]:
        """Return the agents' replies (the orchestrator uses the first one)."""
        ...
