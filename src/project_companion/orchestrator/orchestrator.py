"""Conversation orchestrator.

Turns one user utterance into a graph-recorded, agent-dispatched exchange:

    session -> context window -> intent -> dispatch -> history + graph

``process_message`` never raises. A failure anywhere in a turn is logged
with its traceback and the caller receives a fixed apology, so the
interaction loop keeps going and the session stays usable.
"""

import re
import time
from typing import Any

from project_companion.config.preferences_loader import default_preferences
from project_companion.memory.graph import GraphStore
from project_companion.memory.models import NodeType
from project_companion.orchestrator.intent import IntentClassifier
from project_companion.orchestrator.session import SessionManager
from project_companion.orchestrator.types import (
    AgentDispatcher,
    AgentHistoryEntry,
    AgentResponse,
    ConversationContext,
    ConversationSession,
    Intent,
    SessionStatus,
)
from project_companion.telemetry import TraceContext, get_logger
from project_companion.telemetry.events import (
    AGENT_DISPATCHED,
    CONTEXT_BUILT,
    TURN_COMPLETED,
    TURN_FAILED,
    TURN_REROUTED,
    TURN_STARTED,
)

log = get_logger(__name__)

APOLOGY = (
    "I apologize, but I encountered an error processing your message. "
    "Please try again or rephrase your request."
)
NO_RESPONSE = "No response generated"
DEFAULT_AGENT = "planner"

# Short or very common words are not worth a graph lookup
_TERM_PATTERN = re.compile(r"[a-z0-9_]{4,}")
_STOP_WORDS = frozenset(
    {
        "about", "could", "from", "have", "into", "please", "should", "that",
        "their", "there", "this", "what", "when", "where", "which", "with",
        "would", "your",
    }
)  # fmt: skip


def search_terms(message: str) -> list[str]:
    """The utterance itself plus its significant words."""
    words = [w for w in _TERM_PATTERN.findall(message.lower()) if w not in _STOP_WORDS]
    return list(dict.fromkeys([message, *words]))


class ConversationOrchestrator:
    """Session-aware message pipeline.

    Args:
        store: Graph store used for related facts and as the exchange record.
        sessions: Session manager.
        dispatcher: Agent layer receiving classified messages.
        classifier: Intent classifier (keyword-only when omitted).
        preferences: User preferences carried into every context.
        context_window_size: Raw turn entries per context.
        related_intents_size: Recent intents per context.
        related_facts_limit: Graph hits per context.
    """

    def __init__(
        self,
        store: GraphStore,
        sessions: SessionManager,
        dispatcher: AgentDispatcher,
        classifier: IntentClassifier | None = None,
        preferences: dict[str, Any] | None = None,
        *,
        context_window_size: int = 10,
        related_intents_size: int = 3,
        related_facts_limit: int = 5,
    ) -> None:
        self.store = store
        self.sessions = sessions
        self.dispatcher = dispatcher
        self.classifier = classifier or IntentClassifier()
        self.preferences = preferences if preferences is not None else default_preferences()
        self.context_window_size = context_window_size
        self.related_intents_size = related_intents_size
        self.related_facts_limit = related_facts_limit

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_session(self, initial_message: str | None = None) -> str:
        """Start a session, make it current and record its start in the graph.

        Returns:
            The session id.
        """
        return self._open_session(initial_message).id

    def _open_session(self, initial_message: str | None) -> ConversationSession:
        session = self.sessions.start_session(initial_message)
        session.graph_node_id = self.store.add_node(
            NodeType.INTENT,
            f"Conversation session started: {session.title}",
            {
                "session_id": session.id,
                "start_time": session.start_time.isoformat(),
                "status": session.status.value,
                "kind": "conversation_session",
            },
        )
        self.sessions.save(session)
        return session

    def resume_session(self, session_id: str) -> bool:
        """Make a paused or active session current again."""
        return self.sessions.resume_session(session_id)

    def pause_current_session(self) -> None:
        """Pause the current session."""
        self.sessions.pause_current_session()

    def end_current_session(self) -> None:
        """Complete the current session and clear the current pointer."""
        self.sessions.end_current_session()

    def get_current_session(self) -> ConversationSession | None:
        """The current session, if any."""
        return self.sessions.get_current_session()

    def get_active_sessions(self) -> list[ConversationSession]:
        """Active sessions, most recently used first."""
        return self.sessions.get_active_sessions()

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def process_message(self, message: str) -> str:
        """Handle one utterance and return the reply text.

        Turns on the same session are serialized, so their history entries
        land in call order. Never raises.

        Args:
            message: The user's utterance.

        Returns:
            The agent reply, or a fixed apology if the turn failed.
        """
        trace = TraceContext.new_trace()
        turn_log = log.bind(trace_id=trace.trace_id)
        session_id: str | None = None
        start_time = time.time()

        try:
            session = self.sessions.get_current_session() or self._open_session(message)
            session_id = session.id

            while True:
                async with self.sessions.lock_for(session.id):
                    # The session may have ended while this turn was queued
                    if session.status != SessionStatus.COMPLETED:
                        reply = await self._run_turn(session, message, turn_log)
                        break
                ended_id = session.id
                session = self.sessions.get_current_session() or self._open_session(message)
                session_id = session.id
                turn_log.info(TURN_REROUTED, ended_session_id=ended_id, session_id=session_id)

            turn_log.info(
                TURN_COMPLETED,
                session_id=session_id,
                intent=session.intent_history[-1],
                reply_length=len(reply),
                duration_ms=int((time.time() - start_time) * 1000),
            )
            return reply
        except Exception as e:
            turn_log.error(
                TURN_FAILED,
                session_id=session_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return APOLOGY
        finally:
            self.store.bus.flush()

    def build_context(self, message: str, session: ConversationSession) -> ConversationContext:
        """Assemble the bounded context for a turn on ``session``.

        Nodes recorded by the session itself are left out of the related
        facts; its exchanges already reach the agent through the window.
        """
        hits = [
            node
            for node in self.store.search_any(search_terms(message))
            if node.metadata.get("session_id") != session.id
        ][: self.related_facts_limit]
        return ConversationContext(
            session_id=session.id,
            related_intents=self._tail(session.intent_history, self.related_intents_size),
            active_agent=session.agent_history[-1].agent if session.agent_history else DEFAULT_AGENT,
            context_window=self._tail(session.context, self.context_window_size),
            related_facts=[f"{node.type.value}: {node.content}" for node in hits],
            user_preferences=dict(self.preferences),
        )

    async def _run_turn(self, session: ConversationSession, message: str, turn_log: Any) -> str:
        if session.status == SessionStatus.PAUSED:
            self.sessions.resume_session(session.id)
        self.sessions.touch(session)
        turn_log.info(TURN_STARTED, session_id=session.id, message_length=len(message))

        context = self.build_context(message, session)
        turn_log.debug(
            CONTEXT_BUILT,
            session_id=session.id,
            window=len(context.context_window),
            related_facts=len(context.related_facts),
            active_agent=context.active_agent,
        )

        message_node = self.store.add_node(
            NodeType.INTENT,
            message,
            {"session_id": session.id, "kind": "user_message"},
        )
        if session.graph_node_id is not None:
            self.store.add_edge(session.graph_node_id, message_node, "contains")

        intent = await self.classifier.classify(message, context)
        context.current_intent = intent.value
        self.store.update_node(message_node, metadata={"intent": intent.value})

        session.intent_history.append(intent.value)
        session.context.append(f"User: {message}")

        try:
            response = await self._dispatch(intent, message, context)
        except Exception:
            # Keep context, intent and agent histories aligned turn by turn
            session.context.append(f"Agent: {APOLOGY}")
            session.agent_history.append(
                AgentHistoryEntry(agent=intent.value, action="dispatch_failed")
            )
            self.sessions.save(session)
            raise
        reply = response.get("message") or NO_RESPONSE
        agent = response.get("agent") or intent.value
        turn_log.info(AGENT_DISPATCHED, session_id=session.id, intent=intent.value, agent=agent)

        session.context.append(f"Agent: {reply}")
        session.agent_history.append(AgentHistoryEntry(agent=agent, action="process_message"))
        self.sessions.save(session)

        response_node = self.store.add_node(
            NodeType.INTENT,
            reply,
            {
                "session_id": session.id,
                "kind": "agent_response",
                "intent": intent.value,
                "agent": agent,
            },
        )
        self.store.add_edge(message_node, response_node, "generates")
        return reply

    async def _dispatch(
        self, intent: Intent, message: str, context: ConversationContext
    ) -> AgentResponse:
        enhanced_window = [
            *context.context_window,
            f"Session ID: {context.session_id}",
            f"Related intents: {', '.join(context.related_intents)}",
            f"Previous agent: {context.active_agent}",
            *(f"Related fact: {fact}" for fact in context.related_facts),
        ]
        responses = await self.dispatcher.dispatch(
            message,
            {
                "intent": intent.value,
                "context_window": enhanced_window,
                "session_id": context.session_id,
                "related_intents": context.related_intents,
                "active_agent": context.active_agent,
                "related_facts": context.related_facts,
                "user_preferences": context.user_preferences,
            },
        )
        return responses[0] if responses else AgentResponse(message=NO_RESPONSE)

    @staticmethod
    def _tail(items: list[str], size: int) -> list[str]:
        return list(items[-size:]) if size > 0 else []
