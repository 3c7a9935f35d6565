"""Application context: explicit wiring of the store, sessions and orchestrator.

There are no module-level singletons for the graph store or the
orchestrator; entry points build one ``AppContext`` and pass it around.

Usage:
    ctx = build_app_context()
    reply = await ctx.orchestrator.process_message("plan a login page")
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from project_companion.agents import build_default_registry
from project_companion.config import AppConfig, get_settings, load_preferences
from project_companion.llm_client import LLMClient
from project_companion.memory import (
    ChangeLog,
    GraphEventBus,
    GraphStore,
    WorkspaceObserver,
    build_ranking,
)
from project_companion.orchestrator import (
    AgentDispatcher,
    ConversationOrchestrator,
    IntentClassifier,
    LLMClassifier,
    SessionManager,
)
from project_companion.telemetry import get_logger
from project_companion.telemetry.events import MAINTENANCE_COMPLETED

log = get_logger(__name__)

GRAPH_LOG_NAME = "graph.jsonl"
SESSION_LOG_NAME = "sessions.jsonl"


@dataclass
class AppContext:
    """Everything an entry point needs, built once per process."""

    settings: AppConfig
    store: GraphStore
    sessions: SessionManager
    orchestrator: ConversationOrchestrator
    workspace: WorkspaceObserver
    llm_client: LLMClient | None = None

    def run_maintenance(self) -> dict[str, Any]:
        """Evict old low-importance nodes and compact both change logs.

        Returns:
            Summary with the number of evicted nodes and compacted records.
        """
        removed = self.store.cleanup(timedelta(days=self.settings.memory_max_age_days))
        self.store.bus.flush()
        summary = {
            "removed_nodes": removed,
            "graph_records": self.store.compact(),
            "session_records": self.sessions.compact(),
        }
        log.info(MAINTENANCE_COMPLETED, **summary)
        return summary


def build_app_context(
    settings: AppConfig | None = None,
    *,
    dispatcher: AgentDispatcher | None = None,
    classifier: IntentClassifier | None = None,
) -> AppContext:
    """Build and wire the application objects.

    Persisted graph and session state is replayed when persistence is
    enabled. The LLM client is only created when the default agents or the
    AI classifier need it.

    Args:
        settings: Configuration; the cached settings when omitted.
        dispatcher: Agent layer; the built-in LLM agents when omitted.
        classifier: Intent classifier; an LLM-backed one when omitted.

    Returns:
        The wired application context.

    Raises:
        PreferencesConfigError: If a configured preferences file is invalid.
    """
    settings = settings or get_settings()

    graph_log: ChangeLog | None = None
    session_log: ChangeLog | None = None
    if settings.persistence_enabled:
        graph_log = ChangeLog(settings.storage_dir / GRAPH_LOG_NAME)
        session_log = ChangeLog(settings.storage_dir / SESSION_LOG_NAME)

    store = GraphStore(
        ranking=build_ranking(settings.ranking_strategy, settings.ranking_half_life_hours),
        bus=GraphEventBus(settings.event_queue_size, deliver_inline=False),
        change_log=graph_log,
    )
    sessions = SessionManager(change_log=session_log)
    if settings.persistence_enabled:
        store.restore()
        sessions.restore()

    llm_client: LLMClient | None = None
    if dispatcher is None or classifier is None:
        llm_client = LLMClient(
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            timeout_seconds=settings.llm_timeout_seconds,
            max_retries=settings.llm_max_retries,
            api_key=settings.llm_api_key,
        )
        if dispatcher is None:
            dispatcher = build_default_registry(llm_client)
        if classifier is None:
            classifier = IntentClassifier(
                LLMClassifier(llm_client),
                timeout_s=settings.classifier_timeout_seconds,
                max_retries=settings.classifier_max_retries,
            )

    orchestrator = ConversationOrchestrator(
        store,
        sessions,
        dispatcher,
        classifier,
        load_preferences(settings.preferences_path),
        context_window_size=settings.context_window_size,
        related_intents_size=settings.related_intents_size,
        related_facts_limit=settings.related_facts_limit,
    )

    return AppContext(
        settings=settings,
        store=store,
        sessions=sessions,
        orchestrator=orchestrator,
        workspace=WorkspaceObserver(store),
        llm_client=llm_client,
    )
