"""Tests for application wiring and maintenance."""

from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from project_companion.app import build_app_context
from project_companion.config import AppConfig
from project_companion.memory import AgeWeightedRanking, NodeType
from project_companion.orchestrator import IntentClassifier, SessionStatus


def _settings(tmp_path: Path, **overrides) -> AppConfig:
    return AppConfig(data_dir=tmp_path, storage_namespace="test", **overrides)


def _dispatcher(reply: str = "Sure.") -> MagicMock:
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=[{"message": reply, "agent": "planner"}])
    return dispatcher


class TestBuildAppContext:
    """Wiring from settings."""

    def test_injected_collaborators_skip_llm_client(self, tmp_path: Path) -> None:
        ctx = build_app_context(
            _settings(tmp_path), dispatcher=_dispatcher(), classifier=IntentClassifier()
        )

        assert ctx.llm_client is None
        assert ctx.workspace.store is ctx.store
        assert ctx.orchestrator.sessions is ctx.sessions

    def test_default_collaborators_share_one_llm_client(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path, llm_base_url="http://llm.test/v1", llm_model="m")

        ctx = build_app_context(settings)

        assert ctx.llm_client is not None
        assert ctx.llm_client.endpoint == "http://llm.test/v1/chat/completions"
        assert ctx.orchestrator.classifier.ai.client is ctx.llm_client
        assert "planner" in ctx.orchestrator.dispatcher.names()

    def test_ranking_from_settings(self, tmp_path: Path) -> None:
        ctx = build_app_context(
            _settings(tmp_path, ranking_strategy="age_weighted"),
            dispatcher=_dispatcher(),
            classifier=IntentClassifier(),
        )
        assert isinstance(ctx.store.ranking, AgeWeightedRanking)

    def test_preferences_file(self, tmp_path: Path) -> None:
        path = tmp_path / "preferences.yaml"
        path.write_text("preferred_language: python\n")

        ctx = build_app_context(
            _settings(tmp_path, preferences_path=path),
            dispatcher=_dispatcher(),
            classifier=IntentClassifier(),
        )

        assert ctx.orchestrator.preferences["preferred_language"] == "python"

    def test_persistence_disabled_writes_nothing(self, tmp_path: Path) -> None:
        ctx = build_app_context(
            _settings(tmp_path, persistence_enabled=False),
            dispatcher=_dispatcher(),
            classifier=IntentClassifier(),
        )
        ctx.store.add_node(NodeType.FEATURE, "login page")

        assert not (tmp_path / "test").exists()


class TestRestart:
    """State survives a rebuilt context."""

    @pytest.mark.asyncio
    async def test_graph_and_sessions_are_restored(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path)
        first = build_app_context(settings, dispatcher=_dispatcher(), classifier=IntentClassifier())
        await first.orchestrator.process_message("Plan the checkout flow")
        session_id = first.sessions.get_current_session().id
        first.orchestrator.pause_current_session()

        second = build_app_context(
            settings, dispatcher=_dispatcher("Resumed."), classifier=IntentClassifier()
        )

        assert second.store.get_stats().node_count == 3
        assert second.store.get_stats().edge_count == 2
        assert second.sessions.get_current_session() is None
        restored = second.sessions.get_session(session_id)
        assert restored.status == SessionStatus.PAUSED
        assert restored.context == ["User: Plan the checkout flow", "Agent: Sure."]

        assert second.orchestrator.resume_session(session_id) is True
        assert await second.orchestrator.process_message("Now build it") == "Resumed."
        assert second.sessions.get_session(session_id).intent_history == ["plan", "build"]


class TestMaintenance:
    """Cleanup and compaction."""

    @pytest.mark.asyncio
    async def test_run_maintenance(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path, memory_max_age_days=1)
        ctx = build_app_context(settings, dispatcher=_dispatcher(), classifier=IntentClassifier())
        await ctx.orchestrator.process_message("Plan the checkout flow")
        stale = ctx.store.add_node(NodeType.CONVERSATION, "old chatter")
        node = ctx.store.get_node(stale)
        ctx.store._nodes[stale] = node.model_copy(
            update={"timestamp": node.timestamp - timedelta(days=2)}
        )

        summary = ctx.run_maintenance()

        assert summary["removed_nodes"] == 1
        assert summary["graph_records"] == 3 + 2
        assert summary["session_records"] == 1
        graph_log = tmp_path / "test" / "graph.jsonl"
        assert graph_log.read_bytes().count(b"\n") == 5
