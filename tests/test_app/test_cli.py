"""Tests for the command-line interface."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from typer.testing import CliRunner

import project_companion.ui.cli as cli_module
from project_companion.app import AppContext, build_app_context
from project_companion.config import AppConfig
from project_companion.memory import NodeType
from project_companion.orchestrator import IntentClassifier

runner = CliRunner()


@pytest.fixture
def ctx(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppContext:
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=[{"message": "Step one.", "agent": "planner"}])
    context = build_app_context(
        AppConfig(data_dir=tmp_path, persistence_enabled=False),
        dispatcher=dispatcher,
        classifier=IntentClassifier(),
    )
    monkeypatch.setattr(cli_module, "build_app_context", lambda: context)
    return context


class TestCommands:
    """One-shot commands."""

    def test_chat_one_shot(self, ctx: AppContext) -> None:
        result = runner.invoke(cli_module.app, ["chat", "Plan the checkout"])

        assert result.exit_code == 0
        assert "Step one." in result.stdout
        assert ctx.sessions.get_current_session().title == "Plan the checkout"

    def test_chat_unknown_session(self, ctx: AppContext) -> None:
        result = runner.invoke(cli_module.app, ["chat", "hi", "--session-id", "session_0_missing00"])

        assert result.exit_code == 1
        assert "Cannot resume" in result.stdout

    def test_chat_interactive(self, ctx: AppContext) -> None:
        result = runner.invoke(cli_module.app, ["chat"], input="Plan the checkout\n/end\n/quit\n")

        assert result.exit_code == 0
        assert "Step one." in result.stdout
        assert "Session ended." in result.stdout
        assert ctx.sessions.get_current_session() is None

    def test_search(self, ctx: AppContext) -> None:
        ctx.store.add_node(NodeType.FEATURE, "login page")

        result = runner.invoke(cli_module.app, ["search", "login", "--type", "feature"])

        assert result.exit_code == 0
        assert "Search Results (1 nodes)" in result.stdout

    def test_search_without_hits(self, ctx: AppContext) -> None:
        result = runner.invoke(cli_module.app, ["search", "nothing"])

        assert "No matching nodes found." in result.stdout

    def test_stats(self, ctx: AppContext) -> None:
        ctx.store.add_node(NodeType.FEATURE, "login page")

        result = runner.invoke(cli_module.app, ["stats"])

        assert result.exit_code == 0
        assert "Nodes" in result.stdout

    def test_sessions(self, ctx: AppContext) -> None:
        assert "No sessions yet." in runner.invoke(cli_module.app, ["sessions"]).stdout
        ctx.orchestrator.start_session("Plan the checkout")

        result = runner.invoke(cli_module.app, ["sessions"])

        assert "Sessions (1)" in result.stdout

    def test_observe(self, ctx: AppContext, tmp_path: Path) -> None:
        (tmp_path / "go.mod").write_text("module example\n")

        result = runner.invoke(cli_module.app, ["observe", str(tmp_path)])

        assert result.exit_code == 0
        assert "(go)" in result.stdout

    def test_cleanup(self, ctx: AppContext) -> None:
        result = runner.invoke(cli_module.app, ["cleanup"])

        assert result.exit_code == 0
        assert "Removed" in result.stdout
