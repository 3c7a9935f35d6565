"""CLI interface for the project companion.

This module provides a Typer-based command-line interface for chatting with
the orchestrator and inspecting the knowledge graph and sessions.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from project_companion.app import AppContext, build_app_context
from project_companion.memory import NodeType

app = typer.Typer(help="Project Companion - conversational development assistant")
console = Console()

INTERACTIVE_HELP = "[dim]Commands: /pause, /end, /sessions, /quit[/dim]"


@app.command(name="chat")
def chat_command(
    message: Optional[str] = typer.Argument(
        None, help="Message to send; omit for an interactive session"
    ),
    session_id: Optional[str] = typer.Option(
        None, "--session-id", help="Resume this session before sending"
    ),
) -> None:
    """Chat with the assistant.

    Examples:
        project-companion chat "Plan a login page for my app"
        project-companion chat --session-id session_1700000000000_abc123xyz
        project-companion chat
    """
    ctx = build_app_context()
    if session_id and not ctx.orchestrator.resume_session(session_id):
        console.print(f"[red]Cannot resume session {session_id} (unknown or completed).[/red]")
        raise typer.Exit(1)

    if message is not None:
        reply = asyncio.run(ctx.orchestrator.process_message(message))
        _print_reply(reply)
        return

    asyncio.run(_interactive(ctx))


async def _interactive(ctx: AppContext) -> None:
    """Read-eval loop over one event loop so per-session locks stay valid."""
    console.print(INTERACTIVE_HELP)
    while True:
        try:
            line = console.input("[bold green]You:[/bold green] ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            break

        if not line:
            continue
        if line == "/quit":
            break
        if line == "/pause":
            ctx.orchestrator.pause_current_session()
            console.print("[yellow]Session paused.[/yellow]")
            continue
        if line == "/end":
            ctx.orchestrator.end_current_session()
            console.print("[yellow]Session ended.[/yellow]")
            continue
        if line == "/sessions":
            _print_sessions(ctx)
            continue

        reply = await ctx.orchestrator.process_message(line)
        _print_reply(reply)


@app.command(name="search")
def search_command(
    query: str = typer.Argument(..., help="Text to search for"),
    node_type: Optional[NodeType] = typer.Option(None, "--type", "-t", help="Node type filter"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of results"),
) -> None:
    """Search the knowledge graph."""
    ctx = build_app_context()
    hits = ctx.store.search(query, node_type, limit=limit)
    if not hits:
        console.print("[yellow]No matching nodes found.[/yellow]")
        return

    table = Table(title=f"Search Results ({len(hits)} nodes)")
    table.add_column("Type", style="green")
    table.add_column("Weight", style="blue", justify="right")
    table.add_column("Timestamp", style="cyan")
    table.add_column("Content", style="white", overflow="fold")
    for node in hits:
        table.add_row(
            node.type.value,
            f"{node.weight:.2f}",
            node.timestamp.isoformat()[:19],
            node.content,
        )
    console.print(table)


@app.command(name="stats")
def stats_command() -> None:
    """Show knowledge graph statistics."""
    ctx = build_app_context()
    stats = ctx.store.get_stats()

    table = Table(title="Knowledge Graph")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white", justify="right")
    table.add_row("Nodes", str(stats.node_count))
    table.add_row("Edges", str(stats.edge_count))
    table.add_row("Complexity", f"{stats.complexity:.2f}")
    table.add_row("Average weight", f"{stats.average_weight:.2f}")
    for node_type, count in sorted(stats.type_distribution.items()):
        table.add_row(f"  {node_type}", str(count))
    console.print(table)


@app.command(name="sessions")
def sessions_command() -> None:
    """List known conversation sessions."""
    _print_sessions(build_app_context())


@app.command(name="observe")
def observe_command(
    path: Path = typer.Argument(Path("."), help="Workspace directory to record"),
) -> None:
    """Record a workspace and its type in the knowledge graph."""
    ctx = build_app_context()
    ctx.workspace.observe_workspace(path)
    ctx.store.bus.flush()
    console.print(ctx.workspace.summary())


@app.command(name="cleanup")
def cleanup_command() -> None:
    """Evict old low-importance nodes and compact the change logs."""
    ctx = build_app_context()
    summary = ctx.run_maintenance()
    console.print(
        f"Removed [bold]{summary['removed_nodes']}[/bold] nodes; "
        f"compacted {summary['graph_records']} graph and "
        f"{summary['session_records']} session records."
    )


def _print_reply(reply: str) -> None:
    console.print("\n[bold blue]Assistant:[/bold blue]")
    console.print(Markdown(reply))


def _print_sessions(ctx: AppContext) -> None:
    sessions = ctx.sessions.list_sessions()
    if not sessions:
        console.print("[yellow]No sessions yet.[/yellow]")
        return

    current = ctx.sessions.get_current_session()
    table = Table(title=f"Sessions ({len(sessions)})")
    table.add_column("Id", style="magenta", overflow="fold")
    table.add_column("Title", style="white", overflow="fold")
    table.add_column("Status", style="green")
    table.add_column("Turns", justify="right")
    table.add_column("Last activity", style="cyan")
    for session in sessions:
        marker = " *" if current is not None and session.id == current.id else ""
        table.add_row(
            session.id + marker,
            session.title,
            session.status.value,
            str(len(session.intent_history)),
            session.last_activity.isoformat()[:19],
        )
    console.print(table)


if __name__ == "__main__":
    app()
