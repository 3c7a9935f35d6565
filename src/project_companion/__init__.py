"""Project companion: a project knowledge graph plus a session-aware conversation orchestrator."""

__version__ = "0.1.0"
