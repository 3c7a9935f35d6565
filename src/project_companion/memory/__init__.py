"""In-process knowledge graph store with ranking, notifications and a change log."""

from project_companion.memory.events import GraphEvent, GraphEventBus, GraphEventType
from project_companion.memory.graph import GraphStore
from project_companion.memory.models import (
    GraphData,
    GraphStats,
    MemoryNode,
    NodeType,
    Relationship,
    default_weight,
)
from project_companion.memory.persistence import ChangeLog, ChangeOp
from project_companion.memory.ranking import (
    AgeWeightedRanking,
    RankingStrategy,
    RecencyWeightedRanking,
    build_ranking,
)
from project_companion.memory.workspace import WorkspaceObserver

__all__ = [
    "GraphStore",
    "WorkspaceObserver",
    # Models
    "MemoryNode",
    "NodeType",
    "Relationship",
    "GraphStats",
    "GraphData",
    "default_weight",
    # Notifications
    "GraphEvent",
    "GraphEventBus",
    "GraphEventType",
    # Persistence
    "ChangeLog",
    "ChangeOp",
    # Ranking
    "RankingStrategy",
    "RecencyWeightedRanking",
    "AgeWeightedRanking",
    "build_ranking",
]
