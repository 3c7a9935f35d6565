"""Data models for the memory graph."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

NAME_LENGTH = 50


def utc_now() -> datetime:
    """Current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class NodeType(str, Enum):
    """Closed vocabulary of node types."""

    INTENT = "intent"
    FEATURE = "feature"
    SCREEN = "screen"
    LOGIC = "logic"
    RELATIONSHIP = "relationship"
    DECISION = "decision"
    CONCEPT = "concept"
    FILE = "file"
    CONVERSATION = "conversation"
    FUNCTION = "function"


# Incidental observations weigh less than first-class facts
DEFAULT_WEIGHTS: dict[NodeType, float] = {
    NodeType.FILE: 0.5,
    NodeType.CONVERSATION: 0.3,
}
DEFAULT_WEIGHT = 1.0


def default_weight(node_type: NodeType) -> float:
    """Default importance for a node of the given type."""
    return DEFAULT_WEIGHTS.get(node_type, DEFAULT_WEIGHT)


class MemoryNode(BaseModel):
    """A typed, weighted fact stored in the graph."""

    id: str
    type: NodeType
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)
    weight: float = Field(default=DEFAULT_WEIGHT, ge=0.0)
    version: int = 1

    @field_validator("weight", mode="before")
    @classmethod
    def clamp_weight(cls, v: float) -> float:
        """Clamp negative weights to zero instead of rejecting them."""
        return max(0.0, float(v))

    @property
    def name(self) -> str:
        """Short label derived from the content."""
        return self.content[:NAME_LENGTH]

    @property
    def description(self) -> str:
        """Long form of the fact (the full content)."""
        return self.content


class Relationship(BaseModel):
    """A typed, directed edge between two nodes."""

    id: str
    from_node_id: str
    to_node_id: str
    type: str = "relates_to"  # "generates", "relates_to", "contains", "derived_from", ...
    strength: float = 1.0
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)

    def touches(self, node_id: str) -> bool:
        """Whether the node is either endpoint of this edge."""
        return self.from_node_id == node_id or self.to_node_id == node_id

    def other_end(self, node_id: str) -> str:
        """The endpoint opposite to ``node_id``."""
        return self.to_node_id if self.from_node_id == node_id else self.from_node_id


class GraphStats(BaseModel):
    """Summary statistics of the graph."""

    node_count: int = 0
    edge_count: int = 0
    type_distribution: dict[str, int] = Field(default_factory=dict)
    complexity: float = 0.0
    average_weight: float = 0.0


class GraphData(BaseModel):
    """Full export of nodes and edges, e.g. for visualization."""

    nodes: list[MemoryNode] = Field(default_factory=list)
    edges: list[Relationship] = Field(default_factory=list)
