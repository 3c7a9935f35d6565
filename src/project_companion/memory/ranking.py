"""Search ranking strategies for the graph store.

A strategy maps a node to a relevance score at a given instant; the store
orders search hits by descending score and breaks ties with the newer
timestamp first.
"""

from datetime import datetime, timedelta
from typing import Protocol

from project_companion.memory.models import MemoryNode


class RankingStrategy(Protocol):
    """Scores a node for search ordering (higher ranks first)."""

    def score(self, node: MemoryNode, now: datetime) -> float:
        """Return the relevance score of ``node`` at ``now``."""
        ...


def _age_seconds(node: MemoryNode, now: datetime) -> float:
    return max(0.0, (now - node.timestamp).total_seconds())


class RecencyWeightedRanking:
    """Heavier and newer facts first.

    ``score = weight * 0.5 ** (age / half_life)``: a fact loses half its
    relevance every ``half_life``.
    """

    def __init__(self, half_life: timedelta = timedelta(hours=24)) -> None:
        if half_life.total_seconds() <= 0:
            raise ValueError("half_life must be positive")
        self.half_life = half_life

    def score(self, node: MemoryNode, now: datetime) -> float:
        age = _age_seconds(node, now)
        return node.weight * 0.5 ** (age / self.half_life.total_seconds())


class AgeWeightedRanking:
    """Heavier and older facts first (``score = weight * age``).

    This is the rule the assistant originally shipped with. A node created
    at ``now`` scores zero regardless of weight.
    """

    def score(self, node: MemoryNode, now: datetime) -> float:
        return node.weight * _age_seconds(node, now)


def build_ranking(name: str, half_life_hours: float = 24.0) -> RankingStrategy:
    """Build a ranking strategy from its configuration name.

    Args:
        name: ``recency`` or ``age_weighted``.
        half_life_hours: Half-life used by the recency strategy.

    Returns:
        The strategy instance.

    Raises:
        ValueError: If the name is unknown.
    """
    if name == "recency":
        return RecencyWeightedRanking(half_life=timedelta(hours=half_life_hours))
    if name == "age_weighted":
        return AgeWeightedRanking()
    raise ValueError(f"Unknown ranking strategy: {name}")
