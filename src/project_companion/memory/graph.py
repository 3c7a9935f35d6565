"""In-process knowledge graph store.

Nodes live in a dict keyed by id; edges in a second dict, with an adjacency
index mapping every node id to the ids of the edges that touch it. Removing a
node walks only its own adjacency set, so the cascade never leaves a dangling
edge behind and never scans the full edge table.

Usage:
    store = GraphStore()
    page = store.add_node(NodeType.FEATURE, "login page")
    button = store.add_node(NodeType.SCREEN, "login button")
    store.add_edge(page, button, "contains")
    hits = store.search("login")
"""

import uuid
from collections import deque
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from project_companion.memory.events import (
    GraphEvent,
    GraphEventBus,
    GraphEventHandler,
    GraphEventType,
)
from project_companion.memory.models import (
    GraphData,
    GraphStats,
    MemoryNode,
    NodeType,
    Relationship,
    default_weight,
    utc_now,
)
from project_companion.memory.persistence import ChangeLog, ChangeOp, ChangeRecord, make_record
from project_companion.memory.ranking import RankingStrategy, RecencyWeightedRanking
from project_companion.telemetry import get_logger
from project_companion.telemetry.events import (
    EDGE_ADDED,
    EDGE_REJECTED,
    EDGE_REMOVED,
    GRAPH_CLEANUP,
    GRAPH_CLEARED,
    GRAPH_RESTORED,
    NODE_ADDED,
    NODE_REMOVED,
    NODE_UPDATED,
    PERSISTENCE_RECORD_SKIPPED,
)

log = get_logger(__name__)

# Nodes below this weight are eligible for age-based eviction
EVICTION_WEIGHT_THRESHOLD = 0.5
DEFAULT_MAX_AGE = timedelta(days=30)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


class GraphStore:
    """Typed, weighted fact graph with search, traversal and eviction.

    Lookups on unknown ids return ``None``/``False``/``[]``; the store does
    not raise for normal usage.

    Args:
        ranking: Search ordering strategy (recency-weighted by default).
        bus: Change notification bus (a fresh inline bus by default).
        change_log: Optional write-ahead log receiving one record per mutation.
        clock: Source of the current time, injectable for tests.
    """

    def __init__(
        self,
        ranking: RankingStrategy | None = None,
        bus: GraphEventBus | None = None,
        change_log: ChangeLog | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.ranking = ranking or RecencyWeightedRanking()
        self.bus = bus or GraphEventBus()
        self.change_log = change_log
        self._clock = clock
        self._nodes: dict[str, MemoryNode] = {}
        self._edges: dict[str, Relationship] = {}
        self._adjacency: dict[str, set[str]] = {}
        self._restoring = False

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(
        self,
        type: NodeType | str,
        content: str,
        metadata: dict[str, Any] | None = None,
        *,
        weight: float | None = None,
        node_id: str | None = None,
    ) -> str:
        """Add a node, or replace the node already stored under ``node_id``.

        Args:
            type: Node type.
            content: The fact being remembered.
            metadata: Caller-specific structured data.
            weight: Importance; defaults by node type.
            node_id: Stable id to upsert under; a fresh id when omitted.

        Returns:
            The node id.
        """
        node_type = NodeType(type)
        node_id = node_id or _new_id("node")
        existing = self._nodes.get(node_id)

        node = MemoryNode(
            id=node_id,
            type=node_type,
            content=content,
            metadata=dict(metadata or {}),
            timestamp=self._clock(),
            weight=default_weight(node_type) if weight is None else weight,
            version=existing.version + 1 if existing else 1,
        )
        self._nodes[node_id] = node
        self._adjacency.setdefault(node_id, set())
        self._record(ChangeOp.NODE_UPSERT, node_id, node.model_dump(mode="json"))

        if existing:
            log.debug(NODE_UPDATED, node_id=node_id, node_type=node_type.value, upsert=True)
            self._emit(GraphEventType.NODE_UPDATED, node_id=node_id, payload=self._payload(node))
        else:
            log.debug(NODE_ADDED, node_id=node_id, node_type=node_type.value, weight=node.weight)
            self._emit(GraphEventType.NODE_ADDED, node_id=node_id, payload=self._payload(node))
        return node_id

    def get_node(self, node_id: str) -> MemoryNode | None:
        """Return the node, or None if unknown."""
        return self._nodes.get(node_id)

    def update_node(
        self,
        node_id: str,
        *,
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Update a node in place.

        Metadata is shallow-merged (new keys overwrite old ones). The
        timestamp is bumped and the version incremented.

        Returns:
            False if the node is unknown, True otherwise.
        """
        node = self._nodes.get(node_id)
        if node is None:
            return False

        changes: dict[str, Any] = {
            "timestamp": self._clock(),
            "version": node.version + 1,
        }
        if content is not None:
            changes["content"] = content
        if metadata:
            changes["metadata"] = {**node.metadata, **metadata}

        updated = node.model_copy(update=changes)
        self._nodes[node_id] = updated
        self._record(ChangeOp.NODE_UPSERT, node_id, updated.model_dump(mode="json"))

        log.debug(NODE_UPDATED, node_id=node_id, version=updated.version)
        self._emit(
            GraphEventType.NODE_UPDATED,
            node_id=node_id,
            payload={"content": content, "metadata": metadata or {}, "version": updated.version},
        )
        return True

    def remove_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it.

        Returns:
            False if the node is unknown, True otherwise.
        """
        if node_id not in self._nodes:
            return False

        for edge_id in list(self._adjacency.get(node_id, ())):
            self._drop_edge(edge_id)

        node = self._nodes.pop(node_id)
        self._adjacency.pop(node_id, None)
        self._record(ChangeOp.NODE_DELETE, node_id)

        log.debug(NODE_REMOVED, node_id=node_id, node_type=node.type.value)
        self._emit(GraphEventType.NODE_REMOVED, node_id=node_id, payload=self._payload(node))
        return True

    def get_nodes_by_type(self, type: NodeType | str) -> list[MemoryNode]:
        """All nodes of one type, in insertion order."""
        node_type = NodeType(type)
        return [node for node in self._nodes.values() if node.type == node_type]

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(
        self,
        from_id: str,
        to_id: str,
        type: str = "relates_to",
        strength: float = 1.0,
        metadata: dict[str, Any] | None = None,
    ) -> str | None:
        """Link two live nodes.

        Returns:
            The edge id, or None if either endpoint is unknown (nothing is
            stored in that case).
        """
        missing = [nid for nid in (from_id, to_id) if nid not in self._nodes]
        if missing:
            log.warning(EDGE_REJECTED, from_id=from_id, to_id=to_id, type=type, missing=missing)
            return None

        edge = Relationship(
            id=_new_id("edge"),
            from_node_id=from_id,
            to_node_id=to_id,
            type=type,
            strength=strength,
            metadata=dict(metadata or {}),
            created_at=self._clock(),
        )
        self._insert_edge(edge)
        self._record(ChangeOp.EDGE_UPSERT, edge.id, edge.model_dump(mode="json"))

        log.debug(EDGE_ADDED, edge_id=edge.id, from_id=from_id, to_id=to_id, type=type)
        self._emit(GraphEventType.EDGE_ADDED, edge_id=edge.id, payload=self._payload(edge))
        return edge.id

    def get_edge(self, edge_id: str) -> Relationship | None:
        """Return the edge, or None if unknown."""
        return self._edges.get(edge_id)

    def remove_edge(self, edge_id: str) -> bool:
        """Remove one edge.

        Returns:
            False if the edge is unknown, True otherwise.
        """
        if edge_id not in self._edges:
            return False
        self._drop_edge(edge_id)
        return True

    def get_connections(self, node_id: str) -> list[Relationship]:
        """Edges touching the node in either direction, oldest first."""
        edges = [self._edges[eid] for eid in self._adjacency.get(node_id, ())]
        return sorted(edges, key=lambda e: e.created_at)

    def get_connected_nodes(self, node_id: str) -> list[MemoryNode]:
        """Distinct neighbours of the node in either direction."""
        seen: set[str] = set()
        neighbours: list[MemoryNode] = []
        for edge in self.get_connections(node_id):
            other = edge.other_end(node_id)
            if other in seen or other == node_id:
                continue
            seen.add(other)
            node = self._nodes.get(other)
            if node is not None:
                neighbours.append(node)
        return neighbours

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def search(
        self,
        query: str,
        type: NodeType | str | None = None,
        *,
        limit: int | None = None,
    ) -> list[MemoryNode]:
        """Case-insensitive substring search over content, name and description.

        Hits are ordered by the ranking strategy, highest score first; equal
        scores put the newer node first.

        Args:
            query: Text to look for. An empty query matches nothing.
            type: Restrict hits to one node type.
            limit: Maximum number of hits.

        Returns:
            Matching nodes, best first.
        """
        return self.search_any([query], type, limit=limit)

    def search_any(
        self,
        queries: Iterable[str],
        type: NodeType | str | None = None,
        *,
        limit: int | None = None,
    ) -> list[MemoryNode]:
        """Nodes matching any of the queries, ranked once across all of them."""
        needles = [q.strip().lower() for q in queries if q.strip()]
        if not needles:
            return []
        node_type = NodeType(type) if type is not None else None

        hits = [
            node
            for node in self._nodes.values()
            if (node_type is None or node.type == node_type)
            and any(self._matches(node, needle) for needle in needles)
        ]

        now = self._clock()
        hits.sort(key=lambda n: (self.ranking.score(n, now), n.timestamp), reverse=True)
        return hits[:limit] if limit is not None else hits

    @staticmethod
    def _matches(node: MemoryNode, needle: str) -> bool:
        return (
            needle in node.content.lower()
            or needle in node.name.lower()
            or needle in node.description.lower()
        )

    def find_related(self, node_id: str, max_depth: int = 2) -> list[MemoryNode]:
        """Breadth-first walk over edges in both directions.

        Args:
            node_id: Starting node (included in the result).
            max_depth: Maximum number of hops from the start.

        Returns:
            Visited nodes in BFS order, or [] if the start is unknown.
        """
        if node_id not in self._nodes:
            return []

        visited = {node_id}
        order = [self._nodes[node_id]]
        queue: deque[tuple[str, int]] = deque([(node_id, 0)])

        while queue:
            current, depth = queue.popleft()
            if depth >= max_depth:
                continue
            for neighbour in self.get_connected_nodes(current):
                if neighbour.id in visited:
                    continue
                visited.add(neighbour.id)
                order.append(neighbour)
                queue.append((neighbour.id, depth + 1))
        return order

    def get_graph_data(self) -> GraphData:
        """Export every node and edge."""
        return GraphData(nodes=list(self._nodes.values()), edges=list(self._edges.values()))

    def get_stats(self) -> GraphStats:
        """Counts, type distribution, edge/node ratio and mean weight."""
        node_count = len(self._nodes)
        edge_count = len(self._edges)
        distribution: dict[str, int] = {}
        for node in self._nodes.values():
            distribution[node.type.value] = distribution.get(node.type.value, 0) + 1

        return GraphStats(
            node_count=node_count,
            edge_count=edge_count,
            type_distribution=distribution,
            complexity=edge_count / node_count if node_count else 0.0,
            average_weight=(
                sum(n.weight for n in self._nodes.values()) / node_count if node_count else 0.0
            ),
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def cleanup(self, max_age: timedelta = DEFAULT_MAX_AGE) -> int:
        """Evict nodes that are both old and unimportant.

        A node is removed only if its timestamp is older than
        ``now - max_age`` and its weight is below 0.5.

        Returns:
            Number of nodes removed.
        """
        cutoff = self._clock() - max_age
        victims = [
            node.id
            for node in self._nodes.values()
            if node.timestamp < cutoff and node.weight < EVICTION_WEIGHT_THRESHOLD
        ]
        for node_id in victims:
            self.remove_node(node_id)

        log.info(
            GRAPH_CLEANUP,
            removed=len(victims),
            remaining=len(self._nodes),
            max_age_seconds=max_age.total_seconds(),
        )
        return len(victims)

    def clear(self) -> None:
        """Drop every node and edge."""
        self._nodes.clear()
        self._edges.clear()
        self._adjacency.clear()
        self._record(ChangeOp.GRAPH_CLEAR, "*")
        log.info(GRAPH_CLEARED)
        self._emit(GraphEventType.GRAPH_CLEARED)

    def subscribe(self, event_type: GraphEventType | None, handler: GraphEventHandler) -> None:
        """Register a change handler (``None`` receives every event)."""
        self.bus.subscribe(event_type, handler)

    def unsubscribe(self, event_type: GraphEventType | None, handler: GraphEventHandler) -> bool:
        """Remove a change handler."""
        return self.bus.unsubscribe(event_type, handler)

    def compact(self) -> int:
        """Rewrite the change log as one upsert per live node and edge.

        Returns:
            Records written, 0 without a change log, -1 on failure.
        """
        if self.change_log is None:
            return 0
        records: list[ChangeRecord] = [
            make_record(ChangeOp.NODE_UPSERT, node.id, node.model_dump(mode="json"))
            for node in self._nodes.values()
        ]
        records.extend(
            make_record(ChangeOp.EDGE_UPSERT, edge.id, edge.model_dump(mode="json"))
            for edge in self._edges.values()
        )
        return self.change_log.compact(records)

    def restore(self, change_log: ChangeLog | None = None) -> int:
        """Rebuild state by replaying a change log.

        Replay neither re-appends records nor publishes events.

        Args:
            change_log: Log to replay; defaults to the store's own log.

        Returns:
            Number of records applied.
        """
        source = change_log or self.change_log
        if source is None:
            return 0

        applied = 0
        self._restoring = True
        try:
            for record in source.replay():
                if self._apply(record):
                    applied += 1
        finally:
            self._restoring = False

        log.info(
            GRAPH_RESTORED,
            path=str(source.path),
            records=applied,
            nodes=len(self._nodes),
            edges=len(self._edges),
        )
        return applied

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply(self, record: ChangeRecord) -> bool:
        op, key, data = record["op"], record["key"], record.get("data") or {}
        try:
            if op == ChangeOp.NODE_UPSERT.value:
                self._nodes[key] = MemoryNode.model_validate(data)
                self._adjacency.setdefault(key, set())
            elif op == ChangeOp.NODE_DELETE.value:
                if key not in self._nodes:
                    return False
                for edge_id in list(self._adjacency.get(key, ())):
                    self._drop_edge(edge_id)
                del self._nodes[key]
                self._adjacency.pop(key, None)
            elif op == ChangeOp.EDGE_UPSERT.value:
                edge = Relationship.model_validate(data)
                if edge.from_node_id not in self._nodes or edge.to_node_id not in self._nodes:
                    return False
                self._insert_edge(edge)
            elif op == ChangeOp.EDGE_DELETE.value:
                if key not in self._edges:
                    return False
                self._drop_edge(key)
            elif op == ChangeOp.GRAPH_CLEAR.value:
                self._nodes.clear()
                self._edges.clear()
                self._adjacency.clear()
            else:
                return False
        except ValidationError as e:
            log.warning(PERSISTENCE_RECORD_SKIPPED, op=op, key=key, reason=str(e))
            return False
        return True

    def _insert_edge(self, edge: Relationship) -> None:
        self._edges[edge.id] = edge
        self._adjacency.setdefault(edge.from_node_id, set()).add(edge.id)
        self._adjacency.setdefault(edge.to_node_id, set()).add(edge.id)

    def _drop_edge(self, edge_id: str) -> None:
        edge = self._edges.pop(edge_id)
        for endpoint in (edge.from_node_id, edge.to_node_id):
            self._adjacency.get(endpoint, set()).discard(edge_id)
        self._record(ChangeOp.EDGE_DELETE, edge_id)

        log.debug(EDGE_REMOVED, edge_id=edge_id, from_id=edge.from_node_id, to_id=edge.to_node_id)
        self._emit(GraphEventType.EDGE_REMOVED, edge_id=edge_id, payload=self._payload(edge))

    def _record(self, op: ChangeOp, key: str, data: dict[str, Any] | None = None) -> None:
        if self.change_log is not None and not self._restoring:
            self.change_log.append(op, key, data)

    def _emit(
        self,
        event_type: GraphEventType,
        *,
        node_id: str | None = None,
        edge_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        if self._restoring:
            return
        self.bus.publish(
            GraphEvent(
                type=event_type,
                node_id=node_id,
                edge_id=edge_id,
                payload=payload or {},
                timestamp=self._clock(),
            )
        )

    @staticmethod
    def _payload(item: MemoryNode | Relationship) -> dict[str, Any]:
        return item.model_dump()
