"""Change notifications for the graph store.

Subscribers register per event type (or ``None`` for every event). Events
pass through a bounded pending queue; when it overflows the oldest pending
event is dropped so a slow or absent consumer never blocks a mutation.
"""

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from project_companion.memory.models import utc_now
from project_companion.telemetry import get_logger
from project_companion.telemetry.events import EVENT_HANDLER_FAILED, EVENT_QUEUE_OVERFLOW

log = get_logger(__name__)


class GraphEventType(str, Enum):
    """Kinds of graph mutation."""

    NODE_ADDED = "node_added"
    NODE_UPDATED = "node_updated"
    NODE_REMOVED = "node_removed"
    EDGE_ADDED = "edge_added"
    EDGE_REMOVED = "edge_removed"
    GRAPH_CLEARED = "graph_cleared"


@dataclass(frozen=True)
class GraphEvent:
    """One graph mutation, as delivered to subscribers.

    Attributes:
        type: Kind of mutation.
        node_id: Affected node, if any.
        edge_id: Affected edge, if any.
        payload: Mutation details (the node or edge data, applied updates).
        timestamp: When the mutation happened.
    """

    type: GraphEventType
    node_id: str | None = None
    edge_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)


GraphEventHandler = Callable[[GraphEvent], None]


class GraphEventBus:
    """Typed observer registry with a bounded notification queue.

    Args:
        max_pending: Maximum undelivered events kept; older ones are dropped.
        deliver_inline: Flush after every publish. When False the owner
            calls :meth:`flush` (the orchestrator does so once per turn).
    """

    def __init__(self, max_pending: int = 1000, *, deliver_inline: bool = True) -> None:
        if max_pending < 1:
            raise ValueError("max_pending must be at least 1")
        self.max_pending = max_pending
        self.deliver_inline = deliver_inline
        self.dropped = 0
        self._pending: deque[GraphEvent] = deque()
        self._handlers: dict[GraphEventType | None, list[GraphEventHandler]] = {}
        self._flushing = False

    def subscribe(self, event_type: GraphEventType | None, handler: GraphEventHandler) -> None:
        """Register a handler for one event type, or for all when ``None``."""
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: GraphEventType | None, handler: GraphEventHandler) -> bool:
        """Remove a handler.

        Returns:
            True if the handler was registered, False otherwise.
        """
        handlers = self._handlers.get(event_type)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    @property
    def pending(self) -> int:
        """Number of events waiting for delivery."""
        return len(self._pending)

    def publish(self, event: GraphEvent) -> None:
        """Queue an event and, in inline mode, deliver it right away."""
        if len(self._pending) >= self.max_pending:
            dropped = self._pending.popleft()
            self.dropped += 1
            log.warning(
                EVENT_QUEUE_OVERFLOW,
                dropped_type=dropped.type.value,
                dropped_total=self.dropped,
                max_pending=self.max_pending,
            )
        self._pending.append(event)

        if self.deliver_inline:
            self.flush()

    def flush(self) -> int:
        """Deliver all pending events in publish order.

        Re-entrant publishes (a handler mutating the graph) are queued and
        delivered by the outer flush.

        Returns:
            Number of events delivered.
        """
        if self._flushing:
            return 0

        delivered = 0
        self._flushing = True
        try:
            while self._pending:
                event = self._pending.popleft()
                self._deliver(event)
                delivered += 1
        finally:
            self._flushing = False
        return delivered

    def _deliver(self, event: GraphEvent) -> None:
        handlers = [*self._handlers.get(event.type, []), *self._handlers.get(None, [])]
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                log.error(
                    EVENT_HANDLER_FAILED,
                    event_type=event.type.value,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                    exc_info=True,
                )
