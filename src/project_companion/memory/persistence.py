"""Append-only change log for graph and session state.

Every mutation is written as one JSON line keyed by the id it affects, so a
save costs one small append instead of a full snapshot. Replaying the log
rebuilds state; a torn trailing line left by a crash is skipped and the
records before it still apply. ``compact`` rewrites the log from current
state through a temp file and an atomic rename.

Record shape::

    {"op": "node_upsert", "key": "<id>", "data": {...}, "ts": "<iso8601>"}
"""

import os
from collections.abc import Iterable, Iterator
from enum import Enum
from pathlib import Path
from typing import Any, TypedDict

import orjson

from project_companion.memory.models import utc_now
from project_companion.telemetry import get_logger
from project_companion.telemetry.events import (
    PERSISTENCE_COMPACTED,
    PERSISTENCE_RECORD_SKIPPED,
    PERSISTENCE_WRITE_FAILED,
)

log = get_logger(__name__)


class ChangeOp(str, Enum):
    """Kinds of change record."""

    NODE_UPSERT = "node_upsert"
    NODE_DELETE = "node_delete"
    EDGE_UPSERT = "edge_upsert"
    EDGE_DELETE = "edge_delete"
    GRAPH_CLEAR = "graph_clear"
    SESSION_UPSERT = "session_upsert"


class ChangeRecord(TypedDict):
    """One line of the change log."""

    op: str
    key: str
    data: dict[str, Any]
    ts: str


def make_record(op: ChangeOp, key: str, data: dict[str, Any] | None = None) -> ChangeRecord:
    """Build a change record stamped with the current time."""
    return ChangeRecord(op=op.value, key=key, data=data or {}, ts=utc_now().isoformat())


class ChangeLog:
    """JSON Lines change log stored at ``path``.

    Write failures are logged and reported through the return value of
    :meth:`append`; they are never raised to the mutating caller.

    Args:
        path: Log file location (parent directories are created on demand).
        fsync: Force each append to stable storage.
    """

    def __init__(self, path: Path | str, *, fsync: bool = False) -> None:
        self.path = Path(path)
        self.fsync = fsync

    def append(self, op: ChangeOp, key: str, data: dict[str, Any] | None = None) -> bool:
        """Append one record.

        Returns:
            True if the record was written, False if the write failed.
        """
        record = make_record(op, key, data)
        try:
            line = orjson.dumps(record) + b"\n"
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("ab") as f:
                f.write(line)
                if self.fsync:
                    f.flush()
                    os.fsync(f.fileno())
            return True
        except (OSError, TypeError) as e:
            log.error(
                PERSISTENCE_WRITE_FAILED,
                path=str(self.path),
                op=op.value,
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    def replay(self) -> Iterator[ChangeRecord]:
        """Yield records in write order, skipping unreadable lines."""
        if not self.path.exists():
            return

        with self.path.open("rb") as f:
            for line_number, raw in enumerate(f, start=1):
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    record = orjson.loads(raw)
                except orjson.JSONDecodeError as e:
                    log.warning(
                        PERSISTENCE_RECORD_SKIPPED,
                        path=str(self.path),
                        line=line_number,
                        reason=str(e),
                    )
                    continue
                if not isinstance(record, dict) or "op" not in record or "key" not in record:
                    log.warning(
                        PERSISTENCE_RECORD_SKIPPED,
                        path=str(self.path),
                        line=line_number,
                        reason="missing op/key",
                    )
                    continue
                record.setdefault("data", {})
                yield record  # type: ignore[misc]

    def compact(self, records: Iterable[ChangeRecord]) -> int:
        """Replace the log with ``records`` atomically.

        Returns:
            Number of records written, or -1 if compaction failed (the old
            log is left untouched in that case).
        """
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        count = 0
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("wb") as f:
                for record in records:
                    f.write(orjson.dumps(record) + b"\n")
                    count += 1
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except (OSError, TypeError) as e:
            log.error(
                PERSISTENCE_WRITE_FAILED,
                path=str(self.path),
                op="compact",
                error=str(e),
                error_type=type(e).__name__,
            )
            tmp_path.unlink(missing_ok=True)
            return -1

        log.info(PERSISTENCE_COMPACTED, path=str(self.path), records=count)
        return count
