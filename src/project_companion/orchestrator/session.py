"""Session management for the orchestrator.

Sessions are kept in memory and, when a change log is attached, every
lifecycle change appends a ``session_upsert`` record so sessions survive a
restart. ``completed`` is terminal: a completed session cannot be resumed.
"""

import asyncio
import random
import string
from collections.abc import Callable
from datetime import datetime

from project_companion.memory.models import utc_now
from project_companion.memory.persistence import ChangeLog, ChangeOp, ChangeRecord, make_record
from project_companion.orchestrator.types import ConversationSession, SessionStatus
from project_companion.telemetry import get_logger
from project_companion.telemetry.events import (
    PERSISTENCE_RECORD_SKIPPED,
    SESSION_ENDED,
    SESSION_PAUSED,
    SESSION_RESUME_REJECTED,
    SESSION_RESUMED,
    SESSION_STARTED,
    SESSIONS_RESTORED,
)

log = get_logger(__name__)

TITLE_LENGTH = 50
DEFAULT_TITLE = "New Conversation"
_BASE36 = string.digits + string.ascii_lowercase


def generate_session_id(now: datetime | None = None) -> str:
    """``session_<epoch_ms>_<9 random base36 chars>``."""
    now = now or utc_now()
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"session_{int(now.timestamp() * 1000)}_{suffix}"


def make_title(message: str | None) -> str:
    """First 50 characters of the message, with an ellipsis if it was longer."""
    title = (message or "")[:TITLE_LENGTH].strip()
    if not title:
        return DEFAULT_TITLE
    if len(message) > TITLE_LENGTH:
        title += "…"
    return title


class SessionManager:
    """Owns sessions, the current-session pointer and per-session locks.

    Args:
        change_log: Optional log receiving one record per session change.
        clock: Source of the current time, injectable for tests.
    """

    def __init__(
        self,
        change_log: ChangeLog | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.change_log = change_log
        self._clock = clock
        self._sessions: dict[str, ConversationSession] = {}
        self._current: ConversationSession | None = None
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def start_session(self, initial_message: str | None = None) -> ConversationSession:
        """Create an active session and make it current.

        Args:
            initial_message: First utterance, used to derive the title.

        Returns:
            The new session.
        """
        now = self._clock()
        session = ConversationSession(
            id=generate_session_id(now),
            title=make_title(initial_message),
            start_time=now,
            last_activity=now,
        )
        self._sessions[session.id] = session
        self._current = session
        self.save(session)

        log.info(SESSION_STARTED, session_id=session.id, title=session.title)
        return session

    def resume_session(self, session_id: str) -> bool:
        """Reactivate a paused or active session and make it current.

        Returns:
            False if the session is unknown or completed, True otherwise.
        """
        session = self._sessions.get(session_id)
        if session is None:
            log.warning(SESSION_RESUME_REJECTED, session_id=session_id, reason="unknown")
            return False
        if session.status == SessionStatus.COMPLETED:
            log.warning(SESSION_RESUME_REJECTED, session_id=session_id, reason="completed")
            return False

        session.status = SessionStatus.ACTIVE
        self._current = session
        self.touch(session)

        log.info(SESSION_RESUMED, session_id=session_id)
        return True

    def pause_current_session(self) -> ConversationSession | None:
        """Pause the current session (it stays current).

        Returns:
            The paused session, or None when there is no current session.
        """
        session = self._current
        if session is None:
            return None
        session.status = SessionStatus.PAUSED
        self.save(session)
        log.info(SESSION_PAUSED, session_id=session.id)
        return session

    def end_current_session(self) -> ConversationSession | None:
        """Complete the current session and clear the current pointer.

        Returns:
            The completed session, or None when there is no current session.
        """
        session = self._current
        if session is None:
            return None
        session.status = SessionStatus.COMPLETED
        self._current = None
        self.save(session)
        log.info(
            SESSION_ENDED,
            session_id=session.id,
            turns=len(session.intent_history),
        )
        return session

    def get_session(self, session_id: str) -> ConversationSession | None:
        """Return the session, or None if unknown."""
        return self._sessions.get(session_id)

    def get_current_session(self) -> ConversationSession | None:
        """Return the current session, if any."""
        return self._current

    def get_active_sessions(self) -> list[ConversationSession]:
        """Active sessions, most recently used first."""
        return sorted(
            (s for s in self._sessions.values() if s.status == SessionStatus.ACTIVE),
            key=lambda s: s.last_activity,
            reverse=True,
        )

    def list_sessions(self) -> list[ConversationSession]:
        """Every known session, most recently used first."""
        return sorted(self._sessions.values(), key=lambda s: s.last_activity, reverse=True)

    def touch(self, session: ConversationSession) -> None:
        """Bump ``last_activity`` without ever moving it backwards."""
        now = self._clock()
        if now > session.last_activity:
            session.last_activity = now
        self.save(session)

    def lock_for(self, session_id: str) -> asyncio.Lock:
        """Lock serializing turns on one session.

        Locks live as long as the manager, so turns still queued on a session
        that ends keep waiting on the same lock.
        """
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    def save(self, session: ConversationSession) -> None:
        """Append the session's current state to the change log."""
        if self.change_log is not None:
            self.change_log.append(ChangeOp.SESSION_UPSERT, session.id, session.to_dict())

    def restore(self, change_log: ChangeLog | None = None) -> int:
        """Rebuild sessions from a change log.

        The latest record per session wins. The current pointer is not
        restored; callers resume explicitly.

        Returns:
            Number of sessions known after the replay.
        """
        source = change_log or self.change_log
        if source is None:
            return 0

        for record in source.replay():
            if record["op"] != ChangeOp.SESSION_UPSERT.value:
                continue
            try:
                session = ConversationSession.from_dict(record["data"])
            except (KeyError, ValueError, TypeError) as e:
                log.warning(PERSISTENCE_RECORD_SKIPPED, key=record["key"], reason=str(e))
                continue
            self._sessions[session.id] = session

        log.info(SESSIONS_RESTORED, path=str(source.path), sessions=len(self._sessions))
        return len(self._sessions)

    def compact(self) -> int:
        """Rewrite the change log as one record per session.

        Returns:
            Records written, 0 without a change log, -1 on failure.
        """
        if self.change_log is None:
            return 0
        records: list[ChangeRecord] = [
            make_record(ChangeOp.SESSION_UPSERT, s.id, s.to_dict()) for s in self._sessions.values()
        ]
        return self.change_log.compact(records)
