"""Bounded in-memory session store."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import OrderedDict
from datetime import datetime
from typing import AsyncIterator, Callable, Dict, List, Optional

from ..config import SessionConfig
from ..constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_IDLE_TIMEOUT,
    DEFAULT_MAX_SESSIONS,
    DEFAULT_SWEEP_INTERVAL,
)
from ..errors import SessionNotFoundError
from .models import Session, SessionStats, SessionStatus, utcnow

logger = logging.getLogger(__name__)

# Sessions touched within this window count as active in stats().
RECENT_ACTIVITY_WINDOW = 5 * 60


class SessionStore:
    """Store conversation state in local memory.

    Sessions are kept in least-recently-active order. Creating more than
    ``max_sessions`` evicts the stalest idle sessions, and :meth:`sweep`
    evicts sessions inactive for longer than ``idle_timeout`` seconds. A
    session leased for a turn is never evicted; concurrent turns for the same
    session wait on its lease. Data is lost when the process exits.
    """

    def __init__(
        self,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self.idle_timeout = idle_timeout
        self.sweep_interval = sweep_interval
        self.history_limit = history_limit
        self._clock = clock or utcnow
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()
        self._turn_locks: Dict[str, asyncio.Lock] = {}
        self._in_flight: Dict[str, int] = {}
        self._lock = asyncio.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, config: SessionConfig) -> "SessionStore":
        return cls(
            max_sessions=config.max_sessions,
            idle_timeout=config.idle_timeout,
            sweep_interval=config.sweep_interval,
            history_limit=config.history_limit,
        )

    # ------------------------------------------------------------------
    # Internal bookkeeping; callers hold ``self._lock``.
    def _touch(self, session: Session) -> None:
        session.last_activity = self._clock()
        if session.id in self._sessions:
            self._sessions.move_to_end(session.id)

    def _busy(self, session_id: str) -> bool:
        return self._in_flight.get(session_id, 0) > 0

    def _evict(self, session_id: str, reason: str) -> None:
        session = self._sessions.pop(session_id)
        self._turn_locks.pop(session_id, None)
        session.status = SessionStatus.EVICTED
        logger.info(f"Evicted session {session_id} ({reason})")

    def _evict_over_capacity(self, protect: str) -> None:
        overflow = len(self._sessions) - self.max_sessions
        for session_id in list(self._sessions):
            if overflow <= 0:
                return
            if session_id == protect or self._busy(session_id):
                continue
            self._evict(session_id, "capacity")
            overflow -= 1
        if overflow > 0:
            logger.warning(
                f"Session store over capacity by {overflow}: remaining sessions are busy"
            )

    # ------------------------------------------------------------------
    async def create(self, session_id: str) -> Session:
        """Create a session, or return the live one already using ``session_id``."""
        async with self._lock:
            existing = self._sessions.get(session_id)
            if existing is not None:
                self._touch(existing)
                return existing
            now = self._clock()
            session = Session(
                id=session_id,
                created_at=now,
                last_activity=now,
                history_limit=self.history_limit,
            )
            self._sessions[session_id] = session
            self._turn_locks[session_id] = asyncio.Lock()
            self._evict_over_capacity(protect=session_id)
        logger.info(f"Created session {session_id}")
        return session

    async def get(self, session_id: str) -> Optional[Session]:
        """Return the session and refresh its last activity."""
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._touch(session)
            return session

    async def delete(self, session_id: str) -> bool:
        async with self._lock:
            if session_id not in self._sessions:
                return False
            self._evict(session_id, "deleted")
        return True

    async def reset_workflow(self, session_id: str) -> bool:
        """Drop the session's workflow progress while keeping the session.

        Waits for any turn in flight, so a late step result never lands in a
        session that was already reset.
        """
        try:
            async with self.lease(session_id) as session:
                session.reset_workflow()
        except SessionNotFoundError:
            return False
        logger.info(f"Reset workflow state of session {session_id}")
        return True

    @contextlib.asynccontextmanager
    async def lease(self, session_id: str) -> AsyncIterator[Session]:
        """Exclusive access to a session for the duration of one turn.

        Raises:
            SessionNotFoundError: If the session does not exist or is deleted
                while waiting for an earlier turn to finish.
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            turn_lock = self._turn_locks[session_id]
            self._in_flight[session_id] = self._in_flight.get(session_id, 0) + 1
            self._touch(session)

        try:
            async with turn_lock:
                if not session.is_alive:
                    raise SessionNotFoundError(session_id)
                yield session
        finally:
            async with self._lock:
                remaining = self._in_flight.get(session_id, 0) - 1
                if remaining > 0:
                    self._in_flight[session_id] = remaining
                else:
                    self._in_flight.pop(session_id, None)
                if session.is_alive:
                    self._touch(session)

    async def sweep(self) -> int:
        """Evict sessions idle beyond ``idle_timeout``. Returns the count."""
        now = self._clock()
        async with self._lock:
            expired = [
                session_id
                for session_id, session in self._sessions.items()
                if not self._busy(session_id)
                and (now - session.last_activity).total_seconds() > self.idle_timeout
            ]
            for session_id in expired:
                self._evict(session_id, "idle")
        if expired:
            logger.info(f"Swept {len(expired)} idle sessions")
        return len(expired)

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Session sweep failed")

    def start_sweeper(self, interval: Optional[float] = None) -> asyncio.Task:
        """Run :meth:`sweep` every ``interval`` seconds on the running loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(
                self._sweep_loop(interval or self.sweep_interval)
            )
            logger.debug("Session sweeper started")
        return self._sweeper

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None

    async def stats(self) -> SessionStats:
        now = self._clock()
        async with self._lock:
            sessions = list(self._sessions.values())
            busy = sum(1 for sid in self._sessions if self._busy(sid))
        if not sessions:
            return SessionStats()
        total_messages = sum(len(s.message_history) for s in sessions)
        return SessionStats(
            total_sessions=len(sessions),
            active_sessions=sum(
                1
                for s in sessions
                if (now - s.last_activity).total_seconds() < RECENT_ACTIVITY_WINDOW
            ),
            busy_sessions=busy,
            total_messages=total_messages,
            average_messages=total_messages / len(sessions),
            oldest_session_age=max((now - s.created_at).total_seconds() for s in sessions),
            newest_session_age=min((now - s.created_at).total_seconds() for s in sessions),
        )

    def session_ids(self) -> List[str]:
        """Ids ordered from least to most recently active."""
        return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
