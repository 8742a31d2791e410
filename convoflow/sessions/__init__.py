"""In-memory session management."""

from .models import MessageRecord, Session, SessionState, SessionStats, SessionStatus
from .store import SessionStore

__all__ = [
    "MessageRecord",
    "Session",
    "SessionState",
    "SessionStats",
    "SessionStatus",
    "SessionStore",
]
