"""Data models for in-memory conversation state."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..constants import DEFAULT_HISTORY_LIMIT
from ..contracts import StepDefinition, WorkflowDefinition
from ..params import merge_parameters


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    EXECUTING = "executing"
    AWAITING_CONTINUATION = "awaiting_continuation"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    EVICTED = "evicted"


class MessageRecord(BaseModel):
    """One entry of a session's conversation history."""

    role: str
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class Session(BaseModel):
    """Mutable state of one conversation. Owned by the SessionStore."""

    id: str
    created_at: datetime = Field(default_factory=utcnow)
    last_activity: datetime = Field(default_factory=utcnow)
    active_workflow: Optional[WorkflowDefinition] = None
    current_step_index: int = 0
    collected_parameters: Dict[str, Any] = Field(default_factory=dict)
    message_history: List[MessageRecord] = Field(default_factory=list)
    history_limit: int = DEFAULT_HISTORY_LIMIT
    state: SessionState = SessionState.IDLE
    status: SessionStatus = SessionStatus.ACTIVE

    @property
    def current_step(self) -> Optional[StepDefinition]:
        if self.active_workflow is None:
            return None
        return self.active_workflow.step_at(self.current_step_index)

    @property
    def is_alive(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    def adopt_workflow(self, workflow: WorkflowDefinition) -> None:
        self.active_workflow = workflow
        self.current_step_index = 0
        self.state = SessionState.COLLECTING

    def merge(self, params: Dict[str, Any]) -> None:
        self.collected_parameters = merge_parameters(self.collected_parameters, params)

    def advance(self) -> StepDefinition:
        """Move to the next step and wait for the user's go-ahead."""
        if self.active_workflow is None or self.active_workflow.is_last(
            self.current_step_index
        ):
            raise ValueError("No further step to advance to")
        self.current_step_index += 1
        self.state = SessionState.AWAITING_CONTINUATION
        return self.active_workflow.step_at(self.current_step_index)

    def reset_workflow(self) -> None:
        self.active_workflow = None
        self.current_step_index = 0
        self.collected_parameters = {}
        self.state = SessionState.IDLE

    def add_message(self, role: str, content: str) -> None:
        """Append to history, dropping the oldest entries beyond the limit."""
        self.message_history.append(MessageRecord(role=role, content=content))
        overflow = len(self.message_history) - self.history_limit
        if overflow > 0:
            del self.message_history[:overflow]


class SessionStats(BaseModel):
    """Snapshot of store occupancy."""

    total_sessions: int = 0
    active_sessions: int = 0
    busy_sessions: int = 0
    total_messages: int = 0
    average_messages: float = 0.0
    oldest_session_age: float = 0.0
    newest_session_age: float = 0.0
