"""Structured response events emitted while a turn is processed."""

from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, Field


class EventType(str, Enum):
    WELCOME = "welcome"
    WORKFLOW_STARTED = "workflow_started"
    NEED_MORE_INFO = "need_more_info"
    NEED_CLARIFICATION = "need_clarification"
    STEP_EXECUTING = "step_executing"
    STEP_PROGRESS = "step_progress"
    STEP_COMPLETED = "step_completed"
    STEP_FAILED = "step_failed"
    WORKFLOW_COMPLETED = "workflow_completed"
    CHAT_RESPONSE = "chat_response"
    ERROR = "error"


class ResponseEvent(BaseModel):
    """Flat record sent back to the client for one turn."""

    type: EventType
    message: str = ""
    step: Optional[str] = None
    progress: Optional[int] = None
    retry_available: Optional[bool] = None
    error_code: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize without unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


Emitter = Callable[[ResponseEvent], Awaitable[None]]
