"""Core records exchanged between convoflow components."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Action(str, Enum):
    """Canonical next-step decisions an intent record can carry."""

    START = "start"
    CONTINUE = "continue"
    EXECUTE = "execute"
    NEED_MORE_INFO = "need_more_info"
    CHAT = "chat"
    CLARIFY = "clarify"


class ValidationRule(BaseModel):
    """Format rule applied to a single step parameter."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["url", "string", "path"] = "string"
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    message: str = "invalid value"

    def check(self, value: Any) -> Optional[str]:
        """Return the rule's message if ``value`` violates it, else ``None``."""
        if not isinstance(value, str):
            return self.message
        text = value.strip()
        if self.min_length is not None and len(text) < self.min_length:
            return self.message
        if self.max_length is not None and len(text) > self.max_length:
            return self.message
        if self.kind == "url" and not re.match(r"^https?://\S+$", text):
            return self.message
        if self.pattern and not re.search(self.pattern, text):
            return self.message
        return None


class StepDefinition(BaseModel):
    """One unit of work bound to exactly one remote tool."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    tool: str
    required_params: Tuple[str, ...] = ()
    optional_params: Tuple[str, ...] = ()
    validation: Dict[str, ValidationRule] = Field(default_factory=dict)
    expected_outputs: Tuple[str, ...] = ()

    @property
    def accepted_params(self) -> Tuple[str, ...]:
        """Every parameter name the step's tool receives."""
        return self.required_params + self.optional_params


class WorkflowDefinition(BaseModel):
    """Named, ordered sequence of steps. Never mutated after load."""

    model_config = ConfigDict(frozen=True)

    key: str
    id: str
    name: str
    description: str = ""
    category: str = "general"
    steps: Tuple[StepDefinition, ...]
    synonyms: Tuple[str, ...] = ()
    # "step_id.output_field" -> parameter name of a later step
    data_flow: Dict[str, str] = Field(default_factory=dict)

    def step_at(self, index: int) -> StepDefinition:
        return self.steps[index]

    def is_last(self, index: int) -> bool:
        return index >= len(self.steps) - 1


class IntentRecord(BaseModel):
    """Canonical per-turn interpretation of the user's message."""

    action: Action = Action.NEED_MORE_INFO
    workflow_type: Optional[str] = None
    extracted_parameters: Dict[str, Any] = Field(default_factory=dict)
    missing_parameters: List[str] = Field(default_factory=list)
    user_facing_message: str = ""
    extra: Dict[str, Any] = Field(default_factory=dict)


class StepResult(BaseModel):
    """Outcome of a single step invocation."""

    step_id: str
    success: bool
    output: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    invalid_parameters: List[str] = Field(default_factory=list)
    retryable: bool = False
    duration_ms: int = 0

    @property
    def is_validation_failure(self) -> bool:
        return not self.success and bool(self.invalid_parameters)
