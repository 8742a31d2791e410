"""convoflow: conversational workflow orchestration on top of an LLM oracle."""

from .catalog import WorkflowCatalog
from .config import ConvoflowConfig, load_config
from .contracts import Action, IntentRecord, StepDefinition, StepResult, WorkflowDefinition
from .events import EventType, ResponseEvent
from .execute import StepExecutor
from .oracle import get_oracle
from .orchestrator import SessionStateMachine, create_orchestrator
from .sessions import Session, SessionState, SessionStore
from .synthesis import ParameterSynthesizer
from .tools import ToolRegistry, get_tools

__version__ = "0.1.0"
__all__ = [
    "Action",
    "ConvoflowConfig",
    "EventType",
    "IntentRecord",
    "ParameterSynthesizer",
    "ResponseEvent",
    "Session",
    "SessionState",
    "SessionStateMachine",
    "SessionStore",
    "StepDefinition",
    "StepExecutor",
    "StepResult",
    "ToolRegistry",
    "WorkflowCatalog",
    "WorkflowDefinition",
    "create_orchestrator",
    "get_oracle",
    "get_tools",
    "load_config",
]
