"""Exception taxonomy for convoflow."""

from __future__ import annotations


class ConvoflowError(Exception):
    """Base class for all convoflow errors."""


class ConfigurationError(ConvoflowError):
    """Raised when the runtime configuration is inconsistent."""


class OracleError(ConvoflowError):
    """The language-understanding service could not produce a response."""


class ToolError(ConvoflowError):
    """A remote tool invocation failed."""

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class SessionNotFoundError(ConvoflowError):
    """A turn arrived for a session that does not exist (or was evicted)."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id
