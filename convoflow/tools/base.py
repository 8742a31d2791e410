"""Base interface for remote tools bound to workflow steps."""

from __future__ import annotations

import abc
from typing import Any, Awaitable, Callable, Dict, Optional

ProgressCallback = Callable[[int, str], Awaitable[None]]


class BaseTool(metaclass=abc.ABCMeta):
    """Abstract remote capability invoked by a single workflow step."""

    key: str = ""
    # Seconds one invocation may take; None leaves it to the executor default.
    timeout: Optional[float] = None

    @abc.abstractmethod
    async def invoke(
        self, params: Dict[str, Any], on_progress: ProgressCallback
    ) -> Dict[str, Any]:
        """Run the tool once and return its output fields.

        Raises:
            ToolError: If the remote call failed or returned an unusable body.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources (no-op by default)."""
        pass
