"""Step execution engine for convoflow workflows."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Mapping, Optional

from .constants import DEFAULT_TOOL_TIMEOUT, PROGRESS_DONE, PROGRESS_STARTED
from .contracts import StepDefinition, StepResult
from .errors import ToolError
from .params import step_arguments, validate_step_parameters
from .tools import ProgressCallback, ToolRegistry

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Clamp tool progress to [0, 100] and never report it going backwards.

    Errors raised by the underlying callback are logged and swallowed so a
    broken client connection does not abort the running step.
    """

    def __init__(self, step_id: str, callback: Optional[ProgressCallback]) -> None:
        self._step_id = step_id
        self._callback = callback
        self.last = -1

    async def __call__(self, progress: int, message: str = "") -> None:
        value = max(0, min(100, int(progress)))
        if value <= self.last:
            return
        self.last = value
        if self._callback is None:
            return
        try:
            await self._callback(value, message)
        except Exception as e:
            logger.warning(f"Progress update for {self._step_id} not delivered: {e}")


class StepExecutor:
    """Runs a single workflow step against its bound tool.

    Each invocation is bounded by the tool's own ``timeout`` or, when the
    tool sets none, by ``timeout``.
    """

    def __init__(self, tools: ToolRegistry, timeout: float = DEFAULT_TOOL_TIMEOUT) -> None:
        self._tools = tools
        self.timeout = timeout

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    async def run(
        self,
        step: StepDefinition,
        collected: Mapping[str, Any],
        on_progress: Optional[ProgressCallback] = None,
    ) -> StepResult:
        """Validate, invoke the step's tool once and report the outcome.

        Never raises for tool problems; every failure is described by the
        returned :class:`StepResult`.
        """
        started = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - started) * 1000)

        problems = validate_step_parameters(step, collected)
        if problems:
            details = ", ".join(f"{name} ({reason})" for name, reason in problems.items())
            logger.info(f"Step {step.id} not run, invalid parameters: {details}")
            return StepResult(
                step_id=step.id,
                success=False,
                error=f"Missing or invalid parameters: {details}",
                invalid_parameters=list(problems),
                retryable=True,
                duration_ms=elapsed(),
            )

        tool = self._tools.get(step.tool)
        if tool is None:
            logger.error(
                f"Configuration error: step {step.id} uses unbound tool {step.tool}"
            )
            return StepResult(
                step_id=step.id,
                success=False,
                error=f"Tool {step.tool} is not available",
                retryable=False,
                duration_ms=elapsed(),
            )

        reporter = ProgressReporter(step.id, on_progress)
        await reporter(PROGRESS_STARTED, f"Starting {step.name}...")
        arguments = step_arguments(step, collected)
        logger.debug(f"Invoking {step.tool} for {step.id} with {sorted(arguments)}")

        timeout = getattr(tool, "timeout", None) or self.timeout
        try:
            output = await asyncio.wait_for(tool.invoke(arguments, reporter), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Step {step.id} timed out after {timeout}s")
            return StepResult(
                step_id=step.id,
                success=False,
                error=f"{step.tool} timed out after {timeout}s",
                retryable=True,
                duration_ms=elapsed(),
            )
        except ToolError as e:
            logger.warning(f"Step {step.id} failed: {e}")
            return StepResult(
                step_id=step.id,
                success=False,
                error=str(e),
                retryable=e.retryable,
                duration_ms=elapsed(),
            )
        except Exception as e:
            logger.exception(f"Unexpected error from tool {step.tool}")
            return StepResult(
                step_id=step.id,
                success=False,
                error=str(e) or e.__class__.__name__,
                retryable=True,
                duration_ms=elapsed(),
            )

        if not isinstance(output, dict):
            missing = list(step.expected_outputs) or ["<mapping>"]
        else:
            missing = [name for name in step.expected_outputs if name not in output]
        if missing:
            logger.warning(f"Step {step.id} response lacks {missing}")
            return StepResult(
                step_id=step.id,
                success=False,
                error=f"Malformed response from {step.tool}: missing {', '.join(missing)}",
                retryable=True,
                duration_ms=elapsed(),
            )

        await reporter(PROGRESS_DONE, f"{step.name} finished")
        logger.info(f"Step {step.id} completed in {elapsed()}ms")
        return StepResult(
            step_id=step.id, success=True, output=output, duration_ms=elapsed()
        )
