"""Session-scoped workflow state machine."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .catalog import WorkflowCatalog
from .config import ConvoflowConfig, load_config
from .constants import GENERIC_CLARIFICATION, PROGRESS_DONE
from .contracts import Action, IntentRecord, StepDefinition, WorkflowDefinition
from .errors import ConfigurationError, SessionNotFoundError
from .events import Emitter, EventType, ResponseEvent
from .execute import StepExecutor
from .oracle import BaseOracle, get_oracle
from .params import is_empty, missing_required, validate_step_parameters
from .sessions import Session, SessionState, SessionStore
from .synthesis import ParameterSynthesizer
from .synthesis.mapping import match_workflow_keywords
from .tools import ToolRegistry, get_tools

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Hi! I can help you download Douyin content and write copy for it, "
    "generate copy on a topic, or publish a video. What would you like to do?"
)
DEFAULT_CHAT_REPLY = "I'm here. Tell me what you would like to get done."

# Output fields used to describe a finished step in the completion summary.
SUMMARY_FIELDS = ("file_name", "title", "publish_url", "url")


def describe_problems(problems: Mapping[str, str]) -> str:
    parts = [
        name if reason == "missing" else f"{name} ({reason})"
        for name, reason in problems.items()
    ]
    return ", ".join(parts)


class SessionStateMachine:
    """Decides, per user turn, whether to start, ask, execute or chat.

    All state lives in the :class:`SessionStore`; the machine only holds a
    session for the duration of one leased turn.
    """

    def __init__(
        self,
        store: SessionStore,
        catalog: WorkflowCatalog,
        synthesizer: ParameterSynthesizer,
        executor: StepExecutor,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.synthesizer = synthesizer
        self.executor = executor

    async def welcome(self, session_id: str) -> ResponseEvent:
        """Create (or refresh) the session and return the greeting event."""
        await self.store.create(session_id)
        return ResponseEvent(
            type=EventType.WELCOME,
            message=WELCOME_MESSAGE,
            payload={
                "session_id": session_id,
                "workflows": [wf.key for wf in self.catalog],
            },
        )

    async def reset(self, session_id: str) -> bool:
        """Abandon the active workflow once any in-flight turn has finished."""
        if not await self.store.reset_workflow(session_id):
            return False
        logger.info(f"Session {session_id} reset by request")
        return True

    async def run_turn(self, session_id: str, text: str) -> List[ResponseEvent]:
        """Process one message and return every event it produced."""
        events: List[ResponseEvent] = []

        async def collect(event: ResponseEvent) -> None:
            events.append(event)

        await self.handle_message(session_id, text, collect)
        return events

    async def handle_message(self, session_id: str, text: str, emit: Emitter) -> None:
        """Process one user message, emitting response events as they occur."""
        try:
            async with self.store.lease(session_id) as session:
                try:
                    await self._process(session, text, emit)
                except Exception:
                    if session.state is SessionState.EXECUTING:
                        session.state = SessionState.COLLECTING
                    raise
        except SessionNotFoundError as e:
            logger.warning(str(e))
            await emit(
                ResponseEvent(
                    type=EventType.ERROR,
                    message=f"Session {session_id} does not exist or has expired.",
                    error_code="SESSION_NOT_FOUND",
                )
            )
        except Exception as e:
            logger.exception(f"Failed to process message for session {session_id}")
            await emit(
                ResponseEvent(
                    type=EventType.ERROR,
                    message=f"Processing failed: {e}",
                    error_code="PROCESSING_ERROR",
                )
            )

    # ------------------------------------------------------------------
    async def _process(self, session: Session, text: str, emit: Emitter) -> None:
        session.add_message("user", text)
        replies: List[str] = []

        async def send(event: ResponseEvent) -> None:
            if event.message and event.type is not EventType.STEP_PROGRESS:
                replies.append(event.message)
            await emit(event)

        record = await self.synthesizer.synthesize(
            text,
            workflow=session.active_workflow,
            step_index=session.current_step_index,
            collected=session.collected_parameters,
        )
        if not session.is_alive:
            logger.info(f"Session {session.id} removed during classification")
            return

        action = record.action
        if session.active_workflow is not None and action is Action.START:
            # No silent switch away from a workflow in progress.
            action = Action.CONTINUE
        elif session.active_workflow is None and action is Action.CONTINUE:
            action = Action.NEED_MORE_INFO
        logger.debug(
            f"Session {session.id} state={session.state.value} "
            f"action={record.action.value} handled as {action.value}"
        )

        if action is Action.START:
            await self._start(session, record, text, send)
        elif action is Action.CONTINUE:
            await self._continue(session, record, send)
        elif action is Action.EXECUTE:
            await self._execute(session, record, text, send)
        elif action is Action.CHAT:
            await self._chat(record, send)
        elif action is Action.CLARIFY:
            await self._clarify(record, send)
        else:
            await self._need_more_info(session, record, text, send)

        if replies:
            session.add_message("assistant", replies[-1])

    def _resolve(self, record: IntentRecord, text: str) -> Optional[WorkflowDefinition]:
        workflow = self.catalog.lookup(record.workflow_type)
        if workflow is None:
            workflow = self.catalog.lookup(match_workflow_keywords(text.lower()))
        return workflow

    async def _start(
        self, session: Session, record: IntentRecord, text: str, emit: Emitter
    ) -> None:
        workflow = self._resolve(record, text)
        if workflow is None:
            await self._clarify(record, emit)
            return
        session.adopt_workflow(workflow)
        session.merge(record.extracted_parameters)
        step = session.current_step
        logger.info(f"Session {session.id} started workflow {workflow.key}")
        await emit(
            ResponseEvent(
                type=EventType.WORKFLOW_STARTED,
                message=record.user_facing_message
                or f"Starting {workflow.name}. First step: {step.name}.",
                step=step.id,
                payload={
                    "workflow": workflow.key,
                    "steps": [s.id for s in workflow.steps],
                    "missing_parameters": missing_required(
                        step, session.collected_parameters
                    ),
                },
            )
        )

    async def _need_more_info(
        self, session: Session, record: IntentRecord, text: str, emit: Emitter
    ) -> None:
        if session.active_workflow is None:
            workflow = self._resolve(record, text)
            if workflow is not None:
                session.adopt_workflow(workflow)
                logger.info(f"Session {session.id} adopted workflow {workflow.key}")
        session.merge(record.extracted_parameters)

        if session.active_workflow is None:
            await emit(
                ResponseEvent(
                    type=EventType.NEED_MORE_INFO,
                    message=record.user_facing_message or GENERIC_CLARIFICATION,
                    payload={"missing_parameters": record.missing_parameters},
                )
            )
            return
        session.state = SessionState.COLLECTING
        await self._ask_for_parameters(session, record, emit)

    async def _continue(self, session: Session, record: IntentRecord, emit: Emitter) -> None:
        session.merge(record.extracted_parameters)
        if session.state is SessionState.AWAITING_CONTINUATION:
            if not validate_step_parameters(
                session.current_step, session.collected_parameters
            ):
                await self._run_step(session, emit)
                return
            session.state = SessionState.COLLECTING
        await self._ask_for_parameters(session, record, emit)

    async def _execute(
        self, session: Session, record: IntentRecord, text: str, emit: Emitter
    ) -> None:
        if session.active_workflow is None:
            workflow = self._resolve(record, text)
            if workflow is None:
                await self._clarify(record, emit)
                return
            session.adopt_workflow(workflow)
        session.merge(record.extracted_parameters)

        if validate_step_parameters(session.current_step, session.collected_parameters):
            session.state = SessionState.COLLECTING
            await self._ask_for_parameters(session, record, emit)
            return
        await self._run_step(session, emit)

    async def _chat(self, record: IntentRecord, emit: Emitter) -> None:
        await emit(
            ResponseEvent(
                type=EventType.CHAT_RESPONSE,
                message=record.user_facing_message or DEFAULT_CHAT_REPLY,
            )
        )

    async def _clarify(self, record: IntentRecord, emit: Emitter) -> None:
        await emit(
            ResponseEvent(
                type=EventType.NEED_CLARIFICATION,
                message=record.user_facing_message or GENERIC_CLARIFICATION,
                payload={"workflows": [wf.key for wf in self.catalog]},
            )
        )

    async def _ask_for_parameters(
        self, session: Session, record: IntentRecord, emit: Emitter
    ) -> None:
        step = session.current_step
        problems = validate_step_parameters(step, session.collected_parameters)
        if problems:
            message = record.user_facing_message or (
                f"To run {step.name} I still need: {describe_problems(problems)}."
            )
        else:
            message = record.user_facing_message or (
                f"I have everything {step.name} needs. Say 'execute' to run it."
            )
        await emit(
            ResponseEvent(
                type=EventType.NEED_MORE_INFO,
                message=message,
                step=step.id,
                payload={
                    "missing_parameters": list(problems),
                    "collected_parameters": sorted(session.collected_parameters),
                },
            )
        )

    # ------------------------------------------------------------------
    async def _run_step(self, session: Session, emit: Emitter) -> None:
        workflow = session.active_workflow
        index = session.current_step_index
        step = workflow.step_at(index)
        session.state = SessionState.EXECUTING
        await emit(
            ResponseEvent(
                type=EventType.STEP_EXECUTING,
                message=f"Running {step.name}...",
                step=step.id,
                progress=0,
            )
        )

        async def on_progress(progress: int, message: str) -> None:
            await emit(
                ResponseEvent(
                    type=EventType.STEP_PROGRESS,
                    message=message,
                    step=step.id,
                    progress=progress,
                )
            )

        result = await self.executor.run(step, session.collected_parameters, on_progress)

        if not session.is_alive:
            logger.info(
                f"Session {session.id} was removed while {step.id} ran; result dropped"
            )
            return

        if not result.success:
            session.state = SessionState.COLLECTING
            if result.is_validation_failure:
                await emit(
                    ResponseEvent(
                        type=EventType.NEED_MORE_INFO,
                        message=f"To run {step.name} I still need: "
                        f"{', '.join(result.invalid_parameters)}.",
                        step=step.id,
                        payload={"missing_parameters": result.invalid_parameters},
                    )
                )
                return
            await emit(
                ResponseEvent(
                    type=EventType.STEP_FAILED,
                    message=f"{step.name} failed: {result.error}",
                    step=step.id,
                    retry_available=result.retryable,
                    payload={"error": result.error},
                )
            )
            return

        self._absorb_output(session, workflow, step, result.output)

        if workflow.is_last(index):
            final = self._final_result(session, workflow)
            summary = self._summary(workflow, final)
            session.reset_workflow()
            logger.info(f"Session {session.id} completed workflow {workflow.key}")
            await emit(
                ResponseEvent(
                    type=EventType.WORKFLOW_COMPLETED,
                    message=summary,
                    step=step.id,
                    progress=PROGRESS_DONE,
                    payload={"result": final, "summary": summary},
                )
            )
            return

        next_step = session.advance()
        await emit(
            ResponseEvent(
                type=EventType.STEP_COMPLETED,
                message=(
                    f"{step.name} is done. Continue with the next step, "
                    f"{next_step.name}? Reply 'continue' when you are ready."
                ),
                step=step.id,
                progress=PROGRESS_DONE,
                payload={
                    "result": result.output,
                    "next_step": next_step.id,
                    "missing_parameters": missing_required(
                        next_step, session.collected_parameters
                    ),
                },
            )
        )

    def _absorb_output(
        self,
        session: Session,
        workflow: WorkflowDefinition,
        step: StepDefinition,
        output: Dict[str, Any],
    ) -> None:
        """Store a step's output and feed declared fields to later steps."""
        flowed: Dict[str, Any] = {step.id: output}
        for source, target in workflow.data_flow.items():
            source_step, _, field = source.partition(".")
            if source_step != step.id or field not in output:
                continue
            if is_empty(session.collected_parameters.get(target)):
                flowed[target] = output[field]
        session.merge(flowed)

    @staticmethod
    def _final_result(session: Session, workflow: WorkflowDefinition) -> Dict[str, Any]:
        return {
            "workflow": workflow.key,
            "name": workflow.name,
            "steps_completed": len(workflow.steps),
            "results": {
                step.id: session.collected_parameters.get(step.id, {})
                for step in workflow.steps
            },
            "completed_at": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def _summary(workflow: WorkflowDefinition, final: Mapping[str, Any]) -> str:
        lines = [f"Completed {workflow.name} ({len(workflow.steps)} steps):"]
        for step in workflow.steps:
            output = final["results"].get(step.id) or {}
            headline = next(
                (str(output[f]) for f in SUMMARY_FIELDS if not is_empty(output.get(f))),
                "done",
            )
            lines.append(f"- {step.name}: {headline}")
        return "\n".join(lines)

    async def aclose(self) -> None:
        await self.store.stop_sweeper()
        await self.executor.tools.aclose()
        await self.synthesizer.oracle.aclose()


def create_orchestrator(
    config: Optional[ConvoflowConfig] = None,
    oracle: Optional[BaseOracle] = None,
    tools: Optional[ToolRegistry] = None,
    catalog: Optional[WorkflowCatalog] = None,
    strict: Optional[bool] = None,
) -> SessionStateMachine:
    """Wire up a state machine from configuration.

    Raises:
        ConfigurationError: If a workflow step names a tool with no binding
            and strict tool checking is enabled.
    """
    config = config or load_config()
    catalog = catalog or WorkflowCatalog()
    tools = tools if tools is not None else get_tools(config)

    unbound = tools.unbound(catalog.tool_keys())
    if unbound:
        if config.strict_tools if strict is None else strict:
            raise ConfigurationError(f"No tool bound for: {', '.join(unbound)}")
        logger.warning(f"Steps using {unbound} will fail until a tool is bound")

    synthesizer = ParameterSynthesizer(
        oracle or get_oracle(config=config), task_types=[wf.key for wf in catalog]
    )
    return SessionStateMachine(
        store=SessionStore.from_config(config.sessions),
        catalog=catalog,
        synthesizer=synthesizer,
        executor=StepExecutor(tools),
    )
