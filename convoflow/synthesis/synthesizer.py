"""Turn oracle output into canonical intent records."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from ..constants import GENERIC_CLARIFICATION
from ..contracts import Action, IntentRecord, WorkflowDefinition
from ..errors import OracleError
from ..oracle.base import BaseOracle
from ..params import is_empty
from .fallback import extract_high_precision_parameters, fallback_intent
from .mapping import (
    FIELD_ALIASES,
    ORACLE_FIELD_NAMES,
    classify_workflow_type,
    normalize_action,
    normalize_missing,
    normalize_parameters,
)
from .parsing import extract_structured

logger = logging.getLogger(__name__)

ACTION_CHOICES = (
    "start a new task",
    "continue the current task",
    "execute (information is sufficient)",
    "ask for more information",
    "chat",
)


def build_prompt(
    user_text: str,
    workflow: Optional[WorkflowDefinition] = None,
    step_index: int = 0,
    collected: Optional[Mapping[str, Any]] = None,
    task_types: Iterable[str] = (),
) -> str:
    """Render the single prompt sent to the oracle for one turn."""
    lines = [
        "Analyse this user request and return a structured analysis.",
        "",
        f'User said: "{user_text}"',
        "",
    ]
    if workflow is not None:
        step = workflow.step_at(step_index)
        lines += [
            "Conversation context:",
            f"- Active workflow: {workflow.name}",
            f"- Step {step_index + 1}/{len(workflow.steps)}: {step.name}",
            f"- Parameters required by this step: {', '.join(step.required_params)}",
        ]
    else:
        lines.append("Conversation context: no task is in progress yet.")
    lines += [
        "",
        "Information collected so far:",
        json.dumps(dict(collected or {}), ensure_ascii=False, indent=2, default=str),
        "",
        f"Possible task types: {', '.join(task_types) or 'any'}, or casual chat.",
        f"Choose the next action from: {'; '.join(ACTION_CHOICES)}.",
        "Extract every relevant detail the user gave (account, platform, file path,",
        "title, description, Douyin link, topic, ...).",
        "",
        "Answer with one JSON object in this shape:",
        json.dumps(
            {
                ORACLE_FIELD_NAMES["workflow_type"]: "the task type",
                ORACLE_FIELD_NAMES["action"]: "the next action",
                ORACLE_FIELD_NAMES["extracted_parameters"]: {"name": "value"},
                ORACLE_FIELD_NAMES["missing_parameters"]: ["names still needed"],
                ORACLE_FIELD_NAMES["user_facing_message"]: "what to tell the user",
                "reasoning": "short explanation",
            },
            indent=2,
        ),
        "",
        "Keep every previously collected value and merge new information into it.",
    ]
    return "\n".join(lines)


def record_from_structured(data: Mapping[str, Any]) -> IntentRecord:
    """Translate an oracle object into an :class:`IntentRecord`.

    Keys without a canonical mapping are kept in ``extra``.
    """
    fields: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}
    for key, value in data.items():
        canonical = FIELD_ALIASES.get(key) or FIELD_ALIASES.get(str(key).strip().lower())
        if canonical is None or canonical in fields:
            extra[key] = value
            continue
        fields[canonical] = value

    message = fields.get("user_facing_message")
    return IntentRecord(
        action=normalize_action(fields.get("action")),
        workflow_type=classify_workflow_type(fields.get("workflow_type")),
        extracted_parameters=normalize_parameters(fields.get("extracted_parameters")),
        missing_parameters=normalize_missing(fields.get("missing_parameters")),
        user_facing_message=message.strip() if isinstance(message, str) else "",
        extra=extra,
    )


def parse_oracle_text(text: str) -> IntentRecord:
    """Structured parse when possible, keyword fallback otherwise."""
    data = extract_structured(text)
    if data is None:
        logger.warning("Oracle response had no structured object, using fallback scan")
        logger.debug(f"Unstructured oracle text: {text!r}")
        return fallback_intent(text)
    return record_from_structured(data)


def clarification_record(message: str = GENERIC_CLARIFICATION) -> IntentRecord:
    return IntentRecord(action=Action.CLARIFY, user_facing_message=message)


def supplement_from_user_text(record: IntentRecord, user_text: str) -> IntentRecord:
    """Add links and file paths the user typed but the oracle left out."""
    found = extract_high_precision_parameters(user_text)
    additions = {
        name: value
        for name, value in found.items()
        if is_empty(record.extracted_parameters.get(name))
    }
    if not additions:
        return record
    logger.debug(f"Adding parameters found in user text: {sorted(additions)}")
    return record.model_copy(
        update={"extracted_parameters": {**record.extracted_parameters, **additions}}
    )


class ParameterSynthesizer:
    """Asks the oracle about one user message and returns an intent record."""

    def __init__(self, oracle: BaseOracle, task_types: Iterable[str] = ()) -> None:
        self.oracle = oracle
        self.task_types = tuple(task_types)

    async def synthesize(
        self,
        user_text: str,
        workflow: Optional[WorkflowDefinition] = None,
        step_index: int = 0,
        collected: Optional[Mapping[str, Any]] = None,
    ) -> IntentRecord:
        prompt = build_prompt(
            user_text, workflow, step_index, collected, task_types=self.task_types
        )
        logger.debug(f"Oracle prompt:\n{prompt}")
        try:
            raw = await self.oracle.complete(prompt)
        except OracleError as e:
            logger.error(f"Intent classification failed: {e}")
            return clarification_record()

        record = parse_oracle_text(raw)
        record = supplement_from_user_text(record, user_text)
        logger.info(
            f"Intent: action={record.action.value} workflow={record.workflow_type} "
            f"params={sorted(record.extracted_parameters)}"
        )
        return record
