"""Parameter merging and validation helpers."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from .contracts import StepDefinition


def is_empty(value: Any) -> bool:
    """``None``, blank strings and empty containers carry no information."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def merge_parameters(
    current: Mapping[str, Any], new: Mapping[str, Any]
) -> Dict[str, Any]:
    """Merge ``new`` into ``current`` without regressing a known value.

    Non-empty values in ``new`` win; empty ones are ignored so a key that was
    set in an earlier turn is never replaced by ``None`` or ``""``.
    """
    merged = dict(current)
    for key, value in new.items():
        if is_empty(value):
            continue
        merged[key] = value
    return merged


def missing_required(step: StepDefinition, params: Mapping[str, Any]) -> List[str]:
    """Required parameter names of ``step`` that are absent or empty."""
    return [name for name in step.required_params if is_empty(params.get(name))]


def validate_step_parameters(
    step: StepDefinition, params: Mapping[str, Any]
) -> Dict[str, str]:
    """Return an ordered mapping of offending parameter name -> reason."""
    problems: Dict[str, str] = {}
    for name in missing_required(step, params):
        problems[name] = "missing"
    for name, rule in step.validation.items():
        if name in problems:
            continue
        value = params.get(name)
        if is_empty(value):
            continue
        reason = rule.check(value)
        if reason:
            problems[name] = reason
    return problems


def step_arguments(step: StepDefinition, params: Mapping[str, Any]) -> Dict[str, Any]:
    """Slice of ``params`` the step's tool is allowed to see."""
    return {
        name: params[name]
        for name in step.accepted_params
        if name in params and not is_empty(params[name])
    }
