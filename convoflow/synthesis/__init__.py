"""Oracle output -> canonical intent records."""

from .fallback import extract_high_precision_parameters, fallback_intent
from .mapping import (
    FIELD_ALIASES,
    ORACLE_FIELD_NAMES,
    PARAMETER_ALIASES,
    classify_workflow_type,
    normalize_action,
)
from .parsing import extract_structured
from .synthesizer import (
    ParameterSynthesizer,
    build_prompt,
    clarification_record,
    parse_oracle_text,
    record_from_structured,
)

__all__ = [
    "FIELD_ALIASES",
    "ORACLE_FIELD_NAMES",
    "PARAMETER_ALIASES",
    "ParameterSynthesizer",
    "build_prompt",
    "clarification_record",
    "classify_workflow_type",
    "extract_high_precision_parameters",
    "extract_structured",
    "fallback_intent",
    "normalize_action",
    "parse_oracle_text",
    "record_from_structured",
]
