"""Registry of the workflows a session can run."""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Iterator, List, Optional, Set

from ..contracts import WorkflowDefinition
from .workflows import BUILTIN_WORKFLOWS

logger = logging.getLogger(__name__)


def normalize_key(value: str) -> str:
    """Fold case, whitespace and dashes so synonyms compare equal."""
    return re.sub(r"[\s\-]+", "_", value.strip().lower())


class WorkflowCatalog:
    """Read-only lookup of workflow definitions by canonical key or synonym.

    Every workflow is reachable through its ``key``, ``id``, ``name`` and any
    declared synonym. Unknown keys resolve to ``None``; callers ask the user
    for clarification instead of failing.
    """

    def __init__(self, workflows: Iterable[WorkflowDefinition] = BUILTIN_WORKFLOWS):
        self._workflows: Dict[str, WorkflowDefinition] = {}
        self._aliases: Dict[str, str] = {}
        for workflow in workflows:
            if workflow.key in self._workflows:
                raise ValueError(f"Duplicate workflow key: {workflow.key}")
            self._workflows[workflow.key] = workflow
            for alias in (workflow.key, workflow.id, workflow.name, *workflow.synonyms):
                normalized = normalize_key(alias)
                owner = self._aliases.setdefault(normalized, workflow.key)
                if owner != workflow.key:
                    raise ValueError(
                        f"Alias {alias!r} maps to both {owner} and {workflow.key}"
                    )
        logger.debug(f"Workflow catalog loaded: {list(self._workflows)}")

    def lookup(self, workflow_type: Optional[str]) -> Optional[WorkflowDefinition]:
        """Resolve ``workflow_type`` to a definition, or ``None`` if unknown."""
        if not workflow_type or not isinstance(workflow_type, str):
            return None
        key = self._aliases.get(normalize_key(workflow_type))
        return self._workflows.get(key) if key else None

    def list_workflows(self) -> List[WorkflowDefinition]:
        return list(self._workflows.values())

    def tool_keys(self) -> Set[str]:
        """All tool keys referenced by any step."""
        return {step.tool for wf in self._workflows.values() for step in wf.steps}

    def __contains__(self, workflow_type: object) -> bool:
        return isinstance(workflow_type, str) and self.lookup(workflow_type) is not None

    def __iter__(self) -> Iterator[WorkflowDefinition]:
        return iter(self._workflows.values())

    def __len__(self) -> int:
        return len(self._workflows)


__all__ = ["WorkflowCatalog", "BUILTIN_WORKFLOWS", "normalize_key"]
