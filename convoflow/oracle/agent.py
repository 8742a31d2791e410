"""Oracle backed by a pydantic-ai agent."""

from __future__ import annotations

from typing import Optional

from pydantic_ai import Agent

from .base import BaseOracle

ORACLE_INSTRUCTIONS = (
    "You analyse requests for a content-workflow assistant. Answer with a single "
    "JSON object using exactly the field names the user prompt documents."
)


class AgentOracle(BaseOracle):
    """Runs each prompt through a pydantic-ai ``Agent`` producing plain text."""

    def __init__(
        self,
        model: Optional[str] = None,
        agent: Optional[Agent] = None,
        timeout: float = 30.0,
        retries: int = 2,
        backoff: bool = False,
    ) -> None:
        super().__init__(timeout=timeout, retries=retries, backoff=backoff)
        if agent is None:
            if not model:
                raise ValueError("AgentOracle requires a model name or an agent")
            agent = Agent(model, instructions=ORACLE_INSTRUCTIONS)
        self.agent = agent

    async def _request(self, prompt: str) -> str:
        result = await self.agent.run(prompt)
        return str(result.output)
