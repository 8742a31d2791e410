"""Oracle factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import ConvoflowConfig, load_config
from .base import BaseOracle
from .http import HttpOracle


def get_oracle(
    backend: Optional[str] = None, config: Optional[ConvoflowConfig] = None
) -> BaseOracle:
    """Factory function to get the configured oracle."""

    config = config or load_config()
    oracle_conf = config.oracle
    backend = (
        backend or os.getenv("CONVOFLOW_ORACLE_BACKEND") or oracle_conf.backend
    ).lower()

    if backend == "http":
        return HttpOracle(
            api_url=oracle_conf.api_url,
            api_key=oracle_conf.api_key,
            provider=oracle_conf.provider,
            timeout=oracle_conf.timeout,
            retries=oracle_conf.retries,
            backoff=oracle_conf.backoff,
        )
    elif backend == "agent":
        from .agent import AgentOracle

        return AgentOracle(
            model=oracle_conf.model,
            timeout=oracle_conf.timeout,
            retries=oracle_conf.retries,
            backoff=oracle_conf.backoff,
        )
    else:
        raise ValueError(f"Unsupported oracle backend: {backend}")


__all__ = ["BaseOracle", "HttpOracle", "get_oracle"]
