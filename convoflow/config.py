from __future__ import annotations

import os
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_IDLE_TIMEOUT,
    DEFAULT_MAX_SESSIONS,
    DEFAULT_ORACLE_RETRIES,
    DEFAULT_ORACLE_TIMEOUT,
    DEFAULT_ORACLE_URL,
    DEFAULT_SWEEP_INTERVAL,
)


class OracleConfig(BaseModel):
    """Configuration for the language-understanding service."""

    backend: Literal["http", "agent"] = "http"
    api_url: str = DEFAULT_ORACLE_URL
    api_key: str = "test1"
    provider: str = "claude"
    model: Optional[str] = None
    timeout: float = DEFAULT_ORACLE_TIMEOUT
    retries: int = Field(default=DEFAULT_ORACLE_RETRIES, ge=0)
    backoff: bool = False


class SessionConfig(BaseModel):
    """Session store limits."""

    max_sessions: int = Field(default=DEFAULT_MAX_SESSIONS, ge=1)
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL
    history_limit: int = Field(default=DEFAULT_HISTORY_LIMIT, ge=1)


class ToolConfig(BaseModel):
    """Endpoint settings for one remote tool.

    ``api_key`` and ``provider`` only matter for chat-backed tools; when unset
    they are taken from the oracle settings.
    """

    endpoint: str
    timeout: float = 30.0
    api_key: Optional[str] = None
    provider: Optional[str] = None


def _default_tools() -> Dict[str, ToolConfig]:
    return {
        "douyin-downloader": ToolConfig(
            endpoint="http://localhost:3211/api/download/douyin", timeout=30.0
        ),
        "content-generator": ToolConfig(
            endpoint="http://localhost:3212/api/llm", timeout=20.0
        ),
        "video-publisher": ToolConfig(
            endpoint="http://127.0.0.1:5001/api/upload/simple", timeout=180.0
        ),
    }


class ConvoflowConfig(BaseModel):
    """Top-level configuration model."""

    oracle: OracleConfig = OracleConfig()
    sessions: SessionConfig = SessionConfig()
    tools: Dict[str, ToolConfig] = Field(default_factory=_default_tools)
    strict_tools: bool = True

    @field_validator("tools", mode="before")
    @classmethod
    def _merge_default_tools(cls, v: dict) -> dict:
        # Entries from the config file override the defaults key by key; a null
        # entry removes the binding.
        merged: dict = dict(_default_tools())
        merged.update(v or {})
        return {key: conf for key, conf in merged.items() if conf is not None}


def load_config(path: Optional[str] = None) -> ConvoflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to CONVOFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("CONVOFLOW_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = ConvoflowConfig(**data)
    else:
        config = ConvoflowConfig()

    if env_url := os.getenv("LLM_API_URL"):
        config.oracle.api_url = env_url
    if env_key := os.getenv("LLM_API_KEY"):
        config.oracle.api_key = env_key
    if env_provider := os.getenv("LLM_PROVIDER"):
        config.oracle.provider = env_provider
    if env_backend := os.getenv("CONVOFLOW_ORACLE_BACKEND"):
        config.oracle.backend = env_backend.lower()
    return config
