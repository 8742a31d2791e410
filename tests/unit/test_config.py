"""Tests for configuration loading."""

import pytest

from convoflow.config import ConvoflowConfig, OracleConfig, ToolConfig, load_config
from convoflow.oracle import get_oracle
from convoflow.oracle.http import HttpOracle
from convoflow.tools import ContentGeneratorTool, DouyinDownloadTool, HttpTool, get_tools

ENV_VARS = (
    "CONVOFLOW_CONFIG",
    "LLM_API_URL",
    "LLM_API_KEY",
    "LLM_PROVIDER",
    "CONVOFLOW_ORACLE_BACKEND",
)


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults_without_config_file():
    config = load_config()
    assert config.oracle.backend == "http"
    assert config.oracle.retries == 2
    assert config.sessions.max_sessions == 100
    assert config.sessions.idle_timeout == 1800
    assert config.sessions.history_limit == 50
    assert set(config.tools) == {"douyin-downloader", "content-generator", "video-publisher"}
    assert config.strict_tools is True


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "convoflow.yaml"
    config_path.write_text(
        """
oracle:
  provider: openai
  timeout: 5
sessions:
  max_sessions: 3
tools:
  video-publisher:
    endpoint: http://publisher.local/upload
    timeout: 60
"""
    )
    monkeypatch.setenv("CONVOFLOW_CONFIG", str(config_path))

    config = load_config()
    assert config.oracle.provider == "openai"
    assert config.oracle.timeout == 5
    assert config.sessions.max_sessions == 3
    assert config.tools["video-publisher"].endpoint == "http://publisher.local/upload"
    assert config.tools["video-publisher"].timeout == 60
    # untouched tools keep their defaults
    assert config.tools["douyin-downloader"].endpoint.endswith("/api/download/douyin")


def test_null_tool_entry_removes_binding(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("tools:\n  video-publisher: null\n")

    config = load_config(str(config_path))
    assert "video-publisher" not in config.tools
    assert "content-generator" in config.tools


def test_environment_overrides_oracle_settings(monkeypatch):
    monkeypatch.setenv("LLM_API_URL", "http://llm.local/api")
    monkeypatch.setenv("LLM_API_KEY", "secret")
    monkeypatch.setenv("LLM_PROVIDER", "gemini")
    monkeypatch.setenv("CONVOFLOW_ORACLE_BACKEND", "AGENT")

    config = load_config()
    assert config.oracle.api_url == "http://llm.local/api"
    assert config.oracle.api_key == "secret"
    assert config.oracle.provider == "gemini"
    assert config.oracle.backend == "agent"


def test_get_oracle_uses_config():
    config = ConvoflowConfig(
        oracle={"api_url": "http://llm.local/api/", "api_key": "k", "provider": "claude"}
    )
    oracle = get_oracle(config=config)
    assert isinstance(oracle, HttpOracle)
    assert oracle.url == "http://llm.local/api/k/chat/claude"
    assert oracle.retries == 2


def test_get_oracle_rejects_unknown_backend():
    with pytest.raises(ValueError):
        get_oracle("carrier-pigeon", config=ConvoflowConfig())


def test_agent_backend_requires_model():
    with pytest.raises(ValueError):
        get_oracle("agent", config=ConvoflowConfig())


def test_get_tools_binds_every_configured_tool():
    registry = get_tools(ConvoflowConfig())
    assert registry.keys() == ["content-generator", "douyin-downloader", "video-publisher"]
    assert isinstance(registry.get("douyin-downloader"), DouyinDownloadTool)
    assert type(registry.get("video-publisher")) is HttpTool
    assert registry.get("video-publisher").timeout == 180

    generator = registry.get("content-generator")
    assert isinstance(generator, ContentGeneratorTool)
    assert generator.url == "http://localhost:3212/api/llm/test1/chat/claude"
    assert generator.timeout == 20


def test_content_generator_falls_back_to_oracle_credentials():
    config = ConvoflowConfig(
        oracle=OracleConfig(api_key="k2"),
        tools={"content-generator": ToolConfig(endpoint="http://llm.local", provider="gpt")},
    )
    generator = get_tools(config).get("content-generator")
    assert generator.url == "http://llm.local/k2/chat/gpt"
