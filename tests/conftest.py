"""Shared fakes for convoflow tests."""

import json
from typing import Any, Dict, List, Optional

import pytest

from convoflow.catalog import WorkflowCatalog
from convoflow.execute import StepExecutor
from convoflow.oracle.base import BaseOracle
from convoflow.orchestrator import SessionStateMachine
from convoflow.sessions import SessionStore
from convoflow.synthesis import ParameterSynthesizer
from convoflow.tools import BaseTool, ToolRegistry


class ScriptedOracle(BaseOracle):
    """Replays queued replies; dicts are sent as JSON, exceptions are raised."""

    def __init__(self, *replies: Any) -> None:
        super().__init__(timeout=1.0, retries=0)
        self.replies: List[Any] = list(replies)
        self.prompts: List[str] = []

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    async def _request(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise RuntimeError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply, ensure_ascii=False)
        return reply


class RecordingTool(BaseTool):
    """Records every invocation; queued results are returned or raised in order."""

    def __init__(self, key: str, output: Optional[Dict[str, Any]] = None) -> None:
        self.key = key
        self.output = dict(output or {})
        self.results: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    async def invoke(self, params, on_progress):
        self.calls.append(dict(params))
        await on_progress(50, f"{self.key} working")
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, Exception):
                raise result
            return dict(result)
        return dict(self.output)


DOWNLOAD_OUTPUT = {
    "type": "video",
    "file_name": "clip.mp4",
    "file_path": "/downloads/clip.mp4",
}
GENERATE_OUTPUT = {"title": "Weekend in Dali", "description": "Sun, lakes and old towns."}
PUBLISH_OUTPUT = {"publish_url": "https://example.com/v/1"}


@pytest.fixture
def oracle() -> ScriptedOracle:
    return ScriptedOracle()


@pytest.fixture
def tools() -> Dict[str, RecordingTool]:
    return {
        "douyin-downloader": RecordingTool("douyin-downloader", DOWNLOAD_OUTPUT),
        "content-generator": RecordingTool("content-generator", GENERATE_OUTPUT),
        "video-publisher": RecordingTool("video-publisher", PUBLISH_OUTPUT),
    }


@pytest.fixture
def registry(tools) -> ToolRegistry:
    return ToolRegistry(tools)


@pytest.fixture
def catalog() -> WorkflowCatalog:
    return WorkflowCatalog()


@pytest.fixture
def machine(oracle, registry, catalog) -> SessionStateMachine:
    return SessionStateMachine(
        store=SessionStore(max_sessions=10),
        catalog=catalog,
        synthesizer=ParameterSynthesizer(oracle, task_types=[wf.key for wf in catalog]),
        executor=StepExecutor(registry),
    )
