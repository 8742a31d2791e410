"""Tool registry and factory."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Type

from ..config import ConvoflowConfig, load_config
from .base import BaseTool, ProgressCallback
from .content import ContentGeneratorTool
from .http import DouyinDownloadTool, HttpTool

logger = logging.getLogger(__name__)

# Tool keys with a dedicated implementation; everything else is a plain HttpTool.
TOOL_CLASSES: Dict[str, Type[HttpTool]] = {
    "douyin-downloader": DouyinDownloadTool,
    "content-generator": ContentGeneratorTool,
}


class ToolRegistry:
    """Explicit map of tool key -> bound capability, filled at startup."""

    def __init__(self, tools: Optional[Dict[str, BaseTool]] = None) -> None:
        self._tools: Dict[str, BaseTool] = dict(tools or {})

    def register(self, key: str, tool: BaseTool) -> None:
        if key in self._tools:
            logger.warning(f"Replacing tool binding for {key}")
        self._tools[key] = tool

    def get(self, key: str) -> Optional[BaseTool]:
        return self._tools.get(key)

    def keys(self) -> List[str]:
        return sorted(self._tools)

    def unbound(self, keys: Iterable[str]) -> List[str]:
        """Keys from ``keys`` with no registered tool."""
        return sorted(k for k in set(keys) if k not in self._tools)

    async def aclose(self) -> None:
        for tool in self._tools.values():
            await tool.aclose()

    def __contains__(self, key: object) -> bool:
        return key in self._tools


def get_tools(config: Optional[ConvoflowConfig] = None) -> ToolRegistry:
    """Build a registry with one HTTP tool per configured endpoint."""

    config = config or load_config()
    registry = ToolRegistry()
    for key, tool_conf in config.tools.items():
        tool_cls = TOOL_CLASSES.get(key, HttpTool)
        registry.register(key, tool_cls.from_config(key, tool_conf, config))
    return registry


__all__ = [
    "BaseTool",
    "ContentGeneratorTool",
    "DouyinDownloadTool",
    "HttpTool",
    "ProgressCallback",
    "ToolRegistry",
    "get_tools",
]
