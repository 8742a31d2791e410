"""HTTP-backed tools."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from ..config import ConvoflowConfig, ToolConfig
from ..errors import ToolError
from .base import BaseTool, ProgressCallback

logger = logging.getLogger(__name__)


class HttpTool(BaseTool):
    """Tool reached with a single JSON POST per invocation.

    The endpoint answers with ``{"success": true, "result": {...}}`` or
    ``{"success": false, "error": "..."}``.
    """

    def __init__(
        self,
        key: str,
        endpoint: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.key = key
        self.endpoint = endpoint
        self.url = endpoint
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_config(
        cls, key: str, tool_conf: ToolConfig, config: ConvoflowConfig
    ) -> "HttpTool":
        return cls(key, tool_conf.endpoint, timeout=tool_conf.timeout)

    async def invoke(
        self, params: Dict[str, Any], on_progress: ProgressCallback
    ) -> Dict[str, Any]:
        await on_progress(30, f"Calling {self.key}...")
        response = await self._post(self.build_payload(params))

        if response.status_code >= 400:
            raise ToolError(f"HTTP {response.status_code}: {response.text[:200]}")
        try:
            data = response.json()
        except ValueError as e:
            raise ToolError(f"{self.key} returned a malformed response") from e
        if not isinstance(data, dict):
            raise ToolError(f"{self.key} returned a malformed response")
        if data.get("success") is False:
            raise ToolError(data.get("error") or f"{self.key} reported a failure")

        await on_progress(90, f"{self.key} responded, processing result...")
        output = self.parse_output(data, params)
        logger.debug(f"Tool {self.key} output keys: {sorted(output)}")
        return output

    def build_payload(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Request body for one invocation; the parameters themselves by default."""
        return params

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.post(
                    self.url, json=payload, timeout=self.timeout
                )
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(self.url, json=payload)
        except httpx.TimeoutException as e:
            raise ToolError(f"{self.key} timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise ToolError(f"{self.key} request failed: {e}") from e

    def parse_output(self, data: Dict[str, Any], params: Dict[str, Any]) -> Dict[str, Any]:
        """Extract output fields from a successful response body."""
        result = data.get("result")
        if isinstance(result, dict):
            return dict(result)
        return {k: v for k, v in data.items() if k != "success"}

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


class DouyinDownloadTool(HttpTool):
    """Douyin downloader; flattens its two response shapes into one mapping."""

    def parse_output(self, data: Dict[str, Any], params: Dict[str, Any]) -> Dict[str, Any]:
        content_type = data.get("type")
        result = data.get("result") or {}
        if not isinstance(result, dict):
            raise ToolError("douyin-downloader returned a malformed result")

        if content_type == "video":
            output = {
                "type": "video",
                "file_name": result.get("fileName"),
                "file_path": result.get("filePath"),
                "file_size": result.get("fileSize"),
                "duration": result.get("duration"),
                "resolution": result.get("resolution"),
            }
        elif content_type == "audio_image_mix":
            output = {
                "type": "audio_image_mix",
                "folder_name": result.get("folderName"),
                "folder_path": result.get("folderPath"),
                "total_files": result.get("totalFiles"),
                "total_size": result.get("totalSize"),
                "audio": result.get("audio"),
                "image_count": result.get("imageCount"),
                "images": result.get("images"),
            }
        else:
            raise ToolError(f"Unsupported content type: {content_type}", retryable=False)

        output["original_url"] = params.get("douyin_url")
        output["downloaded_at"] = datetime.now(timezone.utc).isoformat()
        return output
