"""HTTP chat endpoint used as the intent oracle."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from ..errors import OracleError
from .base import BaseOracle

logger = logging.getLogger(__name__)


class HttpOracle(BaseOracle):
    """POSTs the prompt to ``{api_url}/{api_key}/chat/{provider}``."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        provider: str,
        timeout: float = 30.0,
        retries: int = 2,
        backoff: bool = False,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(timeout=timeout, retries=retries, backoff=backoff)
        self.url = f"{api_url.rstrip('/')}/{api_key}/chat/{provider}"
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, prompt: str) -> str:
        logger.debug(f"Calling oracle at {self.url}")
        response = await self._client.post(
            self.url, json={"prompt": prompt, "newChat": False, "stream": False}
        )
        if response.status_code >= 400:
            raise OracleError(f"HTTP {response.status_code}: {response.reason_phrase}")

        data = response.json()
        if not isinstance(data, dict) or not data.get("success"):
            error = data.get("error") if isinstance(data, dict) else None
            raise OracleError(error or "oracle returned an error")
        return self.extract_text(data.get("response"))

    @staticmethod
    def extract_text(payload: Any) -> str:
        """Pull the assistant's text out of the endpoint's ``response`` field.

        The endpoint returns either plain text or a conversation object whose
        last assistant message holds the answer.
        """
        if isinstance(payload, str):
            return payload
        if isinstance(payload, dict) and isinstance(payload.get("messages"), list):
            for message in reversed(payload["messages"]):
                if (
                    isinstance(message, dict)
                    and message.get("role") == "assistant"
                    and message.get("content")
                ):
                    return str(message["content"])
            logger.warning("No assistant message in oracle response, using raw body")
        if payload is None:
            return ""
        return json.dumps(payload, ensure_ascii=False)

    async def aclose(self) -> None:
        await self._client.aclose()
