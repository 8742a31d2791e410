"""Base interface for the language-understanding service."""

from __future__ import annotations

import abc
import asyncio
import logging

from ..errors import OracleError
from ..utils import retry

logger = logging.getLogger(__name__)


class BaseOracle(metaclass=abc.ABCMeta):
    """Unreliable text-in/text-out classifier with a bounded retry budget."""

    def __init__(self, timeout: float = 30.0, retries: int = 2, backoff: bool = False):
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff

    @abc.abstractmethod
    async def _request(self, prompt: str) -> str:
        """Issue one request and return the oracle's raw text."""
        raise NotImplementedError

    async def complete(self, prompt: str) -> str:
        """Return the oracle's reply, retrying up to ``retries`` extra times.

        Raises:
            OracleError: When every attempt failed or timed out.
        """
        attempts = self.retries + 1
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                text = await asyncio.wait_for(self._request(prompt), self.timeout)
            except asyncio.TimeoutError as e:
                last_error = e
                logger.warning(
                    f"Oracle attempt {attempt}/{attempts} timed out after {self.timeout}s"
                )
            except Exception as e:
                last_error = e
                logger.warning(f"Oracle attempt {attempt}/{attempts} failed: {e}")
            else:
                if text and text.strip():
                    return text
                last_error = OracleError("empty response")
                logger.warning(f"Oracle attempt {attempt}/{attempts} returned nothing")

            if attempt < attempts:
                await retry.schedule_retry(attempt, enabled=self.backoff)

        raise OracleError(f"Oracle failed after {attempts} attempts: {last_error}")

    async def aclose(self) -> None:
        pass
