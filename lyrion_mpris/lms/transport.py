"""
HTTP transport for the LMS JSON-RPC endpoint.

The transport only moves bytes: it POSTs a JSON body and returns the raw
status and body. Interpreting the response is the client's job.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp
from aiohttp import ClientTimeout

from .types import NetworkError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10.0


class HttpTransport(ABC):
    """Async "send JSON, get bytes + status" primitive."""

    @abstractmethod
    async def post_json(
        self,
        url: str,
        body: bytes,
        headers: Optional[dict[str, str]] = None,
    ) -> tuple[int, bytes]:
        """
        POST a JSON body.

        Args:
            url: Target URL
            body: Encoded JSON body
            headers: Extra request headers

        Returns:
            Tuple of (HTTP status, response body)

        Raises:
            NetworkError: On transport failure
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Abort outstanding requests and release resources. Idempotent."""
        ...


class AiohttpTransport(HttpTransport):
    """HttpTransport backed by a lazily created aiohttp session."""

    def __init__(self, timeout: float = REQUEST_TIMEOUT_SECONDS):
        """
        Initialize transport.

        Args:
            timeout: Total request timeout in seconds
        """
        self._timeout = ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._closed = False

    async def __aenter__(self) -> "AiohttpTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise NetworkError("Transport closed")
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def post_json(
        self,
        url: str,
        body: bytes,
        headers: Optional[dict[str, str]] = None,
    ) -> tuple[int, bytes]:
        session = self._get_session()
        request_headers = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)

        try:
            async with session.post(url, data=body, headers=request_headers) as resp:
                data = await resp.read()
                return resp.status, data
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Request timed out after {self._timeout.total}s") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Request failed: {e}") from e

    async def close(self) -> None:
        self._closed = True
        if self._session:
            await self._session.close()
            self._session = None
            logger.debug("HTTP session closed")
