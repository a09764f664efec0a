"""HTTP transport for tracker announces.

The announce loop only needs "GET this URL and give me the body"; the
:class:`Transport` protocol captures that so tests and embedders can swap
in their own implementation.
"""

from __future__ import annotations

import asyncio
import logging
import urllib.parse
from typing import Protocol, runtime_checkable

import aiohttp

from ccannounce.exceptions import TrackerError
from ccannounce.utils.version import get_user_agent


@runtime_checkable
class Transport(Protocol):
    """Performs an HTTP GET and returns the response body."""

    async def get(self, url: str) -> bytes:
        """Fetch ``url``; raise :class:`TrackerError` on failure."""
        ...

    async def close(self) -> None:
        """Release transport resources."""
        ...


class HttpTransport:
    """aiohttp-backed tracker transport."""

    def __init__(self, timeout: float = 30.0, user_agent: str | None = None):
        """Initialize the transport.

        Args:
            timeout: Total request timeout in seconds
            user_agent: User-Agent header, defaults to ``ccannounce/<version>``

        """
        self.timeout = timeout
        self.user_agent = user_agent or get_user_agent()
        self.session: aiohttp.ClientSession | None = None
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Create the HTTP client session."""
        if self.session is not None and not self.session.closed:
            return
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={"User-Agent": self.user_agent},
        )

    async def close(self) -> None:
        """Close the HTTP client session."""
        if self.session is None:
            return
        if not self.session.closed:
            await self.session.close()
        self.session = None

    async def __aenter__(self) -> HttpTransport:
        """Open the session on context entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close the session on context exit."""
        await self.close()

    async def get(self, url: str) -> bytes:
        """Make an HTTP GET request to the tracker.

        Args:
            url: Complete announce URL with query parameters

        Returns:
            Raw response body

        Raises:
            TrackerError: If the request fails or the status is not 200

        """
        if self.session is None:
            await self.start()
        assert self.session is not None

        host = urllib.parse.urlsplit(url).hostname or ""

        try:
            async with self.session.get(url, allow_redirects=True) as response:
                if response.status != 200:
                    msg = f"HTTP {response.status}: {response.reason}"
                    raise TrackerError(msg, {"host": host})
                return await response.read()
        except asyncio.TimeoutError as e:
            msg = f"HTTP tracker request timeout ({host})"
            raise TrackerError(msg) from e
        except aiohttp.ClientConnectorError as e:
            msg = f"HTTP tracker connection failed ({host}): {e}"
            raise TrackerError(msg) from e
        except aiohttp.ClientError as e:
            msg = f"HTTP tracker client error ({host}, {type(e).__name__}): {e}"
            raise TrackerError(msg) from e
