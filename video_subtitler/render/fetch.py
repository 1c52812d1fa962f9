"""Download source videos by URL for rendering."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from video_subtitler.errors import SubtitlerError

logger = logging.getLogger(__name__)


class FetchError(SubtitlerError):
    """Raised when the source video cannot be downloaded."""


class HttpVideoFetcher:
    """Fetch video bytes over HTTP(S), or from disk for ``file://`` URLs.

    Use as an async context manager so the connection pool is closed.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HttpVideoFetcher:
        self._client = httpx.AsyncClient(
            follow_redirects=True,
            timeout=httpx.Timeout(300.0, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme == "file":
            return await self._read_file(Path(unquote(parsed.path)))

        if self._client is None:
            raise RuntimeError("HttpVideoFetcher must be used as an async context manager")
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise FetchError("Failed to fetch {}: {}".format(url, exc))
        if resp.status_code != 200:
            raise FetchError("Failed to fetch {}: HTTP {}".format(url, resp.status_code))

        logger.info("Fetched %s (%d bytes)", url, len(resp.content))
        return resp.content

    @staticmethod
    async def _read_file(path: Path) -> bytes:
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise FetchError("Failed to read {}: {}".format(path, exc))
