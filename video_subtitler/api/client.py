"""Async HTTP client for the AssemblyAI pre-recorded transcription API.

WHY: The orchestrator needs two provider operations — submit an audio URL
and check a job once. This module hides the HTTP details behind a client
that satisfies the TranscriptionProvider interface, so the orchestrator
and tests never touch httpx directly.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. AssemblyAIClient is an
async context manager — enter it to get an authenticated client, exit to
close the connection pool. submit() posts the audio URL, poll() fetches
the transcript once. There is no polling loop here: retry cadence belongs
to whoever calls the orchestrator.

RULES:
- Always use the async context manager (async with AssemblyAIClient() as client:)
- Authentication is the raw API key in the "authorization" header
- Non-2xx responses raise ProviderError with the status code and body
- Network failures and malformed JSON are wrapped in ProviderError
"""

from __future__ import annotations

import logging

import httpx

from video_subtitler.api.models import ProviderResult
from video_subtitler.config import ASSEMBLYAI_BASE_URL, load_api_key
from video_subtitler.errors import SubtitlerError

logger = logging.getLogger(__name__)


class ProviderError(SubtitlerError):
    """Raised when the transcription provider fails or returns garbage.

    RULES:
    - status_code is None for network and parse failures
    """

    def __init__(self, status_code: int | None, message: str) -> None:
        self.status_code = status_code
        self.message = message
        if status_code is None:
            super().__init__("Provider error: {}".format(message))
        else:
            super().__init__("Provider error {}: {}".format(status_code, message))


class AssemblyAIClient:
    """Async client for AssemblyAI transcripts.

    RULES:
    - api_key defaults to load_api_key() from .env
    - base_url defaults to ASSEMBLYAI_BASE_URL from config
    - transport is injectable for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        language_detection: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_api_key()
        self._base_url = (base_url or ASSEMBLYAI_BASE_URL).rstrip("/")
        self._language_detection = language_detection
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> AssemblyAIClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"authorization": self._api_key},
            timeout=httpx.Timeout(60.0, connect=10.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "AssemblyAIClient must be used as an async context manager: "
                "async with AssemblyAIClient() as client: ..."
            )
        return self._client

    async def submit(self, audio_url: str) -> str:
        """Create a transcript for a publicly reachable audio/video URL.

        Returns:
            The provider's transcript ID.
        """
        body = {
            "audio_url": audio_url,
            "language_detection": self._language_detection,
        }
        data = await self._request("POST", "/transcript", json=body)
        try:
            transcript_id = data["id"]
        except (KeyError, TypeError):
            raise ProviderError(None, "Submit response has no transcript id")

        logger.info("Submitted %s to AssemblyAI as %s", audio_url, transcript_id)
        return transcript_id

    async def poll(self, provider_job_id: str) -> ProviderResult:
        """Fetch the current state of a transcript once."""
        data = await self._request("GET", "/transcript/{}".format(provider_job_id))
        try:
            result = ProviderResult.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderError(None, "Malformed transcript response: {}".format(exc))

        logger.debug(
            "AssemblyAI transcript %s is %s (%d words)",
            provider_job_id, result.raw_status, len(result.words),
        )
        return result

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        client = self._ensure_client()
        try:
            resp = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ProviderError(None, "Request to {} failed: {}".format(path, exc))

        if resp.status_code not in (200, 201):
            raise ProviderError(resp.status_code, resp.text)

        try:
            return resp.json()
        except ValueError:
            raise ProviderError(resp.status_code, "Response is not JSON")
