"""Interfaces of the external systems the orchestrator drives.

Each protocol is one capability set. Production adapters live in
``api``, ``storage`` and ``render``; tests pass in-memory fakes.
"""

from __future__ import annotations

from typing import Protocol

from video_subtitler.api.models import ProviderResult
from video_subtitler.core.style import ResolvedStyle


class TranscriptionProvider(Protocol):
    async def submit(self, audio_url: str) -> str:
        """Start transcribing audio_url and return the provider job id."""

    async def poll(self, provider_job_id: str) -> ProviderResult:
        """Return the provider job's current status (one request, no waiting)."""


class BlobStore(Protocol):
    async def put(self, bucket: str, path: str, data: bytes, content_type: str) -> None:
        """Store data, overwriting any existing object. Raises StorageError."""

    def get_public_url(self, bucket: str, path: str) -> str:
        """Return the public URL for an object."""


class MediaRenderer(Protocol):
    async def render(
        self,
        source_bytes: bytes,
        subtitle_text: str,
        style: ResolvedStyle,
    ) -> bytes:
        """Return the source video re-encoded with the subtitles burned in."""


class SourceFetcher(Protocol):
    async def fetch(self, url: str) -> bytes:
        """Download the bytes at url."""
