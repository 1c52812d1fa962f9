"""Shared fixtures and in-memory collaborators for the video_subtitler tests.

WHY: The orchestrator and the HTTP API depend on a transcription
provider, a blob store, a renderer and a source fetcher. Tests replace
all four with small fakes so no network, bucket or ffmpeg is needed,
and so each test can script exactly what the provider answers.

HOW: FakeProvider returns a queued sequence of ProviderResults (the last
one repeats). FakeBlobStore keeps objects in a dict. FakeRenderer
returns a marker byte string built from its inputs. Any fake can be told
to raise on its next call.

RULES:
- Word data uses AssemblyAI's shape: text, start, end, confidence (ms)
- Every fake counts its calls so tests can assert what was (not) called
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import pytest

from video_subtitler.api.models import ProviderResult
from video_subtitler.core.ir import Word
from video_subtitler.core.style import ResolvedStyle
from video_subtitler.orchestrator import Orchestrator
from video_subtitler.server.jobs import JobStore


# ---------------------------------------------------------------------------
# Sample transcript
# ---------------------------------------------------------------------------

SAMPLE_WORDS: List[Dict] = [
    {"text": "Hello", "start": 0, "end": 400, "confidence": 0.98},
    {"text": "and", "start": 450, "end": 600, "confidence": 0.95},
    {"text": "welcome", "start": 650, "end": 1100, "confidence": 0.97},
    {"text": "to", "start": 1150, "end": 1250, "confidence": 0.99},
    {"text": "the", "start": 1300, "end": 1400, "confidence": 0.99},
    {"text": "show.", "start": 1450, "end": 5200, "confidence": 0.93},
    {"text": "Today", "start": 5600, "end": 6000, "confidence": 0.96},
    {"text": "we", "start": 6050, "end": 6200, "confidence": 0.97},
    {"text": "cook.", "start": 6250, "end": 6900, "confidence": 0.94},
]

SAMPLE_TEXT = "Hello and welcome to the show. Today we cook."


def make_result(
    raw_status: str,
    words: Optional[List[Dict]] = None,
    text: Optional[str] = None,
    error: Optional[str] = None,
    transcript_id: str = "tr_123",
) -> ProviderResult:
    """Build a ProviderResult the way the client parses a response."""
    return ProviderResult.from_dict({
        "id": transcript_id,
        "status": raw_status,
        "text": text,
        "words": words,
        "error": error,
    })


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeProvider:
    def __init__(self, results: Optional[List[ProviderResult]] = None) -> None:
        self.results = list(results or [make_result("queued")])
        self.submitted: List[str] = []
        self.poll_calls = 0
        self.submit_error: Optional[Exception] = None
        self.poll_error: Optional[Exception] = None

    async def submit(self, audio_url: str) -> str:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(audio_url)
        return "tr_123"

    async def poll(self, provider_job_id: str) -> ProviderResult:
        self.poll_calls += 1
        if self.poll_error is not None:
            raise self.poll_error
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class FakeBlobStore:
    def __init__(self) -> None:
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.content_types: Dict[Tuple[str, str], str] = {}
        self.put_calls = 0
        self.put_error: Optional[Exception] = None

    async def put(self, bucket: str, path: str, data: bytes, content_type: str) -> None:
        self.put_calls += 1
        if self.put_error is not None:
            raise self.put_error
        self.objects[(bucket, path)] = data
        self.content_types[(bucket, path)] = content_type

    def get_public_url(self, bucket: str, path: str) -> str:
        return "https://cdn.test/{}/{}".format(bucket, path)


class FakeRenderer:
    def __init__(self) -> None:
        self.calls: List[Tuple[bytes, str, ResolvedStyle]] = []
        self.error: Optional[Exception] = None

    async def render(self, source_bytes: bytes, subtitle_text: str, style: ResolvedStyle) -> bytes:
        self.calls.append((source_bytes, subtitle_text, style))
        if self.error is not None:
            raise self.error
        return b"rendered:" + source_bytes


class FakeFetcher:
    def __init__(self, content: bytes = b"source-video") -> None:
        self.content = content
        self.urls: List[str] = []

    async def fetch(self, url: str) -> bytes:
        self.urls.append(url)
        return self.content


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_words() -> List[Word]:
    return [Word.from_dict(w) for w in SAMPLE_WORDS]


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def orchestrator(provider, blob_store, renderer, fetcher) -> Orchestrator:
    """Orchestrator on fakes with "clip.mp4" already uploaded."""
    store = JobStore()
    store.register_video("clip.mp4", "clip.mp4", 10, "video/mp4")
    return Orchestrator(
        store=store,
        provider=provider,
        blob_store=blob_store,
        renderer=renderer,
        fetcher=fetcher,
        videos_bucket="videos",
        subtitles_bucket="subtitles",
        rendered_bucket="processed-videos",
        max_segment_duration_ms=5000,
    )
