"""Transcription provider package — async HTTP interface to AssemblyAI.

WHY: The orchestrator submits audio URLs and checks transcripts once per
client poll. This package encapsulates all provider communication behind
an async client class.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. Response data is parsed
into typed dataclasses defined in models.py.

RULES:
- All provider HTTP calls go through AssemblyAIClient
- Provider statuses are mapped to processing / completed / error here
"""

from video_subtitler.api.client import AssemblyAIClient, ProviderError
from video_subtitler.api.models import ProviderResult

__all__ = ["AssemblyAIClient", "ProviderError", "ProviderResult"]
