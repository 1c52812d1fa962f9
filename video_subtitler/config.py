"""Configuration constants, storage buckets, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Bucket names, provider endpoints, render settings
and accepted upload formats are plain data — not buried in logic — so
the API, CLI and tests all read the same values.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level strings, ints and sets read from the environment with
defaults. load_api_key() and load_supabase_key() give a clear error when
a required secret is missing.

RULES:
- Secrets are loaded from .env via python-dotenv, never hardcoded
- All defaults can be overridden via environment variables
- STORAGE_BACKEND is "local" (development) or "supabase"
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the server is started from)
load_dotenv()

# ---------------------------------------------------------------------------
# Accepted upload formats
# ---------------------------------------------------------------------------

SUPPORTED_VIDEO_FORMATS: set[str] = {
    ".mp4", ".mov", ".m4v", ".mkv", ".webm", ".avi",
}
"""Video file extensions accepted by POST /videos (lowercase, with dot)."""

# ---------------------------------------------------------------------------
# Transcription provider (AssemblyAI)
# ---------------------------------------------------------------------------

ASSEMBLYAI_BASE_URL = os.getenv("ASSEMBLYAI_BASE_URL", "https://api.assemblyai.com/v2")

# ---------------------------------------------------------------------------
# Blob storage
# ---------------------------------------------------------------------------

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local").lower()
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
LOCAL_STORAGE_DIR = os.getenv("LOCAL_STORAGE_DIR", "storage")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000/media")

VIDEOS_BUCKET = os.getenv("VIDEOS_BUCKET", "videos")
SUBTITLES_BUCKET = os.getenv("SUBTITLES_BUCKET", "subtitles")
RENDERED_BUCKET = os.getenv("RENDERED_BUCKET", "processed-videos")

# ---------------------------------------------------------------------------
# Segmentation and rendering
# ---------------------------------------------------------------------------

MAX_SEGMENT_DURATION_MS = int(os.getenv("MAX_SEGMENT_DURATION_MS", "5000"))
FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")
RENDER_TIMEOUT_S = float(os.getenv("RENDER_TIMEOUT_S", "1800"))


def load_api_key() -> str:
    """Load the AssemblyAI API key from the environment.

    WHY: The key is required for every provider call. Loading it from the
    environment (via .env) keeps it out of source code.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("ASSEMBLYAI_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "AssemblyAI API key not configured. "
            "Add ASSEMBLYAI_API_KEY to the .env file."
        )
    return key


def load_supabase_key() -> str:
    """Load the Supabase service role key used for storage uploads."""
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "").strip()
    if not key:
        raise ValueError(
            "Supabase service key not configured. "
            "Add SUPABASE_SERVICE_ROLE_KEY to the .env file."
        )
    return key
