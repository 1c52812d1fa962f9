"""Blob store implementations: local directory and Supabase Storage.

WHY: Raw videos, subtitle files and rendered videos live in named buckets
and are handed to the provider and to clients as public URLs. Both stores
expose the same two operations so the orchestrator never knows which one
it is using.

RULES:
- put() raises StorageError on failure
- get_public_url() is pure string building and never performs I/O
"""

from video_subtitler.storage.local import LocalBlobStore, StorageError
from video_subtitler.storage.supabase import SupabaseBlobStore

__all__ = ["LocalBlobStore", "StorageError", "SupabaseBlobStore"]
