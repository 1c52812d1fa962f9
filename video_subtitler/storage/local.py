"""Filesystem-backed blob store for development and the CLI.

WHY: Running the service locally should not require a cloud bucket. This
store writes objects under one root directory, one sub-directory per
bucket, and builds public URLs from a configurable base URL that the API
serves with StaticFiles.

RULES:
- Object paths may contain "/" but never escape the bucket directory
- put() overwrites existing objects (upsert)
- Write failures raise StorageError
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from urllib.parse import quote

from video_subtitler.config import LOCAL_STORAGE_DIR, PUBLIC_BASE_URL
from video_subtitler.errors import SubtitlerError

logger = logging.getLogger(__name__)


class StorageError(SubtitlerError):
    """Raised when a blob store write fails."""


class LocalBlobStore:
    def __init__(
        self,
        root_dir: Path | str | None = None,
        base_url: str | None = None,
    ) -> None:
        self.root_dir = Path(root_dir or LOCAL_STORAGE_DIR).resolve()
        self._base_url = (base_url or PUBLIC_BASE_URL).rstrip("/")

    def object_path(self, bucket: str, path: str) -> Path:
        """Return the on-disk location of an object, rejecting traversal."""
        bucket_dir = (self.root_dir / bucket).resolve()
        target = (bucket_dir / path).resolve()
        if bucket_dir not in target.parents:
            raise StorageError("Invalid object path: {}/{}".format(bucket, path))
        return target

    async def put(self, bucket: str, path: str, data: bytes, content_type: str) -> None:
        target = self.object_path(bucket, path)
        try:
            await asyncio.to_thread(_write_bytes, target, data)
        except OSError as exc:
            raise StorageError("Failed to write {}/{}: {}".format(bucket, path, exc))
        logger.info("Stored %s/%s (%d bytes, %s)", bucket, path, len(data), content_type)

    def get_public_url(self, bucket: str, path: str) -> str:
        return "{}/{}/{}".format(self._base_url, bucket, quote(path))


def _write_bytes(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
