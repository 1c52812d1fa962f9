"""Supabase Storage blob store over the REST API.

WHY: Production deployments keep videos and subtitles in Supabase Storage
buckets that serve public URLs the provider can download from.

HOW: Uses httpx.AsyncClient against /storage/v1. Uploads are upserts so a
re-polled job or a re-render can overwrite its own object. Public URLs
follow Supabase's /object/public/ layout and need no request.

RULES:
- Use as an async context manager, like the provider client
- Authenticates with the service role key (bearer + apikey headers)
- Non-2xx upload responses raise StorageError
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from video_subtitler.config import SUPABASE_URL, load_supabase_key
from video_subtitler.storage.local import StorageError

logger = logging.getLogger(__name__)


class SupabaseBlobStore:
    def __init__(
        self,
        url: str | None = None,
        service_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = (url or SUPABASE_URL).rstrip("/")
        if not self._url:
            raise ValueError(
                "Supabase URL not configured. Add SUPABASE_URL to the .env file."
            )
        self._service_key = service_key or load_supabase_key()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> SupabaseBlobStore:
        self._client = httpx.AsyncClient(
            base_url="{}/storage/v1".format(self._url),
            headers={
                "Authorization": "Bearer {}".format(self._service_key),
                "apikey": self._service_key,
            },
            timeout=httpx.Timeout(300.0, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    async def put(self, bucket: str, path: str, data: bytes, content_type: str) -> None:
        if self._client is None:
            raise RuntimeError(
                "SupabaseBlobStore must be used as an async context manager"
            )
        try:
            resp = await self._client.post(
                "/object/{}/{}".format(bucket, quote(path)),
                content=data,
                headers={"Content-Type": content_type, "x-upsert": "true"},
            )
        except httpx.HTTPError as exc:
            raise StorageError("Upload of {}/{} failed: {}".format(bucket, path, exc))

        if resp.status_code not in (200, 201):
            raise StorageError(
                "Upload of {}/{} failed with {}: {}".format(
                    bucket, path, resp.status_code, resp.text
                )
            )
        logger.info("Uploaded %s/%s (%d bytes)", bucket, path, len(data))

    def get_public_url(self, bucket: str, path: str) -> str:
        return "{}/storage/v1/object/public/{}/{}".format(self._url, bucket, quote(path))
