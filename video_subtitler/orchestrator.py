"""Drives the transcription and render tracks of a job through their states.

WHY: Every stage transition depends on an external system — the provider,
the blob store, the source fetcher or the renderer — and each of them can
fail. The orchestrator is the one place that talks to those systems,
decides what each answer means for the job, and converts every
collaborator failure into an ``error`` transition so nothing leaks into
the pure core.

HOW: Collaborators are injected at construction. Transcription is
started once, then advanced by check_transcription(), a stateless
"check once" operation that callers invoke on every client poll. Render
is split into start_render(), an atomic claim of the render track, and
run_render(), the slow part that can run in a background task.

RULES:
- Input errors raise InvalidRequestError / JobNotFoundError before any write;
  transcriptions start only for videos registered by upload_video()
- A completed transcription is answered from the store; the provider is
  not called again
- Intermediate provider statuses are written only when they change
- Completion persists cues, SRT text and the subtitle reference in the
  same write as the status change, and the payload is returned in the
  same call
- At most one render per job is in flight; a second claim is rejected
- Collaborator exceptions become ``error`` transitions; check_transcription
  reports them as status, run_render raises RenderFailedError
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

from video_subtitler.api.models import ProviderResult
from video_subtitler.collaborators import (
    BlobStore,
    MediaRenderer,
    SourceFetcher,
    TranscriptionProvider,
)
from video_subtitler.config import (
    MAX_SEGMENT_DURATION_MS,
    RENDERED_BUCKET,
    SUBTITLES_BUCKET,
    VIDEOS_BUCKET,
)
from video_subtitler.core.ir import Cue
from video_subtitler.core.segmenter import segment
from video_subtitler.core.srt import to_srt
from video_subtitler.core.state import RENDER_STARTABLE_STATES, Track, TrackStatus
from video_subtitler.core.style import SubtitleStyle, resolve
from video_subtitler.errors import (
    InvalidRequestError,
    JobNotFoundError,
    RenderFailedError,
    RenderRejectedError,
    TranscriptionStartError,
    VideoNotFoundError,
)
from video_subtitler.server.jobs import (
    JobStore,
    StaleTransitionError,
    TranscriptionJob,
    VideoRecord,
)

logger = logging.getLogger(__name__)

REJECT_ALREADY_IN_PROGRESS = "already-in-progress"
REJECT_TRANSCRIPTION_NOT_READY = "transcription-not-ready"

SUBTITLE_CONTENT_TYPE = "application/x-subrip"
RENDERED_CONTENT_TYPE = "video/mp4"


@dataclass
class TranscriptionCheck:
    """Answer to one transcription status poll.

    text, srt_content, subtitle_url and cues are only set when status is
    completed; error only when status is error.
    """

    job_id: str
    status: TrackStatus
    text: Optional[str] = None
    srt_content: Optional[str] = None
    subtitle_url: Optional[str] = None
    cues: Tuple[Cue, ...] = ()
    error: Optional[str] = None


@dataclass
class RenderDecision:
    accepted: bool
    reason: Optional[str] = None


@dataclass
class RenderCheck:
    job_id: str
    status: Optional[TrackStatus]
    rendered_video_url: Optional[str] = None
    error: Optional[str] = None


StyleInput = Union[SubtitleStyle, Mapping[str, Any], None]


class Orchestrator:
    def __init__(
        self,
        store: JobStore,
        provider: TranscriptionProvider,
        blob_store: BlobStore,
        renderer: MediaRenderer,
        fetcher: SourceFetcher,
        videos_bucket: str = VIDEOS_BUCKET,
        subtitles_bucket: str = SUBTITLES_BUCKET,
        rendered_bucket: str = RENDERED_BUCKET,
        max_segment_duration_ms: int = MAX_SEGMENT_DURATION_MS,
    ) -> None:
        self.store = store
        self._provider = provider
        self._blob_store = blob_store
        self._renderer = renderer
        self._fetcher = fetcher
        self._videos_bucket = videos_bucket
        self._subtitles_bucket = subtitles_bucket
        self._rendered_bucket = rendered_bucket
        self._max_segment_duration_ms = max_segment_duration_ms

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def upload_video(
        self,
        data: bytes,
        original_name: str,
        mime_type: str,
    ) -> VideoRecord:
        """Store an uploaded video under a fresh reference and register it.

        The reference keeps the original file's extension. Storage errors
        propagate and nothing is registered.
        """
        video_ref = uuid.uuid4().hex + Path(original_name or "").suffix.lower()
        await self._blob_store.put(self._videos_bucket, video_ref, data, mime_type)
        return self.store.register_video(video_ref, original_name, len(data), mime_type)

    def video_url(self, video_ref: str) -> str:
        return self._blob_store.get_public_url(self._videos_bucket, video_ref)

    # ------------------------------------------------------------------
    # Transcription track
    # ------------------------------------------------------------------

    async def start_transcription(self, video_ref: str) -> TranscriptionJob:
        """Create a job and submit the video's audio to the provider.

        Raises:
            InvalidRequestError: video_ref is empty (no job is created).
            VideoNotFoundError: video_ref was never uploaded (no job is
                created).
            TranscriptionStartError: the provider submit failed; the job
                exists and is in ``error``.
        """
        video_ref = (video_ref or "").strip()
        if not video_ref:
            raise InvalidRequestError("video_ref is required")
        if self.store.get_video(video_ref) is None:
            raise VideoNotFoundError(video_ref)

        job = self.store.create_job(video_ref)
        audio_url = self._blob_store.get_public_url(self._videos_bucket, video_ref)

        try:
            provider_job_id = await self._provider.submit(audio_url)
        except Exception as exc:
            logger.exception("Provider submit failed for job %s", job.id)
            self.store.transition(
                job.id, Track.TRANSCRIPTION, {TrackStatus.PENDING}, TrackStatus.ERROR,
                error=str(exc),
            )
            raise TranscriptionStartError(
                "Failed to start transcription: {}".format(exc), job_id=job.id
            )

        return self.store.transition(
            job.id, Track.TRANSCRIPTION, {TrackStatus.PENDING}, TrackStatus.PROCESSING,
            provider_job_id=provider_job_id,
        )

    async def check_transcription(self, job_id: str) -> TranscriptionCheck:
        """Advance the transcription track by at most one provider poll."""
        job = self._require_job(job_id)

        if job.transcription_status is TrackStatus.COMPLETED:
            return self._completed_check(job)
        if job.transcription_status is TrackStatus.ERROR:
            return TranscriptionCheck(job.id, TrackStatus.ERROR, error=job.error)
        if job.transcription_status is TrackStatus.PENDING:
            # Submit has not returned yet.
            return TranscriptionCheck(job.id, TrackStatus.PENDING)

        try:
            result = await self._provider.poll(job.provider_job_id)
        except Exception as exc:
            logger.exception("Provider poll failed for job %s", job.id)
            return self._fail_transcription(job.id, str(exc))

        if result.is_completed:
            try:
                return await self._complete_transcription(job, result)
            except StaleTransitionError:
                # A concurrent poll finished first; answer from its write.
                return self._check_from_store(job.id)
            except Exception as exc:
                logger.exception("Failed to finalize transcription for job %s", job.id)
                return self._fail_transcription(job.id, str(exc))

        if result.is_error:
            return self._fail_transcription(
                job.id, result.error_message or "Transcription failed"
            )

        if result.raw_status != job.provider_status:
            self.store.update_job(job.id, provider_status=result.raw_status)
        return TranscriptionCheck(job.id, TrackStatus.PROCESSING)

    async def _complete_transcription(
        self,
        job: TranscriptionJob,
        result: ProviderResult,
    ) -> TranscriptionCheck:
        cues = segment(result.words, self._max_segment_duration_ms)
        srt_text = to_srt(cues)
        subtitle_ref = "{}.srt".format(job.id)

        await self._blob_store.put(
            self._subtitles_bucket,
            subtitle_ref,
            srt_text.encode("utf-8"),
            SUBTITLE_CONTENT_TYPE,
        )

        completed = self.store.transition(
            job.id, Track.TRANSCRIPTION, {TrackStatus.PROCESSING}, TrackStatus.COMPLETED,
            cues=tuple(cues),
            subtitle_text=srt_text,
            subtitle_ref=subtitle_ref,
            transcript_text=result.text,
            provider_status=result.raw_status,
        )
        logger.info("Job %s transcribed into %d cues", job.id, len(cues))
        return self._completed_check(completed)

    def _fail_transcription(self, job_id: str, message: str) -> TranscriptionCheck:
        try:
            failed = self.store.transition(
                job_id, Track.TRANSCRIPTION, {TrackStatus.PROCESSING}, TrackStatus.ERROR,
                error=message,
            )
        except StaleTransitionError:
            return self._check_from_store(job_id)
        return TranscriptionCheck(failed.id, TrackStatus.ERROR, error=failed.error)

    def _check_from_store(self, job_id: str) -> TranscriptionCheck:
        job = self._require_job(job_id)
        if job.transcription_status is TrackStatus.COMPLETED:
            return self._completed_check(job)
        return TranscriptionCheck(job.id, job.transcription_status, error=job.error)

    def _completed_check(self, job: TranscriptionJob) -> TranscriptionCheck:
        return TranscriptionCheck(
            job_id=job.id,
            status=TrackStatus.COMPLETED,
            text=job.transcript_text,
            srt_content=job.subtitle_text,
            subtitle_url=self._blob_store.get_public_url(
                self._subtitles_bucket, job.subtitle_ref
            ),
            cues=job.cues,
        )

    # ------------------------------------------------------------------
    # Render track
    # ------------------------------------------------------------------

    def start_render(self, job_id: str) -> RenderDecision:
        """Atomically claim the render track for a new attempt.

        Raises:
            JobNotFoundError: unknown job.
        """
        try:
            self.store.transition(
                job_id, Track.RENDER, RENDER_STARTABLE_STATES, TrackStatus.PROCESSING,
                render_error=None,
            )
        except StaleTransitionError as exc:
            if exc.current is TrackStatus.PROCESSING:
                reason = REJECT_ALREADY_IN_PROGRESS
            else:
                reason = REJECT_TRANSCRIPTION_NOT_READY
            logger.info("Render for job %s rejected: %s", job_id, reason)
            return RenderDecision(accepted=False, reason=reason)
        return RenderDecision(accepted=True)

    async def run_render(self, job_id: str, style: StyleInput = None) -> str:
        """Render a claimed job and return the rendered video's public URL.

        Raises:
            JobNotFoundError: unknown job.
            InvalidRequestError: the render track was not claimed first.
            RenderFailedError: fetch, render or upload failed; the render
                track is now ``error``.
        """
        job = self._require_job(job_id)
        if job.render_status is not TrackStatus.PROCESSING:
            raise InvalidRequestError(
                "Render for job {} has not been started".format(job_id)
            )

        rendered_ref = "{}/{}.mp4".format(job.id, uuid.uuid4().hex)
        try:
            resolved = resolve(style)
            source_url = self._blob_store.get_public_url(self._videos_bucket, job.video_ref)
            source_bytes = await self._fetcher.fetch(source_url)
            rendered = await self._renderer.render(
                source_bytes, job.subtitle_text or "", resolved
            )
            await self._blob_store.put(
                self._rendered_bucket, rendered_ref, rendered, RENDERED_CONTENT_TYPE
            )
        except Exception as exc:
            logger.exception("Render failed for job %s", job_id)
            self.store.transition(
                job_id, Track.RENDER, {TrackStatus.PROCESSING}, TrackStatus.ERROR,
                render_error=str(exc),
            )
            raise RenderFailedError("Failed to render job {}: {}".format(job_id, exc))

        self.store.transition(
            job_id, Track.RENDER, {TrackStatus.PROCESSING}, TrackStatus.COMPLETED,
            rendered_video_ref=rendered_ref,
        )
        return self._blob_store.get_public_url(self._rendered_bucket, rendered_ref)

    async def render(self, job_id: str, style: StyleInput = None) -> str:
        """Claim and run a render in one call.

        Raises:
            RenderRejectedError: the claim was refused.
        """
        decision = self.start_render(job_id)
        if not decision.accepted:
            raise RenderRejectedError(job_id, decision.reason)
        return await self.run_render(job_id, style)

    def render_status(self, job_id: str) -> RenderCheck:
        job = self._require_job(job_id)
        url = None
        if job.render_status is TrackStatus.COMPLETED and job.rendered_video_ref:
            url = self._blob_store.get_public_url(
                self._rendered_bucket, job.rendered_video_ref
            )
        return RenderCheck(
            job_id=job.id,
            status=job.render_status,
            rendered_video_url=url,
            error=job.render_error,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_job(self, job_id: str) -> TranscriptionJob:
        job = self.store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job
