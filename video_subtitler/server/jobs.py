"""In-memory job store with per-job locking and compare-and-set transitions.

WHY: Polling clients, background renders and concurrent status checks all
touch the same job record. Two requests must never both "win" a
transition — e.g. two renders both completing and racing to write the
rendered-video reference. Every status change is therefore a
compare-and-set on the status the caller expects, applied atomically with
the fields that transition persists.

HOW: Four pieces work together:
  TranscriptionJob — dataclass holding both tracks and their artifacts
  VideoRecord      — metadata of an uploaded source video
  JobStore         — dict-backed store; a registry lock guards the dict and
                     one lock per job guards that job's record
  transition()     — checks the expected current status and the state
                     table, then applies the new status and fields together

RULES:
- The registry lock is never held while a job lock is held for long
- get_job() and list_jobs() return copies, never the live record
- transition() raises StaleTransitionError when the current status is not
  one of the expected ones, and InvalidTransitionError for illegal moves
- Completing transcription moves the render track from absent to pending
- version increments on every write
- Jobs and video records are retained for the life of the process (no TTL)
"""

from __future__ import annotations

import copy
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, Collection, Dict, List, Optional, Tuple

from video_subtitler.core.ir import Cue
from video_subtitler.core.state import Track, TrackStatus, check_transition
from video_subtitler.errors import JobNotFoundError, SubtitlerError

logger = logging.getLogger(__name__)


class StaleTransitionError(SubtitlerError):
    """Raised when a compare-and-set transition finds an unexpected status."""

    def __init__(
        self,
        job_id: str,
        track: Track,
        current: Optional[TrackStatus],
    ) -> None:
        self.job_id = job_id
        self.track = track
        self.current = current
        super().__init__(
            "Job {} {} status changed concurrently (now {})".format(
                job_id,
                track.value,
                current.value if current is not None else "none",
            )
        )


@dataclass
class TranscriptionJob:
    """Metadata and state for one transcription attempt of one video.

    RULES:
    - id: UUID4 hex, immutable after creation
    - video_ref: storage path of the source video in the videos bucket
    - provider_job_id: set on transcription → processing
    - provider_status: last raw provider status persisted ("queued", ...)
    - cues / subtitle_text / subtitle_ref / transcript_text: set together
      on transcription → completed
    - render_status: None until transcription completes
    - rendered_video_ref: set on render → completed
    - error / render_error: message for the most recent failure of each track
    """

    id: str
    video_ref: str
    created_at: float
    updated_at: float
    transcription_status: TrackStatus = TrackStatus.PENDING
    provider_job_id: Optional[str] = None
    provider_status: Optional[str] = None
    transcript_text: Optional[str] = None
    cues: Tuple[Cue, ...] = ()
    subtitle_text: Optional[str] = None
    subtitle_ref: Optional[str] = None
    error: Optional[str] = None
    render_status: Optional[TrackStatus] = None
    rendered_video_ref: Optional[str] = None
    render_error: Optional[str] = None
    version: int = 0

    def status_of(self, track: Track) -> Optional[TrackStatus]:
        if track is Track.TRANSCRIPTION:
            return self.transcription_status
        return self.render_status


@dataclass(frozen=True)
class VideoRecord:
    """An uploaded source video.

    RULES:
    - video_ref: storage path in the videos bucket, unique per upload
    - original_name / file_size / mime_type: as received at upload
    """

    video_ref: str
    original_name: str
    file_size: int
    mime_type: str
    created_at: float


# Fields a transition or update may write alongside the status.
_PROTECTED_FIELDS = frozenset({
    "id", "created_at", "updated_at", "version",
    "transcription_status", "render_status",
})
_WRITABLE_FIELDS = frozenset(
    f.name for f in fields(TranscriptionJob) if f.name not in _PROTECTED_FIELDS
)


@dataclass
class _Entry:
    job: TranscriptionJob
    lock: threading.Lock = field(default_factory=threading.Lock)


class JobStore:
    """Thread-safe in-memory store for transcription jobs."""

    def __init__(self) -> None:
        self._entries: Dict[str, _Entry] = {}
        self._videos: Dict[str, VideoRecord] = {}
        self._lock = threading.Lock()

    def register_video(
        self,
        video_ref: str,
        original_name: str,
        file_size: int,
        mime_type: str,
    ) -> VideoRecord:
        """Record an uploaded video so transcriptions can be started for it."""
        record = VideoRecord(
            video_ref=video_ref,
            original_name=original_name,
            file_size=file_size,
            mime_type=mime_type,
            created_at=time.time(),
        )
        with self._lock:
            self._videos[video_ref] = record

        logger.info("Registered video %s (%s, %d bytes)", video_ref, original_name, file_size)
        return record

    def get_video(self, video_ref: str) -> Optional[VideoRecord]:
        with self._lock:
            return self._videos.get(video_ref)

    def create_job(self, video_ref: str) -> TranscriptionJob:
        """Create a job with transcription pending and no render track."""
        now = time.time()
        job = TranscriptionJob(
            id=uuid.uuid4().hex,
            video_ref=video_ref,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._entries[job.id] = _Entry(job=job)

        logger.info("Created job %s for video %s", job.id, video_ref)
        return copy.copy(job)

    def get_job(self, job_id: str) -> Optional[TranscriptionJob]:
        """Return a snapshot of the job, or None for unknown IDs."""
        entry = self._get_entry(job_id)
        if entry is None:
            return None
        with entry.lock:
            return copy.copy(entry.job)

    def list_jobs(self) -> List[TranscriptionJob]:
        """Snapshots of all jobs, oldest first."""
        with self._lock:
            entries = list(self._entries.values())
        snapshots = []
        for entry in entries:
            with entry.lock:
                snapshots.append(copy.copy(entry.job))
        return sorted(snapshots, key=lambda j: j.created_at)

    def transition(
        self,
        job_id: str,
        track: Track,
        expected: Collection[Optional[TrackStatus]],
        target: TrackStatus,
        **changes: Any,
    ) -> TranscriptionJob:
        """Compare-and-set one track's status and persist its fields atomically.

        Args:
            job_id: Job to update.
            track: Which track is moving.
            expected: Statuses the caller believes the track is in.
            target: New status.
            **changes: Fields persisted with the transition.

        Returns:
            Snapshot of the job after the write.

        Raises:
            JobNotFoundError: Unknown job.
            StaleTransitionError: Current status not in expected.
            InvalidTransitionError: current → target not allowed.
        """
        self._check_fields(changes)
        entry = self._require_entry(job_id)

        with entry.lock:
            job = entry.job
            current = job.status_of(track)
            if current not in expected:
                raise StaleTransitionError(job_id, track, current)
            check_transition(track, current, target)
            opens_render = track is Track.TRANSCRIPTION and target is TrackStatus.COMPLETED
            if opens_render:
                check_transition(Track.RENDER, job.render_status, TrackStatus.PENDING)

            for name, value in changes.items():
                setattr(job, name, value)

            if track is Track.TRANSCRIPTION:
                job.transcription_status = target
                if opens_render:
                    job.render_status = TrackStatus.PENDING
            else:
                job.render_status = target

            self._touch(job)
            snapshot = copy.copy(job)

        logger.info(
            "Job %s %s: %s -> %s",
            job_id, track.value,
            current.value if current is not None else "none",
            target.value,
        )
        return snapshot

    def update_job(self, job_id: str, **changes: Any) -> TranscriptionJob:
        """Write non-status fields (e.g. provider_status) without a transition."""
        self._check_fields(changes)
        entry = self._require_entry(job_id)
        with entry.lock:
            for name, value in changes.items():
                setattr(entry.job, name, value)
            self._touch(entry.job)
            return copy.copy(entry.job)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_entry(self, job_id: str) -> Optional[_Entry]:
        with self._lock:
            return self._entries.get(job_id)

    def _require_entry(self, job_id: str) -> _Entry:
        entry = self._get_entry(job_id)
        if entry is None:
            raise JobNotFoundError(job_id)
        return entry

    @staticmethod
    def _check_fields(changes: Dict[str, Any]) -> None:
        unknown = set(changes) - _WRITABLE_FIELDS
        if unknown:
            raise ValueError(
                "Cannot write job fields: {}".format(", ".join(sorted(unknown)))
            )

    @staticmethod
    def _touch(job: TranscriptionJob) -> None:
        job.updated_at = time.time()
        job.version += 1
