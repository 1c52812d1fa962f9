"""Exception hierarchy shared by the orchestrator, API layer and CLI.

WHY: The HTTP layer must map failures to status codes without knowing
which collaborator raised them. A single base class lets callers catch
"anything this package raised" while the subclasses keep input errors,
rejections and collaborator failures distinguishable.

RULES:
- Input errors (InvalidRequestError, VideoNotFoundError, JobNotFoundError)
  never mutate state
- RenderRejectedError carries a machine-readable reason
- Collaborator errors (ProviderError, StorageError, RendererError,
  FetchError) live next to the collaborator that raises them and
  subclass SubtitlerError
"""

from __future__ import annotations

from typing import Optional


class SubtitlerError(Exception):
    """Base class for every error raised by video_subtitler."""


class InvalidRequestError(SubtitlerError):
    """Raised when a request is malformed (e.g. an empty video reference)."""


class VideoNotFoundError(InvalidRequestError):
    """Raised when a video reference was never uploaded."""

    def __init__(self, video_ref: str) -> None:
        self.video_ref = video_ref
        super().__init__("Video not found: {}".format(video_ref))


class JobNotFoundError(SubtitlerError):
    """Raised when a job ID does not exist in the job store."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__("Job not found: {}".format(job_id))


class RenderRejectedError(SubtitlerError):
    """Raised when a render trigger is refused.

    RULES:
    - reason is "already-in-progress" or "transcription-not-ready"
    - The job is left untouched
    """

    def __init__(self, job_id: str, reason: str) -> None:
        self.job_id = job_id
        self.reason = reason
        super().__init__("Render rejected for job {}: {}".format(job_id, reason))


class TranscriptionStartError(SubtitlerError):
    """Raised when the provider refuses or fails a transcription submit.

    job_id names the job left in the error state, if one was created.
    """

    def __init__(self, message: str, job_id: Optional[str] = None) -> None:
        self.job_id = job_id
        super().__init__(message)


class RenderFailedError(SubtitlerError):
    """Raised when a render attempt fails after being accepted."""
