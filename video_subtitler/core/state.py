"""Transition rules for the transcription and render tracks of a job.

WHY: A job carries two state sequences that must move in a fixed order:
rendering is meaningless until transcription has completed, transcription
never restarts, and render may be retried. Keeping the rules in one
table makes every transition explicit and lets the job store refuse
anything else.

HOW: TrackStatus is the shared four-state enum. TRANSITIONS maps each
Track to the set of (from, to) pairs it allows. check_transition() raises
InvalidTransitionError for any other pair.

RULES:
- Transcription: pending → processing → completed; pending|processing → error
- Transcription terminal states (completed, error) never change
- Render starts absent (None) and becomes pending when transcription completes
- Render: pending → processing → completed|error; error|completed → processing
"""

from __future__ import annotations

import enum
from typing import Dict, FrozenSet, Optional, Tuple

from video_subtitler.errors import SubtitlerError


class TrackStatus(str, enum.Enum):
    """Valid states for either track.

    Inherits from str so values serialize cleanly to JSON.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class Track(str, enum.Enum):
    TRANSCRIPTION = "transcription"
    RENDER = "render"


_Transition = Tuple[Optional[TrackStatus], TrackStatus]

TRANSITIONS: Dict[Track, FrozenSet[_Transition]] = {
    Track.TRANSCRIPTION: frozenset({
        (TrackStatus.PENDING, TrackStatus.PROCESSING),
        (TrackStatus.PENDING, TrackStatus.ERROR),
        (TrackStatus.PROCESSING, TrackStatus.COMPLETED),
        (TrackStatus.PROCESSING, TrackStatus.ERROR),
    }),
    Track.RENDER: frozenset({
        (None, TrackStatus.PENDING),
        (TrackStatus.PENDING, TrackStatus.PROCESSING),
        (TrackStatus.PROCESSING, TrackStatus.COMPLETED),
        (TrackStatus.PROCESSING, TrackStatus.ERROR),
        (TrackStatus.ERROR, TrackStatus.PROCESSING),
        (TrackStatus.COMPLETED, TrackStatus.PROCESSING),
    }),
}

# Render states from which a new render attempt may be claimed.
RENDER_STARTABLE_STATES = frozenset({
    TrackStatus.PENDING,
    TrackStatus.ERROR,
    TrackStatus.COMPLETED,
})


class InvalidTransitionError(SubtitlerError):
    """Raised when a transition is not allowed by the track's rules."""

    def __init__(
        self,
        track: Track,
        current: Optional[TrackStatus],
        target: TrackStatus,
    ) -> None:
        self.track = track
        self.current = current
        self.target = target
        super().__init__(
            "Invalid {} transition: {} -> {}".format(
                track.value,
                current.value if current is not None else "none",
                target.value,
            )
        )


def is_allowed(track: Track, current: Optional[TrackStatus], target: TrackStatus) -> bool:
    return (current, target) in TRANSITIONS[track]


def check_transition(
    track: Track,
    current: Optional[TrackStatus],
    target: TrackStatus,
) -> None:
    """Raise InvalidTransitionError unless current → target is allowed on track."""
    if not is_allowed(track, current, target):
        raise InvalidTransitionError(track, current, target)
