"""Word and cue dataclasses shared by the provider client, segmenter and SRT writer.

WHY: Providers return word-level timestamps; players need timed cues.
Two small immutable types make that boundary explicit and keep the
segmenter independent of any provider's JSON shape.

HOW: Word is produced by the provider client, Cue by the segmenter.
Both are frozen so a completed job's cue list cannot be altered after
it has been serialized and stored.

RULES:
- All times are integer milliseconds
- Cue.index is 1-based and contiguous within a cue list
- Cue.start_ms <= Cue.end_ms
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Word:
    """A single recognized word with its audio timing.

    RULES:
    - text: the word as spoken (punctuation attached by the provider)
    - start / end: integer milliseconds from the start of the audio
    - confidence: provider confidence 0.0–1.0, or None; ignored by the core
    """

    text: str
    start: int
    end: int
    confidence: float | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Word:
        """Parse a provider word dict (``text``, ``start``, ``end``)."""
        return cls(
            text=str(data["text"]),
            start=int(data["start"]),
            end=int(data["end"]),
            confidence=data.get("confidence"),
        )


@dataclass(frozen=True)
class Cue:
    """One timed subtitle entry."""

    index: int
    start_ms: int
    end_ms: int
    text: str

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "start_ms": self.start_ms,
            "end_ms": self.end_ms,
            "text": self.text,
        }
