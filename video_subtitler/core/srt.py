"""SRT serialization of cue lists.

WHY: The SRT file is both the persisted subtitle artifact and the literal
input handed to the renderer, so its byte layout must be exact.

RULES:
- One block per cue: index, "HH:MM:SS,mmm --> HH:MM:SS,mmm", text, blank line
- Hours are zero-padded to two digits but never capped
- Milliseconds are always three digits
- An empty cue list serializes to the empty string
"""

from __future__ import annotations

from typing import Iterable

from video_subtitler.core.ir import Cue


def format_time(milliseconds: int) -> str:
    """Format integer milliseconds as an SRT timestamp.

    >>> format_time(3661500)
    '01:01:01,500'
    """
    total_seconds, ms = divmod(int(milliseconds), 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return "{:02d}:{:02d}:{:02d},{:03d}".format(hours, minutes, seconds, ms)


def to_srt(cues: Iterable[Cue]) -> str:
    """Serialize cues into SRT text."""
    blocks = []
    for cue in cues:
        blocks.append(
            "{}\n{} --> {}\n{}\n\n".format(
                cue.index,
                format_time(cue.start_ms),
                format_time(cue.end_ms),
                cue.text,
            )
        )
    return "".join(blocks)
