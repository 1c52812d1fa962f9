"""Greedy duration-based segmentation of word timestamps into subtitle cues.

WHY: A provider transcript is one long stream of words. Viewers need
short cues that appear and disappear in sync with speech. A duration
threshold keeps each cue on screen for a readable length of time
without splitting any word.

HOW: Words are accumulated in input order. The first word placed in an
empty accumulator fixes the cue start. After each word is added, the cue
closes when the span from the cue start to that word's end reaches the
threshold, or when the word is the last one overall.

RULES:
- Empty input → empty cue list, no error
- The threshold is a closing trigger checked after each word, not a
  ceiling: a single word longer than the threshold still forms one cue
- Every word lands in exactly one cue, in original order
- Indices are 1..N with no gaps
- Words are never sorted or rejected; when out-of-order input would give
  a cue ending before it starts, the end is clamped to the start
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from video_subtitler.core.ir import Cue, Word

logger = logging.getLogger(__name__)

DEFAULT_MAX_SEGMENT_DURATION_MS = 5000


def segment(
    words: Sequence[Word],
    max_segment_duration_ms: int = DEFAULT_MAX_SEGMENT_DURATION_MS,
) -> List[Cue]:
    """Group words into time-ordered subtitle cues.

    Args:
        words: Words in provider order.
        max_segment_duration_ms: Span (first word start → current word end)
            at which the current cue is closed.

    Returns:
        Cues with contiguous 1-based indices.

    Raises:
        ValueError: If max_segment_duration_ms is not positive.
    """
    if max_segment_duration_ms <= 0:
        raise ValueError(
            "max_segment_duration_ms must be positive, got {}".format(
                max_segment_duration_ms
            )
        )

    cues: List[Cue] = []
    current: List[Word] = []
    segment_start_ms = 0
    last_position = len(words) - 1

    for position, word in enumerate(words):
        if not current:
            segment_start_ms = word.start
        current.append(word)

        span_ms = word.end - segment_start_ms
        if span_ms >= max_segment_duration_ms or position == last_position:
            cues.append(_close_cue(len(cues) + 1, segment_start_ms, current))
            current = []

    logger.debug("Segmented %d words into %d cues", len(words), len(cues))
    return cues


def _close_cue(index: int, start_ms: int, words: List[Word]) -> Cue:
    """Build one cue from the accumulated words."""
    end_ms = words[-1].end
    if end_ms < start_ms:
        logger.warning(
            "Cue %d ends before it starts (%d < %d); out-of-order word "
            "timestamps, clamping end to start",
            index, end_ms, start_ms,
        )
        end_ms = start_ms

    text = " ".join(w.text.strip() for w in words if w.text.strip())
    return Cue(index=index, start_ms=start_ms, end_ms=end_ms, text=text)
