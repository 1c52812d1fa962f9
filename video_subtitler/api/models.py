"""AssemblyAI transcript response dataclasses.

WHY: The provider returns one JSON object per transcript that carries
status, text and (once completed) the word list. A typed result keeps
the orchestrator independent of the provider's field names and status
vocabulary.

HOW: ProviderResult.from_dict parses a GET /v2/transcript/{id} response.
The raw provider status is kept alongside the mapped one so the
orchestrator can avoid redundant writes of intermediate states.

RULES:
- raw_status is one of "queued", "processing", "completed", "error"
- status maps queued/processing → "processing"; anything unknown → "processing"
- words is empty unless the transcript is completed
- word times are integer milliseconds
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from video_subtitler.core.ir import Word

PROVIDER_PROCESSING = "processing"
PROVIDER_COMPLETED = "completed"
PROVIDER_ERROR = "error"

_STATUS_MAP = {
    "queued": PROVIDER_PROCESSING,
    "processing": PROVIDER_PROCESSING,
    "completed": PROVIDER_COMPLETED,
    "error": PROVIDER_ERROR,
}


def map_provider_status(raw_status: str) -> str:
    return _STATUS_MAP.get(raw_status, PROVIDER_PROCESSING)


@dataclass
class ProviderResult:
    """One poll of a provider transcription job."""

    id: str
    status: str
    raw_status: str
    text: str = ""
    words: List[Word] = field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == PROVIDER_COMPLETED

    @property
    def is_error(self) -> bool:
        return self.status == PROVIDER_ERROR

    @classmethod
    def from_dict(cls, data: dict) -> ProviderResult:
        """Parse a transcript response dict.

        RULES:
        - id and status are required
        - text may be null in the response; it becomes ""
        - words may be null or absent; it becomes []
        """
        raw_status = data["status"]
        return cls(
            id=data["id"],
            status=map_provider_status(raw_status),
            raw_status=raw_status,
            text=data.get("text") or "",
            words=[Word.from_dict(w) for w in data.get("words") or []],
            error_message=data.get("error"),
        )
