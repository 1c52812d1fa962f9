"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation. Pydantic
models enforce field types at runtime and generate JSON Schema that
appears in the /docs UI.

HOW: Each endpoint pair (request + response) has its own model. Status
fields are plain strings carrying TrackStatus values.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Optional payload fields are only set when the status allows them
- SubtitleStyleModel accepts snake_case and camelCase field names
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class StartTranscriptionRequest(BaseModel):
    """Body of POST /transcriptions."""

    video_ref: str = Field(
        description="Storage path of an uploaded video in the videos bucket.",
    )


class SubtitleStyleModel(BaseModel):
    """Subtitle style for a render request; every field is optional.

    RULES:
    - Missing or unusable values fall back to defaults at resolution time;
      sizes accept any JSON value and resolve() normalizes them
    - Colors accept names (white, black, red, ...), #RRGGBB, or name@alpha
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    font_name: Optional[str] = Field(default=None, description="Font family, e.g. 'Arial'.")
    font_size_px: Optional[Any] = Field(
        default=None,
        description="Font size in pixels. Non-numeric or non-positive values use the default.",
    )
    font_color: Optional[str] = Field(default=None, description="Text fill color.")
    background_color: Optional[str] = Field(default=None, description="Box color behind text.")
    outline_color: Optional[str] = Field(default=None, description="Text outline color.")
    outline_width_px: Optional[Any] = Field(
        default=None,
        description="Outline width in pixels. Non-numeric or negative values use the default.",
    )
    position: Optional[str] = Field(
        default=None,
        description="Vertical placement: 'top', 'center' or 'bottom'.",
    )


class RenderRequest(BaseModel):
    """Body of POST /transcriptions/{id}/render."""

    style: Optional[SubtitleStyleModel] = Field(
        default=None,
        description="Subtitle style. Defaults are used for omitted fields.",
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class VideoUploadResponse(BaseModel):
    """Response returned after a video is stored and registered."""

    video_ref: str = Field(description="Storage path to pass to POST /transcriptions.")
    url: str = Field(description="Public URL of the stored video.")
    original_name: str = Field(description="File name as uploaded.")
    file_size: int = Field(description="Size of the stored file in bytes.")
    mime_type: str = Field(description="Content type the file was stored with.")


class JobCreatedResponse(BaseModel):
    """Response returned when a transcription job is started."""

    id: str = Field(description="Unique job identifier for polling status.")
    status: str = Field(description="Transcription status after submit ('processing').")

    model_config = {"json_schema_extra": {
        "examples": [
            {"id": "550e8400e29b41d4a716446655440000", "status": "processing"}
        ]
    }}


class TranscriptionStatusResponse(BaseModel):
    """Transcription track status.

    RULES:
    - text, subtitle_url and srt_content are only present when completed
    - error is only present when status is 'error'
    """

    id: str = Field(description="Job identifier.")
    status: str = Field(description="pending, processing, completed or error.")
    text: Optional[str] = Field(default=None, description="Full transcript text.")
    subtitle_url: Optional[str] = Field(default=None, description="Public URL of the SRT file.")
    srt_content: Optional[str] = Field(default=None, description="SRT file content.")
    error: Optional[str] = Field(default=None, description="Failure message.")


class RenderAcceptedResponse(BaseModel):
    id: str = Field(description="Job identifier.")
    status: str = Field(description="Render status after the claim ('processing').")


class RenderRejectedResponse(BaseModel):
    detail: str = Field(description="Human-readable rejection message.")
    reason: str = Field(
        description="'already-in-progress' or 'transcription-not-ready'.",
    )


class RenderStatusResponse(BaseModel):
    id: str = Field(description="Job identifier.")
    status: Optional[str] = Field(
        default=None,
        description="Render status; null until transcription has completed.",
    )
    rendered_video_url: Optional[str] = Field(
        default=None,
        description="Public URL of the rendered video, only when completed.",
    )
    error: Optional[str] = Field(default=None, description="Last render failure message.")


class JobSummary(BaseModel):
    id: str = Field(description="Job identifier.")
    video_ref: str = Field(description="Source video storage path.")
    transcription_status: str = Field(description="Transcription track status.")
    render_status: Optional[str] = Field(default=None, description="Render track status.")
    created_at: float = Field(description="Job creation timestamp (Unix epoch seconds).")


class JobListResponse(BaseModel):
    jobs: List[JobSummary] = Field(description="All jobs, oldest first.")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
