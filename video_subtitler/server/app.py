"""FastAPI application exposing the upload, transcription and render polling API.

WHY: Clients (the web UI, curl, automation) observe job progress by
polling. This module is the transport for the orchestrator: it validates
requests, maps package errors to HTTP status codes and runs slow renders
as background tasks.

HOW: create_app() builds the FastAPI app. Collaborators can be injected
(tests pass an Orchestrator built on fakes); otherwise the lifespan opens
the AssemblyAI client, the blob store and the video fetcher from config
and closes them on shutdown. Each GET on a transcription performs one
provider check through the orchestrator.

RULES:
- Unknown job or video → 404; invalid input → 400; render rejection → 409 with reason
- Provider submit failure → 502
- Render triggers claim synchronously, then render in a background task
- With the local storage backend, stored objects are served under /media
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from pathlib import Path
from typing import Annotated, Any, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from video_subtitler import __version__
from video_subtitler.config import (
    STORAGE_BACKEND,
    SUPPORTED_VIDEO_FORMATS,
)
from video_subtitler.errors import (
    InvalidRequestError,
    JobNotFoundError,
    RenderFailedError,
    TranscriptionStartError,
    VideoNotFoundError,
)
from video_subtitler.orchestrator import Orchestrator
from video_subtitler.server.jobs import JobStore
from video_subtitler.server.models import (
    ErrorResponse,
    HealthResponse,
    JobCreatedResponse,
    JobListResponse,
    JobSummary,
    RenderAcceptedResponse,
    RenderRejectedResponse,
    RenderRequest,
    RenderStatusResponse,
    StartTranscriptionRequest,
    TranscriptionStatusResponse,
    VideoUploadResponse,
)
from video_subtitler.storage import LocalBlobStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open default collaborators on startup unless an orchestrator was injected."""
    if app.state.orchestrator is not None:
        yield
        return

    from video_subtitler.api.client import AssemblyAIClient
    from video_subtitler.render import FFmpegRenderer, HttpVideoFetcher
    from video_subtitler.storage import SupabaseBlobStore

    async with AsyncExitStack() as stack:
        if app.state.blob_store is None:
            app.state.blob_store = await stack.enter_async_context(SupabaseBlobStore())
        provider = await stack.enter_async_context(AssemblyAIClient())
        fetcher = await stack.enter_async_context(HttpVideoFetcher())
        app.state.orchestrator = Orchestrator(
            store=JobStore(),
            provider=provider,
            blob_store=app.state.blob_store,
            renderer=FFmpegRenderer(),
            fetcher=fetcher,
        )
        logger.info("Subtitler API started (storage: %s)", STORAGE_BACKEND)
        yield
    app.state.orchestrator = None


def create_app(
    orchestrator: Optional[Orchestrator] = None,
    blob_store: Optional[Any] = None,
) -> FastAPI:
    """Build the API app.

    Args:
        orchestrator: Pre-built orchestrator (tests). When None, one is
            built from config at startup.
        blob_store: Blob store for the default orchestrator. When None and
            the local backend is configured, a LocalBlobStore is created and
            served under /media.
    """
    if blob_store is None and STORAGE_BACKEND == "local":
        blob_store = LocalBlobStore()

    app = FastAPI(
        lifespan=lifespan,
        title="Video Subtitler API",
        description=(
            "Upload a video, transcribe it into SRT subtitles, and optionally "
            "render a copy with the subtitles burned in. Start a job, then poll "
            "its transcription and render status."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.orchestrator = orchestrator
    app.state.blob_store = blob_store

    if isinstance(blob_store, LocalBlobStore):
        app.mount(
            "/media",
            StaticFiles(directory=str(blob_store.root_dir), check_dir=False),
            name="media",
        )

    _register_routes(app)
    return app


def get_orchestrator(request: Request) -> Orchestrator:
    orchestrator = request.app.state.orchestrator
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Service is not ready")
    return orchestrator


OrchestratorDep = Annotated[Orchestrator, Depends(get_orchestrator)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _validate_video_file(upload: UploadFile) -> None:
    """Raise 400 if the upload is not a supported video."""
    filename = Path(upload.filename or "").name
    ext = Path(filename).suffix.lower()
    if ext not in SUPPORTED_VIDEO_FORMATS:
        raise HTTPException(
            status_code=400,
            detail="Unsupported file type '{}'. Supported formats: {}".format(
                ext, ", ".join(sorted(SUPPORTED_VIDEO_FORMATS))
            ),
        )
    content_type = upload.content_type or ""
    if content_type and not content_type.startswith("video/"):
        raise HTTPException(status_code=400, detail="File must be a video")


def _not_found(exc: JobNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


async def _run_render_task(orchestrator: Orchestrator, job_id: str, style: Any) -> None:
    """Background render; the failure is already recorded on the job."""
    try:
        await orchestrator.run_render(job_id, style)
    except RenderFailedError:
        logger.warning("Background render failed for job %s", job_id)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


def _register_routes(app: FastAPI) -> None:

    @app.post(
        "/videos",
        response_model=VideoUploadResponse,
        status_code=201,
        tags=["videos"],
        summary="Upload a source video",
        responses={
            400: {"model": ErrorResponse, "description": "Missing or unsupported file"},
            500: {"model": ErrorResponse, "description": "Storage write failed"},
        },
    )
    async def upload_video(
        file: Annotated[UploadFile, File(description="Video file to subtitle")],
        orchestrator: OrchestratorDep,
    ) -> VideoUploadResponse:
        _validate_video_file(file)
        content = await file.read()
        try:
            record = await orchestrator.upload_video(
                content,
                Path(file.filename or "").name,
                file.content_type or "video/mp4",
            )
        except Exception:
            logger.exception("Failed to store upload %s", file.filename)
            raise HTTPException(status_code=500, detail="Failed to upload video")

        return VideoUploadResponse(
            video_ref=record.video_ref,
            url=orchestrator.video_url(record.video_ref),
            original_name=record.original_name,
            file_size=record.file_size,
            mime_type=record.mime_type,
        )

    @app.post(
        "/transcriptions",
        response_model=JobCreatedResponse,
        status_code=201,
        tags=["transcriptions"],
        summary="Start transcribing an uploaded video",
        description=(
            "Submits the video to the speech-to-text provider and returns a job ID. "
            "Poll GET /transcriptions/{id} until the status is completed or error."
        ),
        responses={
            400: {"model": ErrorResponse, "description": "Empty video reference"},
            404: {"model": ErrorResponse, "description": "Video not found"},
            502: {"model": ErrorResponse, "description": "Provider rejected the submit"},
        },
    )
    async def start_transcription(
        body: StartTranscriptionRequest,
        orchestrator: OrchestratorDep,
    ) -> JobCreatedResponse:
        try:
            job = await orchestrator.start_transcription(body.video_ref)
        except VideoNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc))
        except InvalidRequestError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except TranscriptionStartError as exc:
            raise HTTPException(status_code=502, detail=str(exc))
        return JobCreatedResponse(id=job.id, status=job.transcription_status.value)

    @app.get(
        "/transcriptions",
        response_model=JobListResponse,
        tags=["transcriptions"],
        summary="List jobs",
    )
    async def list_transcriptions(orchestrator: OrchestratorDep) -> JobListResponse:
        return JobListResponse(jobs=[
            JobSummary(
                id=job.id,
                video_ref=job.video_ref,
                transcription_status=job.transcription_status.value,
                render_status=job.render_status.value if job.render_status else None,
                created_at=job.created_at,
            )
            for job in orchestrator.store.list_jobs()
        ])

    @app.get(
        "/transcriptions/{job_id}",
        response_model=TranscriptionStatusResponse,
        response_model_exclude_none=True,
        tags=["transcriptions"],
        summary="Poll transcription status",
        description=(
            "Checks the provider once and returns the current status. When the "
            "transcript completes, the subtitle file is stored and its URL and "
            "content are returned in the same response."
        ),
        responses={404: {"model": ErrorResponse, "description": "Job not found"}},
    )
    async def get_transcription(
        job_id: str,
        orchestrator: OrchestratorDep,
    ) -> TranscriptionStatusResponse:
        try:
            check = await orchestrator.check_transcription(job_id)
        except JobNotFoundError as exc:
            raise _not_found(exc)
        return TranscriptionStatusResponse(
            id=check.job_id,
            status=check.status.value,
            text=check.text,
            subtitle_url=check.subtitle_url,
            srt_content=check.srt_content,
            error=check.error,
        )

    @app.post(
        "/transcriptions/{job_id}/render",
        response_model=RenderAcceptedResponse,
        status_code=202,
        tags=["render"],
        summary="Render the video with burned-in subtitles",
        description=(
            "Claims the render track and starts rendering in the background. "
            "Poll GET /transcriptions/{id}/render for the result."
        ),
        responses={
            404: {"model": ErrorResponse, "description": "Job not found"},
            409: {"model": RenderRejectedResponse, "description": "Render rejected"},
        },
    )
    async def start_render(
        job_id: str,
        background_tasks: BackgroundTasks,
        orchestrator: OrchestratorDep,
        body: Optional[RenderRequest] = None,
    ) -> Any:
        try:
            decision = orchestrator.start_render(job_id)
        except JobNotFoundError as exc:
            raise _not_found(exc)

        if not decision.accepted:
            return JSONResponse(
                status_code=409,
                content={
                    "detail": "Render rejected: {}".format(decision.reason),
                    "reason": decision.reason,
                },
            )

        style = None
        if body is not None and body.style is not None:
            style = body.style.model_dump()
        background_tasks.add_task(_run_render_task, orchestrator, job_id, style)
        return RenderAcceptedResponse(id=job_id, status="processing")

    @app.get(
        "/transcriptions/{job_id}/render",
        response_model=RenderStatusResponse,
        response_model_exclude_none=True,
        tags=["render"],
        summary="Poll render status",
        responses={404: {"model": ErrorResponse, "description": "Job not found"}},
    )
    async def get_render(
        job_id: str,
        orchestrator: OrchestratorDep,
    ) -> RenderStatusResponse:
        try:
            check = orchestrator.render_status(job_id)
        except JobNotFoundError as exc:
            raise _not_found(exc)
        return RenderStatusResponse(
            id=check.job_id,
            status=check.status.value if check.status else None,
            rendered_video_url=check.rendered_video_url,
            error=check.error,
        )

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["health"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)


app = create_app()


def run_api(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Serve the API with uvicorn."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)
