"""Burn SRT subtitles into a video with ffmpeg.

WHY: The renderer is the only part of the pipeline that touches the
local filesystem and spawns a process. Isolating it here keeps temporary
file handling and cleanup in one place, and keeps the orchestrator
working purely with bytes.

HOW: Each render gets its own temporary directory. The source video and
SRT text are written there, ffmpeg runs the subtitles filter with an ASS
force_style override, and the output file is read back as bytes. The
directory is removed afterwards whether the render succeeded or not.

RULES:
- Video is re-encoded with libx264 (preset medium, CRF 23); audio is copied
- Output container is always MP4
- Non-zero exit, a missing binary or a timeout raise RendererError
- Cleanup never raises; failures are logged and ignored
- Temp directory setup, the output read and cleanup run in a worker
  thread, never on the event loop
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import List

from video_subtitler.config import FFMPEG_BINARY, RENDER_TIMEOUT_S
from video_subtitler.core.style import ResolvedStyle
from video_subtitler.errors import SubtitlerError

logger = logging.getLogger(__name__)

_STDERR_TAIL_CHARS = 2000

_INPUT_NAME = "input.mp4"
_SUBTITLES_NAME = "subtitles.srt"
_OUTPUT_NAME = "output.mp4"


class RendererError(SubtitlerError):
    """Raised when ffmpeg cannot produce the output video."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        self.returncode = returncode
        super().__init__(message)


def escape_filter_path(path: Path | str) -> str:
    """Escape a file path for use inside an ffmpeg filter argument."""
    return (
        str(path)
        .replace("\\", "\\\\")
        .replace(":", "\\:")
        .replace("'", "\\'")
    )


def build_subtitle_filter(srt_path: Path | str, style: ResolvedStyle) -> str:
    return "subtitles='{}':force_style='{}'".format(
        escape_filter_path(srt_path), style.force_style()
    )


def build_ffmpeg_command(
    input_path: Path,
    srt_path: Path,
    output_path: Path,
    style: ResolvedStyle,
    ffmpeg_binary: str = FFMPEG_BINARY,
) -> List[str]:
    return [
        ffmpeg_binary,
        "-y",
        "-i", str(input_path),
        "-vf", build_subtitle_filter(srt_path, style),
        "-c:v", "libx264",
        "-preset", "medium",
        "-crf", "23",
        "-c:a", "copy",
        str(output_path),
    ]


class FFmpegRenderer:
    """Media renderer that shells out to ffmpeg."""

    def __init__(
        self,
        ffmpeg_binary: str = FFMPEG_BINARY,
        timeout_s: float = RENDER_TIMEOUT_S,
        temp_root: Path | None = None,
    ) -> None:
        self._ffmpeg_binary = ffmpeg_binary
        self._timeout_s = timeout_s
        self._temp_root = temp_root

    async def render(
        self,
        source_bytes: bytes,
        subtitle_text: str,
        style: ResolvedStyle,
    ) -> bytes:
        """Return the re-encoded video with subtitles burned in."""
        work_dir = await asyncio.to_thread(
            _prepare_work_dir, self._temp_root, source_bytes, subtitle_text
        )
        try:
            cmd = build_ffmpeg_command(
                work_dir / _INPUT_NAME,
                work_dir / _SUBTITLES_NAME,
                work_dir / _OUTPUT_NAME,
                style,
                self._ffmpeg_binary,
            )
            await self._run(cmd)
            return await asyncio.to_thread((work_dir / _OUTPUT_NAME).read_bytes)
        finally:
            await asyncio.to_thread(_cleanup_work_dir, work_dir)

    async def _run(self, cmd: List[str]) -> None:
        logger.debug("Running: %s", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise RendererError("ffmpeg binary not found: {}".format(cmd[0]))

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout_s)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise RendererError(
                "ffmpeg timed out after {:.0f}s".format(self._timeout_s)
            )

        if proc.returncode != 0:
            tail = stderr.decode("utf-8", errors="replace")[-_STDERR_TAIL_CHARS:]
            logger.error("ffmpeg failed with code %d: %s", proc.returncode, tail)
            raise RendererError(
                "ffmpeg failed with code {}".format(proc.returncode),
                returncode=proc.returncode,
            )


def _prepare_work_dir(temp_root: Path | None, source_bytes: bytes, subtitle_text: str) -> Path:
    """Create a render's temp directory holding the source video and SRT file.

    The directory is removed again if either write fails.
    """
    work_dir = Path(tempfile.mkdtemp(prefix="subtitler_render_", dir=temp_root))
    try:
        (work_dir / _INPUT_NAME).write_bytes(source_bytes)
        (work_dir / _SUBTITLES_NAME).write_text(subtitle_text, encoding="utf-8")
    except OSError:
        _cleanup_work_dir(work_dir)
        raise
    return work_dir


def _cleanup_work_dir(work_dir: Path) -> None:
    """Remove a render's temp directory tree.

    RULES:
    - Never raises — logs warnings on failure
    - Skips if directory doesn't exist
    """
    if work_dir.exists():
        try:
            shutil.rmtree(work_dir)
        except OSError:
            logger.warning("Failed to clean up render dir: %s", work_dir)
