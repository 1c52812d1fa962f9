"""Rendering collaborators: the ffmpeg renderer and the source video fetcher."""

from video_subtitler.render.fetch import FetchError, HttpVideoFetcher
from video_subtitler.render.ffmpeg import FFmpegRenderer, RendererError

__all__ = ["FFmpegRenderer", "FetchError", "HttpVideoFetcher", "RendererError"]
