"""Tests for the orchestrator's transcription and render flows.

WHY: The orchestrator turns provider answers and collaborator failures
into job transitions. These tests script the fakes from conftest.py to
walk each track through its happy path and every failure branch.

HOW: Async methods are driven with asyncio.run() inside plain sync tests,
the same way the CLI drives them.

RULES:
- No network or ffmpeg; collaborators are the conftest fakes
- Assertions check both the returned value and the stored job
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import SAMPLE_TEXT, SAMPLE_WORDS, make_result
from video_subtitler.api.client import ProviderError
from video_subtitler.core.state import Track, TrackStatus
from video_subtitler.errors import (
    InvalidRequestError,
    JobNotFoundError,
    RenderFailedError,
    RenderRejectedError,
    TranscriptionStartError,
    VideoNotFoundError,
)
from video_subtitler.orchestrator import (
    REJECT_ALREADY_IN_PROGRESS,
    REJECT_TRANSCRIPTION_NOT_READY,
)
from video_subtitler.storage.local import StorageError


def _start(orchestrator, video_ref="clip.mp4"):
    return asyncio.run(orchestrator.start_transcription(video_ref))


def _check(orchestrator, job_id):
    return asyncio.run(orchestrator.check_transcription(job_id))


def _completed_job_id(orchestrator, provider):
    provider.results = [make_result("completed", SAMPLE_WORDS, SAMPLE_TEXT)]
    job = _start(orchestrator)
    _check(orchestrator, job.id)
    return job.id


# ---------------------------------------------------------------------------
# upload_video
# ---------------------------------------------------------------------------


class TestUploadVideo:
    def test_stores_bytes_and_registers_metadata(self, orchestrator, blob_store):
        record = asyncio.run(
            orchestrator.upload_video(b"abc123", "Holiday Clip.MOV", "video/quicktime")
        )
        assert record.video_ref.endswith(".mov")
        assert blob_store.objects[("videos", record.video_ref)] == b"abc123"
        assert blob_store.content_types[("videos", record.video_ref)] == "video/quicktime"
        assert orchestrator.store.get_video(record.video_ref) == record
        assert record.original_name == "Holiday Clip.MOV"
        assert record.file_size == 6

    def test_storage_failure_registers_nothing(self, orchestrator, blob_store):
        blob_store.put_error = OSError("disk full")
        with pytest.raises(OSError):
            asyncio.run(orchestrator.upload_video(b"abc", "clip.mp4", "video/mp4"))
        assert orchestrator.store._videos.keys() == {"clip.mp4"}

    def test_uploaded_video_can_be_transcribed(self, orchestrator, provider):
        record = asyncio.run(orchestrator.upload_video(b"abc", "talk.mp4", "video/mp4"))
        job = _start(orchestrator, record.video_ref)
        assert job.video_ref == record.video_ref
        assert provider.submitted == ["https://cdn.test/videos/{}".format(record.video_ref)]


# ---------------------------------------------------------------------------
# start_transcription
# ---------------------------------------------------------------------------


class TestStartTranscription:
    def test_submits_public_url_and_moves_to_processing(self, orchestrator, provider):
        job = _start(orchestrator)
        assert provider.submitted == ["https://cdn.test/videos/clip.mp4"]
        assert job.transcription_status is TrackStatus.PROCESSING
        assert job.provider_job_id == "tr_123"
        assert job.render_status is None

    @pytest.mark.parametrize("ref", ["", "   ", None])
    def test_empty_reference_is_rejected_without_a_job(self, orchestrator, ref):
        with pytest.raises(InvalidRequestError):
            _start(orchestrator, ref)
        assert orchestrator.store.list_jobs() == []

    def test_unknown_reference_is_rejected_without_a_job(self, orchestrator, provider):
        with pytest.raises(VideoNotFoundError) as exc_info:
            _start(orchestrator, "never-uploaded.mp4")
        assert exc_info.value.video_ref == "never-uploaded.mp4"
        assert "Video not found" in str(exc_info.value)
        assert orchestrator.store.list_jobs() == []
        assert provider.submitted == []

    def test_submit_failure_leaves_job_in_error(self, orchestrator, provider):
        provider.submit_error = ProviderError(401, "Unauthorized")
        with pytest.raises(TranscriptionStartError) as exc_info:
            _start(orchestrator)
        job = orchestrator.store.get_job(exc_info.value.job_id)
        assert job.transcription_status is TrackStatus.ERROR
        assert "Unauthorized" in job.error


# ---------------------------------------------------------------------------
# check_transcription
# ---------------------------------------------------------------------------


class TestCheckTranscription:
    def test_unknown_job(self, orchestrator):
        with pytest.raises(JobNotFoundError):
            _check(orchestrator, "missing")

    def test_queued_reports_processing(self, orchestrator, provider):
        job = _start(orchestrator)
        check = _check(orchestrator, job.id)
        assert check.status is TrackStatus.PROCESSING
        assert check.text is None
        assert check.subtitle_url is None

    def test_unchanged_intermediate_status_is_not_rewritten(self, orchestrator, provider):
        provider.results = [make_result("queued"), make_result("queued"), make_result("processing")]
        job = _start(orchestrator)

        _check(orchestrator, job.id)
        after_first = orchestrator.store.get_job(job.id)
        assert after_first.provider_status == "queued"

        _check(orchestrator, job.id)
        after_second = orchestrator.store.get_job(job.id)
        assert after_second.version == after_first.version

        _check(orchestrator, job.id)
        after_third = orchestrator.store.get_job(job.id)
        assert after_third.provider_status == "processing"
        assert after_third.version == after_second.version + 1

    def test_completion_returns_payload_in_same_call(self, orchestrator, provider, blob_store):
        provider.results = [make_result("completed", SAMPLE_WORDS, SAMPLE_TEXT)]
        job = _start(orchestrator)
        check = _check(orchestrator, job.id)

        assert check.status is TrackStatus.COMPLETED
        assert check.text == SAMPLE_TEXT
        assert check.subtitle_url == "https://cdn.test/subtitles/{}.srt".format(job.id)
        assert check.srt_content.startswith("1\n00:00:00,000 --> 00:00:05,200\n")
        assert [c.index for c in check.cues] == [1, 2]

        stored = blob_store.objects[("subtitles", "{}.srt".format(job.id))]
        assert stored.decode("utf-8") == check.srt_content
        assert blob_store.content_types[("subtitles", "{}.srt".format(job.id))] == "application/x-subrip"

    def test_completion_persists_and_opens_render(self, orchestrator, provider):
        job_id = _completed_job_id(orchestrator, provider)
        job = orchestrator.store.get_job(job_id)
        assert job.transcription_status is TrackStatus.COMPLETED
        assert job.render_status is TrackStatus.PENDING
        assert len(job.cues) == 2
        assert job.subtitle_ref == "{}.srt".format(job_id)

    def test_completed_job_is_answered_without_provider(self, orchestrator, provider, blob_store):
        job_id = _completed_job_id(orchestrator, provider)
        polls = provider.poll_calls
        puts = blob_store.put_calls

        first = _check(orchestrator, job_id)
        second = _check(orchestrator, job_id)

        assert provider.poll_calls == polls
        assert blob_store.put_calls == puts
        assert first == second
        assert first.status is TrackStatus.COMPLETED

    def test_empty_word_list_completes_with_empty_srt(self, orchestrator, provider):
        provider.results = [make_result("completed", words=None, text=None)]
        job = _start(orchestrator)
        check = _check(orchestrator, job.id)
        assert check.status is TrackStatus.COMPLETED
        assert check.srt_content == ""
        assert check.text == ""
        assert check.cues == ()

    def test_provider_error_fails_transcription(self, orchestrator, provider):
        provider.results = [make_result("error", error="Audio file is corrupt")]
        job = _start(orchestrator)
        check = _check(orchestrator, job.id)
        assert check.status is TrackStatus.ERROR
        assert check.error == "Audio file is corrupt"

        # Terminal: later checks do not poll again.
        polls = provider.poll_calls
        again = _check(orchestrator, job.id)
        assert again.status is TrackStatus.ERROR
        assert provider.poll_calls == polls

    def test_poll_exception_fails_transcription(self, orchestrator, provider):
        job = _start(orchestrator)
        provider.poll_error = ProviderError(None, "connection reset")
        check = _check(orchestrator, job.id)
        assert check.status is TrackStatus.ERROR
        assert "connection reset" in check.error

    def test_storage_failure_fails_transcription(self, orchestrator, provider, blob_store):
        provider.results = [make_result("completed", SAMPLE_WORDS, SAMPLE_TEXT)]
        blob_store.put_error = StorageError("bucket missing")
        job = _start(orchestrator)
        check = _check(orchestrator, job.id)
        assert check.status is TrackStatus.ERROR
        job = orchestrator.store.get_job(job.id)
        assert job.subtitle_text is None
        assert job.render_status is None

    def test_pending_job_reports_pending_without_polling(self, orchestrator, provider):
        job = orchestrator.store.create_job("clip.mp4")
        check = _check(orchestrator, job.id)
        assert check.status is TrackStatus.PENDING
        assert provider.poll_calls == 0


# ---------------------------------------------------------------------------
# Render
# ---------------------------------------------------------------------------


class TestRender:
    def test_render_before_transcription_is_rejected(self, orchestrator, provider):
        job = _start(orchestrator)
        decision = orchestrator.start_render(job.id)
        assert decision.accepted is False
        assert decision.reason == REJECT_TRANSCRIPTION_NOT_READY
        assert orchestrator.store.get_job(job.id).render_status is None

    def test_second_claim_is_rejected_while_in_progress(self, orchestrator, provider):
        job_id = _completed_job_id(orchestrator, provider)
        assert orchestrator.start_render(job_id).accepted is True
        decision = orchestrator.start_render(job_id)
        assert decision.accepted is False
        assert decision.reason == REJECT_ALREADY_IN_PROGRESS

    def test_render_uploads_and_completes(self, orchestrator, provider, blob_store, renderer, fetcher):
        job_id = _completed_job_id(orchestrator, provider)
        url = asyncio.run(orchestrator.render(job_id, {"font_color": "red", "position": "top"}))

        job = orchestrator.store.get_job(job_id)
        assert job.render_status is TrackStatus.COMPLETED
        assert job.rendered_video_ref.startswith("{}/".format(job_id))
        assert job.rendered_video_ref.endswith(".mp4")
        assert url == "https://cdn.test/processed-videos/{}".format(job.rendered_video_ref)
        assert blob_store.objects[("processed-videos", job.rendered_video_ref)] == b"rendered:source-video"

        assert fetcher.urls == ["https://cdn.test/videos/clip.mp4"]
        source, subtitle_text, style = renderer.calls[0]
        assert subtitle_text == job.subtitle_text
        assert style.font_color == "0000FF"
        assert style.alignment == 8

        status = orchestrator.render_status(job_id)
        assert status.status is TrackStatus.COMPLETED
        assert status.rendered_video_url == url

    def test_render_failure_records_error(self, orchestrator, provider, renderer):
        job_id = _completed_job_id(orchestrator, provider)
        renderer.error = RuntimeError("ffmpeg exploded")
        with pytest.raises(RenderFailedError):
            asyncio.run(orchestrator.render(job_id))

        status = orchestrator.render_status(job_id)
        assert status.status is TrackStatus.ERROR
        assert "ffmpeg exploded" in status.error
        assert status.rendered_video_url is None

    def test_render_retry_after_failure(self, orchestrator, provider, renderer):
        job_id = _completed_job_id(orchestrator, provider)
        renderer.error = RuntimeError("transient")
        with pytest.raises(RenderFailedError):
            asyncio.run(orchestrator.render(job_id))

        renderer.error = None
        url = asyncio.run(orchestrator.render(job_id))
        job = orchestrator.store.get_job(job_id)
        assert job.render_status is TrackStatus.COMPLETED
        assert job.render_error is None
        assert url.endswith(job.rendered_video_ref)

    def test_re_render_writes_a_new_artifact(self, orchestrator, provider):
        job_id = _completed_job_id(orchestrator, provider)
        first = asyncio.run(orchestrator.render(job_id))
        second = asyncio.run(orchestrator.render(job_id))
        assert first != second
        assert orchestrator.render_status(job_id).rendered_video_url == second

    def test_render_rejection_raises_from_render(self, orchestrator, provider):
        job = _start(orchestrator)
        with pytest.raises(RenderRejectedError) as exc_info:
            asyncio.run(orchestrator.render(job.id))
        assert exc_info.value.reason == REJECT_TRANSCRIPTION_NOT_READY

    def test_run_render_requires_claim(self, orchestrator, provider):
        job_id = _completed_job_id(orchestrator, provider)
        with pytest.raises(InvalidRequestError):
            asyncio.run(orchestrator.run_render(job_id))

    def test_render_status_of_unknown_job(self, orchestrator):
        with pytest.raises(JobNotFoundError):
            orchestrator.render_status("missing")

    def test_render_status_before_transcription(self, orchestrator, provider):
        job = _start(orchestrator)
        status = orchestrator.render_status(job.id)
        assert status.status is None
        assert status.rendered_video_url is None

    def test_transcription_untouched_by_render(self, orchestrator, provider, renderer):
        job_id = _completed_job_id(orchestrator, provider)
        renderer.error = RuntimeError("boom")
        with pytest.raises(RenderFailedError):
            asyncio.run(orchestrator.render(job_id))
        job = orchestrator.store.get_job(job_id)
        assert job.transcription_status is TrackStatus.COMPLETED
        assert job.status_of(Track.TRANSCRIPTION) is TrackStatus.COMPLETED
