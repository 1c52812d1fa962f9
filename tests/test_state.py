"""Tests for the transcription and render transition tables."""

from __future__ import annotations

import pytest

from video_subtitler.core.state import (
    InvalidTransitionError,
    Track,
    TrackStatus,
    check_transition,
    is_allowed,
)

P = TrackStatus.PENDING
R = TrackStatus.PROCESSING
C = TrackStatus.COMPLETED
E = TrackStatus.ERROR


class TestTranscriptionTrack:
    @pytest.mark.parametrize("current,target", [(P, R), (P, E), (R, C), (R, E)])
    def test_allowed(self, current, target):
        assert is_allowed(Track.TRANSCRIPTION, current, target)

    @pytest.mark.parametrize("current,target", [
        (C, R), (C, E), (E, R), (E, P), (R, P), (P, C), (C, P),
    ])
    def test_rejected(self, current, target):
        assert not is_allowed(Track.TRANSCRIPTION, current, target)

    def test_terminal_states_never_move(self):
        for terminal in (C, E):
            for target in TrackStatus:
                assert not is_allowed(Track.TRANSCRIPTION, terminal, target)


class TestRenderTrack:
    @pytest.mark.parametrize("current,target", [
        (None, P), (P, R), (R, C), (R, E), (E, R), (C, R),
    ])
    def test_allowed(self, current, target):
        assert is_allowed(Track.RENDER, current, target)

    @pytest.mark.parametrize("current,target", [
        (None, R), (P, C), (P, E), (C, E), (E, C), (R, P),
    ])
    def test_rejected(self, current, target):
        assert not is_allowed(Track.RENDER, current, target)


class TestCheckTransition:
    def test_raises_with_details(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            check_transition(Track.TRANSCRIPTION, C, R)
        err = exc_info.value
        assert err.track is Track.TRANSCRIPTION
        assert err.current is C
        assert err.target is R
        assert "completed -> processing" in str(err)

    def test_absent_render_named_none(self):
        with pytest.raises(InvalidTransitionError, match="none -> processing"):
            check_transition(Track.RENDER, None, R)

    def test_allowed_does_not_raise(self):
        check_transition(Track.RENDER, P, R)

    def test_status_values_serialize_as_strings(self):
        assert TrackStatus.COMPLETED == "completed"
        assert TrackStatus("error") is E
