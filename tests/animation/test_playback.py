"""Tests for edit/playback mode switching."""

import pytest

from rigforge.animation.keyframes import KeyframeTrack
from rigforge.animation.playback import PlaybackActiveError, PlaybackController
from rigforge.core.math_utils import WORLD_Z
from rigforge.core.state import Mode


class FakeClock:
    def __init__(self, dt):
        self.dt = dt

    def get_delta(self):
        return self.dt


def _controller(rig, keyframes=3, speed=1.0):
    track = KeyframeTrack()
    for _ in range(keyframes):
        rig.rotate_on_axis(1, 0.3, WORLD_Z)
        track.capture(rig.bones)
    return PlaybackController(track, speed=speed)


def test_starts_in_edit_mode(arm_rig):
    pc = _controller(arm_rig)
    assert pc.mode is Mode.EDIT
    assert not pc.is_playing
    assert pc.max_time == 2.0


def test_toggle(arm_rig):
    pc = _controller(arm_rig)
    assert pc.toggle() is True
    assert pc.mode is Mode.PLAYBACK
    assert pc.toggle() is False
    assert pc.mode is Mode.EDIT


def test_playback_needs_two_keyframes(arm_rig):
    pc = _controller(arm_rig, keyframes=1)
    assert pc.toggle() is False
    assert pc.mode is Mode.EDIT


def test_advance(arm_rig):
    pc = _controller(arm_rig)
    pc.toggle()
    pc.advance(0.5)
    assert pc.time == pytest.approx(0.5)


def test_advance_ignored_in_edit_mode(arm_rig):
    pc = _controller(arm_rig)
    pc.advance(0.5)
    assert pc.time == 0.0


def test_wraps_to_edit_at_end(arm_rig):
    pc = _controller(arm_rig)
    pc.toggle()
    pc.advance(1.5)
    assert pc.is_playing
    pc.advance(0.5)
    assert not pc.is_playing
    assert pc.time == 0.0


def test_speed(arm_rig):
    pc = _controller(arm_rig, speed=2.0)
    pc.toggle()
    pc.advance(0.25)
    assert pc.time == pytest.approx(0.5)


def test_tick_uses_clock(arm_rig):
    pc = _controller(arm_rig)
    pc.toggle()
    pc.tick(FakeClock(0.1))
    pc.tick(FakeClock(0.1))
    assert pc.time == pytest.approx(0.2)


def test_restart_rewinds(arm_rig):
    pc = _controller(arm_rig)
    pc.toggle()
    pc.advance(1.2)
    pc.toggle()
    pc.toggle()
    assert pc.time == 0.0


def test_seek_clamps(arm_rig):
    pc = _controller(arm_rig)
    pc.seek(5.0)
    assert pc.time == 2.0
    pc.seek(-1.0)
    assert pc.time == 0.0


def test_require_edit_mode(arm_rig):
    pc = _controller(arm_rig)
    pc.require_edit_mode("capture")
    pc.toggle()
    with pytest.raises(PlaybackActiveError, match="capture"):
        pc.require_edit_mode("capture")


def test_current_frame(arm_rig):
    pc = _controller(arm_rig)
    pc.toggle()
    pc.advance(0.5)
    frame = pc.current_frame(arm_rig.bones)
    assert len(frame) == len(arm_rig.bones)
    assert pc.state.last_evaluated == pytest.approx(0.5)


def test_status(arm_rig):
    pc = _controller(arm_rig)
    assert pc.status() == "edit: 3 keyframes"
    pc.toggle()
    pc.advance(0.5)
    assert pc.status() == "playback: 0.50 / 2.00"
