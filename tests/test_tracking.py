"""
Unit tests for the tracking engine boundary and frame acquisition.
"""

import json

import pytest

from face_reconstruct.core.exceptions import DetectionFailed, FormatError, TrackingLost
from face_reconstruct.core.validator import FrameStatus
from face_reconstruct.tracking import (
    FrameTracker,
    RecordedEngine,
    acquire_frame,
    frame_from_dict,
    frame_to_dict,
)

from conftest import make_frame


class CountingEngine(RecordedEngine):
    """Recorded engine that counts resets."""

    def __init__(self, frames):
        super().__init__(frames)
        self.resets = 0

    def reset(self):
        self.resets += 1
        super().reset()


def test_capture_snapshots_current_frame():
    frame = make_frame(stress=1.5, pupil=(0.1, -0.1), rotation_mode=2)
    engine = RecordedEngine([frame])

    assert engine.run() is True
    captured = engine.capture()

    assert captured == frame
    assert engine.validate_frame() is FrameStatus.USABLE
    assert captured.status is FrameStatus.USABLE


def test_acquire_frame_returns_usable_frame():
    frame = make_frame(stress=0.0)
    engine = CountingEngine([frame])

    assert acquire_frame(engine, max_attempts=5) == frame
    assert engine.resets == 1


def test_acquire_frame_waits_for_warmup():
    """Only a tracked frame at or after the warmup count is taken."""
    frames = [make_frame(stress=float(i) / 10) for i in range(4)]
    engine = RecordedEngine(frames)

    result = acquire_frame(engine, warmup_runs=2, max_runs=4)

    assert result.stress == pytest.approx(0.2)


def test_acquire_frame_gives_up_after_bounded_attempts():
    engine = CountingEngine([make_frame(tracked=False)])

    with pytest.raises(DetectionFailed) as excinfo:
        acquire_frame(engine, max_attempts=3, warmup_runs=0, max_runs=2)

    assert excinfo.value.attempts == 3
    assert engine.resets == 3


def test_acquire_frame_rejects_unreliable_and_corrupt_frames():
    with pytest.raises(DetectionFailed):
        acquire_frame(RecordedEngine([make_frame(stress=5.0)]), max_attempts=2, warmup_runs=0)

    engine = CountingEngine([make_frame(stress=15.0)])
    with pytest.raises(DetectionFailed) as excinfo:
        acquire_frame(engine, max_attempts=2, warmup_runs=0)

    assert isinstance(excinfo.value.last_error, TrackingLost)
    # One reset per attempt plus one per corrupt result
    assert engine.resets == 4


def test_frame_tracker_keeps_previous_frame_on_unreliable():
    good = make_frame(stress=0.0, pupil=(0.5, 0.5))
    shaky = make_frame(stress=5.0)
    tracker = FrameTracker(RecordedEngine([good, shaky]))

    assert tracker.update() == good
    assert tracker.update() == good
    assert tracker.last_frame == good


def test_frame_tracker_unreliable_before_any_good_frame():
    tracker = FrameTracker(RecordedEngine([make_frame(stress=5.0)]))

    assert tracker.update() is None


def test_frame_tracker_resets_on_tracking_lost():
    good = make_frame(stress=0.0)
    engine = CountingEngine([good, make_frame(stress=15.0)])
    tracker = FrameTracker(engine)

    tracker.update()
    with pytest.raises(TrackingLost):
        tracker.update()

    assert tracker.last_frame is None
    assert engine.resets == 1


def test_recording_round_trip(tmp_path):
    frame = make_frame(stress=0.25, pupil=(0.1, 0.2), rotation_mode=1)
    path = tmp_path / "rec.json"
    path.write_text(json.dumps({"frames": [frame_to_dict(frame)]}))

    engine = RecordedEngine.from_json(path)

    assert engine.frames == [frame]


def test_bad_recordings(tmp_path):
    with pytest.raises(FormatError):
        frame_from_dict({"rotation": [0, 0, 0, 1]})

    with pytest.raises(FormatError):
        frame_from_dict({"expression": [], "rotation": [0, 0, 1]})

    with pytest.raises(FormatError):
        RecordedEngine([])

    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    with pytest.raises(FormatError):
        RecordedEngine.from_json(broken)
