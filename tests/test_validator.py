"""
Unit tests for tracking-result validation and gaze coefficient substitution.
"""

import logging

import pytest
import torch

from face_reconstruct.core.adapter import DEFAULT_GAZE_LAYOUT, GazeLayout, apply_pupil_position
from face_reconstruct.core.exceptions import (
    DimensionMismatch,
    ResourceUnavailable,
    TrackingLost,
    UnreliableFrame,
)
from face_reconstruct.core.validator import (
    FrameStatus,
    check_frame,
    classify_frame,
    validate_coefficients,
    validate_input_file,
)


@pytest.mark.parametrize("stress, tracked, expected", [
    (0.0, True, FrameStatus.USABLE),
    (2.0, True, FrameStatus.USABLE),
    (2.01, True, FrameStatus.UNRELIABLE),
    (5.0, True, FrameStatus.UNRELIABLE),
    (10.0, True, FrameStatus.UNRELIABLE),
    (10.5, True, FrameStatus.CORRUPT),
    (15.0, True, FrameStatus.CORRUPT),
    (0.0, False, FrameStatus.UNRELIABLE),
    (15.0, False, FrameStatus.CORRUPT),
])
def test_stress_thresholds(stress, tracked, expected):
    assert classify_frame(stress, tracked) is expected


def test_check_frame_signals():
    assert check_frame(0.0) is FrameStatus.USABLE

    with pytest.raises(UnreliableFrame) as excinfo:
        check_frame(5.0)
    assert excinfo.value.stress == 5.0

    with pytest.raises(TrackingLost):
        check_frame(15.0)

    with pytest.raises(UnreliableFrame) as excinfo:
        check_frame(0.5, tracked=False)
    assert excinfo.value.tracked is False


def test_pupil_slots_are_overwritten():
    raw = torch.arange(46, dtype=torch.float32) / 100.0

    adapted = apply_pupil_position(raw, (0.3, -0.2))

    assert adapted[6].item() == pytest.approx(0.3)
    assert adapted[7].item() == pytest.approx(0.3)
    assert adapted[10].item() == pytest.approx(-0.3)
    assert adapted[11].item() == pytest.approx(-0.3)
    assert adapted[12].item() == pytest.approx(-0.2)
    assert adapted[13].item() == pytest.approx(-0.2)
    assert adapted[4].item() == pytest.approx(0.2)
    assert adapted[5].item() == pytest.approx(0.2)


def test_other_slots_untouched_and_input_not_mutated():
    raw = torch.arange(46, dtype=torch.float32)
    original = raw.clone()

    adapted = apply_pupil_position(raw, (1.0, 1.0))

    reserved = set(DEFAULT_GAZE_LAYOUT.slots)
    for i in range(46):
        if i not in reserved:
            assert adapted[i] == raw[i]
    assert torch.equal(raw, original)


def test_custom_layout():
    layout = GazeLayout(
        horizontal_positive=(0,),
        horizontal_negative=(1,),
        vertical_positive=(2,),
        vertical_negative=(3,),
    )

    adapted = apply_pupil_position([9.0] * 5, (0.5, 0.25), layout)

    assert adapted.tolist() == [0.5, -0.5, 0.25, -0.25, 9.0]


def test_adapter_dimension_checks():
    with pytest.raises(DimensionMismatch):
        apply_pupil_position(torch.zeros(10), (0.1, 0.2))

    with pytest.raises(DimensionMismatch):
        apply_pupil_position(torch.zeros(46), (0.1,))


def test_out_of_range_coefficients_are_reported_not_rejected(caplog):
    with caplog.at_level(logging.WARNING, logger="face_reconstruct"):
        count = validate_coefficients([0.0, -0.5, 1.5, 2.0])

    assert count == 2
    assert "indices [1, 3]" in caplog.text
    assert validate_coefficients([-0.2, 0.0, 1.5]) == 0


def test_validate_input_file(tmp_path):
    existing = tmp_path / "Man.bs"
    existing.write_bytes(b"")

    assert validate_input_file(existing) == existing

    with pytest.raises(ResourceUnavailable):
        validate_input_file(tmp_path / "missing.bs")

    other = tmp_path / "notes.txt"
    other.write_text("x")
    with pytest.raises(ResourceUnavailable):
        validate_input_file(other)
