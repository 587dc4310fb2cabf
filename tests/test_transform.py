"""
Unit tests for quaternion rotation and static-vertex calibration.
"""

import math

import pytest
import torch

from face_reconstruct.core.exceptions import DimensionMismatch
from face_reconstruct.core.transform import (
    DEFAULT_CALIBRATIONS,
    IDENTITY_CALIBRATION,
    ModelCalibration,
    RigidTransform,
    apply_calibration,
    get_calibration,
    quaternion_to_matrix,
    rotate_points,
)


def test_identity_quaternion_only_negates_z():
    R = quaternion_to_matrix((0.0, 0.0, 0.0, 1.0))
    points = torch.tensor([[1.0, 2.0, 3.0], [-4.0, 0.5, -6.0]])

    rotated = rotate_points(points, R)

    assert torch.equal(R, torch.eye(4))
    assert torch.allclose(rotated, torch.tensor([[1.0, 2.0, -3.0], [-4.0, 0.5, 6.0]]))


def test_quarter_turn_about_z():
    half = math.sqrt(0.5)
    R = quaternion_to_matrix((0.0, 0.0, half, half))

    rotated = rotate_points(torch.tensor([1.0, 0.0, 0.0]), R)

    assert torch.allclose(rotated, torch.tensor([0.0, 1.0, 0.0]), atol=1e-6)


def test_negation_happens_before_rotation():
    """A quarter turn about x maps (0, 0, 1) -> R(0, 0, -1) = (0, 1, 0)."""
    half = math.sqrt(0.5)
    R = quaternion_to_matrix((half, 0.0, 0.0, half))

    rotated = rotate_points(torch.tensor([0.0, 0.0, 1.0]), R)

    assert torch.allclose(rotated, torch.tensor([0.0, 1.0, 0.0]), atol=1e-6)


def test_unit_quaternion_gives_orthonormal_matrix():
    q = torch.tensor([0.1, -0.3, 0.2, 0.9])
    q = q / q.norm()

    R = quaternion_to_matrix(q)[:3, :3]

    assert torch.allclose(R @ R.T, torch.eye(3), atol=1e-6)
    assert torch.det(R).item() == pytest.approx(1.0, abs=1e-5)


def test_non_unit_quaternion_is_not_normalized():
    R = quaternion_to_matrix((0.0, 0.0, 0.0, 2.0))

    # Closed form ignores w on the diagonal, but off-diagonals scale with it
    assert torch.allclose(R[:3, :3], torch.eye(3))

    R = quaternion_to_matrix((0.0, 0.0, 1.0, 1.0))
    assert R[0, 0].item() == pytest.approx(-1.0)
    assert R[0, 1].item() == pytest.approx(-2.0)


def test_homogeneous_layout():
    R = quaternion_to_matrix((0.1, 0.2, 0.3, 0.9))

    assert R.shape == (4, 4)
    assert R[3, 3].item() == 1.0
    assert torch.count_nonzero(R[3, :3]) == 0
    assert torch.count_nonzero(R[:3, 3]) == 0


def test_quaternion_needs_four_components():
    with pytest.raises(DimensionMismatch):
        quaternion_to_matrix((0.0, 0.0, 1.0))


def test_calibration_offset_then_scale():
    calibration = ModelCalibration(scale=2.0, offset=(1.0, -1.0, 0.5))

    result = apply_calibration(torch.tensor([1.0, 1.0, 1.0]), calibration)

    assert result.tolist() == pytest.approx([4.0, 0.0, 3.0])


def test_known_models_and_default():
    man = get_calibration("Man")
    assert man.scale == pytest.approx(0.069982)
    assert man.offset == pytest.approx((0.0, -109.965637, -4.265675))

    old_man = get_calibration("OldMan")
    assert old_man.offset == pytest.approx((0.0, 0.35782, 0.62820))

    assert get_calibration("shape_0") is IDENTITY_CALIBRATION
    assert get_calibration("unknown", {}) is IDENTITY_CALIBRATION
    assert "shape_0" not in DEFAULT_CALIBRATIONS


def test_rigid_transform_calibrates_only_static_points():
    calibration = ModelCalibration(scale=0.5, offset=(0.0, 2.0, 0.0))
    transform = RigidTransform((0.0, 0.0, 0.0, 1.0), calibration)
    point = torch.tensor([[2.0, 2.0, 2.0]])

    assert torch.allclose(transform.deformable(point), torch.tensor([[2.0, 2.0, -2.0]]))
    assert torch.allclose(transform.static(point), torch.tensor([[1.0, 2.0, -1.0]]))


def test_calibration_from_dict():
    calibration = ModelCalibration.from_dict({"scale": 3, "offset": [1, 2, 3]})

    assert calibration == ModelCalibration(scale=3.0, offset=(1.0, 2.0, 3.0))
    assert ModelCalibration.from_dict({}) == IDENTITY_CALIBRATION

    with pytest.raises(DimensionMismatch):
        ModelCalibration.from_dict({"offset": [1, 2]})
