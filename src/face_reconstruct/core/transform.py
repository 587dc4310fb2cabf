"""
Rigid Transform & Calibration
=============================

Single responsibility: Pose vertices with the tracked head rotation.

Mesh space and the tracker's camera space differ in handedness, so every
point has its z component negated before the rotation is applied:

    p_out = R · (x, y, -z)

Static vertices (outside the blendshape region) are first brought into the
blendshape frame with a per-model calibration:

    p' = (p + offset) * scale
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union
import torch

from face_reconstruct.core.exceptions import DimensionMismatch

Vector3 = Tuple[float, float, float]


@dataclass(frozen=True)
class ModelCalibration:
    """
    Scale and offset applied to the static vertices of one model.

    Attributes:
        scale: Uniform scale factor
        offset: Offset added before scaling
    """

    scale: float = 1.0
    offset: Vector3 = (0.0, 0.0, 0.0)

    @classmethod
    def from_dict(cls, data: Mapping) -> 'ModelCalibration':
        offset = tuple(float(v) for v in data.get('offset', (0.0, 0.0, 0.0)))
        if len(offset) != 3:
            raise DimensionMismatch(3, len(offset), what="offset components")
        return cls(scale=float(data.get('scale', 1.0)), offset=offset)

    def to_dict(self) -> dict:
        return {'scale': self.scale, 'offset': list(self.offset)}


IDENTITY_CALIBRATION = ModelCalibration()

# Static-region calibration for the shipped models
DEFAULT_CALIBRATIONS: Dict[str, ModelCalibration] = {
    'Man': ModelCalibration(scale=0.069982, offset=(0.0, -109.965637, -4.265675)),
    'OldMan': ModelCalibration(scale=0.167268, offset=(0.0, 0.35782, 0.62820)),
}


def get_calibration(
    model_name: str,
    table: Optional[Mapping[str, ModelCalibration]] = None
) -> ModelCalibration:
    """
    Look up the calibration for a model.

    Args:
        model_name: Model identifier
        table: Calibration table (default: DEFAULT_CALIBRATIONS)

    Returns:
        The model's calibration, or the identity calibration if it has none
    """
    if table is None:
        table = DEFAULT_CALIBRATIONS
    return table.get(model_name) or IDENTITY_CALIBRATION


def quaternion_to_matrix(quaternion: Union[Sequence[float], torch.Tensor]) -> torch.Tensor:
    """
    Convert an (x, y, z, w) quaternion to a 4x4 homogeneous rotation.

    The quaternion is not re-normalized: a non-unit quaternion yields a
    scaled, non-orthonormal matrix.

    Args:
        quaternion: (x, y, z, w)

    Returns:
        (4, 4) float32 tensor, rotation in the upper-left 3x3 block

    Raises:
        DimensionMismatch: If the quaternion does not have 4 components
    """
    q = torch.as_tensor(quaternion, dtype=torch.float32).flatten()
    if q.shape[0] != 4:
        raise DimensionMismatch(4, q.shape[0], what="quaternion components")

    x, y, z, w = q.unbind()
    xy, yz, zx = x * y, y * z, z * x
    x2, y2, z2 = x * x, y * y, z * z
    xw, yw, zw = x * w, y * w, z * w

    R = torch.zeros(4, 4, dtype=torch.float32)
    R[0, 0] = 1 - 2 * (y2 + z2)
    R[0, 1] = 2 * (xy - zw)
    R[0, 2] = 2 * (zx + yw)
    R[1, 0] = 2 * (xy + zw)
    R[1, 1] = 1 - 2 * (x2 + z2)
    R[1, 2] = 2 * (yz - xw)
    R[2, 0] = 2 * (zx - yw)
    R[2, 1] = 2 * (yz + xw)
    R[2, 2] = 1 - 2 * (x2 + y2)
    R[3, 3] = 1
    return R


def rotate_points(points: torch.Tensor, rotation: torch.Tensor) -> torch.Tensor:
    """
    Flip handedness and rotate a set of points.

    Args:
        points: (V, 3) or (3,) points in mesh space
        rotation: (4, 4) homogeneous or (3, 3) rotation matrix

    Returns:
        Rotated points, same shape as the input
    """
    points = torch.as_tensor(points, dtype=torch.float32)
    R = rotation[:3, :3].to(device=points.device, dtype=points.dtype)

    flipped = points * torch.tensor([1.0, 1.0, -1.0], device=points.device)
    return flipped @ R.T


def apply_calibration(points: torch.Tensor, calibration: ModelCalibration) -> torch.Tensor:
    """
    Apply a static-vertex calibration: (p + offset) * scale.

    Args:
        points: (V, 3) or (3,) points
        calibration: Calibration to apply

    Returns:
        Calibrated points
    """
    points = torch.as_tensor(points, dtype=torch.float32)
    offset = torch.tensor(calibration.offset, dtype=points.dtype, device=points.device)
    return (points + offset) * calibration.scale


class RigidTransform:
    """
    Per-frame pose: rotation plus the active model's static calibration.

    Built once per frame from the tracked quaternion and reused for every
    vertex of the export.
    """

    def __init__(self, quaternion: Sequence[float], calibration: ModelCalibration = IDENTITY_CALIBRATION):
        self.matrix = quaternion_to_matrix(quaternion)
        self.calibration = calibration

    def deformable(self, points: torch.Tensor) -> torch.Tensor:
        """Pose blendshape-region vertices (rotation only)."""
        return rotate_points(points, self.matrix)

    def static(self, points: torch.Tensor) -> torch.Tensor:
        """Pose static vertices (calibration, then rotation)."""
        return rotate_points(apply_calibration(points, self.calibration), self.matrix)

    def __repr__(self) -> str:
        return f"RigidTransform(calibration={self.calibration})"
