"""
Expression Coefficient Adapter
==============================

Single responsibility: Substitute gaze coefficients from the measured pupil position.

The generic expression model cannot resolve eye gaze from shape alone, so
the eye-look blendshapes are driven directly by the pupil estimate. Which
slots hold those blendshapes is part of the blendshape database contract.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple, Union
import torch

from face_reconstruct.core.exceptions import DimensionMismatch


@dataclass(frozen=True)
class GazeLayout:
    """
    Fixed positions of the gaze blendshapes in the coefficient vector.

    Attributes:
        horizontal_positive: Slots set to +pupil_x
        horizontal_negative: Slots set to -pupil_x
        vertical_positive: Slots set to +pupil_y
        vertical_negative: Slots set to -pupil_y
    """

    horizontal_positive: Tuple[int, ...] = (6, 7)
    horizontal_negative: Tuple[int, ...] = (10, 11)
    vertical_positive: Tuple[int, ...] = (12, 13)
    vertical_negative: Tuple[int, ...] = (4, 5)

    @property
    def slots(self) -> Tuple[int, ...]:
        """All reserved slots, in layout order."""
        return (
            self.horizontal_positive
            + self.horizontal_negative
            + self.vertical_positive
            + self.vertical_negative
        )

    def max_slot(self) -> int:
        return max(self.slots) if self.slots else -1


DEFAULT_GAZE_LAYOUT = GazeLayout()


def apply_pupil_position(
    coefficients: Union[Sequence[float], torch.Tensor],
    pupil: Sequence[float],
    layout: GazeLayout = DEFAULT_GAZE_LAYOUT
) -> torch.Tensor:
    """
    Overwrite the gaze slots of a coefficient vector with the pupil position.

    The input vector is not modified; a new float32 tensor is returned.

    Args:
        coefficients: Raw expression coefficients from the tracker
        pupil: (pupil_x, pupil_y), roughly in [-1, 1] per axis
        layout: Slot layout of the gaze blendshapes

    Returns:
        Adapted coefficient vector

    Raises:
        DimensionMismatch: If the pupil vector is not 2D or a slot is out of range

    Example:
        >>> coeffs = apply_pupil_position(torch.zeros(46), (0.3, -0.1))
        >>> coeffs[6].item(), coeffs[10].item()
        (0.3..., -0.3...)
    """
    if len(pupil) != 2:
        raise DimensionMismatch(2, len(pupil), what="pupil components")

    adapted = torch.as_tensor(coefficients, dtype=torch.float32).clone()

    if layout.max_slot() >= adapted.shape[0]:
        raise DimensionMismatch(layout.max_slot() + 1, adapted.shape[0])

    pupil_x, pupil_y = float(pupil[0]), float(pupil[1])

    for index in layout.horizontal_positive:
        adapted[index] = pupil_x
    for index in layout.horizontal_negative:
        adapted[index] = -pupil_x
    for index in layout.vertical_positive:
        adapted[index] = pupil_y
    for index in layout.vertical_negative:
        adapted[index] = -pupil_y

    return adapted
