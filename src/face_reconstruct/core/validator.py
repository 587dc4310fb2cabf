"""
Input Validation
================

Single responsibility: Validate inputs and tracking results before processing.
"""

from enum import Enum
from pathlib import Path
from typing import Iterable, Sequence, Union
import torch

from face_reconstruct.core.exceptions import (
    ResourceUnavailable,
    TrackingLost,
    UnreliableFrame,
    ValidationError,
)
from face_reconstruct.utils.logging import get_logger

logger = get_logger(__name__)

# Nominal range of expression coefficients produced by the tracker
EXPR_COEF_MIN = -0.2
EXPR_COEF_MAX = 1.5

# Failure stress thresholds
STRESS_REJECT_THRESHOLD = 2.0
STRESS_RESET_THRESHOLD = 10.0


class FrameStatus(Enum):
    """Reliability class of a single tracked frame."""

    USABLE = "usable"
    UNRELIABLE = "unreliable"
    CORRUPT = "corrupt"


def classify_frame(stress: float, tracked: bool = True) -> FrameStatus:
    """
    Classify a frame from its failure stress and tracked flag.

    Args:
        stress: Failure stress reported by the tracker
        tracked: Whether the tracker reports a face in this frame

    Returns:
        FrameStatus.CORRUPT if stress > 10, UNRELIABLE if stress > 2 or the
        face is not tracked, USABLE otherwise
    """
    if stress > STRESS_RESET_THRESHOLD:
        return FrameStatus.CORRUPT
    if stress > STRESS_REJECT_THRESHOLD or not tracked:
        return FrameStatus.UNRELIABLE
    return FrameStatus.USABLE


def check_frame(stress: float, tracked: bool = True) -> FrameStatus:
    """
    Classify a frame and raise for anything that is not usable.

    Args:
        stress: Failure stress reported by the tracker
        tracked: Whether the tracker reports a face in this frame

    Returns:
        FrameStatus.USABLE

    Raises:
        TrackingLost: If the frame is corrupt (caller must reset tracking)
        UnreliableFrame: If the frame should be skipped
    """
    status = classify_frame(stress, tracked)

    if status is FrameStatus.CORRUPT:
        raise TrackingLost(stress)
    if status is FrameStatus.UNRELIABLE:
        raise UnreliableFrame(stress, tracked)

    return status


def validate_coefficients(coefficients: Union[Sequence[float], torch.Tensor]) -> int:
    """
    Count expression coefficients outside the nominal range.

    Out-of-range values are not rejected, only reported.

    Args:
        coefficients: Expression coefficient vector

    Returns:
        Number of coefficients outside [EXPR_COEF_MIN, EXPR_COEF_MAX]
    """
    coeffs = torch.as_tensor(coefficients, dtype=torch.float32)
    outside = (coeffs < EXPR_COEF_MIN) | (coeffs > EXPR_COEF_MAX)
    count = int(outside.sum().item())

    if count:
        indices = outside.nonzero().flatten().tolist()
        logger.warning(
            f"{count} expression coefficient(s) outside "
            f"[{EXPR_COEF_MIN}, {EXPR_COEF_MAX}] at indices {indices}"
        )

    return count


def validate_input_file(
    filepath: Union[str, Path],
    suffixes: Iterable[str] = ('.bs', '.obj')
) -> Path:
    """
    Validate that an input file exists and has a supported format.

    Args:
        filepath: Path to database or mesh file
        suffixes: Accepted file extensions

    Returns:
        Path object

    Raises:
        ResourceUnavailable: If file doesn't exist or has an unsupported suffix
    """
    filepath = Path(filepath)

    if not filepath.is_file():
        raise ResourceUnavailable(
            f"File not found: {filepath}\n"
            f"Please check the path."
        )

    supported = {s.lower() for s in suffixes}
    if filepath.suffix.lower() not in supported:
        raise ResourceUnavailable(
            f"Unsupported format: {filepath.suffix}\n"
            f"Supported: {', '.join(sorted(supported))}"
        )

    return filepath


def validate_device(device: str) -> torch.device:
    """
    Validate and create torch device.

    Args:
        device: Device string ('cpu', 'cuda', etc.)

    Returns:
        torch.device object

    Raises:
        ValidationError: If CUDA requested but not available
    """
    device = torch.device(device)

    if device.type == 'cuda' and not torch.cuda.is_available():
        raise ValidationError(
            "CUDA requested but not available.\n"
            "Options:\n"
            "  1. Use CPU: pass --cpu\n"
            "  2. Reinstall PyTorch with CUDA support"
        )

    return device
