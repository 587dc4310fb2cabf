"""
Base tracking engine interface.

This module defines the abstract boundary to the external face-tracking
engine. The reconstruction core only sees per-frame values through this
interface and never touches the engine's internal state.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple
import torch

from face_reconstruct.core.validator import FrameStatus, classify_frame


@dataclass(frozen=True)
class TrackedFrame:
    """
    Everything the core consumes from one tracked frame.

    Attributes:
        coefficients: Expression coefficients (one per non-base shape)
        rotation: Head rotation quaternion (x, y, z, w)
        stress: Failure stress reported by the engine
        tracked: Whether a face is tracked in this frame
        pupil: Pupil position estimate (x, y)
        rotation_mode: Image orientation detected by the engine (0-3)
    """

    coefficients: Tuple[float, ...]
    rotation: Tuple[float, float, float, float]
    stress: float
    tracked: bool
    pupil: Tuple[float, float]
    rotation_mode: int = 0

    @property
    def status(self) -> FrameStatus:
        return classify_frame(self.stress, self.tracked)

    def coefficient_tensor(self) -> torch.Tensor:
        return torch.tensor(self.coefficients, dtype=torch.float32)


class TrackingEngine(ABC):
    """
    Abstract base class for face-tracking engines.

    Implementations wrap a concrete tracker (native SDK binding, recorded
    results, ...). One engine instance is a single-owner tracking context:
    at most one reconstruction cycle may use it at a time.
    """

    @abstractmethod
    def run(self) -> bool:
        """
        Advance the tracker by one frame.

        Returns:
            True if a face is tracked in the new frame
        """
        pass

    @abstractmethod
    def reset(self):
        """Discard all tracking state and restart detection."""
        pass

    @abstractmethod
    def failure_stress(self) -> float:
        """Failure stress of the current frame."""
        pass

    @abstractmethod
    def has_face(self) -> bool:
        """Whether a face is tracked in the current frame."""
        pass

    @abstractmethod
    def get_coefficients(self) -> Tuple[float, ...]:
        """Expression coefficients of the current frame."""
        pass

    @abstractmethod
    def get_rotation(self) -> Tuple[float, float, float, float]:
        """Head rotation quaternion (x, y, z, w) of the current frame."""
        pass

    @abstractmethod
    def get_pupil_position(self) -> Tuple[float, float]:
        """Pupil position (x, y) of the current frame."""
        pass

    def get_rotation_mode(self) -> int:
        """Detected image orientation (0-3). Engines without detection report 0."""
        return 0

    def validate_frame(self) -> FrameStatus:
        """Classify the current frame."""
        return classify_frame(self.failure_stress(), self.has_face())

    def capture(self) -> TrackedFrame:
        """Snapshot the current frame into a value object."""
        return TrackedFrame(
            coefficients=tuple(float(c) for c in self.get_coefficients()),
            rotation=tuple(float(c) for c in self.get_rotation()),
            stress=float(self.failure_stress()),
            tracked=bool(self.has_face()),
            pupil=tuple(float(c) for c in self.get_pupil_position()),
            rotation_mode=int(self.get_rotation_mode()),
        )

    def __repr__(self) -> str:
        """String representation of engine."""
        return f"{self.__class__.__name__}()"
