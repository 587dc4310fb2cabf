"""
Recorded tracking results.

Replays per-frame tracker output stored as JSON, so exports can be produced
without the native engine:

    {
      "frames": [
        {
          "expression": [46 floats],
          "rotation": [x, y, z, w],
          "stress": 0.4,
          "tracked": true,
          "pupil_pos": [0.1, -0.05],
          "rotation_mode": 0
        }
      ]
    }
"""

import json
from pathlib import Path
from typing import List, Mapping, Sequence, Tuple, Union

from face_reconstruct.core.exceptions import FormatError, ResourceUnavailable
from face_reconstruct.tracking.base import TrackedFrame, TrackingEngine
from face_reconstruct.utils.logging import get_logger

logger = get_logger(__name__)


def frame_from_dict(data: Mapping) -> TrackedFrame:
    """
    Build a TrackedFrame from its JSON form.

    Raises:
        FormatError: If a required field is missing or malformed
    """
    try:
        rotation = tuple(float(v) for v in data['rotation'])
        pupil = tuple(float(v) for v in data.get('pupil_pos', (0.0, 0.0)))
        frame = TrackedFrame(
            coefficients=tuple(float(v) for v in data['expression']),
            rotation=rotation,
            stress=float(data.get('stress', 0.0)),
            tracked=bool(data.get('tracked', True)),
            pupil=pupil,
            rotation_mode=int(data.get('rotation_mode', 0)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise FormatError(f"Invalid frame record: {e}") from e

    if len(rotation) != 4:
        raise FormatError(f"Rotation must have 4 components, got {len(rotation)}")
    if len(pupil) != 2:
        raise FormatError(f"pupil_pos must have 2 components, got {len(pupil)}")

    return frame


def frame_to_dict(frame: TrackedFrame) -> dict:
    return {
        'expression': list(frame.coefficients),
        'rotation': list(frame.rotation),
        'stress': frame.stress,
        'tracked': frame.tracked,
        'pupil_pos': list(frame.pupil),
        'rotation_mode': frame.rotation_mode,
    }


class RecordedEngine(TrackingEngine):
    """
    Tracking engine that replays a fixed list of frames.

    Each ``run()`` advances to the next frame, wrapping around at the end,
    so a single recorded frame behaves like a still image fed repeatedly.
    """

    def __init__(self, frames: Sequence[TrackedFrame]):
        if not frames:
            raise FormatError("Recording contains no frames")
        self.frames: List[TrackedFrame] = list(frames)
        self._cursor = -1

    @classmethod
    def from_json(cls, filepath: Union[str, Path]) -> 'RecordedEngine':
        """
        Load a recording from a JSON file.

        Raises:
            ResourceUnavailable: If the file cannot be read
            FormatError: If the document is malformed
        """
        filepath = Path(filepath)
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except OSError as e:
            raise ResourceUnavailable(f"Cannot open recording {filepath}: {e}") from e
        except json.JSONDecodeError as e:
            raise FormatError(f"Invalid JSON in {filepath}: {e}") from e

        records = document.get('frames') if isinstance(document, dict) else document
        if not isinstance(records, list):
            raise FormatError(f"{filepath} has no 'frames' list")

        logger.debug(f"Loaded {len(records)} recorded frame(s) from {filepath.name}")
        return cls([frame_from_dict(r) for r in records])

    @property
    def current(self) -> TrackedFrame:
        return self.frames[max(self._cursor, 0)]

    def run(self) -> bool:
        self._cursor = (self._cursor + 1) % len(self.frames)
        return self.current.tracked

    def reset(self):
        self._cursor = -1

    def failure_stress(self) -> float:
        return self.current.stress

    def has_face(self) -> bool:
        return self.current.tracked

    def get_coefficients(self) -> Tuple[float, ...]:
        return self.current.coefficients

    def get_rotation(self) -> Tuple[float, float, float, float]:
        return self.current.rotation

    def get_pupil_position(self) -> Tuple[float, float]:
        return self.current.pupil

    def get_rotation_mode(self) -> int:
        return self.current.rotation_mode

    def __repr__(self) -> str:
        return f"RecordedEngine(frames={len(self.frames)})"
