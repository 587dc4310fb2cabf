"""
Pipeline Configuration
======================

Single responsibility: Configure the export pipeline with validation.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union
import torch

from face_reconstruct.core.adapter import DEFAULT_GAZE_LAYOUT, GazeLayout
from face_reconstruct.core.exceptions import FormatError, ResourceUnavailable, ValidationError
from face_reconstruct.core.mesh_io import REFERENCE_MODEL
from face_reconstruct.core.transform import DEFAULT_CALIBRATIONS, ModelCalibration
from face_reconstruct.tracking.detection import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_RUNS,
    DEFAULT_WARMUP_RUNS,
)


def load_calibrations(
    filepath: Union[str, Path],
    base: Optional[Dict[str, ModelCalibration]] = None
) -> Dict[str, ModelCalibration]:
    """
    Load a calibration table from JSON.

    The file maps model names to ``{"scale": s, "offset": [x, y, z]}``;
    ``null`` removes an entry from the base table.

    Args:
        filepath: JSON file
        base: Table to extend (default: built-in calibrations)

    Returns:
        Merged calibration table

    Example:
        >>> # calibration.json: {"Child": {"scale": 0.5, "offset": [0, -12.0, 0]}}
        >>> table = load_calibrations("calibration.json")
        >>> table["Child"].scale
        0.5
    """
    filepath = Path(filepath)
    table = dict(DEFAULT_CALIBRATIONS if base is None else base)

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            document = json.load(f)
    except OSError as e:
        raise ResourceUnavailable(f"Cannot open calibration file {filepath}: {e}") from e
    except json.JSONDecodeError as e:
        raise FormatError(f"Invalid JSON in {filepath}: {e}") from e

    if not isinstance(document, dict):
        raise FormatError(f"{filepath} must contain an object keyed by model name")

    for name, entry in document.items():
        if entry is None:
            table.pop(name, None)
        else:
            table[name] = ModelCalibration.from_dict(entry)

    return table


@dataclass
class ExportConfig:
    """
    Configuration for the reconstruction/export pipeline.

    This dataclass encapsulates all settings needed for an export,
    with validation in __post_init__ to catch errors early.

    Attributes:
        model_name: Model identifier ('shape_0', 'Man', 'OldMan', ...)
        model_dir: Directory holding <model>.bs and <model>.obj
        output_dir: Directory for <model>-output.obj (default: model_dir)
        device: PyTorch device for deformation
        max_detection_attempts: Detection retries before giving up
        warmup_runs: Tracker runs before a detection result is accepted
        max_runs: Tracker runs per detection attempt
        reference_model: Model whose triangles keep their winding
        calibrations: Static-vertex calibration table
        gaze_layout: Coefficient slots driven by the pupil position
        strict_faces: Reject faces with no winding rule instead of keeping them
        verbose: Enable console output
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional session log file (DEBUG level)

    Example:
        >>> config = ExportConfig(model_name="Man", model_dir=Path("model"))
        >>> config.blendshape_path
        PosixPath('model/Man.bs')
        >>> config.output_path
        PosixPath('model/Man-output.obj')
    """

    model_name: str
    model_dir: Path = Path("model")
    output_dir: Optional[Path] = None

    device: torch.device = field(default_factory=lambda: torch.device('cpu'))

    # Detection
    max_detection_attempts: int = DEFAULT_MAX_ATTEMPTS
    warmup_runs: int = DEFAULT_WARMUP_RUNS
    max_runs: int = DEFAULT_MAX_RUNS

    # Model conventions
    reference_model: str = REFERENCE_MODEL
    calibrations: Dict[str, ModelCalibration] = field(
        default_factory=lambda: dict(DEFAULT_CALIBRATIONS)
    )
    gaze_layout: GazeLayout = DEFAULT_GAZE_LAYOUT
    strict_faces: bool = False

    # Logging
    verbose: bool = True
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def __post_init__(self):
        """
        Validate and normalize configuration after initialization.

        Raises:
            ValidationError: If any configuration is invalid
        """
        if not self.model_name or Path(self.model_name).name != self.model_name:
            raise ValidationError(f"Invalid model name: {self.model_name!r}")

        self.model_dir = Path(self.model_dir)
        self.output_dir = Path(self.output_dir) if self.output_dir is not None else self.model_dir
        if self.log_file is not None:
            self.log_file = Path(self.log_file)

        if isinstance(self.device, str):
            self.device = torch.device(self.device)

        if self.max_detection_attempts < 1:
            raise ValidationError(
                f"max_detection_attempts must be >= 1, got {self.max_detection_attempts}"
            )
        if self.max_runs < 1:
            raise ValidationError(f"max_runs must be >= 1, got {self.max_runs}")
        if not 0 <= self.warmup_runs < self.max_runs:
            raise ValidationError(
                f"warmup_runs must be in [0, max_runs), got {self.warmup_runs} "
                f"with max_runs={self.max_runs}"
            )

        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR'}
        if self.log_level.upper() not in valid_levels:
            raise ValidationError(
                f"Invalid log_level: {self.log_level}\n"
                f"Must be one of: {valid_levels}"
            )
        self.log_level = self.log_level.upper()

    @property
    def blendshape_path(self) -> Path:
        return self.model_dir / f"{self.model_name}.bs"

    @property
    def mesh_path(self) -> Path:
        return self.model_dir / f"{self.model_name}.obj"

    @property
    def output_path(self) -> Path:
        return self.output_dir / f"{self.model_name}-output.obj"

    @property
    def calibration(self) -> Optional[ModelCalibration]:
        """Calibration entry for the configured model, if any."""
        return self.calibrations.get(self.model_name)

    def __repr__(self) -> str:
        return (
            f"ExportConfig(\n"
            f"  model={self.model_name},\n"
            f"  model_dir={self.model_dir},\n"
            f"  output={self.output_path},\n"
            f"  device={self.device},\n"
            f"  attempts={self.max_detection_attempts}\n"
            f")"
        )
