"""Face Reconstruct - blendshape face reconstruction and OBJ export.

This package rebuilds a deformed, posed face mesh from per-frame expression
coefficients reported by an external face tracker and writes it into a
copy of the model's reference OBJ file.

Quick Start:
    >>> from face_reconstruct.pipeline import ExportConfig, run_export_pipeline
    >>> from face_reconstruct.tracking import RecordedEngine
    >>>
    >>> config = ExportConfig(model_name="Man", model_dir="model")
    >>> engine = RecordedEngine.from_json("frame.json")
    >>> run_export_pipeline(config, engine)
    PosixPath('model/Man-output.obj')

Modules:
    core: Database parsing, deformation, transform, mesh rewriting
    tracking: Tracking engine boundary and frame acquisition
    pipeline: Configuration, stages and orchestration
    cli: Command-line interface
    utils: Logging
"""

__version__ = "1.0.0"
__author__ = "Face Reconstruct Contributors"
__license__ = "MIT"

from .core.exceptions import (
    FaceReconstructError,
    FormatError,
    DimensionMismatch,
    UnreliableFrame,
    TrackingLost,
    DetectionFailed,
    ResourceUnavailable,
    ValidationError,
)

from .utils.logging import setup_logger, get_logger

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Exceptions
    "FaceReconstructError",
    "FormatError",
    "DimensionMismatch",
    "UnreliableFrame",
    "TrackingLost",
    "DetectionFailed",
    "ResourceUnavailable",
    "ValidationError",
    # Logging
    "setup_logger",
    "get_logger",
]
