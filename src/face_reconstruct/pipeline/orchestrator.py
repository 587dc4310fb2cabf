"""
Export Pipeline Orchestrator
============================

Single responsibility: Coordinate the complete reconstruction-and-export pipeline.

This module orchestrates all steps of an export, from validating the model
files to writing the posed output mesh, delegating each phase to
PipelineStages.
"""

from dataclasses import replace
from pathlib import Path
from typing import Optional, Tuple
import torch

from face_reconstruct.core.deformer import MeshDeformer
from face_reconstruct.core.mesh_io import RewriteStats
from face_reconstruct.core.transform import RigidTransform
from face_reconstruct.pipeline.config import ExportConfig
from face_reconstruct.pipeline.stages import PipelineStages
from face_reconstruct.tracking.base import TrackedFrame, TrackingEngine
from face_reconstruct.utils.logging import get_logger, setup_logger

logger = get_logger(__name__)


def run_export_pipeline(config: ExportConfig, engine: TrackingEngine) -> Path:
    """
    Execute the complete export pipeline for one still frame.

    Pipeline stages:
    1. Validate model files (PipelineStages.validate_resources)
    2. Load the blendshape database (PipelineStages.load_model)
    3. Detect a face with bounded retries (PipelineStages.acquire)
    4. Substitute gaze coefficients (PipelineStages.adapt_coefficients)
    5. Deform and build the pose (PipelineStages.deform_and_pose)
    6. Rewrite the reference mesh (PipelineStages.export)

    Args:
        config: ExportConfig instance with all pipeline settings
        engine: Tracking engine for the input image

    Returns:
        Path to the written output mesh

    Raises:
        ResourceUnavailable: If model files are missing
        FormatError: If the database or reference mesh is malformed
        DetectionFailed: If no usable frame was obtained
        DimensionMismatch: If the tracker's vector does not fit the database

    Example:
        >>> config = ExportConfig(model_name="Man", model_dir=Path("model"))
        >>> engine = RecordedEngine.from_json("frame.json")
        >>> run_export_pipeline(config, engine)
        PosixPath('model/Man-output.obj')
    """
    session_logger = setup_logger(
        name='export_session',
        verbose=config.verbose,
        log_file=config.log_file,
        log_level=config.log_level
    )

    def log(message: str):
        """Log to both module logger and session logger."""
        logger.debug(message)
        session_logger.info(message)

    log("=" * 70)
    log("FACE RECONSTRUCTION EXPORT")
    log("=" * 70)
    log(f"Model: {config.model_name}")
    log(f"Device: {config.device}")
    log("")

    PipelineStages.validate_resources(config, log)
    deformer = PipelineStages.load_model(config, log)
    frame = PipelineStages.acquire(config, engine, log)
    coefficients = PipelineStages.adapt_coefficients(
        config, frame, deformer.expression_count, log
    )
    deformed, transform = PipelineStages.deform_and_pose(
        config, deformer, coefficients, frame, log
    )
    PipelineStages.export(config, deformed, transform, log)

    if config.device.type == 'cuda':
        torch.cuda.empty_cache()

    log("=" * 70)
    log(f"Output mesh: {config.output_path}")
    log("=" * 70)

    return config.output_path


class ReconstructionSession:
    """
    Long-lived reconstruction state for one tracking context.

    Holds the active model's database for the whole session and turns
    tracked frames into deformed meshes and exports. Frames are passed in
    explicitly; nothing is shared between sessions.
    """

    def __init__(self, config: ExportConfig):
        self.config = config
        self.deformer: MeshDeformer = self._load(config)

    def _log(self, message: str):
        if message:
            logger.info(message)

    def _load(self, config: ExportConfig) -> MeshDeformer:
        PipelineStages.validate_resources(config, self._log)
        return PipelineStages.load_model(config, self._log)

    @property
    def model_name(self) -> str:
        return self.config.model_name

    def switch_model(self, model_name: str):
        """
        Load another model's database.

        The current model stays active if loading fails.

        Raises:
            ResourceUnavailable: If the model's files are missing
        """
        if model_name == self.model_name:
            return
        config = replace(self.config, model_name=model_name)
        self.deformer = self._load(config)
        self.config = config

    def reconstruct(self, frame: TrackedFrame) -> Tuple[torch.Tensor, RigidTransform]:
        """
        Deform the active model for a usable frame.

        Returns:
            Tuple of (deformed vertices (V, 3), RigidTransform)

        Raises:
            DimensionMismatch: If the frame's vector does not fit the database
        """
        coefficients = PipelineStages.adapt_coefficients(
            self.config, frame, self.deformer.expression_count, self._log
        )
        return PipelineStages.deform_and_pose(
            self.config, self.deformer, coefficients, frame, self._log
        )

    def export(self, frame: TrackedFrame, output_path: Optional[Path] = None) -> RewriteStats:
        """
        Reconstruct a frame and write the posed mesh.

        Args:
            frame: Usable tracked frame
            output_path: Destination (default: config.output_path)

        Returns:
            RewriteStats for the export
        """
        deformed, transform = self.reconstruct(frame)
        return PipelineStages.export(self.config, deformed, transform, self._log, output_path)

    def __repr__(self) -> str:
        return f"ReconstructionSession(model={self.model_name})"
