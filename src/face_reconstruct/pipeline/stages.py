"""
Pipeline Stages
===============

Single responsibility: Break down the export pipeline into discrete, testable stages.

Each stage handles one phase of the pipeline with clear inputs and outputs:

    validate_resources -> load_model -> acquire -> adapt_coefficients
        -> deform_and_pose -> export
"""

from pathlib import Path
from typing import Callable, Optional, Tuple
import torch

from face_reconstruct.core.adapter import apply_pupil_position
from face_reconstruct.core.blendshape_io import load_blendshapes
from face_reconstruct.core.deformer import MeshDeformer, create_deformer
from face_reconstruct.core.exceptions import DimensionMismatch
from face_reconstruct.core.mesh_io import MeshRewriter, RewriteStats, WindingPolicy, export_mesh
from face_reconstruct.core.transform import RigidTransform, get_calibration
from face_reconstruct.core.validator import validate_coefficients, validate_input_file
from face_reconstruct.pipeline.config import ExportConfig
from face_reconstruct.tracking.base import TrackedFrame, TrackingEngine
from face_reconstruct.tracking.detection import acquire_frame
from face_reconstruct.utils.logging import get_logger

logger = get_logger(__name__)


class PipelineStages:
    """Encapsulates individual stages of the export pipeline."""

    @staticmethod
    def validate_resources(config: ExportConfig, log: Callable[[str], None]) -> None:
        """
        Check that the model files exist before any work begins.

        Raises:
            ResourceUnavailable: If the database or reference mesh is missing
        """
        log("STEP 1: Validating model files...")

        validate_input_file(config.blendshape_path, suffixes=('.bs',))
        validate_input_file(config.mesh_path, suffixes=('.obj',))

        log(f"  Database: {config.blendshape_path}")
        log(f"  Reference mesh: {config.mesh_path}")
        log("")

    @staticmethod
    def load_model(config: ExportConfig, log: Callable[[str], None]) -> MeshDeformer:
        """
        Load the blendshape database and build a deformer.

        Raises:
            ResourceUnavailable: If the database cannot be opened
            FormatError: If the database is malformed
        """
        log("STEP 2: Loading blendshape database...")

        database = load_blendshapes(config.blendshape_path)
        deformer = create_deformer(database, config.device)

        log(f"  Model: {config.model_name} (format v{database.version:g})")
        log(f"  Shapes: {database.shape_count} ({database.expression_count} expressions)")
        log(f"  Vertices: {database.vertex_count:,}")
        log("")

        return deformer

    @staticmethod
    def acquire(config: ExportConfig, engine: TrackingEngine, log: Callable[[str], None]) -> TrackedFrame:
        """
        Obtain a usable frame from the engine.

        Raises:
            DetectionFailed: If the retry budget is exhausted
        """
        log("STEP 3: Running face tracker...")

        frame = acquire_frame(
            engine,
            max_attempts=config.max_detection_attempts,
            warmup_runs=config.warmup_runs,
            max_runs=config.max_runs,
        )

        log(f"  Failure stress: {frame.stress:.3f}")
        log(f"  Rotation mode: {frame.rotation_mode}")
        log("")

        return frame

    @staticmethod
    def adapt_coefficients(
        config: ExportConfig,
        frame: TrackedFrame,
        expression_count: int,
        log: Callable[[str], None]
    ) -> torch.Tensor:
        """
        Substitute gaze coefficients and check the vector length.

        Raises:
            DimensionMismatch: If the frame's vector does not fit the database
        """
        log("STEP 4: Adapting expression coefficients...")

        if len(frame.coefficients) != expression_count:
            raise DimensionMismatch(expression_count, len(frame.coefficients))

        coefficients = apply_pupil_position(frame.coefficients, frame.pupil, config.gaze_layout)
        out_of_range = validate_coefficients(coefficients)

        log(f"  Pupil position: ({frame.pupil[0]:+.3f}, {frame.pupil[1]:+.3f})")
        if out_of_range:
            log(f"  Warning: {out_of_range} coefficient(s) outside nominal range")
        log("")

        return coefficients

    @staticmethod
    def deform_and_pose(
        config: ExportConfig,
        deformer: MeshDeformer,
        coefficients: torch.Tensor,
        frame: TrackedFrame,
        log: Callable[[str], None]
    ) -> Tuple[torch.Tensor, RigidTransform]:
        """
        Deform the base mesh and build the frame's rigid transform.

        Returns:
            Tuple of (deformed vertices (V, 3), RigidTransform)
        """
        log("STEP 5: Deforming mesh...")

        deformed = deformer.deform(coefficients)

        calibration = get_calibration(config.model_name, config.calibrations)
        transform = RigidTransform(frame.rotation, calibration)

        if config.calibration is None:
            log("  Static calibration: none")
        else:
            log(f"  Static calibration: scale={calibration.scale:g}, offset={calibration.offset}")
        log("")

        return deformed, transform

    @staticmethod
    def export(
        config: ExportConfig,
        deformed: torch.Tensor,
        transform: RigidTransform,
        log: Callable[[str], None],
        output_path: Optional[Path] = None
    ) -> RewriteStats:
        """
        Rewrite the reference mesh with the posed vertices.

        Raises:
            ResourceUnavailable: If the reference mesh cannot be opened
            FormatError: If the reference mesh is malformed
        """
        log("STEP 6: Writing output mesh...")

        policy = WindingPolicy.for_reference_model(config.reference_model, strict=config.strict_faces)
        rewriter = MeshRewriter(deformed, transform, config.model_name, policy)
        stats = export_mesh(config.mesh_path, output_path or config.output_path, rewriter)

        log(f"  Lines: {stats.lines:,}")
        log(f"  Vertices: {stats.deformable_vertices:,} deformable, {stats.static_vertices:,} static")
        log(f"  Faces: {stats.faces:,}")
        if stats.unhandled_faces:
            log(f"  Warning: {stats.unhandled_faces:,} face(s) without a winding rule")
        log("")

        return stats
