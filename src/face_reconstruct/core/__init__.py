"""Core reconstruction algorithms and I/O operations.

This module contains the fundamental operations for face reconstruction:
- Blendshape database loading and saving
- Tracking result validation and gaze coefficient substitution
- Blendshape deformation
- Rotation and static-vertex calibration
- Reference mesh rewriting (OBJ format)
"""

from .adapter import GazeLayout, DEFAULT_GAZE_LAYOUT, apply_pupil_position
from .blendshape_io import (
    BlendshapeDatabase,
    load_blendshapes,
    parse_blendshapes,
    save_blendshapes,
    write_blendshapes,
)
from .deformer import MeshDeformer, create_deformer
from .mesh_io import (
    LineKind,
    MeshRewriter,
    RewriteStats,
    WindingPolicy,
    WindingRule,
    classify_line,
    export_mesh,
)
from .transform import (
    DEFAULT_CALIBRATIONS,
    ModelCalibration,
    RigidTransform,
    apply_calibration,
    get_calibration,
    quaternion_to_matrix,
    rotate_points,
)
from .validator import (
    EXPR_COEF_MAX,
    EXPR_COEF_MIN,
    FrameStatus,
    check_frame,
    classify_frame,
    validate_coefficients,
    validate_device,
    validate_input_file,
)
from .exceptions import *

__all__ = [
    # Adapter
    "GazeLayout",
    "DEFAULT_GAZE_LAYOUT",
    "apply_pupil_position",
    # Database I/O
    "BlendshapeDatabase",
    "load_blendshapes",
    "parse_blendshapes",
    "save_blendshapes",
    "write_blendshapes",
    # Deformation
    "MeshDeformer",
    "create_deformer",
    # Mesh I/O
    "LineKind",
    "MeshRewriter",
    "RewriteStats",
    "WindingPolicy",
    "WindingRule",
    "classify_line",
    "export_mesh",
    # Transform
    "DEFAULT_CALIBRATIONS",
    "ModelCalibration",
    "RigidTransform",
    "apply_calibration",
    "get_calibration",
    "quaternion_to_matrix",
    "rotate_points",
    # Validation
    "EXPR_COEF_MAX",
    "EXPR_COEF_MIN",
    "FrameStatus",
    "check_frame",
    "classify_frame",
    "validate_coefficients",
    "validate_device",
    "validate_input_file",
]
