"""Custom exceptions for face reconstruction operations.

This module defines domain-specific exceptions that provide clear,
actionable error messages for the failure modes of the reconstruction
pipeline: malformed inputs, shape mismatches and tracking rejections.
"""


class FaceReconstructError(Exception):
    """Base exception for all face reconstruction errors.

    All custom exceptions in the face_reconstruct package inherit from this
    base class. This allows catching all pipeline errors with a single
    except clause.

    Example:
        >>> try:
        ...     run_export_pipeline(config, engine)
        ... except FaceReconstructError as e:
        ...     print(f"Export failed: {e}")
    """
    pass


class FormatError(FaceReconstructError):
    """Raised when a blendshape database or reference mesh is malformed.

    Common causes:
    - Database stream ends before a section completes
    - Negative or zero counts in the database header
    - Vertex line without three numeric coordinates

    Example:
        >>> raise FormatError("Truncated base vertices: expected 24 bytes, got 12")
    """
    pass


class DimensionMismatch(FaceReconstructError):
    """Raised when a coefficient vector disagrees with the database shape count.

    The deformer consumes exactly ``shape_count - 1`` coefficients. The
    caller may keep the previous frame's mesh when this is raised.

    Attributes:
        expected: Number of coefficients the database requires
        actual: Number of coefficients supplied
    """

    def __init__(self, expected: int, actual: int, what: str = "coefficients"):
        """Initialize dimension mismatch error.

        Args:
            expected: Required length
            actual: Supplied length
            what: Name of the mismatching quantity
        """
        self.expected = expected
        self.actual = actual

        super().__init__(
            f"Dimension mismatch: expected {expected:,} {what}, got {actual:,}"
        )


class UnreliableFrame(FaceReconstructError):
    """Signals that the tracker is unconfident about the current frame.

    This is not a fatal error: the caller should skip the frame and keep
    whatever state it obtained from the previous one.

    Attributes:
        stress: Failure stress reported for the frame
    """

    def __init__(self, stress: float, tracked: bool = True):
        self.stress = stress
        self.tracked = tracked

        if tracked:
            msg = f"Invalid face result (failure stress {stress:.3f})"
        else:
            msg = "Face not tracked in this frame"

        super().__init__(msg)


class TrackingLost(FaceReconstructError):
    """Signals that tracking state is corrupt and must be reset.

    The caller must discard all accumulated tracking state and restart
    detection from scratch.

    Attributes:
        stress: Failure stress reported for the frame
    """

    def __init__(self, stress: float):
        self.stress = stress
        super().__init__(f"Face result error (failure stress {stress:.3f}), reset required")


class DetectionFailed(FaceReconstructError):
    """Raised when the initial face detection exhausts its retry budget.

    Attributes:
        attempts: Number of detection attempts made
    """

    def __init__(self, attempts: int, last_error: Exception = None):
        self.attempts = attempts
        self.last_error = last_error

        msg = f"Face not found after {attempts} attempt(s)"
        if last_error is not None:
            msg += f" (last: {last_error})"

        super().__init__(msg)


class ResourceUnavailable(FaceReconstructError):
    """Raised when a database or mesh file cannot be opened.

    Surfaced before any pipeline work begins.

    Example:
        >>> raise ResourceUnavailable("Cannot open model files: model/Man.bs")
    """
    pass


class ValidationError(FaceReconstructError):
    """Raised when configuration validation fails.

    Example:
        >>> if max_detection_attempts < 1:
        ...     raise ValidationError("max_detection_attempts must be >= 1")
    """
    pass
