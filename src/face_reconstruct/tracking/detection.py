"""
Frame Acquisition
=================

Single responsibility: Obtain usable frames from a tracking engine.

Two modes:
- ``acquire_frame``: still-image detection with a bounded retry budget.
- ``FrameTracker``: per-frame video tracking that keeps the last usable frame.
"""

from typing import Optional

from face_reconstruct.core.exceptions import (
    DetectionFailed,
    FaceReconstructError,
    TrackingLost,
    UnreliableFrame,
)
from face_reconstruct.core.validator import check_frame
from face_reconstruct.tracking.base import TrackedFrame, TrackingEngine
from face_reconstruct.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_WARMUP_RUNS = 60
DEFAULT_MAX_RUNS = 64


def _detect_once(engine: TrackingEngine, warmup_runs: int, max_runs: int) -> TrackedFrame:
    """
    Run one detection attempt on a freshly reset engine.

    The engine is fed repeatedly so its estimate can settle; the first
    tracked frame at or after ``warmup_runs`` is taken.
    """
    engine.reset()

    tracked = False
    for i in range(max_runs):
        tracked = engine.run()
        if tracked and i >= warmup_runs:
            break

    if not tracked:
        raise UnreliableFrame(engine.failure_stress(), tracked=False)

    frame = engine.capture()
    try:
        check_frame(frame.stress, frame.tracked)
    except TrackingLost:
        engine.reset()
        raise

    return frame


def acquire_frame(
    engine: TrackingEngine,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    warmup_runs: int = DEFAULT_WARMUP_RUNS,
    max_runs: int = DEFAULT_MAX_RUNS
) -> TrackedFrame:
    """
    Detect a face, retrying up to ``max_attempts`` times.

    Args:
        engine: Tracking engine
        max_attempts: Detection attempts before giving up
        warmup_runs: Tracker runs before a result is accepted
        max_runs: Tracker runs per attempt

    Returns:
        A usable TrackedFrame

    Raises:
        DetectionFailed: If no attempt produced a usable frame
    """
    last_error: Optional[FaceReconstructError] = None

    for attempt in range(1, max_attempts + 1):
        try:
            frame = _detect_once(engine, warmup_runs, max_runs)
        except (UnreliableFrame, TrackingLost) as e:
            logger.info(f"  Attempt {attempt}/{max_attempts}: {e}")
            last_error = e
            continue

        logger.debug(f"Face detected on attempt {attempt}, rotation mode {frame.rotation_mode}")
        return frame

    raise DetectionFailed(max_attempts, last_error)


class FrameTracker:
    """
    Video tracking loop state.

    Keeps the last usable frame so unreliable frames can be skipped.
    """

    def __init__(self, engine: TrackingEngine):
        self.engine = engine
        self.last_frame: Optional[TrackedFrame] = None

    def update(self) -> Optional[TrackedFrame]:
        """
        Track the next frame.

        Returns:
            The new frame if usable, otherwise the previous usable frame
            (None if there has not been one yet)

        Raises:
            TrackingLost: If the frame is corrupt; the engine is reset and
                the retained frame is discarded
        """
        self.engine.run()
        frame = self.engine.capture()

        try:
            check_frame(frame.stress, frame.tracked)
        except UnreliableFrame as e:
            logger.debug(f"Skipping frame: {e}")
            return self.last_frame
        except TrackingLost:
            logger.warning("Tracking lost, resetting engine")
            self.engine.reset()
            self.last_frame = None
            raise

        self.last_frame = frame
        return frame
