"""Tracking engine boundary.

Abstract engine interface, recorded-frame replay and frame acquisition.
"""

from .base import TrackedFrame, TrackingEngine
from .recorded import RecordedEngine, frame_from_dict, frame_to_dict
from .detection import FrameTracker, acquire_frame

__all__ = [
    "TrackedFrame",
    "TrackingEngine",
    "RecordedEngine",
    "frame_from_dict",
    "frame_to_dict",
    "FrameTracker",
    "acquire_frame",
]
