"""
Interaction Recorder Module

Records live user interaction in a browser page as replayable actions.
"""

from .action_recorder import (
    InteractionRecorder,
    RecordingSession,
    RecordingSubscription,
    infer_selector,
)

__all__ = [
    "InteractionRecorder",
    "RecordingSession",
    "RecordingSubscription",
    "infer_selector",
]
