"""
Action Sequence Engine

Models browser actions, executes them against headless browser sessions
with per-step failure isolation, records live user interaction as
replayable actions, and segments videos into actionable chunks.
"""

from .actions import (
    Action,
    ActionType,
    GotoAction,
    FillAction,
    ClickAction,
    SelectAction,
    WaitAction,
    HoverAction,
    KeyboardAction,
    ScreenshotAction,
    parse_action,
    action_to_dict,
    validate,
    validate_sequence,
)
from .chunks import Chunk, ChunkStore
from .config import EngineConfig
from .errors import (
    AutomationError,
    ActionValidationError,
    ValidationReason,
    ElementError,
    NavigationError,
    SessionError,
    RecordingStateError,
    AnalysisError,
    InvalidVideoUrlError,
    UpstreamError,
    TransientNetworkError,
)
from .core.action_executor import ActionExecutor, ExecutionResult, ActionState, ErrorKind
from .core.browser_session import BrowserSession, SessionOptions, browser_session
from .core.sequence_runner import SequenceRunner, SequenceResult, RunPolicy, CancellationToken
from .core.retry import with_retry, exponential_backoff
from .recorder.action_recorder import InteractionRecorder, RecordingSession, infer_selector
from .video.segmenter import segment
from .video.analyzer import VideoAnalyzer, AnalysisResult

__all__ = [
    # Actions
    "Action",
    "ActionType",
    "GotoAction",
    "FillAction",
    "ClickAction",
    "SelectAction",
    "WaitAction",
    "HoverAction",
    "KeyboardAction",
    "ScreenshotAction",
    "parse_action",
    "action_to_dict",
    "validate",
    "validate_sequence",
    # Chunks & config
    "Chunk",
    "ChunkStore",
    "EngineConfig",
    # Errors
    "AutomationError",
    "ActionValidationError",
    "ValidationReason",
    "ElementError",
    "NavigationError",
    "SessionError",
    "RecordingStateError",
    "AnalysisError",
    "InvalidVideoUrlError",
    "UpstreamError",
    "TransientNetworkError",
    # Execution
    "ActionExecutor",
    "ExecutionResult",
    "ActionState",
    "ErrorKind",
    "BrowserSession",
    "SessionOptions",
    "browser_session",
    "SequenceRunner",
    "SequenceResult",
    "RunPolicy",
    "CancellationToken",
    "with_retry",
    "exponential_backoff",
    # Recording
    "InteractionRecorder",
    "RecordingSession",
    "infer_selector",
    # Video
    "segment",
    "VideoAnalyzer",
    "AnalysisResult",
]

__version__ = "1.0.0"
