"""
Core Execution Module

Browser sessions, single-action execution and sequence runs.
"""

from .browser_session import BrowserSession, SessionOptions, browser_session
from .action_executor import ActionExecutor, ExecutionResult, ActionState, ErrorKind
from .sequence_runner import SequenceRunner, SequenceResult, RunPolicy, CancellationToken
from .retry import with_retry, exponential_backoff, is_transient_network_error

__all__ = [
    "BrowserSession",
    "SessionOptions",
    "browser_session",
    "ActionExecutor",
    "ExecutionResult",
    "ActionState",
    "ErrorKind",
    "SequenceRunner",
    "SequenceResult",
    "RunPolicy",
    "CancellationToken",
    "with_retry",
    "exponential_backoff",
    "is_transient_network_error",
]
