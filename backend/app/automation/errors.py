"""
Automation Errors

Exception taxonomy for the action engine and the video analysis surface.
Per-action failures are normally captured into an ExecutionResult; only
validation, session and recording-state errors escape to callers.
"""

from enum import Enum
from typing import Optional


class ValidationReason(str, Enum):
    """Why an action failed validation"""
    MISSING_FIELD = "missing_field"
    INVALID_VALUE = "invalid_value"
    UNSUPPORTED_ACTION_TYPE = "unsupported_action_type"
    EMPTY_SEQUENCE = "empty_sequence"


class AutomationError(Exception):
    """Base class for all engine errors"""


class ActionValidationError(AutomationError):
    """A malformed action, rejected before any side effect"""

    def __init__(
        self,
        reason: ValidationReason,
        message: str,
        field: Optional[str] = None,
        index: Optional[int] = None
    ):
        super().__init__(message)
        self.reason = reason
        self.field = field
        self.index = index

    def with_index(self, index: int) -> "ActionValidationError":
        """Return a copy that records the action's position in its sequence"""
        return ActionValidationError(
            self.reason,
            f"Action {index}: {self}",
            field=self.field,
            index=index
        )


class ElementError(AutomationError):
    """Target element not found or not visible within the timeout"""

    def __init__(self, selector: str, timeout_ms: int, detail: str = ""):
        message = f"Element not found: '{selector}' was not visible within {timeout_ms}ms"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.selector = selector
        self.timeout_ms = timeout_ms


class NavigationError(AutomationError):
    """Page load failed or timed out"""

    def __init__(self, url: str, detail: str):
        super().__init__(f"Navigation to {url} failed: {detail}")
        self.url = url


class SessionError(AutomationError):
    """Browser, context or page could not be acquired"""


class RecordingStateError(AutomationError):
    """Recording started twice, or stopped without being started"""


# ==================== Analysis Errors ====================

class AnalysisError(AutomationError):
    """Base class for video analysis failures"""
    kind = "upstream"
    retryable = False

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": str(self),
            "retryable": self.retryable
        }


class InvalidVideoUrlError(AnalysisError):
    """The submitted video URL is not acceptable (client error)"""
    kind = "invalid_input"
    retryable = False


class UpstreamError(AnalysisError):
    """The video provider answered with an error"""
    kind = "upstream"
    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientNetworkError(AnalysisError):
    """A network failure that may succeed if retried"""
    kind = "transient"
    retryable = True
