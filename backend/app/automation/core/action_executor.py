"""
Action Executor

Executes one validated action on a Playwright page and reports the
outcome as an ExecutionResult. `execute()` never raises for per-action
failures: element, navigation and timeout errors are captured into the
result together with a best-effort screenshot of the page.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..actions import (
    Action,
    ActionType,
    ClickAction,
    FillAction,
    GotoAction,
    HoverAction,
    KeyboardAction,
    ScreenshotAction,
    SelectAction,
    WaitAction,
    action_to_dict,
    validate,
)
from ..errors import ActionValidationError, ElementError, NavigationError

# Configure logging
logger = logging.getLogger(__name__)


class ActionState(Enum):
    """Lifecycle of a single action"""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class ErrorKind(Enum):
    """Why an action failed"""
    VALIDATION = "validation"
    ELEMENT_NOT_FOUND = "element_not_found"
    NAVIGATION = "navigation"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass
class ExecutionResult:
    """Result of executing one action"""
    success: bool
    action: Action
    index: int
    message: str
    state: ActionState
    execution_time_ms: int = 0
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    screenshot: Optional[bytes] = None

    def to_dict(self, include_screenshot: bool = True) -> Dict[str, Any]:
        result = {
            "success": self.success,
            "action": action_to_dict(self.action),
            "index": self.index,
            "message": self.message,
            "status": self.state.value,
            "executionTimeMs": self.execution_time_ms,
        }
        if self.error:
            result["error"] = self.error
        if self.error_kind:
            result["errorKind"] = self.error_kind.value
        if include_screenshot and self.screenshot:
            result["screenshot"] = base64.b64encode(self.screenshot).decode("ascii")
        return result


def _elapsed_ms(start_time: datetime) -> int:
    return int((datetime.utcnow() - start_time).total_seconds() * 1000)


def _first_line(error: Exception) -> str:
    text = str(error).strip()
    return text.splitlines()[0] if text else type(error).__name__


class ActionExecutor:
    """
    Executes actions on a page.

    One handler per action type; element actions first wait for their
    target to become visible within the action's timeout.
    """

    # Default timeouts in milliseconds
    DEFAULT_TIMEOUT = 5000
    DEFAULT_NAVIGATION_TIMEOUT = 30000
    DEFAULT_SCREENSHOT_DIR = "screenshots"

    def __init__(
        self,
        page=None,
        timeout: Optional[int] = None,
        navigation_timeout: Optional[int] = None,
        screenshot_dir: Optional[str] = None
    ):
        """
        Initialize action executor.

        Args:
            page: Playwright page object
            timeout: Default timeout for element operations (ms)
            navigation_timeout: Default timeout for navigation (ms)
            screenshot_dir: Directory that screenshot action paths resolve under
        """
        self.page = page
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.navigation_timeout = navigation_timeout or self.DEFAULT_NAVIGATION_TIMEOUT
        self.screenshot_dir = Path(screenshot_dir or self.DEFAULT_SCREENSHOT_DIR)
        self.capture_failure_screenshots = True

        self._handlers: Dict[ActionType, Callable[[Any], Awaitable[str]]] = {
            ActionType.GOTO: self._do_goto,
            ActionType.FILL: self._do_fill,
            ActionType.CLICK: self._do_click,
            ActionType.SELECT: self._do_select,
            ActionType.WAIT: self._do_wait,
            ActionType.HOVER: self._do_hover,
            ActionType.KEYBOARD: self._do_keyboard,
        }

    def set_page(self, page):
        """Set the Playwright page object"""
        self.page = page

    # ==================== Entry Point ====================

    async def execute(self, action: Action, index: int = 0) -> ExecutionResult:
        """
        Execute a single action.

        Validation runs first; an invalid action fails without touching
        the page.
        """
        start_time = datetime.utcnow()

        try:
            validate(action)
        except ActionValidationError as e:
            logger.warning(f"Action {index} rejected: {e}")
            return ExecutionResult(
                success=False,
                action=action,
                index=index,
                message=f"Invalid action: {e}",
                state=ActionState.FAILED,
                execution_time_ms=_elapsed_ms(start_time),
                error=str(e),
                error_kind=ErrorKind.VALIDATION
            )

        logger.info(f"[ACTION] {action.type.value.upper()} (step {index})")

        if isinstance(action, ScreenshotAction):
            return await self._take_screenshot(action, index, start_time)

        try:
            message = await self._handlers[action.type](action)
        except ElementError as e:
            return await self._failed(action, index, start_time, e, ErrorKind.ELEMENT_NOT_FOUND)
        except NavigationError as e:
            return await self._failed(action, index, start_time, e, ErrorKind.NAVIGATION)
        except PlaywrightTimeoutError as e:
            return await self._failed(action, index, start_time, e, ErrorKind.TIMEOUT)
        except Exception as e:
            return await self._failed(action, index, start_time, e, ErrorKind.ERROR)

        return ExecutionResult(
            success=True,
            action=action,
            index=index,
            message=message,
            state=ActionState.SUCCEEDED,
            execution_time_ms=_elapsed_ms(start_time)
        )

    async def _failed(
        self,
        action: Action,
        index: int,
        start_time: datetime,
        error: Exception,
        kind: ErrorKind
    ) -> ExecutionResult:
        error_text = _first_line(error)
        logger.warning(f"Action {action.type.value} (step {index}) failed: {error_text}")
        return ExecutionResult(
            success=False,
            action=action,
            index=index,
            message=f"{action.type.value} failed: {error_text}",
            state=ActionState.FAILED,
            execution_time_ms=_elapsed_ms(start_time),
            error=error_text,
            error_kind=kind,
            screenshot=await self.capture_screenshot()
        )

    async def capture_screenshot(self, full_page: bool = False) -> Optional[bytes]:
        """Best-effort screenshot of the current page; None when it fails"""
        if not self.capture_failure_screenshots or self.page is None:
            return None
        try:
            return await self.page.screenshot(full_page=full_page)
        except Exception as e:
            logger.debug(f"Screenshot capture failed: {e}")
            return None

    # ==================== Handlers ====================

    def _timeout_for(self, action: Action) -> int:
        return getattr(action, "timeout_ms", None) or self.timeout

    async def _wait_visible(self, selector: str, timeout: int):
        """Locate an element and wait until it is visible"""
        locator = self.page.locator(selector)
        try:
            await locator.wait_for(state="visible", timeout=timeout)
        except Exception as e:
            raise ElementError(selector, timeout, _first_line(e)) from e
        return locator

    async def _do_goto(self, action: GotoAction) -> str:
        timeout = action.timeout_ms or self.navigation_timeout
        try:
            await self.page.goto(action.url, wait_until=action.wait_until, timeout=timeout)
        except Exception as e:
            raise NavigationError(action.url, _first_line(e)) from e
        return f"Navigated to {action.url}"

    async def _do_fill(self, action: FillAction) -> str:
        timeout = self._timeout_for(action)
        locator = await self._wait_visible(action.selector, timeout)

        # Recorded change events on <select> arrive as fills
        if await self._tag_name(locator) == "select":
            await locator.select_option(action.value, timeout=timeout)
            return f"Selected '{action.value}' in {action.selector}"

        if action.clear_first:
            await locator.clear(timeout=timeout)
            await locator.fill(action.value, timeout=timeout)
        else:
            await locator.press_sequentially(action.value, timeout=timeout)
        return f"Filled {action.selector}"

    async def _do_click(self, action: ClickAction) -> str:
        timeout = self._timeout_for(action)
        locator = await self._wait_visible(action.selector, timeout)
        await locator.click(
            button=action.button,
            click_count=action.click_count,
            delay=action.delay_ms,
            timeout=timeout
        )
        return f"Clicked {action.selector}"

    async def _do_select(self, action: SelectAction) -> str:
        timeout = self._timeout_for(action)
        locator = await self._wait_visible(action.selector, timeout)
        value = list(action.value) if isinstance(action.value, tuple) else action.value
        await locator.select_option(value, timeout=timeout)
        return f"Selected '{action.value}' in {action.selector}"

    async def _do_hover(self, action: HoverAction) -> str:
        timeout = self._timeout_for(action)
        locator = await self._wait_visible(action.selector, timeout)
        await locator.hover(timeout=timeout)
        return f"Hovered {action.selector}"

    async def _do_wait(self, action: WaitAction) -> str:
        timeout = self._timeout_for(action)

        if action.selector:
            try:
                await self.page.wait_for_selector(action.selector, state="attached", timeout=timeout)
            except Exception as e:
                raise ElementError(action.selector, timeout, _first_line(e)) from e
            return f"Found {action.selector}"

        if action.duration_ms is not None:
            await asyncio.sleep(action.duration_ms / 1000)
            return f"Waited {action.duration_ms}ms"

        await self.page.wait_for_function(action.predicate, timeout=timeout)
        return "Predicate satisfied"

    async def _do_keyboard(self, action: KeyboardAction) -> str:
        await self.page.keyboard.press(action.combination)
        return f"Pressed {action.combination}"

    async def _take_screenshot(
        self,
        action: ScreenshotAction,
        index: int,
        start_time: datetime
    ) -> ExecutionResult:
        """Screenshots are evidence only and never fail a sequence"""
        data = None
        try:
            path = self._screenshot_path(action.path) if action.path else None
            data = await self.page.screenshot(
                path=path,
                full_page=action.full_page,
                type=action.format
            )
            message = f"Screenshot saved to {path}" if path else "Screenshot captured"
        except Exception as e:
            logger.warning(f"Screenshot action could not capture the page: {e}")
            message = f"Screenshot skipped: {_first_line(e)}"

        return ExecutionResult(
            success=True,
            action=action,
            index=index,
            message=message,
            state=ActionState.SUCCEEDED,
            execution_time_ms=_elapsed_ms(start_time),
            screenshot=data
        )

    def _screenshot_path(self, relative: str) -> str:
        """Resolve a screenshot path under screenshot_dir; never outside it"""
        base = self.screenshot_dir.resolve()
        target = (base / relative).resolve()
        if base not in target.parents:
            raise ValueError(f"Screenshot path escapes {base}: {relative}")
        target.parent.mkdir(parents=True, exist_ok=True)
        return str(target)

    async def _tag_name(self, locator) -> str:
        try:
            tag = await locator.evaluate("el => el.tagName.toLowerCase()")
        except Exception:
            return ""
        return tag if isinstance(tag, str) else ""
