"""
Unit tests for ActionExecutor.

Tests the action execution system that performs browser actions.
"""

import pytest
from pathlib import Path
from unittest.mock import AsyncMock
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from automation.actions import (
    ClickAction,
    FillAction,
    GotoAction,
    HoverAction,
    KeyboardAction,
    ScreenshotAction,
    SelectAction,
    WaitAction,
)
from automation.core.action_executor import ActionExecutor, ActionState, ErrorKind


class TestActionExecutorInit:
    """Test ActionExecutor initialization."""

    def test_init_defaults(self):
        """Test initialization default values."""
        executor = ActionExecutor()

        assert executor.page is None
        assert executor.timeout == ActionExecutor.DEFAULT_TIMEOUT
        assert executor.navigation_timeout == ActionExecutor.DEFAULT_NAVIGATION_TIMEOUT

    def test_set_page(self, mock_page):
        """Test setting page after init."""
        executor = ActionExecutor()
        executor.set_page(mock_page)

        assert executor.page == mock_page


class TestValidationBeforeExecution:
    """Invalid actions never reach the page."""

    @pytest.mark.asyncio
    async def test_invalid_action_has_no_side_effect(self, mock_page):
        """Test that a fill without value never touches the page."""
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(FillAction(selector="#email"))

        assert result.success is False
        assert result.state == ActionState.FAILED
        assert result.error_kind == ErrorKind.VALIDATION
        mock_page.locator.assert_not_called()
        mock_page.goto.assert_not_called()
        mock_page.screenshot.assert_not_called()


class TestNavigation:
    """Test goto execution."""

    @pytest.mark.asyncio
    async def test_goto_success(self, mock_page):
        """Test successful navigation."""
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(GotoAction(url="https://example.com"))

        assert result.success is True
        mock_page.goto.assert_awaited_once_with(
            "https://example.com", wait_until="load", timeout=ActionExecutor.DEFAULT_NAVIGATION_TIMEOUT
        )

    @pytest.mark.asyncio
    async def test_goto_failure(self, mock_page):
        """Test navigation failure is captured, not raised."""
        mock_page.goto = AsyncMock(side_effect=Exception("net::ERR_NAME_NOT_RESOLVED"))
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(GotoAction(url="https://nowhere.invalid"))

        assert result.success is False
        assert result.error_kind == ErrorKind.NAVIGATION
        assert "ERR_NAME_NOT_RESOLVED" in result.error


class TestElementActions:
    """Test fill, click, select and hover."""

    @pytest.mark.asyncio
    async def test_fill_clears_then_fills(self, mock_page, mock_locator):
        """Test fill with clear_first."""
        executor = ActionExecutor(page=mock_page, timeout=1000)

        result = await executor.execute(FillAction(selector="#email", value="user@example.com"))

        assert result.success is True
        mock_page.locator.assert_called_with("#email")
        mock_locator.wait_for.assert_awaited_once_with(state="visible", timeout=1000)
        mock_locator.clear.assert_awaited_once()
        mock_locator.fill.assert_awaited_once_with("user@example.com", timeout=1000)

    @pytest.mark.asyncio
    async def test_fill_without_clear_types(self, mock_page, mock_locator):
        """Test fill that appends by typing."""
        executor = ActionExecutor(page=mock_page)

        await executor.execute(FillAction(selector="#q", value="abc", clear_first=False))

        mock_locator.clear.assert_not_awaited()
        mock_locator.press_sequentially.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fill_on_select_selects_option(self, mock_page, mock_locator):
        """Test that a fill aimed at a <select> picks the option."""
        mock_locator.evaluate = AsyncMock(return_value="select")
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(FillAction(selector="#country", value="de"))

        assert result.success is True
        mock_locator.select_option.assert_awaited_once()
        mock_locator.fill.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_click(self, mock_page, mock_locator):
        """Test click passes button and count."""
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(ClickAction(selector="#save", click_count=2))

        assert result.success is True
        kwargs = mock_locator.click.await_args.kwargs
        assert kwargs["button"] == "left"
        assert kwargs["click_count"] == 2

    @pytest.mark.asyncio
    async def test_select_and_hover(self, mock_page, mock_locator):
        """Test select and hover."""
        executor = ActionExecutor(page=mock_page)

        select_result = await executor.execute(SelectAction(selector="select", value="option-1"))
        hover_result = await executor.execute(HoverAction(selector="nav a"))

        assert select_result.success and hover_result.success
        mock_locator.hover.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_select_multiple_options(self, mock_page, mock_locator):
        """Test a list of options reaches select_option as a list."""
        mock_locator.evaluate = AsyncMock(return_value="select")
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(SelectAction(selector="#tags", value=("red", "blue")))

        assert result.success is True
        assert mock_locator.select_option.await_args.args[0] == ["red", "blue"]

    @pytest.mark.asyncio
    async def test_element_not_found(self, mock_page, mock_locator):
        """Test element wait timeout yields a failed result with a screenshot."""
        mock_locator.wait_for = AsyncMock(side_effect=Exception("Timeout 5000ms exceeded"))
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(ClickAction(selector="#missing"), index=3)

        assert result.success is False
        assert result.index == 3
        assert result.error_kind == ErrorKind.ELEMENT_NOT_FOUND
        assert "#missing" in result.message
        assert result.screenshot == b"fake_screenshot_data"
        mock_locator.click.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_screenshot_is_best_effort(self, mock_page, mock_locator):
        """Test that a broken screenshot does not mask the failure."""
        mock_locator.wait_for = AsyncMock(side_effect=Exception("Timeout"))
        mock_page.screenshot = AsyncMock(side_effect=Exception("Target closed"))
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(HoverAction(selector="#menu"))

        assert result.success is False
        assert result.screenshot is None


class TestWaitAndKeyboard:
    """Test wait and keyboard actions."""

    @pytest.mark.asyncio
    async def test_wait_for_selector(self, mock_page):
        """Test wait on a selector."""
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(WaitAction(selector="#done"))

        assert result.success is True
        mock_page.wait_for_selector.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wait_duration(self, mock_page):
        """Test a fixed wait."""
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(WaitAction(duration_ms=1))

        assert result.success is True
        assert result.message == "Waited 1ms"

    @pytest.mark.asyncio
    async def test_wait_predicate(self, mock_page):
        """Test a predicate wait."""
        executor = ActionExecutor(page=mock_page)

        await executor.execute(WaitAction(predicate="() => window.ready"))

        mock_page.wait_for_function.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_keyboard_combination(self, mock_page):
        """Test pressing a key combination."""
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(KeyboardAction(keys=("Control", "A")))

        assert result.success is True
        mock_page.keyboard.press.assert_awaited_once_with("Control+A")


class TestScreenshotAction:
    """Screenshot actions never fail a sequence."""

    @pytest.mark.asyncio
    async def test_screenshot_captured(self, mock_page):
        """Test successful capture."""
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(ScreenshotAction(full_page=True))

        assert result.success is True
        assert result.screenshot == b"fake_screenshot_data"

    @pytest.mark.asyncio
    async def test_screenshot_failure_still_succeeds(self, mock_page):
        """Test that a failed capture is reported as success with a note."""
        mock_page.screenshot = AsyncMock(side_effect=Exception("Target closed"))
        executor = ActionExecutor(page=mock_page)

        result = await executor.execute(ScreenshotAction())

        assert result.success is True
        assert result.message.startswith("Screenshot skipped")

    @pytest.mark.asyncio
    async def test_screenshot_path_under_directory(self, mock_page, tmp_path):
        """Test a relative path is written inside the screenshot directory."""
        executor = ActionExecutor(page=mock_page, screenshot_dir=str(tmp_path))

        result = await executor.execute(ScreenshotAction(path="runs/step-1.png"))

        written = mock_page.screenshot.await_args.kwargs["path"]
        assert written == str((tmp_path / "runs" / "step-1.png").resolve())
        assert (tmp_path / "runs").is_dir()
        assert result.success is True

    @pytest.mark.asyncio
    async def test_screenshot_path_escape_not_written(self, mock_page, tmp_path):
        """Test a symlink out of the directory is refused without writing."""
        shots = tmp_path / "shots"
        shots.mkdir()
        (shots / "link").symlink_to(tmp_path)
        executor = ActionExecutor(page=mock_page, screenshot_dir=str(shots))

        result = await executor.execute(ScreenshotAction(path="link/outside.png"))

        assert result.success is True
        assert result.message.startswith("Screenshot skipped")
        mock_page.screenshot.assert_not_awaited()

    def test_result_to_dict(self):
        """Test camelCase result serialization."""
        from automation.core.action_executor import ExecutionResult

        result = ExecutionResult(
            success=True,
            action=ClickAction(selector="#btn"),
            index=0,
            message="Clicked #btn",
            state=ActionState.SUCCEEDED,
            screenshot=b"abc"
        )

        data = result.to_dict()

        assert data["status"] == "succeeded"
        assert data["action"]["selector"] == "#btn"
        assert data["screenshot"] == "YWJj"
