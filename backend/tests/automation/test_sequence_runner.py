"""
Unit tests for SequenceRunner.

Tests ordering, stop-on-error, session release and cancellation.
"""

import asyncio
import pytest
from pathlib import Path
from unittest.mock import AsyncMock
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from automation.actions import ClickAction, GotoAction
from automation.core.action_executor import ActionExecutor, ActionState
from automation.core.sequence_runner import CancellationToken, RunPolicy, SequenceRunner
from automation.errors import ActionValidationError, SessionError


def failing_click_locator(mock_page, mock_locator, bad_selector="#missing"):
    """Make wait_for fail only for one selector."""
    async def wait_for(state=None, timeout=None):
        if mock_page.locator.call_args.args[0] == bad_selector:
            raise Exception(f"Timeout {timeout}ms exceeded")

    mock_locator.wait_for = AsyncMock(side_effect=wait_for)


@pytest.fixture
def mixed_actions():
    """A succeeds, B fails, C succeeds."""
    return [
        GotoAction(url="https://example.com"),
        ClickAction(selector="#missing"),
        ClickAction(selector="#present"),
    ]


class TestStopOnError:
    """Test halting behaviour."""

    @pytest.mark.asyncio
    async def test_stop_on_error_halts(self, mock_page, mock_locator, session_factory, mixed_actions):
        """Test that stop_on_error yields exactly two results."""
        failing_click_locator(mock_page, mock_locator)
        runner = SequenceRunner(session_factory=session_factory)

        result = await runner.run(mixed_actions, RunPolicy(stop_on_error=True))

        assert result.success is False
        assert len(result.results) == 2
        assert result.results[0].success is True
        assert result.results[1].success is False

    @pytest.mark.asyncio
    async def test_continue_on_error_runs_all(self, mock_page, mock_locator, session_factory, mixed_actions):
        """Test that without stop_on_error every action runs."""
        failing_click_locator(mock_page, mock_locator)
        runner = SequenceRunner(session_factory=session_factory)

        result = await runner.run(mixed_actions, RunPolicy(stop_on_error=False))

        assert result.success is False
        assert [r.success for r in result.results] == [True, False, True]
        assert [r.index for r in result.results] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_emit_skipped(self, mock_page, mock_locator, session_factory, mixed_actions):
        """Test explicit skipped results after a halt."""
        failing_click_locator(mock_page, mock_locator)
        runner = SequenceRunner(session_factory=session_factory)

        result = await runner.run(mixed_actions, RunPolicy(stop_on_error=True, emit_skipped=True))

        assert len(result.results) == 3
        assert result.results[2].state == ActionState.SKIPPED
        assert result.success is False

    @pytest.mark.asyncio
    async def test_all_succeed(self, session_factory, login_actions):
        """Test a clean run with a final screenshot."""
        runner = SequenceRunner(session_factory=session_factory)

        result = await runner.run(login_actions)

        assert result.success is True
        assert len(result.results) == 3
        assert result.final_screenshot == b"fake_screenshot_data"
        assert "finalScreenshot" in result.to_dict()


class TestSessionLifecycle:
    """Session release happens exactly once per run."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stop_on_error", [True, False])
    async def test_release_once(self, mock_page, mock_locator, session_factory, mixed_actions, stop_on_error):
        """Test release count for every policy."""
        failing_click_locator(mock_page, mock_locator)
        runner = SequenceRunner(session_factory=session_factory)

        await runner.run(mixed_actions, RunPolicy(stop_on_error=stop_on_error))

        assert len(session_factory.sessions) == 1
        assert session_factory.sessions[0].release_count == 1

    @pytest.mark.asyncio
    async def test_release_when_executor_raises(self, session_factory, login_actions):
        """Test release even when execution blows up."""
        executor = ActionExecutor()
        executor.execute = AsyncMock(side_effect=RuntimeError("driver crashed"))
        runner = SequenceRunner(session_factory=session_factory, executor_factory=lambda page: executor)

        with pytest.raises(RuntimeError):
            await runner.run(login_actions)

        assert session_factory.sessions[0].release_count == 1

    @pytest.mark.asyncio
    async def test_session_error_is_fatal(self, mock_page, make_session_factory, login_actions):
        """Test that an unavailable browser aborts the run."""
        factory = make_session_factory(error=SessionError("no browser"))
        runner = SequenceRunner(session_factory=factory)

        with pytest.raises(SessionError):
            await runner.run(login_actions)

        mock_page.goto.assert_not_called()

    @pytest.mark.asyncio
    async def test_validation_before_acquire(self, session_factory):
        """Test that a malformed sequence never opens a browser."""
        runner = SequenceRunner(session_factory=session_factory)

        with pytest.raises(ActionValidationError):
            await runner.run([{"type": "goto", "url": "https://example.com"}, {"type": "click"}])

        assert session_factory.sessions == []

    @pytest.mark.asyncio
    async def test_policy_headless_passed_to_session(self, session_factory, login_actions):
        """Test that the run policy controls headless mode."""
        runner = SequenceRunner(session_factory=session_factory)

        await runner.run(login_actions, RunPolicy(headless=False))

        assert session_factory.options[0].headless is False


class TestCancellation:
    """Test cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_between_actions(self, mock_page, session_factory, login_actions):
        """Test that a cancelled run stops before the next action."""
        token = CancellationToken()

        async def goto(*args, **kwargs):
            token.cancel()

        mock_page.goto = AsyncMock(side_effect=goto)
        runner = SequenceRunner(session_factory=session_factory)

        result = await runner.run(login_actions, cancel_token=token)

        assert result.cancelled is True
        assert result.success is False
        assert len(result.results) == 1
        assert session_factory.sessions[0].release_count == 1


class TestConcurrency:
    """Test the session cap."""

    @pytest.mark.asyncio
    async def test_semaphore_limits_live_sessions(self, mock_page, login_actions):
        """Test that no more sessions are live than the semaphore allows."""
        live = 0
        peak = 0

        class CountingSession:
            def __init__(self):
                self.page = mock_page

            async def release(self):
                nonlocal live
                live -= 1

        async def factory(options):
            nonlocal live, peak
            live += 1
            peak = max(peak, live)
            await asyncio.sleep(0)
            return CountingSession()

        runner = SequenceRunner(session_factory=factory, semaphore=asyncio.Semaphore(1))

        results = await asyncio.gather(*(runner.run(login_actions) for _ in range(3)))

        assert all(r.success for r in results)
        assert peak == 1
