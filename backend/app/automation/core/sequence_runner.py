"""
Sequence Runner

Runs an ordered list of actions through the ActionExecutor on one
browser session.

- stop_on_error=True halts after the first failed action; the actions
  after it are not executed and, unless `emit_skipped` is set, do not
  appear in the results.
- stop_on_error=False runs every action and reports one result each.

Every action is validated before the session is acquired, and the
session is released whatever happens during the run.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..actions import Action, ActionLike, validate_sequence
from .action_executor import ActionExecutor, ActionState, ExecutionResult
from .browser_session import BrowserSession, SessionFactory, SessionOptions

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class RunPolicy:
    """Execution policy for one run"""
    stop_on_error: bool = False
    headless: bool = True
    # Report unexecuted actions as explicit "skipped" results
    emit_skipped: bool = False
    capture_final_screenshot: bool = True


class CancellationToken:
    """Cooperative cancellation, checked between actions"""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class SequenceResult:
    """Aggregated results of one run, in submission order"""
    success: bool
    results: List[ExecutionResult] = field(default_factory=list)
    final_screenshot: Optional[bytes] = None
    cancelled: bool = False
    started_at: str = ""
    completed_at: str = ""

    def to_dict(self, include_screenshots: bool = True) -> Dict[str, Any]:
        result = {
            "success": self.success,
            "results": [r.to_dict(include_screenshot=include_screenshots) for r in self.results],
            "cancelled": self.cancelled,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
        }
        if include_screenshots and self.final_screenshot:
            result["finalScreenshot"] = base64.b64encode(self.final_screenshot).decode("ascii")
        return result


class SequenceRunner:
    """
    Executes action sequences, one fresh browser session per run.

    Concurrent runs never share a session; an optional semaphore caps how
    many sessions are alive at once.
    """

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        executor_factory: Optional[Callable[[Any], ActionExecutor]] = None,
        session_options: Optional[SessionOptions] = None,
        semaphore: Optional[asyncio.Semaphore] = None
    ):
        """
        Args:
            session_factory: Async callable returning a session for given options
            executor_factory: Builds an ActionExecutor for a page
            session_options: Base launch options; `headless` comes from the policy
            semaphore: Optional cap on concurrently live sessions
        """
        self.session_factory = session_factory or BrowserSession.acquire
        self.executor_factory = executor_factory or (lambda page: ActionExecutor(page=page))
        self.session_options = session_options or SessionOptions()
        self.semaphore = semaphore

    async def run(
        self,
        actions: List[ActionLike],
        policy: Optional[RunPolicy] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> SequenceResult:
        """
        Run actions strictly in order.

        Raises:
            ActionValidationError: an action is malformed (nothing ran)
            SessionError: no browser session could be acquired
        """
        policy = policy or RunPolicy()
        validated = validate_sequence(actions)

        if self.semaphore is None:
            return await self._run_with_session(validated, policy, cancel_token)

        async with self.semaphore:
            return await self._run_with_session(validated, policy, cancel_token)

    async def _run_with_session(
        self,
        actions: List[Action],
        policy: RunPolicy,
        cancel_token: Optional[CancellationToken]
    ) -> SequenceResult:
        started_at = datetime.utcnow().isoformat()
        options = SessionOptions(
            headless=policy.headless,
            viewport=self.session_options.viewport,
            user_agent=self.session_options.user_agent,
            slow_mo_ms=self.session_options.slow_mo_ms,
            launch_args=list(self.session_options.launch_args)
        )
        session = await self.session_factory(options)

        try:
            executor = self.executor_factory(session.page)
            results: List[ExecutionResult] = []
            cancelled = False

            for index, action in enumerate(actions):
                if cancel_token is not None and cancel_token.cancelled:
                    logger.info(f"Run cancelled before step {index}")
                    cancelled = True
                    break

                result = await executor.execute(action, index=index)
                results.append(result)

                if not result.success and policy.stop_on_error:
                    logger.info(f"Stopping after failed step {index}")
                    break

            if policy.emit_skipped:
                for index in range(len(results), len(actions)):
                    results.append(ExecutionResult(
                        success=False,
                        action=actions[index],
                        index=index,
                        message="Skipped: an earlier step failed" if not cancelled else "Skipped: run cancelled",
                        state=ActionState.SKIPPED
                    ))

            final_screenshot = None
            if policy.capture_final_screenshot:
                final_screenshot = await executor.capture_screenshot(full_page=True)

            executed = [r for r in results if r.state != ActionState.SKIPPED]
            success = not cancelled and all(r.success for r in executed)

            logger.info(
                f"Sequence finished: {sum(1 for r in executed if r.success)}/{len(actions)} steps succeeded"
            )
            return SequenceResult(
                success=success,
                results=results,
                final_screenshot=final_screenshot,
                cancelled=cancelled,
                started_at=started_at,
                completed_at=datetime.utcnow().isoformat()
            )
        finally:
            await session.release()
