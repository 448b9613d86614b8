"""
Browser Session Controller

Owns one Playwright browser process, one isolated context and one page.
A session is acquired per run and never shared between concurrent runs;
`browser_session()` guarantees release on every exit path.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from ..errors import SessionError

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class SessionOptions:
    """How to launch a browser session"""
    headless: bool = True
    viewport: Optional[Dict[str, int]] = field(default_factory=lambda: {"width": 1280, "height": 720})
    user_agent: Optional[str] = None
    slow_mo_ms: int = 0
    launch_args: List[str] = field(default_factory=list)


class BrowserSession:
    """
    A live browser, context and page.

    Use `BrowserSession.acquire()` (or the `browser_session()` context
    manager) rather than constructing one directly. `release()` is
    idempotent.
    """

    def __init__(
        self,
        page: Page,
        context: Optional[BrowserContext] = None,
        browser: Optional[Browser] = None,
        playwright=None,
        options: Optional[SessionOptions] = None
    ):
        self.page = page
        self.context = context
        self.browser = browser
        self._playwright = playwright
        self.options = options or SessionOptions()
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @classmethod
    async def acquire(cls, options: Optional[SessionOptions] = None) -> "BrowserSession":
        """
        Launch a browser and open one page in a fresh context.

        Raises:
            SessionError: the driver, browser, context or page is unavailable.
                Anything partially started is torn down first.
        """
        options = options or SessionOptions()
        playwright = browser = context = None

        try:
            playwright = await async_playwright().start()
            browser = await playwright.chromium.launch(
                headless=options.headless,
                slow_mo=options.slow_mo_ms,
                args=options.launch_args
            )
            context_kwargs = {}
            if options.viewport:
                context_kwargs["viewport"] = options.viewport
            else:
                context_kwargs["no_viewport"] = True
            if options.user_agent:
                context_kwargs["user_agent"] = options.user_agent
            context = await browser.new_context(**context_kwargs)
            page = await context.new_page()
        except Exception as e:
            logger.error(f"Failed to acquire browser session: {e}")
            await _close_quietly(context=context, browser=browser, playwright=playwright)
            raise SessionError(f"Could not start browser session: {e}") from e

        logger.info(f"Browser session acquired (headless={options.headless})")
        return cls(page, context=context, browser=browser, playwright=playwright, options=options)

    async def release(self):
        """Close page, context, browser and driver. Safe to call twice."""
        if self._released:
            return
        self._released = True
        await _close_quietly(
            page=self.page,
            context=self.context,
            browser=self.browser,
            playwright=self._playwright
        )
        logger.info("Browser session released")


async def _close_quietly(page=None, context=None, browser=None, playwright=None):
    """Close whatever was opened, in reverse order of acquisition"""
    for name, resource, closer in (
        ("page", page, "close"),
        ("context", context, "close"),
        ("browser", browser, "close"),
        ("playwright", playwright, "stop"),
    ):
        if resource is None:
            continue
        try:
            await getattr(resource, closer)()
        except Exception as e:
            logger.warning(f"Error closing {name}: {e}")


SessionFactory = Callable[[SessionOptions], Awaitable[BrowserSession]]


@asynccontextmanager
async def browser_session(
    options: Optional[SessionOptions] = None,
    factory: Optional[SessionFactory] = None
) -> AsyncIterator[BrowserSession]:
    """Acquire a session and release it however the block exits"""
    factory = factory or BrowserSession.acquire
    session = await factory(options or SessionOptions())
    try:
        yield session
    finally:
        await session.release()
