"""
Pytest configuration and shared fixtures for the action engine tests.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock, AsyncMock
from typing import Any, Dict, List

# Add backend app to path
sys.path.insert(0, str(Path(__file__).parent.parent / "app"))


# ==================== Mock Page Fixture ====================

@pytest.fixture
def mock_locator():
    """Create a mock Playwright locator for an <input> element."""
    locator = AsyncMock()
    locator.click = AsyncMock()
    locator.fill = AsyncMock()
    locator.clear = AsyncMock()
    locator.press_sequentially = AsyncMock()
    locator.hover = AsyncMock()
    locator.wait_for = AsyncMock()
    locator.select_option = AsyncMock()
    locator.evaluate = AsyncMock(return_value="input")
    return locator


@pytest.fixture
def mock_page(mock_locator):
    """Create a mock Playwright page object."""
    page = AsyncMock()

    # Basic properties
    page.url = "https://example.com/test"

    # Navigation
    page.goto = AsyncMock(return_value=None)

    # Evaluation
    page.evaluate = AsyncMock(return_value=None)
    page.wait_for_function = AsyncMock()

    # Locators
    page.locator = Mock(return_value=mock_locator)

    # Keyboard
    page.keyboard = AsyncMock()
    page.keyboard.press = AsyncMock()

    # Wait
    page.wait_for_selector = AsyncMock(return_value=mock_locator)

    # Screenshot
    page.screenshot = AsyncMock(return_value=b"fake_screenshot_data")

    # Recording hooks
    page.expose_function = AsyncMock()
    page.on = Mock()
    page.remove_listener = Mock()

    return page


# ==================== Fake Session Fixtures ====================

class FakeSession:
    """Stands in for BrowserSession; counts release() calls."""

    def __init__(self, page):
        self.page = page
        self.release_count = 0

    @property
    def released(self) -> bool:
        return self.release_count > 0

    async def release(self):
        self.release_count += 1


class FakeSessionFactory:
    """Session factory that records the options it was called with."""

    def __init__(self, page, error: Exception = None):
        self.page = page
        self.error = error
        self.sessions: List[FakeSession] = []
        self.options = []

    async def __call__(self, options):
        self.options.append(options)
        if self.error is not None:
            raise self.error
        session = FakeSession(self.page)
        self.sessions.append(session)
        return session


@pytest.fixture
def session_factory(mock_page):
    """Factory handing out fake sessions around the mock page."""
    return FakeSessionFactory(mock_page)


# ==================== Sample Data ====================

@pytest.fixture
def login_actions() -> List[Dict[str, Any]]:
    """Sample wire-format action sequence."""
    return [
        {"type": "goto", "url": "https://example.com/login"},
        {"type": "fill", "selector": "#email", "value": "user@example.com"},
        {"type": "click", "selector": "#login-btn"},
    ]


@pytest.fixture
def make_session_factory(mock_page):
    """Build session factories, optionally failing to acquire."""
    def _make(error: Exception = None):
        return FakeSessionFactory(mock_page, error=error)
    return _make
