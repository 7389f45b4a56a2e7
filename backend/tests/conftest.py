"""
Pytest configuration and shared fixtures for Browsy tests.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock, AsyncMock, patch
from typing import Dict, Any

# Add backend app to path
sys.path.insert(0, str(Path(__file__).parent.parent / "app"))

from config import SettlePolicy
from models import Session
from storage import SessionStore


# ==================== Mock Page Fixture ====================

@pytest.fixture
def mock_page():
    """Create a mock Playwright page object."""
    page = AsyncMock()

    # Basic properties
    page.url = "https://example.com/test"

    # Navigation
    page.goto = AsyncMock(return_value=None)

    # Content
    page.title = AsyncMock(return_value="Test Page")

    # Evaluation
    page.evaluate = AsyncMock(return_value={})

    # Direct selector actions
    page.wait_for_selector = AsyncMock(return_value=None)
    page.click = AsyncMock()
    page.fill = AsyncMock()

    # Locators
    mock_locator = AsyncMock()
    mock_locator.click = AsyncMock()
    mock_locator.fill = AsyncMock()
    mock_locator.first = mock_locator

    page.locator = Mock(return_value=mock_locator)
    page.get_by_text = Mock(return_value=mock_locator)
    page.get_by_placeholder = Mock(return_value=mock_locator)

    # Keyboard
    page.keyboard = AsyncMock()
    page.keyboard.press = AsyncMock()

    page.close = AsyncMock()

    return page


# ==================== Mock Browser Fixture ====================

@pytest.fixture
def mock_browser(mock_page):
    """Create a mock Playwright browser object."""
    browser = AsyncMock()
    context = AsyncMock()

    context.new_page = AsyncMock(return_value=mock_page)
    context.close = AsyncMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.new_page = AsyncMock(return_value=mock_page)
    browser.close = AsyncMock()

    return browser


@pytest.fixture
def mock_playwright(mock_browser):
    """Patch the replay engine's Playwright entry point with a fake driver."""
    playwright = AsyncMock()
    playwright.chromium.launch = AsyncMock(return_value=mock_browser)
    playwright.stop = AsyncMock()

    with patch("replay_engine.async_playwright") as factory:
        factory.return_value.start = AsyncMock(return_value=playwright)
        playwright.factory = factory
        yield playwright


@pytest.fixture
def instant_settle() -> SettlePolicy:
    return SettlePolicy.instant()


# ==================== Sample Data ====================

@pytest.fixture
def sample_events() -> list:
    """Events in recorder wire format."""
    return [
        {"t": 1000, "url": "https://example.com/", "type": "navigate"},
        {"t": 1100, "url": "https://example.com/", "type": "input", "selector": "#q", "value": "shoes"},
        {"t": 1200, "url": "https://example.com/", "type": "click", "selector": "Search",
         "button": 0, "x": 10, "y": 20},
        {"t": 1300, "url": "https://example.com/results", "type": "scroll", "x": 0, "y": 400},
        {"t": 1400, "url": "https://example.com/results", "type": "keydown", "key": "Enter",
         "selector": "#q"},
    ]


@pytest.fixture
def sample_session_payload(sample_events) -> Dict[str, Any]:
    return {
        "name": "shoe-search",
        "events": sample_events,
        "scrapeRequested": False,
        "domSnapshot": None,
    }


@pytest.fixture
def sample_session(sample_session_payload) -> Session:
    return Session.model_validate(sample_session_payload)


# ==================== Storage Fixture ====================

@pytest.fixture
def session_store(tmp_path) -> SessionStore:
    """Session store backed by a temporary directory."""
    return SessionStore(data_dir=str(tmp_path / "data"))
