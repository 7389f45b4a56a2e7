"""
Unit tests for SelectorResolver.

Tests the click/fill strategy chains against a mocked page.
"""

import pytest
from pathlib import Path
from unittest.mock import AsyncMock
import sys

sys.path.insert(0, str(Path(__file__).parent.parent / "app"))

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from errors import ElementNotFound
from selector_resolver import SelectorResolver, is_texty


def timeout_error():
    return PlaywrightTimeoutError("Timeout 100ms exceeded")


@pytest.fixture
def resolver(mock_page):
    return SelectorResolver(mock_page, timeout=0.1)


class TestIsTexty:
    """Test the visible-text heuristic."""

    @pytest.mark.parametrize("descriptor", ["Search", "Add to cart", "Sign in"])
    def test_plain_text(self, descriptor):
        assert is_texty(descriptor)

    @pytest.mark.parametrize("descriptor", [
        "#submit",
        "[name=\"q\"]",
        "div:nth-child(2) > button:nth-child(1)",
        "x" * 80,
        "",
        None,
    ])
    def test_not_text(self, descriptor):
        assert not is_texty(descriptor)


class TestStrategySelection:

    def test_structural_descriptor_gets_only_structural_click(self, resolver):
        names = [s.name for s in resolver.strategies_for("click", "#submit")]

        assert names == ["structural"]

    def test_text_descriptor_gets_full_click_chain(self, resolver):
        names = [s.name for s in resolver.strategies_for("click", "Search")]

        assert names == ["structural", "exact_text", "partial_text"]

    def test_fill_without_value_skips_placeholder(self, resolver):
        names = [s.name for s in resolver.strategies_for("fill", "#q", "")]

        assert names == ["structural"]

    def test_unknown_action(self, resolver):
        with pytest.raises(ValueError):
            resolver.strategies_for("hover", "#a")


class TestClick:
    """Test click resolution."""

    @pytest.mark.asyncio
    async def test_structural_success(self, resolver, mock_page):
        """Test that a matching structural selector is used directly."""
        strategy = await resolver.click("#submit")

        assert strategy == "structural"
        mock_page.wait_for_selector.assert_awaited_once_with("#submit", timeout=100)
        mock_page.click.assert_awaited_once_with("#submit", timeout=100)
        mock_page.get_by_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_exact_text_fallback(self, resolver, mock_page):
        """Test fallback to exact visible text."""
        mock_page.wait_for_selector = AsyncMock(side_effect=timeout_error())

        strategy = await resolver.click("Search")

        assert strategy == "exact_text"
        mock_page.get_by_text.assert_called_once_with("Search", exact=True)

    @pytest.mark.asyncio
    async def test_partial_text_fallback(self, resolver, mock_page):
        """Test fallback to the first partial text match."""
        mock_page.wait_for_selector = AsyncMock(side_effect=timeout_error())
        locator = mock_page.get_by_text.return_value
        locator.click = AsyncMock(side_effect=[timeout_error(), None])

        strategy = await resolver.click("Search")

        assert strategy == "partial_text"
        assert locator.click.await_count == 2
        mock_page.get_by_text.assert_called_with("Search")

    @pytest.mark.asyncio
    async def test_structural_selector_never_tries_text(self, resolver, mock_page):
        """Test that #, [ and :nth-child selectors fail without text fallback."""
        mock_page.wait_for_selector = AsyncMock(side_effect=timeout_error())

        with pytest.raises(ElementNotFound) as exc_info:
            await resolver.click("div:nth-child(3) > a:nth-child(1)")

        assert exc_info.value.tried == ["structural"]
        assert str(exc_info.value) == "Could not click selector: div:nth-child(3) > a:nth-child(1)"
        mock_page.get_by_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_all_strategies_exhausted(self, resolver, mock_page):
        mock_page.wait_for_selector = AsyncMock(side_effect=timeout_error())
        mock_page.get_by_text.return_value.click = AsyncMock(side_effect=timeout_error())

        with pytest.raises(ElementNotFound) as exc_info:
            await resolver.click("Checkout")

        assert exc_info.value.tried == ["structural", "exact_text", "partial_text"]

    @pytest.mark.asyncio
    async def test_non_playwright_errors_propagate(self, resolver, mock_page):
        mock_page.wait_for_selector = AsyncMock(side_effect=RuntimeError("page crashed"))

        with pytest.raises(RuntimeError):
            await resolver.click("Search")


class TestFill:
    """Test fill resolution."""

    @pytest.mark.asyncio
    async def test_structural_fill(self, resolver, mock_page):
        strategy = await resolver.fill("#q", "shoes")

        assert strategy == "structural"
        mock_page.fill.assert_awaited_once_with("#q", "shoes", timeout=100)

    @pytest.mark.asyncio
    async def test_placeholder_fallback(self, resolver, mock_page):
        """Test fill falls back to a placeholder match on the typed value."""
        mock_page.wait_for_selector = AsyncMock(side_effect=timeout_error())

        strategy = await resolver.fill("#gone", "Email")

        assert strategy == "placeholder"
        mock_page.get_by_placeholder.assert_called_once_with("Email")
        mock_page.get_by_placeholder.return_value.fill.assert_awaited_once_with("Email", timeout=100)

    @pytest.mark.asyncio
    async def test_empty_value_no_fallback(self, resolver, mock_page):
        mock_page.wait_for_selector = AsyncMock(side_effect=timeout_error())

        with pytest.raises(ElementNotFound) as exc_info:
            await resolver.fill("#gone", "")

        assert exc_info.value.action == "fill"
        mock_page.get_by_placeholder.assert_not_called()
