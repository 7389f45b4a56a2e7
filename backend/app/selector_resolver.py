"""
Selector Resolver

Locates the element a recorded descriptor refers to and acts on it.

Descriptors captured while recording (an id, a name attribute, or an
nth-child chain up to four levels deep) may not resolve the same way on
replay. Each action therefore has an ordered chain of strategies. The
structural match always comes first; looser strategies follow. Each strategy
gets exactly one attempt with its own short timeout.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError

from errors import ElementNotFound

logger = logging.getLogger(__name__)

# Descriptors containing these are structural selectors, never visible text
STRUCTURAL_MARKERS = (":nth-child", "#", "[")
MAX_TEXT_DESCRIPTOR_LENGTH = 80


def is_texty(descriptor: Optional[str]) -> bool:
    """Whether a descriptor could plausibly be the element's visible text."""
    if not descriptor or len(descriptor) >= MAX_TEXT_DESCRIPTOR_LENGTH:
        return False
    return not any(marker in descriptor for marker in STRUCTURAL_MARKERS)


@dataclass(frozen=True)
class ResolutionStrategy:
    """One attempt at locating and acting on an element."""
    name: str
    act: Callable[..., Awaitable[None]]
    applies: Callable[[str, Optional[str]], bool] = lambda descriptor, value: True


# ==================== Click strategies ====================

async def _click_structural(page, descriptor: str, value: Optional[str], timeout_ms: float):
    await page.wait_for_selector(descriptor, timeout=timeout_ms)
    await page.click(descriptor, timeout=timeout_ms)


async def _click_exact_text(page, descriptor: str, value: Optional[str], timeout_ms: float):
    await page.get_by_text(descriptor, exact=True).click(timeout=timeout_ms)


async def _click_partial_text(page, descriptor: str, value: Optional[str], timeout_ms: float):
    await page.get_by_text(descriptor).first.click(timeout=timeout_ms)


# ==================== Fill strategies ====================

async def _fill_structural(page, descriptor: str, value: Optional[str], timeout_ms: float):
    await page.wait_for_selector(descriptor, timeout=timeout_ms)
    await page.fill(descriptor, value or "", timeout=timeout_ms)


async def _fill_by_placeholder(page, descriptor: str, value: Optional[str], timeout_ms: float):
    # Imprecise: assumes the typed value echoes the field's placeholder
    await page.get_by_placeholder(value).fill(value, timeout=timeout_ms)


CLICK_STRATEGIES: List[ResolutionStrategy] = [
    ResolutionStrategy("structural", _click_structural),
    ResolutionStrategy("exact_text", _click_exact_text, lambda d, v: is_texty(d)),
    ResolutionStrategy("partial_text", _click_partial_text, lambda d, v: is_texty(d)),
]

FILL_STRATEGIES: List[ResolutionStrategy] = [
    ResolutionStrategy("structural", _fill_structural),
    ResolutionStrategy("placeholder", _fill_by_placeholder, lambda d, v: bool(v)),
]

STRATEGY_CHAINS: Dict[str, List[ResolutionStrategy]] = {
    "click": CLICK_STRATEGIES,
    "fill": FILL_STRATEGIES,
}


class SelectorResolver:
    """Runs the strategy chain for an action against a Playwright page."""

    DEFAULT_TIMEOUT = 5.0  # seconds

    def __init__(self, page, timeout: float = DEFAULT_TIMEOUT,
                 chains: Optional[Dict[str, List[ResolutionStrategy]]] = None):
        self.page = page
        self.timeout = timeout
        self.chains = chains or STRATEGY_CHAINS

    def strategies_for(self, action: str, descriptor: str, value: Optional[str] = None) -> List[ResolutionStrategy]:
        """Strategies that qualify for this descriptor, in the order they are tried."""
        if action not in self.chains:
            raise ValueError(f"Unknown action: {action}")
        return [s for s in self.chains[action] if s.applies(descriptor, value)]

    async def resolve_and_act(self, action: str, descriptor: str, value: Optional[str] = None) -> str:
        """
        Perform `action` on the element `descriptor` refers to.

        Returns:
            Name of the strategy that succeeded

        Raises:
            ElementNotFound: every qualifying strategy failed
        """
        timeout_ms = self.timeout * 1000
        tried = []

        for strategy in self.strategies_for(action, descriptor, value):
            tried.append(strategy.name)
            try:
                await strategy.act(self.page, descriptor, value, timeout_ms)
            except PlaywrightError as e:
                logger.debug(f"{action} via {strategy.name} failed for '{descriptor}': {str(e)[:100]}")
                continue
            if len(tried) > 1:
                logger.info(f"Resolved '{descriptor}' via {strategy.name} fallback")
            return strategy.name

        raise ElementNotFound(action, descriptor, tried)

    async def click(self, descriptor: str) -> str:
        return await self.resolve_and_act("click", descriptor)

    async def fill(self, descriptor: str, value: str) -> str:
        return await self.resolve_and_act("fill", descriptor, value)
