from playwright.async_api import async_playwright, Browser, BrowserContext, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from typing import Callable, Optional
import asyncio
import json
import logging
from datetime import datetime

from api_fast_path import ApiFastPath, is_api_shaped
from config import SettlePolicy
from errors import ActionTimeout, NavigationTimeout
from event_actions import SCROLL_JS, action_for, needs_navigation
from models import ClickEvent, InputEvent, KeydownEvent, ReplayResult, ScrollEvent, Session
from scraper import REPLAY_LIMITS, scrape_page
from selector_resolver import SelectorResolver

logger = logging.getLogger(__name__)


class ReplayEngine:
    """Replays a recorded session through a Playwright browser.

    One engine drives one browser and one page, strictly in event order.
    Any failure aborts the whole replay; the browser is closed on every
    exit path.
    """

    def __init__(
        self,
        headless: bool = False,
        settle: Optional[SettlePolicy] = None,
        fast_path: Optional[ApiFastPath] = None,
        log_callback: Optional[Callable] = None
    ):
        self._playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.resolver: Optional[SelectorResolver] = None
        self.headless = headless
        self.settle = settle or SettlePolicy()
        self.fast_path = fast_path
        self.log_callback = log_callback

    async def initialize(self):
        """Start Playwright and open a page."""
        self.log("Initializing Playwright browser...")
        self._playwright = await async_playwright().start()
        self.browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=["--no-sandbox", "--disable-setuid-sandbox"]
        )
        self.context = await self.browser.new_context()
        self.page = await self.context.new_page()
        self.resolver = SelectorResolver(self.page, timeout=self.settle.selector_timeout)
        self.log("Browser initialized")

    async def cleanup(self):
        """Release every browser resource; safe to call more than once."""
        for name in ("page", "context", "browser"):
            resource = getattr(self, name)
            setattr(self, name, None)
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                self.log(f"[WARN] Error closing {name}: {e}")
        if self._playwright:
            playwright, self._playwright = self._playwright, None
            try:
                await playwright.stop()
            except Exception as e:
                self.log(f"[WARN] Error stopping Playwright: {e}")
        self.resolver = None

    force_close = cleanup

    @property
    def is_open(self) -> bool:
        return self.browser is not None or self._playwright is not None

    def log(self, message: str):
        if self.log_callback:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.log_callback(f"[{timestamp}] {message}")
        else:
            logger.info(message)

    async def _settle(self, seconds: float):
        if seconds > 0:
            await asyncio.sleep(seconds)

    # ============================================================
    # EVENT HANDLERS
    # ============================================================

    async def _navigate(self, url: str):
        self.log(f"  → Navigating to: {url}")
        timeout = self.settle.navigation_timeout
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(url, timeout) from e
        await self._settle(self.settle.navigation)

    async def _do_click(self, event: ClickEvent):
        self.log(f"  → Clicking: {event.selector}")
        await self.resolver.click(event.selector)

    async def _do_input(self, event: InputEvent):
        self.log(f"  → Filling: {event.selector}")
        await self.resolver.fill(event.selector, event.value)

    async def _do_scroll(self, event: ScrollEvent):
        self.log(f"  → Scrolling to: ({event.x}, {event.y})")
        try:
            await self.page.evaluate(SCROLL_JS, [event.x, event.y])
        except PlaywrightTimeoutError as e:
            raise ActionTimeout("scroll", str(e)) from e

    async def _do_keydown(self, event: KeydownEvent):
        if not event.replayable:
            self.log(f"  → Skipping key: {event.key}")
            return
        self.log(f"  → Pressing: {event.key}")
        try:
            await self.page.keyboard.press(event.key)
        except PlaywrightTimeoutError as e:
            raise ActionTimeout("keydown", str(e)) from e

    # ============================================================
    # REPLAY
    # ============================================================

    async def replay(self, session: Session) -> ReplayResult:
        """Full browser replay of `session`."""
        total = len(session.events)
        if total == 0:
            self.log(f"Session \"{session.name}\" has no events, nothing to replay")
            return ReplayResult(ok=True)

        self.log(f"Replaying session \"{session.name}\" with {total} events")
        try:
            await self.initialize()
            current_url = None

            for index, event in enumerate(session.events, 1):
                self.log(f"Event {index}/{total}: {event.kind}")

                if needs_navigation(event, current_url):
                    await self._navigate(event.page_url)
                    current_url = event.page_url

                action = action_for(event)
                if action.handler:
                    await getattr(self, action.handler)(event)
                    await self._settle(self.settle.for_kind(event.kind))

            scraped = None
            if session.scrape_requested:
                self.log("Scraping final page...")
                result = await scrape_page(self.page, REPLAY_LIMITS)
                scraped = json.dumps(result.to_wire())

            await self._settle(self.settle.hold_open)
            self.log(f"Replay of \"{session.name}\" completed")
            return ReplayResult(ok=True, scraped=scraped)

        except Exception as e:
            error_message = str(e) or e.__class__.__name__
            self.log(f"Replay error: {error_message}")
            return ReplayResult(ok=False, error=error_message)

        finally:
            await self.cleanup()

    async def run(self, session: Session, allow_fast_path: bool = True,
                  timeout: Optional[float] = None) -> ReplayResult:
        """
        Replay `session`, short-circuiting through the API fast-path when the
        last recorded URL answers as a JSON API.

        Args:
            session: Session to replay
            allow_fast_path: Try a direct fetch of the last URL first
            timeout: Bound on the full replay, in seconds
        """
        if allow_fast_path and self.fast_path:
            last_url = session.last_url()
            if last_url and is_api_shaped(last_url):
                fast = await asyncio.to_thread(self.fast_path.classify, last_url)
                if fast.hit:
                    self.log(f"Using API fast-path for {last_url}")
                    return ReplayResult(ok=True, fast_path=True, data=fast.data)

        if timeout is None:
            return await self.replay(session)

        try:
            return await asyncio.wait_for(self.replay(session), timeout)
        except asyncio.TimeoutError:
            await self.force_close()
            self.log(f"Replay of \"{session.name}\" timed out after {timeout:g}s")
            return ReplayResult(ok=False, error=f"Replay timed out after {timeout:g}s")


def create_engine(headless: Optional[bool] = None, log_callback: Optional[Callable] = None) -> ReplayEngine:
    """Build an engine from the configured settings; one engine per replay."""
    from api_fast_path import get_api_fast_path
    from config import get_settings
    settings = get_settings()
    return ReplayEngine(
        headless=settings.headless if headless is None else headless,
        settle=settings.settle,
        fast_path=get_api_fast_path(),
        log_callback=log_callback
    )
