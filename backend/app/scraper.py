"""
Scraper

Extracts a bounded structured summary (headings, links, inputs, buttons and
text) from a page. Every list and the text are capped to keep payloads small,
so a result is never guaranteed to be complete.
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from playwright.async_api import async_playwright

from models import ScrapedLink, ScrapeResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScrapeLimits:
    heading_selector: str = "h1,h2,h3,h4,h5,h6"
    headings: int = 100
    links: int = 200
    link_text: int = 200
    inputs: int = 200
    buttons: int = 50
    text: int = 10000


# Stand-alone scrape of a URL
FULL_LIMITS = ScrapeLimits()
# Scrape attached to a replay result
REPLAY_LIMITS = ScrapeLimits(text=5000)


EXTRACT_JS = """
(limits) => {
  const headings = Array.from(document.querySelectorAll(limits.heading_selector))
    .map(h => (h.innerText || "").trim())
    .filter(text => text.length > 0)
    .slice(0, limits.headings);

  const links = Array.from(document.querySelectorAll("a[href]"))
    .map(a => ({ text: (a.innerText || "").trim().slice(0, limits.link_text), href: a.href }))
    .filter(link => link.text.length > 0)
    .slice(0, limits.links);

  const inputs = Array.from(document.querySelectorAll("input,select,textarea"))
    .slice(0, limits.inputs)
    .map(el => ({
      tag: el.tagName.toLowerCase(),
      type: el.type || null,
      name: el.getAttribute("name") || null,
      id: el.id || null,
      placeholder: el.placeholder || null,
      value: el.value || null
    }));

  const buttons = Array.from(document.querySelectorAll("button, input[type='submit'], input[type='button']"))
    .map(btn => ({
      text: (btn.innerText || "").trim() || btn.value || "",
      type: btn.type || "button",
      id: btn.id || null,
      className: (typeof btn.className === "string" && btn.className) || null
    }))
    .filter(btn => btn.text.length > 0)
    .slice(0, limits.buttons);

  const main = document.querySelector("main, article, .content, #content") || document.body;
  const textContent = main ? (main.innerText || "").slice(0, limits.text) : "";

  return {
    url: location.href,
    title: document.title,
    headings,
    links,
    inputs,
    buttons,
    textContent,
    timestamp: Date.now()
  };
}
"""


def build_scrape_result(raw: Dict[str, Any], limits: ScrapeLimits = FULL_LIMITS) -> ScrapeResult:
    """Normalize raw page data into a ScrapeResult, enforcing every cap."""
    headings = [str(h).strip() for h in raw.get("headings") or []]
    headings = [h for h in headings if h][:limits.headings]

    links = []
    for link in raw.get("links") or []:
        text = str(link.get("text") or "").strip()[:limits.link_text]
        if text:
            links.append(ScrapedLink(text=text, href=str(link.get("href") or "")))
        if len(links) >= limits.links:
            break

    inputs = list(raw.get("inputs") or [])[:limits.inputs]
    buttons = [b for b in raw.get("buttons") or [] if str(b.get("text") or "").strip()][:limits.buttons]

    return ScrapeResult(
        url=raw.get("url") or "",
        title=raw.get("title") or "",
        headings=headings,
        links=links,
        inputs=inputs,
        buttons=buttons,
        text_content=(raw.get("textContent") or "")[:limits.text],
        timestamp=raw.get("timestamp") or int(time.time() * 1000),
    )


async def scrape_page(page, limits: ScrapeLimits = FULL_LIMITS) -> ScrapeResult:
    """Scrape an already-open page."""
    raw = await page.evaluate(EXTRACT_JS, asdict(limits))
    return build_scrape_result(raw or {}, limits)


async def scrape_url(url: str, headless: bool = True, timeout: float = 30.0,
                     limits: Optional[ScrapeLimits] = None) -> ScrapeResult:
    """Open a fresh headless browser, load `url` and scrape it."""
    logger.info(f"Scraping URL: {url}")
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=headless)
        try:
            page = await browser.new_page()
            await page.goto(url, wait_until="domcontentloaded", timeout=timeout * 1000)
            return await scrape_page(page, limits or FULL_LIMITS)
        finally:
            await browser.close()
