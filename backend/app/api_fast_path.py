"""
API Fast-Path

Recognizes URLs that look like JSON API endpoints and fetches them directly,
so a replay whose final page is an API response can skip the browser.

Two overlapping checks are applied. The broad check accepts `.json` paths,
`format=json` queries, `/api/` paths and `api.` hosts and requires a JSON
content-type. The REST pattern check accepts `/api/v<n>/`, `/rest/`,
`/graphql` and `.json` paths and accepts any successful body. A URL may pass
either, both or neither; a miss on the first does not skip the second.
"""

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import parse_qs, urlparse

import requests

from config import get_settings
from models import ApiFastPathResult

logger = logging.getLogger(__name__)

REST_PATTERNS = [
    re.compile(r"/api/v?\d+/"),
    re.compile(r"/rest/"),
    re.compile(r"/graphql"),
    re.compile(r"\.json$"),
]


def looks_like_api(url: str) -> bool:
    """Broad API-shape check on path, query and host."""
    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    return (
        parsed.path.endswith(".json")
        or query.get("format", [""])[0] == "json"
        or "/api/" in parsed.path
        or "api." in (parsed.hostname or "")
    )


def matches_rest_pattern(url: str) -> bool:
    path = urlparse(url).path
    return any(pattern.search(path) for pattern in REST_PATTERNS)


def is_api_shaped(url: str) -> bool:
    return looks_like_api(url) or matches_rest_pattern(url)


class ApiFastPath:
    """Best-effort direct fetch of API-shaped URLs.

    Network failures never propagate: every failure path reduces to
    ``ApiFastPathResult(hit=False)`` and the caller falls back to a replay.
    """

    def __init__(
        self,
        http: Optional[requests.Session] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        settings = get_settings()
        self.http = http or requests.Session()
        self.user_agent = user_agent or settings.user_agent
        self.timeout = settings.fast_path_timeout if timeout is None else timeout

    def classify(self, url: str) -> ApiFastPathResult:
        """Fetch `url` directly if it is API-shaped."""
        try:
            parsed = urlparse(url)
        except ValueError as e:
            logger.warning(f"Fast-path URL parsing failed: {e}")
            return ApiFastPathResult(hit=False)
        if parsed.scheme not in ("http", "https"):
            return ApiFastPathResult(hit=False)

        if looks_like_api(url):
            result = self._fetch_json(url)
            if result.hit:
                return result

        if matches_rest_pattern(url):
            return self._fetch_rest(url)

        return ApiFastPathResult(hit=False)

    def _fetch_json(self, url: str) -> ApiFastPathResult:
        headers = {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        try:
            response = self.http.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"API fast-path request failed for {url}: {e}")
            return ApiFastPathResult(hit=False)

        content_type = response.headers.get("content-type", "")
        if not response.ok or "application/json" not in content_type:
            return ApiFastPathResult(hit=False)

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"API fast-path got invalid JSON from {url}: {e}")
            return ApiFastPathResult(hit=False)

        return ApiFastPathResult(
            hit=True,
            data=data,
            status=response.status_code,
            content_type=content_type
        )

    def _fetch_rest(self, url: str) -> ApiFastPathResult:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        try:
            response = self.http.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"API fast-path failed: {e}")
            return ApiFastPathResult(hit=False)

        if not response.ok:
            return ApiFastPathResult(hit=False)

        text = response.text
        try:
            data = json.loads(text)
        except ValueError:
            return ApiFastPathResult(hit=True, data=text, status=response.status_code, is_text=True)
        return ApiFastPathResult(hit=True, data=data, status=response.status_code)

    def analyze_session(self, urls: Iterable[str]) -> Dict[str, Any]:
        """Report which of a session's URLs could be served by the fast-path."""
        apis: List[Dict[str, Any]] = []
        seen = set()
        for url in urls:
            if not url or url in seen:
                continue
            seen.add(url)
            result = self.classify(url)
            if result.hit:
                apis.append({
                    "url": url,
                    "method": "GET",
                    "response": result.data
                })
        return {"apis": apis, "canOptimize": bool(apis)}


def get_api_fast_path() -> ApiFastPath:
    return ApiFastPath()
