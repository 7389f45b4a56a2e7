"""
Network Analyzer

Inspects network requests captured while recording and groups the API calls
among them by origin, so a session can be judged for replacement by direct
API calls.
"""

import logging
from typing import Any, Dict, List
from urllib.parse import urlparse

from models import NetworkRequest

logger = logging.getLogger(__name__)

AUTH_HEADER_MARKERS = ("auth", "token")
ESSENTIAL_HEADERS = (
    "authorization",
    "x-api-key",
    "content-type",
    "accept",
    "user-agent",
)


class NetworkAnalyzer:
    """Classifies captured requests and extracts per-origin API patterns."""

    @staticmethod
    def is_api_call(request: NetworkRequest) -> bool:
        parsed = urlparse(request.url)
        path = parsed.path
        content_type = next(
            (value for key, value in (request.response_headers or {}).items()
             if key.lower() == "content-type"),
            ""
        )

        indicators = [
            "/api/" in path,
            "/rest/" in path,
            "/graphql" in path,
            path.endswith(".json"),
            (parsed.hostname or "").startswith("api."),
            "application/json" in content_type,
            request.method.upper() != "GET" and request.response_body is not None,
        ]
        return any(indicators)

    @classmethod
    def extract_patterns(cls, api_calls: List[NetworkRequest]) -> List[Dict[str, Any]]:
        patterns: Dict[str, Dict[str, Any]] = {}

        for call in api_calls:
            parsed = urlparse(call.url)
            base_url = f"{parsed.scheme}://{parsed.netloc}"

            pattern = patterns.setdefault(base_url, {
                "baseUrl": base_url,
                "endpoints": [],
                "authHeaders": {},
                "commonParams": {},
            })

            if parsed.path not in pattern["endpoints"]:
                pattern["endpoints"].append(parsed.path)

            for key, value in (call.headers or {}).items():
                lowered = key.lower()
                if any(marker in lowered for marker in AUTH_HEADER_MARKERS) or lowered == "x-api-key":
                    pattern["authHeaders"][key] = value

        return list(patterns.values())

    @classmethod
    def analyze_requests(cls, requests: List[NetworkRequest]) -> Dict[str, Any]:
        api_calls = [req for req in requests if cls.is_api_call(req)]
        patterns = cls.extract_patterns(api_calls)
        logger.info(f"Network analysis: {len(api_calls)}/{len(requests)} API calls, {len(patterns)} origins")
        return {
            "apiCalls": [call.model_dump(mode="json", by_alias=True, exclude_none=True) for call in api_calls],
            "patterns": patterns,
            "optimizable": bool(api_calls),
        }

    @staticmethod
    def clean_headers(headers: Dict[str, Any]) -> Dict[str, str]:
        """Keep only the headers needed to repeat a call."""
        return {
            key: str(value)
            for key, value in (headers or {}).items()
            if any(essential in key.lower() for essential in ESSENTIAL_HEADERS)
        }

    @classmethod
    def optimize_session(cls, requests: List[NetworkRequest]) -> Dict[str, Any]:
        api_calls = [req for req in requests if cls.is_api_call(req)]
        if not api_calls:
            return {"canOptimize": False, "optimizedCalls": []}

        optimized_calls = []
        for call in api_calls:
            optimized = {
                "url": call.url,
                "method": call.method,
                "headers": cls.clean_headers(call.headers),
            }
            if call.body is not None:
                optimized["body"] = call.body
            optimized_calls.append({
                "original": call.model_dump(mode="json", by_alias=True, exclude_none=True),
                "optimized": optimized,
            })
        return {"canOptimize": True, "optimizedCalls": optimized_calls}
