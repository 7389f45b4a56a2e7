"""
Unit tests for the API fast-path.

HTTP is mocked at the requests.Session level; no network access.
"""

import pytest
import requests
from pathlib import Path
from unittest.mock import Mock, patch
import sys

sys.path.insert(0, str(Path(__file__).parent.parent / "app"))

from api_fast_path import ApiFastPath, is_api_shaped, looks_like_api, matches_rest_pattern
from config import Settings


def make_response(status=200, content_type="application/json", json_data=None, text=""):
    response = Mock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.headers = {"content-type": content_type}
    response.json = Mock(return_value=json_data)
    response.text = text
    return response


@pytest.fixture
def http():
    return Mock(spec=requests.Session)


@pytest.fixture
def fast_path(http):
    return ApiFastPath(http=http, user_agent="Browsy/1.0", timeout=5)


class TestApiFastPathInit:
    """Test that unset options come from the configured settings."""

    def test_defaults_from_settings(self, http):
        settings = Settings(user_agent="Browsy-Test/2.0", fast_path_timeout=7)

        with patch("api_fast_path.get_settings", return_value=settings):
            fast_path = ApiFastPath(http=http)

        assert fast_path.user_agent == "Browsy-Test/2.0"
        assert fast_path.timeout == 7

    def test_explicit_values_win(self, http):
        fast_path = ApiFastPath(http=http, user_agent="Other/1.0", timeout=0)

        assert fast_path.user_agent == "Other/1.0"
        assert fast_path.timeout == 0


class TestUrlShape:
    """Test the API-shape predicates."""

    @pytest.mark.parametrize("url", [
        "https://example.com/data.json",
        "https://example.com/items?format=json",
        "https://example.com/api/items",
        "https://api.github.com/repos/microsoft/typescript",
    ])
    def test_looks_like_api(self, url):
        assert looks_like_api(url)

    @pytest.mark.parametrize("url", [
        "https://example.com/api/v2/items",
        "https://example.com/rest/items",
        "https://example.com/graphql",
        "https://example.com/feed.json",
    ])
    def test_rest_patterns(self, url):
        assert matches_rest_pattern(url)

    @pytest.mark.parametrize("url", [
        "https://example.com/about",
        "https://example.com/search?q=api",
        "https://example.com/products?format=xml",
    ])
    def test_not_api_shaped(self, url):
        assert not is_api_shaped(url)

    def test_rest_only_url(self):
        """Test a URL only the REST pattern check accepts."""
        url = "https://example.com/rest/items"

        assert not looks_like_api(url)
        assert is_api_shaped(url)


class TestClassify:
    """Test ApiFastPath.classify."""

    def test_non_api_url_makes_no_request(self, fast_path, http):
        """Test that a non-API URL is a miss with zero HTTP calls."""
        result = fast_path.classify("https://example.com/about")

        assert result.hit is False
        http.get.assert_not_called()

    def test_non_http_scheme_is_miss(self, fast_path, http):
        result = fast_path.classify("ftp://api.example.com/data.json")

        assert result.hit is False
        http.get.assert_not_called()

    def test_json_api_hit(self, fast_path, http):
        """Test a JSON API URL returns the parsed body."""
        http.get.return_value = make_response(
            content_type="application/json; charset=utf-8",
            json_data={"name": "TypeScript", "stargazers_count": 100}
        )

        result = fast_path.classify("https://api.github.com/repos/microsoft/typescript")

        assert result.hit is True
        assert result.data["name"] == "TypeScript"
        assert result.status == 200
        assert result.content_type.startswith("application/json")

    def test_broad_check_sends_user_agent(self, fast_path, http):
        http.get.return_value = make_response(json_data={})

        fast_path.classify("https://api.example.com/things")

        headers = http.get.call_args.kwargs["headers"]
        assert headers["User-Agent"] == "Browsy/1.0"
        assert headers["Accept"] == "application/json"
        assert http.get.call_args.kwargs["timeout"] == 5

    def test_non_json_content_type_falls_through_to_rest_check(self, fast_path, http):
        """Test that a broad-check miss still tries the REST pattern check."""
        http.get.side_effect = [
            make_response(content_type="text/html", text="<html></html>"),
            make_response(content_type="text/html", text="<html></html>"),
        ]

        result = fast_path.classify("https://example.com/api/v1/items")

        assert http.get.call_count == 2
        assert result.hit is True
        assert result.is_text is True
        assert result.data == "<html></html>"

    def test_rest_check_parses_json_text(self, fast_path, http):
        http.get.return_value = make_response(content_type="text/plain", text='{"items": [1, 2]}')

        result = fast_path.classify("https://example.com/rest/items")

        assert result.hit is True
        assert result.data == {"items": [1, 2]}
        assert result.is_text is None
        assert http.get.call_count == 1

    def test_error_status_is_miss(self, fast_path, http):
        """Test that a non-2xx response is a miss."""
        http.get.return_value = make_response(status=404, json_data={"message": "Not Found"})

        result = fast_path.classify("https://api.github.com/repos/nope/nope")

        assert result.hit is False

    def test_network_error_is_miss(self, fast_path, http):
        """Test that network failures never propagate."""
        http.get.side_effect = requests.ConnectionError("connection refused")

        result = fast_path.classify("https://example.com/api/v1/items")

        assert result.hit is False

    def test_invalid_json_body_is_broad_miss(self, fast_path, http):
        response = make_response(json_data=None)
        response.json.side_effect = ValueError("Expecting value")
        http.get.return_value = response

        result = fast_path.classify("https://api.example.com/things")

        assert result.hit is False


class TestAnalyzeSession:
    """Test ApiFastPath.analyze_session."""

    def test_reports_api_urls(self, fast_path, http):
        http.get.return_value = make_response(json_data={"ok": True})

        analysis = fast_path.analyze_session([
            "https://example.com/",
            "https://api.example.com/things",
            "https://api.example.com/things",
        ])

        assert analysis["canOptimize"] is True
        assert analysis["apis"] == [
            {"url": "https://api.example.com/things", "method": "GET", "response": {"ok": True}}
        ]
        assert http.get.call_count == 1

    def test_no_api_urls(self, fast_path, http):
        analysis = fast_path.analyze_session(["https://example.com/", ""])

        assert analysis == {"apis": [], "canOptimize": False}
