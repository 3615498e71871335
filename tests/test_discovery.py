"""Unit tests for route discovery."""

import asyncio

import pytest
import requests
from playwright.async_api import Error as PlaywrightError

from fakes import FakePlaywright
from site_showcase import discovery
from site_showcase.config import ShowcaseConfig
from site_showcase.discovery import discover_routes, extract_routes, wait_for_site
from site_showcase.exceptions import DiscoveryError

BASE = "http://127.0.0.1:3000"


def page_with_links(*hrefs):
    anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><body><nav>{anchors}</nav></body></html>"


class TestExtractRoutes:
    """Tests for extract_routes."""

    def test_deduplicates_preserving_order(self):
        html = page_with_links("/", "/about", "/", "/contact")

        assert extract_routes(html, BASE) == ["/", "/about", "/contact"]

    def test_absolute_links_on_base_host(self):
        html = page_with_links(f"{BASE}/docs", f"{BASE}/", "/docs")

        assert extract_routes(html, BASE) == ["/docs", "/"]

    def test_drops_external_hosts(self):
        html = page_with_links("/", "https://github.com/org/repo", "http://localhost:3000/x", "//cdn.example.com/a")

        routes = extract_routes(html, BASE)

        assert routes == ["/"]
        assert not any("://" in route for route in routes)

    def test_ignores_fragments_and_non_http_links(self):
        html = page_with_links("#top", "mailto:me@example.com", "javascript:void(0)", "tel:123", "/faq#answers")

        assert extract_routes(html, BASE) == ["/faq"]

    def test_strips_static_suffix(self):
        html = page_with_links("/index.html", "/about.html", "/blog/post.html", "/")

        assert extract_routes(html, BASE, suffix=".html") == ["/", "/about", "/blog/post"]

    def test_keeps_suffix_when_site_is_not_static(self):
        html = page_with_links("/about.html")

        assert extract_routes(html, BASE) == ["/about.html"]

    def test_relative_links_resolve_against_page(self):
        html = page_with_links("team", "../pricing")

        routes = extract_routes(html, BASE, page_url=f"{BASE}/company/")

        assert routes == ["/company/team", "/pricing"]

    def test_query_string_is_kept(self):
        html = page_with_links("/search?q=docs", "/search?q=docs")

        assert extract_routes(html, BASE) == ["/search?q=docs"]

    def test_no_links(self):
        assert extract_routes("<html><body>empty</body></html>", BASE) == []


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeSession:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def get(self, url, timeout):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class TestWaitForSite:
    """Tests for wait_for_site."""

    @pytest.fixture(autouse=True)
    def no_sleep(self, monkeypatch):
        delays = []
        monkeypatch.setattr(discovery.time, "sleep", delays.append)
        return delays

    def test_returns_once_site_answers(self, monkeypatch, no_sleep):
        session = FakeSession([requests.ConnectionError("refused"), FakeResponse(200)])
        monkeypatch.setattr(discovery.requests, "Session", lambda: session)

        wait_for_site(BASE, attempts=3, backoff=0.5)

        assert session.calls == 2
        assert no_sleep == [0.5]

    def test_backoff_doubles(self, monkeypatch, no_sleep):
        session = FakeSession([requests.ConnectionError("refused")] * 3 + [FakeResponse(200)])
        monkeypatch.setattr(discovery.requests, "Session", lambda: session)

        wait_for_site(BASE, attempts=4, backoff=1.0)

        assert no_sleep == [1.0, 2.0, 4.0]

    def test_raises_after_attempts_exhausted(self, monkeypatch):
        session = FakeSession([FakeResponse(503)] * 3)
        monkeypatch.setattr(discovery.requests, "Session", lambda: session)

        with pytest.raises(DiscoveryError, match="after 3 attempts"):
            wait_for_site(BASE, attempts=3, backoff=0.1)

        assert session.calls == 3


class TestDiscoverRoutes:
    """Tests for discover_routes against a fake browser."""

    def make_config(self, tmp_path, **overrides):
        options = dict(project_dir=tmp_path, discovery_attempts=3, discovery_backoff=0)
        options.update(overrides)
        return ShowcaseConfig(**options)

    def test_returns_routes_from_entry_page(self, tmp_path):
        html = page_with_links("/index.html", "/about.html", "https://twitter.com/x", "/about.html")
        playwright = FakePlaywright(page_kwargs={"html": html})
        config = self.make_config(tmp_path, is_static=True)

        routes = asyncio.run(discover_routes(playwright, config))

        assert routes == ["/", "/about"]
        browser = playwright.chromium.browsers[0]
        page = browser.contexts[0].pages[0]
        assert page.visited == [(f"{BASE}/index.html", "networkidle")]
        assert browser.closed

    def test_retries_then_fails_without_partial_list(self, tmp_path):
        def unreachable(page):
            page.goto_error = PlaywrightError("net::ERR_CONNECTION_REFUSED")

        playwright = FakePlaywright(configure_page=unreachable)
        config = self.make_config(tmp_path)

        with pytest.raises(DiscoveryError, match="after 3 attempts"):
            asyncio.run(discover_routes(playwright, config))

        browser = playwright.chromium.browsers[0]
        assert len(browser.contexts[0].pages[0].visited) == 3
        assert browser.closed

    def test_page_without_links_is_an_error(self, tmp_path):
        playwright = FakePlaywright(page_kwargs={"html": "<html><body>hi</body></html>"})

        with pytest.raises(DiscoveryError, match="No internal links"):
            asyncio.run(discover_routes(playwright, self.make_config(tmp_path)))

    def test_launch_failure_is_discovery_error(self, tmp_path):
        playwright = FakePlaywright(launch_error=PlaywrightError("missing chrome"))

        with pytest.raises(DiscoveryError):
            asyncio.run(discover_routes(playwright, self.make_config(tmp_path)))

    def test_closed_browser_is_discovery_error(self, tmp_path):
        closed = PlaywrightError("Target page, context or browser has been closed")
        playwright = FakePlaywright(new_page_error=closed)

        with pytest.raises(DiscoveryError, match="Could not open a page") as excinfo:
            asyncio.run(discover_routes(playwright, self.make_config(tmp_path)))

        assert excinfo.value.__cause__ is closed
        assert playwright.chromium.browsers[0].closed

    def test_unreadable_page_is_discovery_error(self, tmp_path):
        def crashes_on_read(page):
            page.content_error = PlaywrightError("Target crashed")

        playwright = FakePlaywright(configure_page=crashes_on_read)

        with pytest.raises(DiscoveryError, match="Could not read"):
            asyncio.run(discover_routes(playwright, self.make_config(tmp_path)))

        assert playwright.chromium.browsers[0].closed
