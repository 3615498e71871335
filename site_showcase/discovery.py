"""Route discovery for the site under test."""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Browser, Playwright

from .config import ShowcaseConfig
from .exceptions import DiscoveryError, RenderSurfaceLaunchFailure
from .utils import build_page_url, retry_async
from .worker import launch_browser

logger = logging.getLogger("site_showcase")

_SKIPPED_SCHEMES = ("javascript:", "mailto:", "tel:", "data:")


def wait_for_site(
    base_url: str,
    attempts: int = 5,
    backoff: float = 1.0,
    timeout: float = 8.0,
) -> None:
    """Block until the site server answers, or raise ``DiscoveryError``."""
    session = requests.Session()
    last_error: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            resp = session.get(base_url, timeout=timeout)
            resp.raise_for_status()
            logger.debug("Site %s is reachable (HTTP %d)", base_url, resp.status_code)
            return
        except requests.RequestException as exc:
            last_error = exc
            if attempt == attempts:
                break
            delay = backoff * (2 ** (attempt - 1))
            logger.warning(
                "Site %s not reachable yet (attempt %d/%d): %s",
                base_url,
                attempt,
                attempts,
                exc,
            )
            time.sleep(delay)
    raise DiscoveryError(
        f"Could not reach {base_url} after {attempts} attempts: {last_error}"
    )


def _strip_suffix(path: str, suffix: str) -> str:
    if suffix and path.endswith(suffix):
        path = path[: -len(suffix)]
        if path.endswith("/index"):
            path = path[: -len("index")]
    return path or "/"


def extract_routes(
    html: str,
    base_url: str,
    suffix: str = "",
    page_url: Optional[str] = None,
) -> List[str]:
    """Return unique same-origin routes linked from ``html`` in document order."""
    soup = BeautifulSoup(html, "html.parser")
    base_host = urlparse(base_url).netloc.lower()
    resolve_against = page_url or base_url.rstrip("/") + "/"

    routes: List[str] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith("#") or href.startswith(_SKIPPED_SCHEMES):
            continue
        parsed = urlparse(urljoin(resolve_against, href))
        if parsed.scheme not in ("http", "https"):
            continue
        if parsed.netloc.lower() != base_host:
            continue
        route = _strip_suffix(parsed.path, suffix)
        if parsed.query:
            route = f"{route}?{parsed.query}"
        routes.append(route)
    return list(dict.fromkeys(routes))


async def _render_entry_page(
    browser: Browser, config: ShowcaseConfig, entry_url: str
) -> Tuple[str, str]:
    try:
        page = await browser.new_page(viewport=config.launch.viewport)
        page.set_default_navigation_timeout(config.launch.navigation_timeout * 1000)
    except PlaywrightError as exc:
        raise DiscoveryError(f"Could not open a page for {entry_url}: {exc}") from exc

    async def _load() -> None:
        await page.goto(entry_url, wait_until="networkidle")

    try:
        await retry_async(
            _load,
            attempts=config.discovery_attempts,
            backoff=config.discovery_backoff,
            retry_on=(PlaywrightError,),
            description=f"Loading {entry_url}",
        )
    except PlaywrightError as exc:
        raise DiscoveryError(
            f"Could not load {entry_url} after {config.discovery_attempts} attempts"
        ) from exc

    try:
        html = await page.content()
    except PlaywrightError as exc:
        raise DiscoveryError(f"Could not read {entry_url}: {exc}") from exc
    return html, page.url


async def discover_routes(playwright: Playwright, config: ShowcaseConfig) -> List[str]:
    """Render the entry page and return the ordered list of internal routes."""
    entry_url = build_page_url(config.base_url, "/", config.suffix)
    logger.info("Discovering routes from %s", entry_url)
    try:
        browser = await launch_browser(playwright, config.launch)
    except RenderSurfaceLaunchFailure as exc:
        raise DiscoveryError(f"Could not start a browser for discovery: {exc}") from exc

    try:
        html, final_url = await _render_entry_page(browser, config, entry_url)
    finally:
        await browser.close()

    routes = extract_routes(html, config.base_url, config.suffix, page_url=final_url)
    if not routes:
        raise DiscoveryError(f"No internal links found on {entry_url}")
    logger.info("Discovered %d route(s): %s", len(routes), ", ".join(routes))
    return routes
