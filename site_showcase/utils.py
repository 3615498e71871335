"""Utility helpers for string normalization, URLs and retries."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, Tuple, Type, TypeVar

logger = logging.getLogger("site_showcase")

SLUG_PATTERN = re.compile(r"[^a-z0-9]+")

T = TypeVar("T")


def slugify(value: str, fallback: str = "page") -> str:
    """Generate a filesystem-friendly slug using ASCII characters only."""
    normalized = value.encode("ascii", "ignore").decode("ascii")
    normalized = normalized.lower()
    normalized = SLUG_PATTERN.sub("-", normalized).strip("-")
    return normalized or fallback


def normalize_route(route: str) -> str:
    """Return ``route`` as an absolute path such as ``/about``."""
    route = route.strip()
    if not route.startswith("/"):
        route = "/" + route
    return route


def build_page_url(base_url: str, route: str, suffix: str = "") -> str:
    """Join a route onto the base URL, appending the static-export suffix."""
    path, sep, query = normalize_route(route).partition("?")
    if suffix:
        if path.endswith("/"):
            path += "index"
        path += suffix
    return f"{base_url.rstrip('/')}{path}{sep}{query}"


async def retry_async(
    func: Callable[[], Awaitable[T]],
    attempts: int,
    backoff: float,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """Await ``func`` until it succeeds, sleeping ``backoff * 2**n`` between tries."""
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    attempt = 1
    while True:
        try:
            return await func()
        except retry_on as exc:
            if attempt >= attempts:
                raise
            delay = backoff * (2 ** (attempt - 1))
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                description,
                attempt,
                attempts,
                exc,
                delay,
            )
            await asyncio.sleep(delay)
            attempt += 1
