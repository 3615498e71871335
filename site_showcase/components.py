"""Loading of the component list that drives screenshot capture."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List

from .exceptions import ComponentConfigError
from .models import ComponentSpec
from .utils import slugify

logger = logging.getLogger("site_showcase")

_REQUIRED_FIELDS = ("name", "page", "selector")


def parse_components(data: object) -> List[ComponentSpec]:
    """Validate decoded JSON and return the component specs it describes."""
    if not isinstance(data, list):
        raise ComponentConfigError("Component configuration must be a JSON list")
    components: List[ComponentSpec] = []
    seen: Dict[str, str] = {}
    for position, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ComponentConfigError(f"Entry {position} is not an object")
        missing = [key for key in _REQUIRED_FIELDS if not isinstance(entry.get(key), str)]
        if missing:
            raise ComponentConfigError(
                f"Entry {position} is missing string field(s): {', '.join(missing)}"
            )
        name = entry["name"].strip()
        selector = entry["selector"].strip()
        if not name or not selector:
            raise ComponentConfigError(f"Entry {position} has an empty name or selector")
        stem = slugify(name, fallback="component")
        if stem in seen:
            raise ComponentConfigError(
                f"Duplicate component name {name!r}: {seen[stem]!r} already writes {stem}.png"
            )
        seen[stem] = name
        components.append(ComponentSpec(name=name, page=entry["page"].strip(), selector=selector))
    return components


def load_components(path: Path) -> List[ComponentSpec]:
    """Read ``components.json`` once at start-up."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ComponentConfigError(f"Could not read {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ComponentConfigError(f"{path} is not valid JSON: {exc}") from exc
    components = parse_components(data)
    logger.debug("Loaded %d component(s) from %s", len(components), path)
    return components
