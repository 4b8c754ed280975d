"""General utility helpers."""
from __future__ import annotations

import logging
import os
import re
from datetime import date, datetime, timezone
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
ARTICLE_SLUG_LIMIT = 50

_PLACEHOLDER_IMAGE_HOSTS = {
    "via.placeholder.com",
    "placehold.co",
    "placekitten.com",
    "picsum.photos",
}


def slugify(value: str) -> str:
    """Return an SEO-friendly slug for the provided value."""

    value = value.lower().strip()
    value = SLUG_PATTERN.sub("-", value)
    value = value.strip("-")
    return value or "item"


def article_slug(title: str) -> str:
    """Return the slug used for article filenames and routes."""

    slug = slugify(title)[:ARTICLE_SLUG_LIMIT].rstrip("-")
    return slug or "tierlist"


def today() -> date:
    return datetime.now(timezone.utc).date()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean environment variable."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer environment variable, falling back on bad input."""

    value = (os.getenv(name) or "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, value)
        return default


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit]


def looks_like_placeholder_image(value: object) -> bool:
    """Return ``True`` when the provided image value is missing or a known placeholder."""

    if not value:
        return True
    text = str(value).strip()
    if not text:
        return True
    lowered = text.lower()
    if lowered.startswith("data:image/svg"):
        return True
    if "placeholder" in lowered:
        return True
    if lowered.startswith("http://") or lowered.startswith("https://"):
        try:
            host = urlparse(lowered).netloc
        except ValueError:
            return False
        if host in _PLACEHOLDER_IMAGE_HOSTS:
            return True
    return False
