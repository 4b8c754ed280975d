"""Affiliate helper utilities for outbound product links."""
from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from .config import DEFAULT_ASSOCIATE_TAG

MARKETPLACE_HOME = "https://www.amazon.com/"
MARKETPLACE_SEARCH = "https://www.amazon.com/s"
TAG_PARAM = "tag"

MARKETPLACE_DOMAINS = (
    "amazon.com",
    "amazon.ca",
    "amazon.com.mx",
    "amazon.com.br",
    "amazon.co.uk",
    "amazon.de",
    "amazon.fr",
    "amazon.it",
    "amazon.es",
    "amazon.nl",
    "amazon.se",
    "amazon.pl",
    "amazon.com.be",
    "amazon.com.tr",
    "amazon.ae",
    "amazon.sa",
    "amazon.eg",
    "amazon.in",
    "amazon.co.jp",
    "amazon.sg",
    "amazon.com.au",
    "amzn.to",
    "a.co",
)
CATALOG_ID_PATTERN = re.compile(r"^[A-Z0-9]{10}$")
_URL_CATALOG_ID_PATTERN = re.compile(r"/([A-Z0-9]{10})(?:[/?#]|$)")
_NAME_CLEANUP = re.compile(r"[^\w\s-]")


def _parse(url: str):
    parsed = urlparse(url)
    if not parsed.netloc and not parsed.scheme and url.strip():
        parsed = urlparse(f"https://{url.strip()}")
    return parsed


def is_marketplace_host(host: str) -> bool:
    host = (host or "").lower().split("@")[-1].split(":", 1)[0].rstrip(".")
    return bool(host) and any(
        host == domain or host.endswith(f".{domain}") for domain in MARKETPLACE_DOMAINS
    )


def is_marketplace_url(url: str | None) -> bool:
    if not url:
        return False
    return is_marketplace_host(_parse(url).netloc)


def has_tracking_tag(url: str | None, tag: str = DEFAULT_ASSOCIATE_TAG) -> bool:
    """Return ``True`` when every ``tag`` parameter on the URL equals ``tag``."""

    if not url:
        return False
    values = [value for key, value in parse_qsl(_parse(url).query, keep_blank_values=True) if key == TAG_PARAM]
    return bool(values) and all(value == tag for value in values)


def apply_tracking_tag(url: str, tag: str = DEFAULT_ASSOCIATE_TAG) -> str:
    """Replace any existing tracking tag on ``url`` with ``tag``."""

    parsed = _parse(url)
    query = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key != TAG_PARAM
    ]
    query.append((TAG_PARAM, tag))
    return urlunparse(
        (
            parsed.scheme,
            parsed.netloc,
            parsed.path,
            parsed.params,
            urlencode(query),
            parsed.fragment,
        )
    )


def search_url(product_name: str | None, tag: str = DEFAULT_ASSOCIATE_TAG) -> str:
    """Return a marketplace search URL for ``product_name`` carrying the tag."""

    cleaned = " ".join(_NAME_CLEANUP.sub("", product_name or "").split())
    if not cleaned:
        return f"{MARKETPLACE_HOME}?{urlencode({TAG_PARAM: tag})}"
    return f"{MARKETPLACE_SEARCH}?{urlencode({'k': cleaned, TAG_PARAM: tag})}"


def normalize_affiliate_link(
    link: str | None, product_name: str | None, tag: str = DEFAULT_ASSOCIATE_TAG
) -> str:
    """Return a marketplace URL carrying the correct tracking tag.

    Links that already qualify come back unchanged, marketplace links with a
    missing or foreign tag are re-tagged, and anything else is replaced by a
    marketplace search for the product name.
    """

    candidate = (link or "").strip()
    if candidate and is_marketplace_url(candidate):
        if has_tracking_tag(candidate, tag):
            return candidate
        return apply_tracking_tag(candidate, tag)
    return search_url(product_name, tag)


def is_catalog_id(value: object) -> bool:
    return isinstance(value, str) and bool(CATALOG_ID_PATTERN.match(value))


def extract_catalog_id(url: str | None) -> str | None:
    """Extract the ASIN from a marketplace product URL."""

    if not url or not is_marketplace_url(url):
        return None
    match = _URL_CATALOG_ID_PATTERN.search(_parse(url).path)
    return match.group(1) if match else None


def catalog_link(catalog_id: str, tag: str = DEFAULT_ASSOCIATE_TAG) -> str:
    """Return the canonical product link for an ASIN."""

    if not is_catalog_id(catalog_id):
        raise ValueError(f"Invalid catalog id: {catalog_id!r}")
    return f"{MARKETPLACE_HOME}dp/{catalog_id}/?{urlencode({TAG_PARAM: tag})}"
