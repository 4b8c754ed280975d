"""Access to marketplace product pages and image CDN hosts."""
from __future__ import annotations

import json
import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

LOGGER = logging.getLogger(__name__)

PRODUCT_PAGE_URL = "https://www.amazon.com/dp/{catalog_id}"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

CDN_HOSTS = (
    "m.media-amazon.com",
    "images-na.ssl-images-amazon.com",
    "images-eu.ssl-images-amazon.com",
)
CDN_TEMPLATES = (
    "https://{host}/images/P/{catalog_id}.01._SCLZZZZZZZ_.jpg",
    "https://{host}/images/P/{catalog_id}.01._AC_SL1500_.jpg",
    "https://{host}/images/P/{catalog_id}.01._AC_SL1000_.jpg",
    "https://{host}/images/P/{catalog_id}.01._SL500_.jpg",
)
IMAGE_DOMAINS = ("media-amazon.com", "ssl-images-amazon.com", "images-amazon.com")
MIN_IMAGE_BYTES = 1000

ALTERNATE_SELECTORS = (
    "#imgTagWrapperId img",
    "#main-image-container img",
    "#imgBlkFront",
    "#ebooksImgBlkFront",
    "img.a-dynamic-image",
)
JSON_IMAGE_PATTERNS = (
    re.compile(r'"hiRes"\s*:\s*"(https:[^"]+)"'),
    re.compile(r'"large"\s*:\s*"(https:[^"]+)"'),
    re.compile(r'"mainUrl"\s*:\s*"(https:[^"]+)"'),
)
UNICODE_ESCAPE = re.compile(r"\\u([0-9a-fA-F]{4})")
BOT_MARKERS = ("robot check", "enter the characters you see below", "automated access")
TITLE_SUFFIX = re.compile(r"\s*:\s*[^:]+$")


def cdn_candidates(catalog_id: str) -> List[str]:
    """Return the CDN image URLs worth probing for ``catalog_id``."""

    return [
        template.format(host=host, catalog_id=catalog_id)
        for template in CDN_TEMPLATES
        for host in CDN_HOSTS
    ]


def is_catalog_image_url(url: object) -> bool:
    if not isinstance(url, str) or not url.startswith("https://"):
        return False
    host = urlparse(url).netloc.lower()
    return any(host == domain or host.endswith(f".{domain}") for domain in IMAGE_DOMAINS)


def _decode_escapes(value: str) -> str:
    value = UNICODE_ESCAPE.sub(lambda match: chr(int(match.group(1), 16)), value)
    return value.replace("\\/", "/")


def _largest_dynamic_image(raw: str | None) -> Optional[str]:
    if not raw:
        return None
    try:
        sizes = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(sizes, dict):
        return None
    best_url = None
    best_area = -1
    for url, dimensions in sizes.items():
        if not is_catalog_image_url(url):
            continue
        try:
            width, height = int(dimensions[0]), int(dimensions[1])
        except (TypeError, ValueError, IndexError):
            continue
        area = width * height
        if area > best_area:
            best_url, best_area = url, area
    return best_url


def _first_valid(candidates: Iterable[Optional[str]]) -> Optional[str]:
    for candidate in candidates:
        if candidate and is_catalog_image_url(candidate.strip()):
            return candidate.strip()
    return None


def extract_image(html: str) -> Optional[str]:
    """Pick the best product image out of a product page."""

    soup = BeautifulSoup(html, "html.parser")
    landing = soup.select_one("#landingImage")
    if landing is not None:
        found = _first_valid([landing.get("data-old-hires"), landing.get("src")])
        if found:
            return found
    for element in soup.select("img[data-a-dynamic-image]"):
        found = _largest_dynamic_image(element.get("data-a-dynamic-image"))
        if found:
            return found
    for selector in ALTERNATE_SELECTORS:
        for element in soup.select(selector):
            found = _first_valid(
                [element.get("data-old-hires"), element.get("data-src"), element.get("src")]
            )
            if found:
                return found
    for pattern in JSON_IMAGE_PATTERNS:
        for match in pattern.finditer(html):
            found = _first_valid([_decode_escapes(match.group(1))])
            if found:
                return found
    return None


def extract_title(html: str) -> Optional[str]:
    """Return the product title shown on the page, if any."""

    soup = BeautifulSoup(html, "html.parser")
    heading = soup.select_one("#productTitle")
    if heading is not None:
        text = heading.get_text(" ", strip=True)
        if text:
            return text
    if soup.title is None:
        return None
    text = soup.title.get_text(" ", strip=True)
    if text.lower().startswith("amazon.com:"):
        text = text.split(":", 1)[1].strip()
        text = TITLE_SUFFIX.sub("", text).strip()
    if not text or text.lower().startswith("amazon.com"):
        return None
    return text


class CatalogFetcher:
    """Fetches product pages and probes CDN image URLs."""

    def __init__(self, session: requests.Session | None = None, *, timeout: int = 15) -> None:
        self._session = session or requests.Session()
        self.timeout = timeout

    def probe_image(self, url: str) -> bool:
        """Return ``True`` when ``url`` answers a HEAD request with a real image."""

        try:
            response = self._session.head(
                url, headers=HEADERS, allow_redirects=True, timeout=self.timeout
            )
        except requests.RequestException as exc:
            LOGGER.debug("CDN probe failed for %s: %s", url, exc)
            return False
        if not response.ok:
            return False
        content_type = response.headers.get("Content-Type", "").lower()
        if not content_type.startswith("image/"):
            return False
        length = response.headers.get("Content-Length")
        if length and length.isdigit() and int(length) < MIN_IMAGE_BYTES:
            return False
        return True

    def fetch_product_page(self, catalog_id: str) -> Optional[str]:
        """Return the product page HTML, or ``None`` when it is unavailable."""

        url = PRODUCT_PAGE_URL.format(catalog_id=catalog_id)
        try:
            response = self._session.get(url, headers=HEADERS, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.warning("Failed to fetch product page %s: %s", url, exc)
            return None
        html = response.text
        lowered = html.lower()
        if any(marker in lowered for marker in BOT_MARKERS):
            LOGGER.warning("Bot challenge served for %s", url)
            return None
        return html
