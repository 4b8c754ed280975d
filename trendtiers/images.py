"""Multi-source product image resolution.

Lookups run in a fixed order and the first hit wins:

1. ``catalog_cdn`` - CDN filename templates for a known ASIN, probed with HEAD.
2. ``catalog_scrape`` - the marketplace product page, parsed with BeautifulSoup.
3. ``search_*`` - a search-engine image query ranked by retail domain, then
   resolution, then plain file extension.

Every step swallows its own failures so a missing image never raises.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from .affiliates import is_catalog_id
from .catalog import CatalogFetcher, cdn_candidates, extract_image, extract_title
from .models import ImageResult, SourceTag
from .search import SearchClient, SearchError, SearchUnavailable

LOGGER = logging.getLogger(__name__)

RETAIL_DOMAINS = (
    "amazon.com",
    "amazon.co.uk",
    "bestbuy.com",
    "newegg.com",
    "logitech.com",
    "corsair.com",
    "razer.com",
    "steelseries.com",
    "hyperx.com",
    "asus.com",
    "msi.com",
    "sony.com",
    "apple.com",
    "walmart.com",
    "target.com",
    "microcenter.com",
    "officedepot.com",
    "staples.com",
    "costco.com",
    "samsclub.com",
    "bhphotovideo.com",
)
LOW_QUALITY_DOMAINS = ("pinterest.com", "ebay.com", "aliexpress.com", "temu.com")
MIN_QUALITY_DIMENSION = 500
IMAGE_EXTENSION = re.compile(r"\.(jpg|jpeg|png|webp)(\?|$)", re.IGNORECASE)
NOISE_WORDS = re.compile(
    r"\b(the|a|an|for|with|and|or|best|top|review|reviews|2024|2025)\b", re.IGNORECASE
)
# Leading ASIN characters are the only hint left when nothing else names the product.
CATEGORY_PREFIX_GUESSES = (
    ("B0", "consumer electronics"),
    ("B", "household product"),
)


def optimize_query(product_name: str) -> str:
    """Drop words that add nothing to an image search."""

    return " ".join(NOISE_WORDS.sub(" ", product_name).split())


def guess_category(catalog_id: str) -> str:
    if catalog_id[:1].isdigit():
        return "book"
    for prefix, guess in CATEGORY_PREFIX_GUESSES:
        if catalog_id.startswith(prefix):
            return guess
    return "product"


def _hostname(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        return ""
    text = value.strip().lower()
    if "://" not in text:
        text = f"https://{text}"
    try:
        host = urlparse(text).netloc
    except ValueError:
        return ""
    host = host.split(":", 1)[0]
    return host[4:] if host.startswith("www.") else host


def _host_matches(host: str, domains: Iterable[str]) -> bool:
    return bool(host) and any(host == domain or host.endswith(f".{domain}") for domain in domains)


def _result_hosts(result: dict) -> List[str]:
    hosts = [_hostname(result.get("original")), _hostname(result.get("link"))]
    source = result.get("source")
    if isinstance(source, str) and "." in source and " " not in source.strip():
        hosts.append(_hostname(source))
    return [host for host in hosts if host]


def _dimension(value: object) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def rank_image_results(results: Sequence[dict]) -> ImageResult:
    """Pick the best candidate from raw image search results."""

    candidates = [
        result
        for result in results
        if isinstance(result, dict) and isinstance(result.get("original"), str) and result["original"]
    ]
    for result in candidates:
        if any(_host_matches(host, RETAIL_DOMAINS) for host in _result_hosts(result)):
            return ImageResult(result["original"], SourceTag.SEARCH_RETAIL)
    for result in candidates:
        width = _dimension(result.get("original_width"))
        height = _dimension(result.get("original_height"))
        if width < MIN_QUALITY_DIMENSION or height < MIN_QUALITY_DIMENSION:
            continue
        if any(_host_matches(host, LOW_QUALITY_DOMAINS) for host in _result_hosts(result)):
            continue
        return ImageResult(result["original"], SourceTag.SEARCH_QUALITY)
    for result in candidates:
        if IMAGE_EXTENSION.search(result["original"]):
            return ImageResult(result["original"], SourceTag.SEARCH_FALLBACK)
    return ImageResult.none()


class ImageResolver:
    """Resolve a product image from an ASIN and/or a product name."""

    def __init__(
        self,
        search: SearchClient,
        catalog: CatalogFetcher | None = None,
    ) -> None:
        self.search = search
        self.catalog = catalog or CatalogFetcher()

    def resolve(
        self, *, catalog_id: str | None = None, name: str | None = None
    ) -> ImageResult:
        """Return the first image any lookup step finds, never raising."""

        valid_id = catalog_id if is_catalog_id(catalog_id) else None
        product_name = (name or "").strip() or None
        if valid_id is None and product_name is None:
            return ImageResult.none()

        page: dict[str, Optional[str]] = {}

        def _page() -> Optional[str]:
            if valid_id is None:
                return None
            if "html" not in page:
                page["html"] = self.catalog.fetch_product_page(valid_id)
            return page["html"]

        def _search_name() -> Optional[str]:
            if product_name:
                return product_name
            html = _page()
            title = extract_title(html) if html else None
            if title:
                return title
            return guess_category(valid_id) if valid_id else None

        steps: List[Callable[[], ImageResult]] = []
        if valid_id is not None:
            steps.append(lambda: self.from_cdn(valid_id))
            steps.append(lambda: self._scrape(_page))
        steps.append(lambda: self.from_search(_search_name()))

        errored = False
        for step in steps:
            try:
                result = step()
            except Exception as exc:  # pragma: no cover
                LOGGER.warning("Image lookup step failed: %s", exc)
                result = ImageResult.error()
            if result.found:
                return result
            errored = errored or result.source == SourceTag.ERROR
        return ImageResult.error() if errored else ImageResult.none()

    def from_cdn(self, catalog_id: str) -> ImageResult:
        for url in cdn_candidates(catalog_id):
            if self.catalog.probe_image(url):
                LOGGER.info("CDN image found for %s", catalog_id)
                return ImageResult(url, SourceTag.CATALOG_CDN)
        return ImageResult.none()

    def _scrape(self, load_page: Callable[[], Optional[str]]) -> ImageResult:
        try:
            html = load_page()
            url = extract_image(html) if html else None
        except Exception as exc:
            LOGGER.warning("Product page scrape failed: %s", exc)
            return ImageResult.none()
        if not url:
            return ImageResult.none()
        return ImageResult(url, SourceTag.CATALOG_SCRAPE)

    def from_search(self, name: str | None) -> ImageResult:
        if not name:
            return ImageResult.none()
        if not self.search.available:
            LOGGER.debug("Search API key missing; skipping image search for %r", name)
            return ImageResult.none()
        query = optimize_query(name) or name
        try:
            results = self.search.image_search(query)
        except SearchUnavailable:
            return ImageResult.none()
        except SearchError as exc:
            LOGGER.warning("Image search failed for %r: %s", name, exc)
            return ImageResult.error()
        result = rank_image_results(results)
        if result.found:
            LOGGER.info("Search image for %r (%s)", name, result.source)
        else:
            LOGGER.info("No suitable search image for %r", name)
        return result
