"""In-place enhancement passes over existing tier list articles.

Every pass reads the whole file, decodes the frontmatter and the TierList
``tiers`` prop, mutates only the fields it owns and writes the prop back.
Files that cannot be read or decoded are reported and left untouched.
"""
from __future__ import annotations

import logging
import re
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .affiliates import extract_catalog_id, normalize_affiliate_link
from .images import ImageResolver
from .llm import REVIEW_BATCH_PAUSE_SECONDS, REVIEW_BATCH_SIZE, ContentGenerator, ReviewRequest
from .markup import TierListParseError, extract_tiers, parse_frontmatter, replace_tiers
from .models import Product, Tiers, iter_products

LOGGER = logging.getLogger(__name__)

IMAGE_LOOKUP_DELAY_SECONDS = 1.5
MIN_REVIEW_WORDS = 15
MIN_REVIEW_CHARS = 80
PLACEHOLDER_PHRASES = (
    "placeholder",
    "todo",
    "tbd",
    "coming soon",
    "review pending",
    "great product",
    "excellent choice",
    "good option",
    "solid pick",
    "recommended",
)
CATEGORY_KEYWORDS = (
    (("headset",), "gaming headsets"),
    (("headphone",), "headphones"),
    (("mouse", "mice"), "gaming mice"),
    (("keyboard",), "gaming keyboards"),
    (("laptop",), "laptops"),
    (("chair",), "office chairs"),
    (("monitor",), "monitors"),
    (("earbuds",), "wireless earbuds"),
    (("speaker",), "speakers"),
    (("webcam",), "webcams"),
    (("microphone",), "microphones"),
)
DEFAULT_CATEGORY = "products"


@dataclass
class EnhanceResult:
    """Summary of one pass over one file."""

    path: Path
    changed: int = 0
    skipped: bool = False
    error: Optional[str] = None
    sources: Counter = field(default_factory=Counter)

    @property
    def ok(self) -> bool:
        return self.error is None


def iter_article_files(content_dir: Path) -> List[Path]:
    """Return every ``.mdx`` article in ``content_dir`` sorted by name."""

    if not content_dir.is_dir():
        return []
    return sorted(path for path in content_dir.glob("*.mdx") if path.is_file())


def _load(path: Path) -> Tuple[str, dict, Tiers]:
    text = path.read_text(encoding="utf-8")
    return text, parse_frontmatter(text), extract_tiers(text)


def _save(path: Path, text: str, tiers: Tiers, result: EnhanceResult, dry_run: bool) -> None:
    if not result.changed:
        return
    if dry_run:
        LOGGER.info("[dry-run] %s: %s product(s) would change", path.name, result.changed)
        return
    path.write_text(replace_tiers(text, tiers), encoding="utf-8")
    LOGGER.info("Updated %s (%s product(s))", path.name, result.changed)


def _open(path: Path) -> Tuple[Optional[str], dict, Optional[Tiers], EnhanceResult]:
    result = EnhanceResult(path=path)
    try:
        text, meta, tiers = _load(path)
    except (OSError, UnicodeDecodeError, TierListParseError) as exc:
        LOGGER.warning("Skipping %s: %s", path.name, exc)
        result.skipped = True
        result.error = str(exc)
        return None, {}, None, result
    return text, meta, tiers, result


def enhance_images(
    path: Path,
    resolver: ImageResolver,
    *,
    overwrite: bool = False,
    dry_run: bool = False,
    delay: float = IMAGE_LOOKUP_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> EnhanceResult:
    """Resolve images for products that lack one."""

    text, _, tiers, result = _open(path)
    if tiers is None:
        return result
    pending = [
        product for _, product in iter_products(tiers) if overwrite or not product.has_image
    ]
    if not pending:
        LOGGER.info("%s: every product already has an image", path.name)
        return result
    LOGGER.info("%s: resolving images for %s product(s)", path.name, len(pending))
    for index, product in enumerate(pending):
        image = resolver.resolve(catalog_id=extract_catalog_id(product.link), name=product.name)
        result.sources[image.source] += 1
        if image.found:
            changed = product.image != image.url or product.image_source != image.source
            product.image = image.url
            product.image_source = image.source
        elif product.has_image:
            LOGGER.info("No new image for %s (%s), keeping the current one", product.name, image.source)
            changed = False
        else:
            LOGGER.info("No image found for %s (%s)", product.name, image.source)
            changed = product.image_source != image.source or product.image is not None
            product.image = None
            product.image_source = image.source
        if changed:
            result.changed += 1
        if delay > 0 and index < len(pending) - 1:
            sleep(delay)
    _save(path, text, tiers, result, dry_run)
    return result


def needs_review_enhancement(review: str | None) -> bool:
    """Return ``True`` when ``review`` is missing, boilerplate or too short."""

    text = (review or "").strip()
    if not text:
        return True
    lowered = text.lower()
    if any(phrase in lowered for phrase in PLACEHOLDER_PHRASES):
        return True
    return len(text.split()) < MIN_REVIEW_WORDS or len(text) < MIN_REVIEW_CHARS


def detect_category(*hints: str | None) -> str:
    """Map an article title or file name to a review category."""

    haystack = " ".join(hint for hint in hints if hint).lower()
    for keywords, category in CATEGORY_KEYWORDS:
        if any(re.search(rf"\b{keyword}", haystack) for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def enhance_reviews(
    path: Path,
    generator: ContentGenerator,
    *,
    overwrite: bool = False,
    dry_run: bool = False,
    batch_size: int = REVIEW_BATCH_SIZE,
    pause: float = REVIEW_BATCH_PAUSE_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> EnhanceResult:
    """Rewrite weak reviews with generated ones."""

    text, meta, tiers, result = _open(path)
    if tiers is None:
        return result
    category = detect_category(meta.get("title"), path.stem.replace("-", " "))
    pending: List[Tuple[str, Product]] = [
        (tier, product)
        for tier, product in iter_products(tiers)
        if overwrite or needs_review_enhancement(product.review)
    ]
    if not pending:
        LOGGER.info("%s: all reviews look complete", path.name)
        return result
    LOGGER.info("%s: generating %s review(s) for %s", path.name, len(pending), category)
    requests = [ReviewRequest(product.name, tier, category) for tier, product in pending]
    reviews = generator.generate_reviews(requests, batch_size=batch_size, pause=pause, sleep=sleep)
    for (_, product), review in zip(pending, reviews):
        if review and review != product.review:
            product.review = review
            result.changed += 1
        elif not review:
            result.sources["failed"] += 1
    _save(path, text, tiers, result, dry_run)
    return result


def enhance_links(path: Path, tag: str, *, dry_run: bool = False) -> EnhanceResult:
    """Ensure every product link is a tagged marketplace URL."""

    text, _, tiers, result = _open(path)
    if tiers is None:
        return result
    for _, product in iter_products(tiers):
        normalized = normalize_affiliate_link(product.link, product.name, tag)
        if normalized != product.link:
            LOGGER.debug("%s: %s -> %s", product.name, product.link or "<empty>", normalized)
            product.link = normalized
            result.changed += 1
    _save(path, text, tiers, result, dry_run)
    return result
