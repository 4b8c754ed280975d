"""Category selection, product discovery and per-product research."""
from __future__ import annotations

import logging
import random
import re
import time
from typing import Callable, Iterable, List, Sequence

from .models import ResearchedProduct
from .search import SearchClient, SearchError
from .utils import truncate

LOGGER = logging.getLogger(__name__)

MAX_ORGANIC_RESULTS = 10
RESEARCH_RESULTS = 3
SPECS_LIMIT = 500
REVIEWS_LIMIT = 800
NAME_MIN_LENGTH = 6
NAME_MAX_LENGTH = 49
NAME_STOPWORDS = ("best", "review", "guide")

PRODUCT_NAME_PATTERNS = (
    re.compile(r"\b([A-Z][a-z]+ [A-Z][a-z]+(?:\s+[A-Z0-9][a-z0-9]*)*)\b"),
    re.compile(r"\b([A-Z][a-z]+\s+[A-Z0-9]+[a-z0-9]*)\b"),
)


def select_category(categories: Sequence[str], rng: random.Random | None = None) -> str:
    """Pick one category to write about."""

    if not categories:
        raise ValueError("No categories configured")
    chooser = rng or random
    return chooser.choice(list(categories))


def extract_product_names(text: str) -> List[str]:
    """Return "Brand Model" shaped phrases found in ``text`` in order of appearance."""

    found: List[str] = []
    for pattern in PRODUCT_NAME_PATTERNS:
        for match in pattern.finditer(text or ""):
            name = match.group(1).strip()
            if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
                continue
            lowered = name.lower()
            if any(word in lowered for word in NAME_STOPWORDS):
                continue
            found.append(name)
    return found


def _dedupe(values: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def find_top_products(search: SearchClient, category: str, *, limit: int = 8) -> List[str]:
    """Search the web for ``category`` and pull candidate product names from the results."""

    LOGGER.info("Finding top products for: %s", category)
    data = search.web_search(category)
    names: List[str] = []
    for result in (data.get("organic_results") or [])[:MAX_ORGANIC_RESULTS]:
        if not isinstance(result, dict):
            continue
        text = f"{result.get('title') or ''} {result.get('snippet') or ''}"
        names.extend(extract_product_names(text))
    products = _dedupe(names)[:limit]
    LOGGER.info("Found %s products", len(products))
    return products


def research_product(search: SearchClient, name: str) -> ResearchedProduct:
    """Collect specs, review snippets and a shopping result for one product."""

    data = search.web_search(f"{name} specifications review 2025")
    organic = [item for item in (data.get("organic_results") or []) if isinstance(item, dict)]
    top = organic[:RESEARCH_RESULTS]
    specs = " ".join(str(item.get("snippet") or "") for item in top).strip()
    reviews = " ".join(
        f"{item.get('title') or ''}: {item.get('snippet') or ''}" for item in top
    ).strip()
    shopping = data.get("shopping_results") or []
    first = shopping[0] if shopping and isinstance(shopping[0], dict) else {}
    return ResearchedProduct(
        name=name,
        specs=truncate(specs, SPECS_LIMIT),
        reviews=truncate(reviews, REVIEWS_LIMIT),
        image=str(first.get("thumbnail") or ""),
        link=str(first.get("link") or ""),
    )


def research_products(
    search: SearchClient,
    names: Sequence[str],
    *,
    delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> List[ResearchedProduct]:
    """Research each product in turn, skipping the ones whose lookup fails."""

    researched: List[ResearchedProduct] = []
    for index, name in enumerate(names):
        LOGGER.info("Researching: %s", name)
        try:
            researched.append(research_product(search, name))
        except SearchError as exc:
            LOGGER.error("Error researching %s: %s", name, exc)
        if delay > 0 and index < len(names) - 1:
            sleep(delay)
    return researched
