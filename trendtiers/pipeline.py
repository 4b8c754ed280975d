"""Generation pipeline that produces one new tier list article."""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from openai import OpenAIError

from .affiliates import extract_catalog_id, normalize_affiliate_link, search_url
from .config import Settings
from .discovery import find_top_products, research_products, select_category
from .images import ImageResolver
from .llm import ContentGenerationError, ContentGenerator
from .markup import write_article
from .models import Article, Product, ResearchedProduct, Tiers
from .search import SearchClient, SearchError
from .utils import article_slug

LOGGER = logging.getLogger(__name__)


class PipelineError(RuntimeError):
    """Raised when a run cannot produce an article."""


@dataclass
class GenerationResult:
    """Outcome of a successful generation run."""

    path: Path
    article: Article
    category: str
    researched: int


def match_research(name: str, researched: Sequence[ResearchedProduct]) -> Optional[ResearchedProduct]:
    """Find the researched product a generated name refers to."""

    lowered = name.lower()
    for candidate in researched:
        other = candidate.name.lower()
        if lowered in other or other in lowered:
            return candidate
    return None


def _tier_entries(value: object) -> List[dict]:
    if isinstance(value, dict):
        value = value.get("products") or []
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


class TierlistPipeline:
    """Select a category, research it and write a fresh article."""

    def __init__(
        self,
        settings: Settings,
        *,
        search: SearchClient | None = None,
        generator: ContentGenerator | None = None,
        resolver: ImageResolver | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self._search = search
        self._generator = generator
        self._resolver = resolver
        self.rng = rng
        self.sleep = sleep

    # ------------------------------------------------------------------
    # Lazily built collaborators

    @property
    def search(self) -> SearchClient:
        if self._search is None:
            self._search = SearchClient(self.settings.require_search())
        return self._search

    @property
    def generator(self) -> ContentGenerator:
        if self._generator is None:
            self._generator = ContentGenerator(self.settings)
        return self._generator

    @property
    def resolver(self) -> ImageResolver:
        if self._resolver is None:
            self._resolver = ImageResolver(self.search)
        return self._resolver

    # ------------------------------------------------------------------
    # Steps

    def build_tiers(self, payload: dict, researched: Sequence[ResearchedProduct]) -> Tiers:
        tag = self.settings.associate_tag
        tiers: Tiers = {}
        for key, value in (payload.get("tiers") or {}).items():
            products: List[Product] = []
            for entry in _tier_entries(value):
                name = str(entry.get("name") or "").strip()
                if not name:
                    continue
                source = match_research(name, researched)
                link = source.link if source and source.link else search_url(name, tag)
                products.append(
                    Product(
                        name=name,
                        review=str(entry.get("review") or "").strip(),
                        link=normalize_affiliate_link(link, name, tag),
                    )
                )
            tiers[str(key)] = products
        if not any(tiers.values()):
            raise PipelineError("Generated content did not rank any products")
        return tiers

    def attach_images(self, tiers: Tiers) -> None:
        products = [product for items in tiers.values() for product in items]
        for index, product in enumerate(products):
            result = self.resolver.resolve(
                catalog_id=extract_catalog_id(product.link), name=product.name
            )
            product.image = result.url
            product.image_source = result.source
            if self.settings.request_delay > 0 and index < len(products) - 1:
                self.sleep(self.settings.request_delay)

    def run(self) -> GenerationResult:
        self.settings.require_search()
        self.settings.require_llm()
        category = select_category(self.settings.categories, self.rng)
        LOGGER.info("Selected category: %s", category)

        try:
            names = find_top_products(self.search, category, limit=self.settings.max_products)
        except SearchError as exc:
            raise PipelineError(f"Product search failed: {exc}") from exc
        if not names:
            raise PipelineError(f"No products found for {category!r}")

        researched = research_products(
            self.search, names, delay=self.settings.request_delay, sleep=self.sleep
        )
        if not researched:
            raise PipelineError(f"No product research succeeded for {category!r}")

        try:
            payload = self.generator.generate_tierlist(category, researched)
        except (ContentGenerationError, OpenAIError) as exc:
            raise PipelineError(f"Content generation failed: {exc}") from exc

        tiers = self.build_tiers(payload, researched)
        self.attach_images(tiers)
        title = str(payload.get("title")).strip()
        hero = next(
            (product.image for items in tiers.values() for product in items if product.image),
            None,
        )
        article = Article(
            title=title,
            description=str(payload.get("description") or "").strip(),
            slug=article_slug(title),
            tiers=tiers,
            tags=payload.get("tags") if isinstance(payload.get("tags"), list) else [],
            hero_image=hero,
            introduction=str(payload.get("introduction") or "").strip(),
            summary=str(payload.get("summary") or "").strip(),
            category=category,
        )
        target = self.settings.content_dir / f"{article.slug}.mdx"
        if target.exists():
            LOGGER.warning("Overwriting existing article %s", target.name)
        path = write_article(article, self.settings.content_dir)
        LOGGER.info("Generated %s with %s products", path.name, len(article.products))
        return GenerationResult(path=path, article=article, category=category, researched=len(researched))
