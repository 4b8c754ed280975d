"""Data models used by the TrendTiers pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .utils import looks_like_placeholder_image, today


class SourceTag:
    """Labels recording which resolver step produced an image."""

    CATALOG_CDN = "catalog_cdn"
    CATALOG_SCRAPE = "catalog_scrape"
    SEARCH_RETAIL = "search_retail"
    SEARCH_QUALITY = "search_quality"
    SEARCH_FALLBACK = "search_fallback"
    NONE = "none"
    ERROR = "error"

    ALL = (
        CATALOG_CDN,
        CATALOG_SCRAPE,
        SEARCH_RETAIL,
        SEARCH_QUALITY,
        SEARCH_FALLBACK,
        NONE,
        ERROR,
    )


TIER_LABELS: Dict[str, str] = {
    "S": "Top Picks",
    "A": "Great Options",
    "B": "Budget Choices",
}


@dataclass(frozen=True)
class ImageResult:
    """Outcome of an image lookup: a URL and the step that found it."""

    url: Optional[str]
    source: str = SourceTag.NONE

    def __post_init__(self) -> None:
        if self.source not in SourceTag.ALL:
            raise ValueError(f"Unsupported image source: {self.source!r}")

    @property
    def found(self) -> bool:
        return bool(self.url)

    @classmethod
    def none(cls) -> "ImageResult":
        return cls(url=None, source=SourceTag.NONE)

    @classmethod
    def error(cls) -> "ImageResult":
        return cls(url=None, source=SourceTag.ERROR)

    def to_dict(self) -> dict:
        return {"url": self.url, "source": self.source}


@dataclass
class Product:
    """A single ranked product inside a tier list."""

    name: str
    review: str = ""
    link: str = ""
    image: Optional[str] = None
    image_source: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return not looks_like_placeholder_image(self.image)

    def to_dict(self) -> dict:
        payload = {"name": self.name, "review": self.review, "link": self.link}
        if self.image:
            payload["image"] = self.image
        if self.image_source:
            payload["imageSource"] = self.image_source
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> "Product":
        def _text(key: str) -> str:
            value = payload.get(key)
            return str(value).strip() if value is not None else ""

        image = _text("image") or None
        image_source = _text("imageSource") or _text("image_source") or None
        return cls(
            name=_text("name"),
            review=_text("review"),
            link=_text("link") or _text("url"),
            image=image,
            image_source=image_source,
        )


@dataclass
class ResearchedProduct:
    """Search findings for one candidate product."""

    name: str
    specs: str = ""
    reviews: str = ""
    image: str = ""
    link: str = ""


Tiers = Dict[str, List[Product]]


def tiers_from_dict(payload: dict) -> Tiers:
    """Build tiers from decoded markup, flattening ``{label, products}`` values."""

    tiers: Tiers = {}
    for key, value in payload.items():
        if isinstance(value, dict):
            value = value.get("products") or []
        if not isinstance(value, list):
            continue
        products = [
            Product.from_dict(entry)
            for entry in value
            if isinstance(entry, dict) and entry.get("name")
        ]
        tiers[str(key)] = products
    return tiers


def tiers_to_dict(tiers: Tiers) -> Dict[str, List[dict]]:
    return {key: [product.to_dict() for product in products] for key, products in tiers.items()}


def iter_products(tiers: Tiers) -> Iterator[Tuple[str, Product]]:
    for key, products in tiers.items():
        for product in products:
            yield key, product


def _coerce_tags(values: Iterable[object] | None) -> List[str]:
    result: List[str] = []
    if not values:
        return result
    for value in values:
        if value is None:
            continue
        trimmed = str(value).strip()
        if trimmed and trimmed not in result:
            result.append(trimmed)
    return result


@dataclass
class Article:
    """A tier list article as stored in the content directory."""

    title: str
    description: str
    slug: str
    tiers: Tiers
    pub_date: date = field(default_factory=today)
    tags: List[str] = field(default_factory=list)
    hero_image: Optional[str] = None
    introduction: str = ""
    summary: str = ""
    category: str = ""

    def __post_init__(self) -> None:
        self.tags = _coerce_tags(self.tags)
        if not self.slug:
            raise ValueError("Article requires a slug.")

    @property
    def products(self) -> List[Product]:
        return [product for _, product in iter_products(self.tiers)]

    def frontmatter(self) -> dict:
        data = {
            "title": self.title,
            "description": self.description,
            "slug": self.slug,
            "pubDate": self.pub_date,
            "tags": list(self.tags),
        }
        if self.hero_image:
            data["image"] = self.hero_image
        return data
