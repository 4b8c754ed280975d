"""Reading and writing tier list articles stored as MDX files."""
from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, List, Optional, Tuple

import yaml

from .literal import LiteralError, parse_literal
from .models import Article, Tiers, iter_products, tiers_from_dict, tiers_to_dict
from .utils import article_slug, today

LOGGER = logging.getLogger(__name__)

COMPONENT_IMPORT = "import TierList from '../../components/TierList.astro'"
COMPONENT_TAG = "<TierList"
TIERS_PROP = re.compile(r"\btiers\s*=\s*\{")
FRONTMATTER = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
CRITERIA = (
    "Performance and reliability",
    "Value for money",
    "User reviews and satisfaction",
    "Build quality and features",
    "Long-term durability",
)

_TIER_HEADER = re.compile(
    r"[\"']?([A-Za-z0-9_]+)[\"']?\s*:\s*"
    r"(?:\{[^\[\]{}]*?[\"']?products[\"']?\s*:\s*)?\["
)
_PRODUCT_BLOCK = re.compile(r"\{[^{}]*\}")
_STRING = r"(\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*')"
_PRODUCT_FIELDS = ("name", "review", "link", "image", "imageSource")
_FIELD_PATTERNS = {
    key: re.compile(rf"[\"']?\b{key}\b[\"']?\s*:\s*{_STRING}") for key in _PRODUCT_FIELDS
}
_RESERVED_HEADERS = {"products", "tags", "itemListElement"}


class TierListParseError(ValueError):
    """Raised when an article's tier block cannot be located or decoded."""


def split_frontmatter(text: str) -> Tuple[dict, str]:
    """Return the decoded YAML frontmatter and the remaining body."""

    match = FRONTMATTER.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        raise TierListParseError(f"Invalid frontmatter: {exc}") from exc
    if not isinstance(data, dict):
        raise TierListParseError("Frontmatter is not a mapping")
    return data, text[match.end():]


def parse_frontmatter(text: str) -> dict:
    return split_frontmatter(text)[0]


def _skip_string(text: str, index: int) -> int:
    quote = text[index]
    index += 1
    while index < len(text):
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == quote:
            return index + 1
        index += 1
    raise TierListParseError("Unterminated string inside tiers prop")


def _matching_brace(text: str, start: int) -> int:
    """Return the index of the brace closing the one at ``start``."""

    depth = 0
    index = start
    while index < len(text):
        char = text[index]
        if char in ("'", '"', "`"):
            index = _skip_string(text, index)
            continue
        if text.startswith("//", index):
            end = text.find("\n", index)
            index = len(text) if end == -1 else end + 1
            continue
        if text.startswith("/*", index):
            end = text.find("*/", index + 2)
            index = len(text) if end == -1 else end + 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    raise TierListParseError("Unbalanced braces in tiers prop")


def find_tiers_block(text: str) -> Tuple[int, int]:
    """Locate the ``tiers={...}`` expression of the TierList component.

    Returns ``(start, end)`` so that ``text[start:end]`` is the JSX expression
    including its outer braces.
    """

    component = text.find(COMPONENT_TAG)
    if component == -1:
        raise TierListParseError("No TierList component found")
    match = TIERS_PROP.search(text, component)
    if not match:
        raise TierListParseError("TierList component has no tiers prop")
    start = match.end() - 1
    end = _matching_brace(text, start)
    return start, end + 1


def _field_value(block: str, key: str) -> Optional[str]:
    match = _FIELD_PATTERNS[key].search(block)
    if not match:
        return None
    try:
        value = parse_literal(match.group(1))
    except LiteralError:
        value = match.group(1)[1:-1]
    return str(value)


def reconstruct_tiers(expression: str) -> dict:
    """Rebuild tier data line by line when the block is not a clean literal."""

    headers = [
        (match.start(), match.group(1))
        for match in _TIER_HEADER.finditer(expression)
        if match.group(1) not in _RESERVED_HEADERS
    ]
    result: dict = {}
    for block in _PRODUCT_BLOCK.finditer(expression):
        owner = None
        for position, key in headers:
            if position < block.start():
                owner = key
            else:
                break
        if owner is None:
            continue
        product = {}
        for key in _PRODUCT_FIELDS:
            value = _field_value(block.group(0), key)
            if value is not None:
                product[key] = value
        if product.get("name"):
            result.setdefault(owner, []).append(product)
    return result


def decode_tiers(expression: str) -> Tiers:
    """Decode the object literal inside the tiers prop."""

    literal = expression.strip()
    if literal.startswith("{") and literal.endswith("}"):
        inner = literal[1:-1].strip()
        if inner.startswith("{"):
            literal = inner
    payload: Any = None
    try:
        payload = json.loads(literal)
    except json.JSONDecodeError:
        try:
            payload = parse_literal(literal)
        except LiteralError as exc:
            LOGGER.debug("Permissive parse failed (%s); reconstructing tiers", exc)
            payload = reconstruct_tiers(literal)
            if not payload:
                raise TierListParseError("Unable to decode tiers prop") from exc
    if not isinstance(payload, dict):
        raise TierListParseError("Tiers prop is not an object")
    return tiers_from_dict(payload)


def extract_tiers(text: str) -> Tiers:
    start, end = find_tiers_block(text)
    return decode_tiers(text[start:end])


def encode_tiers(tiers: Tiers) -> str:
    return "{" + json.dumps(tiers_to_dict(tiers), indent=4, ensure_ascii=False) + "}"


def replace_tiers(text: str, tiers: Tiers) -> str:
    """Rewrite the tiers prop, leaving the rest of ``text`` untouched."""

    start, end = find_tiers_block(text)
    return text[:start] + encode_tiers(tiers) + text[end:]


def _coerce_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    return today()


def parse_article(text: str, path: Path | None = None) -> Article:
    """Build an :class:`Article` from the contents of an MDX file."""

    meta, _ = split_frontmatter(text)
    tiers = extract_tiers(text)
    title = str(meta.get("title") or "").strip()
    slug = str(meta.get("slug") or "").strip()
    if not slug:
        slug = path.stem if path is not None else article_slug(title)
    tags = meta.get("tags")
    if isinstance(tags, str):
        tags = [tags]
    return Article(
        title=title,
        description=str(meta.get("description") or "").strip(),
        slug=slug,
        tiers=tiers,
        pub_date=_coerce_date(meta.get("pubDate")),
        tags=tags or [],
        hero_image=str(meta["image"]).strip() if meta.get("image") else None,
    )


def read_article(path: Path) -> Article:
    return parse_article(path.read_text(encoding="utf-8"), path)


def _render_frontmatter(article: Article) -> str:
    dumped = yaml.safe_dump(
        article.frontmatter(),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=1000,
    )
    return f"---\n{dumped}---\n"


def _structured_data(article: Article) -> str:
    payload = {
        "@context": "https://schema.org",
        "@type": "ItemList",
        "name": article.title,
        "itemListElement": [
            {"@type": "Product", "name": product.name, "position": index}
            for index, (_, product) in enumerate(iter_products(article.tiers), start=1)
        ],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def render_article(article: Article) -> str:
    """Render ``article`` in the MDX layout the site expects."""

    category = (article.category or (article.tags[0] if article.tags else "products")).replace('"', "'")
    lines: List[str] = [
        _render_frontmatter(article),
        COMPONENT_IMPORT,
        "",
        f"# {article.title}",
        "",
    ]
    if article.introduction:
        lines.extend([article.introduction, ""])
    lines.extend(
        [
            COMPONENT_TAG,
            f'  category="{category}"',
            f"  tiers={encode_tiers(article.tiers)}",
            "/>",
            "",
            "## 🎯 What We Looked For",
            "",
        ]
    )
    lines.extend(f"- {criterion}" for criterion in CRITERIA)
    lines.extend(["", "## 📦 Summary", ""])
    if article.summary:
        lines.extend([article.summary, ""])
    lines.extend(
        [
            '<script type="application/ld+json">',
            _structured_data(article),
            "</script>",
            "",
        ]
    )
    return "\n".join(lines)


def write_article(article: Article, content_dir: Path) -> Path:
    """Write ``article`` to ``<content_dir>/<slug>.mdx`` and return the path."""

    content_dir.mkdir(parents=True, exist_ok=True)
    path = content_dir / f"{article.slug}.mdx"
    path.write_text(render_article(article), encoding="utf-8")
    LOGGER.info("Saved tier list to %s", path)
    return path
