"""Validators that re-read written articles and summarize their health."""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .markup import TierListParseError, extract_tiers, parse_frontmatter
from .models import SourceTag, iter_products

SLUG_SHAPE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
DEMO_PREFIX = "demo-"
UNKNOWN_SOURCE = "unknown"
LOW_QUALITY_SOURCES = (SourceTag.NONE, SourceTag.ERROR, UNKNOWN_SOURCE)
SOURCE_NAMES = {
    SourceTag.CATALOG_CDN: "Catalog CDN",
    SourceTag.CATALOG_SCRAPE: "Catalog page scrape",
    SourceTag.SEARCH_RETAIL: "Search (retail)",
    SourceTag.SEARCH_QUALITY: "Search (high resolution)",
    SourceTag.SEARCH_FALLBACK: "Search (fallback)",
    SourceTag.NONE: "No image found",
    SourceTag.ERROR: "Processing error",
    UNKNOWN_SOURCE: "Unknown source",
}


@dataclass
class FileImageStats:
    """Image coverage for one article."""

    file: str
    total: int = 0
    with_images: int = 0
    missing: list[tuple[str, str]] = field(default_factory=list)
    sources: Counter = field(default_factory=Counter)
    error: str | None = None

    @property
    def without_images(self) -> int:
        return len(self.missing)

    @property
    def coverage(self) -> float:
        return _percent(self.with_images, self.total)


@dataclass
class ImageCoverage:
    """Image coverage across every validated article."""

    files: list[FileImageStats]
    skipped_demo: list[str] = field(default_factory=list)

    @property
    def total_products(self) -> int:
        return sum(stats.total for stats in self.files)

    @property
    def with_images(self) -> int:
        return sum(stats.with_images for stats in self.files)

    @property
    def without_images(self) -> int:
        return sum(stats.without_images for stats in self.files)

    @property
    def coverage(self) -> float:
        return _percent(self.with_images, self.total_products)

    @property
    def sources(self) -> Counter:
        merged: Counter = Counter()
        for stats in self.files:
            merged.update(stats.sources)
        return merged

    @property
    def problem_files(self) -> list[str]:
        return [stats.file for stats in self.files if stats.error]

    @property
    def low_quality(self) -> int:
        sources = self.sources
        return sum(sources.get(source, 0) for source in LOW_QUALITY_SOURCES)

    @property
    def has_issues(self) -> bool:
        return bool(self.without_images or self.problem_files)


@dataclass
class RouteCheck:
    """Routing facts for one article."""

    file: str
    title: str
    file_slug: str
    frontmatter_slug: str | None
    issues: list[str] = field(default_factory=list)

    @property
    def route(self) -> str:
        return f"/{self.frontmatter_slug or self.file_slug}"


def _percent(part: int, whole: int) -> float:
    return (part / whole) * 100 if whole else 0.0


def is_demo_article(path: Path, meta: dict | None = None) -> bool:
    """Return ``True`` for demo content that should not count towards coverage."""

    meta = meta or {}
    if path.name.lower().startswith(DEMO_PREFIX):
        return True
    slug = str(meta.get("slug") or "").strip().lower()
    if slug.startswith(DEMO_PREFIX):
        return True
    return "demo" in str(meta.get("title") or "").lower()


def analyze_article_images(path: Path, text: str | None = None) -> FileImageStats:
    stats = FileImageStats(file=path.name)
    try:
        content = text if text is not None else path.read_text(encoding="utf-8")
        tiers = extract_tiers(content)
    except (OSError, UnicodeDecodeError, TierListParseError) as exc:
        stats.error = str(exc)
        return stats
    for tier, product in iter_products(tiers):
        stats.total += 1
        if product.has_image:
            stats.with_images += 1
            stats.sources[product.image_source or UNKNOWN_SOURCE] += 1
        else:
            stats.missing.append((product.name, tier))
            if product.image_source in (SourceTag.NONE, SourceTag.ERROR):
                stats.sources[product.image_source] += 1
    return stats


def analyze_image_coverage(
    paths: Sequence[Path], *, include_demo: bool = False
) -> ImageCoverage:
    """Validate every article in ``paths``, skipping demo files unless asked."""

    coverage = ImageCoverage(files=[])
    for path in paths:
        try:
            text = path.read_text(encoding="utf-8")
            meta = parse_frontmatter(text)
        except (OSError, UnicodeDecodeError, TierListParseError) as exc:
            coverage.files.append(FileImageStats(file=path.name, error=str(exc)))
            continue
        if not include_demo and is_demo_article(path, meta):
            coverage.skipped_demo.append(path.name)
            continue
        coverage.files.append(analyze_article_images(path, text))
    return coverage


def format_image_report(coverage: ImageCoverage) -> str:
    """Return a formatted image coverage report."""

    lines: list[str] = ["Image Validation"]
    if coverage.skipped_demo:
        lines.append(f"  Skipped demo files: {', '.join(coverage.skipped_demo)}")
    if not coverage.files:
        lines.append("  No tier list files found.")
        return "\n".join(lines)

    for stats in coverage.files:
        lines.append("")
        if stats.error:
            lines.append(f"  ERROR {stats.file}: {stats.error}")
            continue
        status = "OK" if not stats.missing else "WARN"
        lines.append(f"  [{status}] {stats.file}")
        lines.append(
            f"    Products: {stats.total} | With images: {stats.with_images} "
            f"({stats.coverage:.1f}%) | Missing: {stats.without_images}"
        )
        for name, tier in stats.missing:
            lines.append(f"    - {name} (Tier {tier})")

    lines.append("")
    lines.append("Summary")
    lines.append(f"  Files validated: {len(coverage.files)}")
    lines.append(f"  Total products: {coverage.total_products}")
    lines.append(f"  Products with images: {coverage.with_images}")
    lines.append(f"  Products without images: {coverage.without_images}")
    lines.append(f"  Image coverage: {coverage.coverage:.1f}%")

    sources = coverage.sources
    if sources:
        lines.append("")
        lines.append("Image Sources")
        for source, count in sorted(sources.items(), key=lambda item: (-item[1], item[0])):
            label = SOURCE_NAMES.get(source, source)
            lines.append(f"  {label}: {count}")

    warnings: list[str] = []
    if coverage.without_images:
        warnings.append(f"{coverage.without_images} products are missing images")
    if coverage.problem_files:
        warnings.append(
            f"{len(coverage.problem_files)} files could not be read: "
            + ", ".join(coverage.problem_files)
        )
    if coverage.low_quality:
        warnings.append(
            f"{coverage.low_quality} products have low-quality or missing image sources"
        )
    lines.append("")
    if warnings:
        lines.append("Warnings")
        lines.extend(f"  - {warning}" for warning in warnings)
    else:
        lines.append("All tier list files have complete image coverage.")
    return "\n".join(lines)


def validate_routes(paths: Sequence[Path]) -> list[RouteCheck]:
    """Compare frontmatter slugs with file names and flag duplicates."""

    checks: list[RouteCheck] = []
    owners: dict[str, str] = {}
    for path in paths:
        try:
            meta = parse_frontmatter(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, TierListParseError) as exc:
            checks.append(
                RouteCheck(path.name, "", path.stem, None, issues=[f"unreadable: {exc}"])
            )
            continue
        slug = str(meta.get("slug") or "").strip() or None
        check = RouteCheck(
            file=path.name,
            title=str(meta.get("title") or "").strip(),
            file_slug=path.stem,
            frontmatter_slug=slug,
        )
        if not check.title:
            check.issues.append("missing title")
        if slug is None:
            check.issues.append("missing slug in frontmatter")
        else:
            if not SLUG_SHAPE.match(slug):
                check.issues.append(f"invalid slug {slug!r}")
            if slug != path.stem:
                check.issues.append(f"slug {slug!r} does not match file name")
        route = slug or path.stem
        if route in owners:
            check.issues.append(f"duplicate route /{route} (also {owners[route]})")
        else:
            owners[route] = path.name
        checks.append(check)
    return checks


def format_route_report(checks: Sequence[RouteCheck]) -> str:
    lines: list[str] = ["Route Validation"]
    if not checks:
        lines.append("  No tier list files found.")
        return "\n".join(lines)
    lines.append(f"  Found {len(checks)} tier list files")
    for check in checks:
        status = "OK" if not check.issues else "WARN"
        lines.append("")
        lines.append(f"  [{status}] {check.file}")
        lines.append(f"    Title: {check.title or '(none)'}")
        lines.append(f"    File slug: {check.file_slug}")
        lines.append(f"    Frontmatter slug: {check.frontmatter_slug or '(none)'}")
        lines.append(f"    Route: {check.route}")
        for issue in check.issues:
            lines.append(f"    - {issue}")
    problems = sum(1 for check in checks if check.issues)
    lines.append("")
    if problems:
        lines.append(f"{problems} file(s) have routing issues.")
    else:
        lines.append("All routes look consistent.")
    return "\n".join(lines)
