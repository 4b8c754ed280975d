"""Command line entrypoints for the TrendTiers content pipeline."""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from .automation import run_automation, run_forever
from .config import ConfigurationError, Settings, load_credentials_file, load_settings
from .enhancers import EnhanceResult, enhance_images, enhance_links, enhance_reviews, iter_article_files
from .images import ImageResolver
from .llm import ContentGenerator
from .pipeline import PipelineError, TierlistPipeline
from .reporting import analyze_image_coverage, format_image_report, format_route_report, validate_routes
from .search import SearchClient

LOGGER = logging.getLogger(__name__)


def _enhancer_parent(*, overwrite: bool = True, delay: bool = True) -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "path",
        nargs="?",
        type=Path,
        help="Article to process (defaults to every file in the content directory)",
    )
    if overwrite:
        parent.add_argument(
            "--overwrite",
            action="store_true",
            help="Process every product, not only the ones that need work",
        )
    parent.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing files",
    )
    if delay:
        parent.add_argument(
            "--delay",
            type=int,
            metavar="MS",
            help="Pause between outbound requests in milliseconds",
        )
    return parent


def _global_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--content-dir",
        type=Path,
        default=argparse.SUPPRESS,
        help="Directory holding the tier list .mdx files",
    )
    parent.add_argument(
        "--log-level",
        default=argparse.SUPPRESS,
        help="Logging level (DEBUG, INFO, WARNING, ...)",
    )
    return parent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TrendTiers automation commands")
    parser.add_argument(
        "--content-dir",
        type=Path,
        help="Directory holding the tier list .mdx files",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ...)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    common = _global_parent()

    generate_parser = subparsers.add_parser("generate", parents=[common], help="Research and write one new tier list")
    generate_parser.set_defaults(func=handle_generate)

    images_parser = subparsers.add_parser(
        "images", parents=[common, _enhancer_parent()], help="Add product images to tier lists"
    )
    images_parser.set_defaults(func=handle_images)

    reviews_parser = subparsers.add_parser(
        "reviews", parents=[common, _enhancer_parent()], help="Rewrite weak product reviews"
    )
    reviews_parser.add_argument(
        "--batch-size",
        type=int,
        default=3,
        help="Number of reviews requested concurrently",
    )
    reviews_parser.set_defaults(func=handle_reviews)

    links_parser = subparsers.add_parser(
        "links",
        parents=[common, _enhancer_parent(overwrite=False, delay=False)],
        help="Normalize affiliate links",
    )
    links_parser.set_defaults(func=handle_links)

    images_check = subparsers.add_parser(
        "validate-images", parents=[common], help="Report image coverage across tier lists"
    )
    images_check.add_argument(
        "--include-demo",
        action="store_true",
        help="Count demo files as well",
    )
    images_check.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when products are missing images",
    )
    images_check.set_defaults(func=handle_validate_images)

    routes_check = subparsers.add_parser(
        "validate-routes", parents=[common], help="Check slugs against file names"
    )
    routes_check.set_defaults(func=handle_validate_routes)

    run_parser = subparsers.add_parser(
        "run", parents=[common], help="Generate one tier list, then enhance every article"
    )
    run_parser.set_defaults(func=handle_run)

    forever_parser = subparsers.add_parser("forever", parents=[common], help="Run the orchestrator on a fixed cycle")
    forever_parser.add_argument(
        "--cycle-minutes",
        type=int,
        help="Minutes between cycles (defaults to CYCLE_MINUTES)",
    )
    forever_parser.add_argument(
        "--max-cycles",
        type=int,
        help="Stop after this many cycles",
    )
    forever_parser.set_defaults(func=handle_forever)

    resolve_parser = subparsers.add_parser(
        "resolve-image", parents=[common], help="Resolve a single product image for debugging"
    )
    resolve_parser.add_argument("--asin", help="Marketplace catalog ID")
    resolve_parser.add_argument("--name", help="Product name")
    resolve_parser.add_argument(
        "--json",
        action="store_true",
        help="Output the result as JSON",
    )
    resolve_parser.set_defaults(func=handle_resolve_image)

    return parser


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def _target_files(args: argparse.Namespace, settings: Settings) -> List[Path]:
    path = getattr(args, "path", None)
    if path is not None:
        if not path.is_file():
            LOGGER.error("File not found: %s", path)
            raise SystemExit(1)
        return [path]
    if not settings.content_dir.is_dir():
        LOGGER.error("Content directory not found: %s", settings.content_dir)
        raise SystemExit(1)
    files = iter_article_files(settings.content_dir)
    if not files:
        LOGGER.warning("No .mdx files found in %s", settings.content_dir)
    return files


def _delay_seconds(args: argparse.Namespace, default: float) -> float:
    delay = getattr(args, "delay", None)
    if delay is None:
        return default
    if delay < 0:
        raise SystemExit("--delay cannot be negative")
    return delay / 1000


def _print_results(label: str, results: List[EnhanceResult], dry_run: bool) -> None:
    changed = sum(result.changed for result in results)
    skipped = [result.path.name for result in results if result.skipped]
    verb = "would change" if dry_run else "changed"
    print(f"{label}: {len(results)} file(s), {changed} product(s) {verb}")
    if skipped:
        print(f"  Skipped (unparsable): {', '.join(skipped)}")
    sources = {}
    for result in results:
        for source, count in result.sources.items():
            sources[source] = sources.get(source, 0) + count
    for source, count in sorted(sources.items()):
        print(f"  {source}: {count}")


def handle_generate(args: argparse.Namespace) -> None:
    settings = args.settings
    try:
        result = TierlistPipeline(settings).run()
    except (PipelineError, OSError) as exc:
        LOGGER.error("Generation failed: %s", exc)
        raise SystemExit(1) from exc
    print(f"Generated {result.path} ({len(result.article.products)} products, {result.category})")


def handle_images(args: argparse.Namespace) -> None:
    settings = args.settings
    files = _target_files(args, settings)
    resolver = ImageResolver(SearchClient(settings.serpapi_key))
    delay = _delay_seconds(args, settings.request_delay)
    results = [
        enhance_images(
            path,
            resolver,
            overwrite=args.overwrite,
            dry_run=args.dry_run,
            delay=delay,
        )
        for path in files
    ]
    _print_results("Images", results, args.dry_run)


def handle_reviews(args: argparse.Namespace) -> None:
    settings = args.settings
    if args.batch_size < 1:
        raise SystemExit("--batch-size must be positive")
    files = _target_files(args, settings)
    generator = ContentGenerator(settings)
    pause = _delay_seconds(args, 1.0)
    results = [
        enhance_reviews(
            path,
            generator,
            overwrite=args.overwrite,
            dry_run=args.dry_run,
            batch_size=args.batch_size,
            pause=pause,
        )
        for path in files
    ]
    _print_results("Reviews", results, args.dry_run)


def handle_links(args: argparse.Namespace) -> None:
    settings = args.settings
    files = _target_files(args, settings)
    results = [enhance_links(path, settings.associate_tag, dry_run=args.dry_run) for path in files]
    _print_results("Links", results, args.dry_run)


def handle_validate_images(args: argparse.Namespace) -> None:
    files = _target_files(args, args.settings)
    coverage = analyze_image_coverage(files, include_demo=args.include_demo)
    print(format_image_report(coverage))
    if args.strict and coverage.has_issues:
        raise SystemExit(1)


def handle_validate_routes(args: argparse.Namespace) -> None:
    files = _target_files(args, args.settings)
    print(format_route_report(validate_routes(files)))


def handle_run(args: argparse.Namespace) -> None:
    summary = run_automation(args.settings)
    if summary.generated:
        print(f"Generated {summary.generated}")
    print(f"Updated {summary.changed()} product field(s) across {len(summary.links)} file(s)")


def handle_forever(args: argparse.Namespace) -> None:
    if args.cycle_minutes is not None and args.cycle_minutes < 1:
        raise SystemExit("--cycle-minutes must be at least 1")
    settings = args.settings
    settings.require_search()
    settings.require_llm()
    run_forever(settings, cycle_minutes=args.cycle_minutes, max_cycles=args.max_cycles)


def handle_resolve_image(args: argparse.Namespace) -> None:
    if not args.asin and not args.name:
        raise SystemExit("Provide --asin and/or --name")
    resolver = ImageResolver(SearchClient(args.settings.serpapi_key))
    result = resolver.resolve(catalog_id=args.asin, name=args.name)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return
    if result.found:
        print(f"{result.url} ({result.source})")
    else:
        print(f"No image found ({result.source})")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    load_dotenv()
    load_credentials_file()
    args.settings = load_settings(args.content_dir)
    try:
        args.func(args)
    except ConfigurationError as exc:
        LOGGER.error("%s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
