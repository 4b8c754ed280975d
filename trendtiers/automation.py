"""Orchestrator that generates one article and refreshes every existing one."""
from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import Settings
from .enhancers import EnhanceResult, enhance_images, enhance_links, enhance_reviews, iter_article_files
from .images import ImageResolver
from .llm import ContentGenerator
from .pipeline import PipelineError, TierlistPipeline
from .search import SearchClient

LOGGER = logging.getLogger(__name__)

COMMIT_MESSAGE = "chore: automated tierlist generation and enhancements"
GIT_TIMEOUT_SECONDS = 120

Runner = Callable[[Sequence[str]], subprocess.CompletedProcess]


@dataclass
class AutomationSummary:
    generated: Optional[Path] = None
    images: List[EnhanceResult] = field(default_factory=list)
    reviews: List[EnhanceResult] = field(default_factory=list)
    links: List[EnhanceResult] = field(default_factory=list)
    committed: bool = False

    def changed(self) -> int:
        return sum(result.changed for result in self.images + self.reviews + self.links)


def _run_git(args: Sequence[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        capture_output=True,
        text=True,
        timeout=GIT_TIMEOUT_SECONDS,
        check=True,
    )


def auto_commit(*, push: bool = False, runner: Runner = _run_git) -> bool:
    """Stage and commit every change, optionally pushing. Returns ``True`` on success."""

    try:
        runner(["add", "-A"])
        runner(["commit", "-m", COMMIT_MESSAGE])
        if push:
            runner(["push"])
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as exc:
        detail = getattr(exc, "stderr", None) or exc
        LOGGER.warning("Auto-commit skipped: %s", str(detail).strip())
        return False
    LOGGER.info("Changes committed%s", " and pushed" if push else "")
    return True


def run_automation(
    settings: Settings,
    *,
    pipeline: TierlistPipeline | None = None,
    search: SearchClient | None = None,
    generator: ContentGenerator | None = None,
    resolver: ImageResolver | None = None,
    runner: Runner = _run_git,
    sleep: Callable[[float], None] = time.sleep,
) -> AutomationSummary:
    """Generate one new article, then run every enhancement pass over all articles."""

    settings.require_search()
    settings.require_llm()
    LOGGER.info("Using associate tag: %s", settings.associate_tag)
    search = search or SearchClient(settings.serpapi_key)
    generator = generator or ContentGenerator(settings)
    resolver = resolver or ImageResolver(search)
    pipeline = pipeline or TierlistPipeline(
        settings, search=search, generator=generator, resolver=resolver, sleep=sleep
    )
    summary = AutomationSummary()

    try:
        summary.generated = pipeline.run().path
    except (PipelineError, OSError) as exc:
        LOGGER.error("Generation failed: %s", exc)

    files = iter_article_files(settings.content_dir)
    LOGGER.info("Enhancing %s article(s) in %s", len(files), settings.content_dir)
    for path in files:
        summary.images.append(
            enhance_images(path, resolver, delay=settings.request_delay, sleep=sleep)
        )
    for path in files:
        summary.reviews.append(enhance_reviews(path, generator, sleep=sleep))
    for path in files:
        summary.links.append(enhance_links(path, settings.associate_tag))

    if settings.auto_commit:
        summary.committed = auto_commit(push=settings.git_push, runner=runner)
    LOGGER.info("Automation pipeline complete (%s product updates)", summary.changed())
    return summary


def run_forever(
    settings: Settings,
    *,
    cycle: Callable[[Settings], object] = run_automation,
    cycle_minutes: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    max_cycles: int | None = None,
) -> int:
    """Repeat ``cycle`` every ``cycle_minutes`` minutes. Returns the number of cycles run."""

    minutes = cycle_minutes or settings.cycle_minutes
    LOGGER.info("Continuous mode: generating every %s minutes", minutes)
    completed = 0
    while max_cycles is None or completed < max_cycles:
        started = clock()
        try:
            cycle(settings)
        except Exception:
            LOGGER.exception("Cycle failed")
        completed += 1
        if max_cycles is not None and completed >= max_cycles:
            break
        remaining = max(0.0, minutes * 60 - (clock() - started))
        LOGGER.info("Sleeping %ss until next cycle", round(remaining))
        sleep(remaining)
    return completed
