import subprocess
from datetime import date
from pathlib import Path

import pytest

from trendtiers.automation import COMMIT_MESSAGE, auto_commit, run_automation, run_forever
from trendtiers.config import ConfigurationError, Settings
from trendtiers.markup import extract_tiers, write_article
from trendtiers.models import Article, ImageResult, Product, SourceTag
from trendtiers.pipeline import GenerationResult, PipelineError


class FakePipeline:
    def __init__(self, content_dir: Path, fail: bool = False):
        self.content_dir = content_dir
        self.fail = fail

    def run(self):
        if self.fail:
            raise PipelineError("no products")
        article = Article(
            title="Best Speakers 2025",
            description="d",
            slug="best-speakers-2025",
            pub_date=date(2025, 1, 1),
            tiers={"S": [Product(name="Sonos Era 100", review="TBD")]},
        )
        path = write_article(article, self.content_dir)
        return GenerationResult(path=path, article=article, category="best speakers 2025", researched=1)


class FakeResolver:
    def resolve(self, *, catalog_id=None, name=None):
        return ImageResult(f"https://www.sonos.com/{name.split()[0].lower()}.png", SourceTag.SEARCH_RETAIL)


class FakeGenerator:
    def generate_reviews(self, requests, *, batch_size=3, pause=1.0, sleep=None):
        return [f"{request.name} delivers rich sound in a compact, easy to place speaker." for request in requests]


def make_settings(tmp_path, **overrides):
    values = dict(
        serpapi_key="serp",
        openai_api_key="sk",
        associate_tag="tag123",
        content_dir=tmp_path,
        request_delay=0,
    )
    values.update(overrides)
    return Settings(**values)


def write_existing(tmp_path):
    article = Article(
        title="Best Monitors 2025",
        description="d",
        slug="best-monitors-2025",
        pub_date=date(2025, 1, 1),
        tiers={"A": [Product(name="Dell U2723QE", review="TBD", link="https://www.amazon.com/dp/B09TQ6DP27")]},
    )
    return write_article(article, tmp_path)


def test_run_automation_generates_and_enhances(tmp_path):
    existing = write_existing(tmp_path)
    commands = []

    summary = run_automation(
        make_settings(tmp_path, auto_commit=True, git_push=True),
        pipeline=FakePipeline(tmp_path),
        generator=FakeGenerator(),
        resolver=FakeResolver(),
        search=object(),
        runner=commands.append,
        sleep=lambda seconds: None,
    )

    assert summary.generated == tmp_path / "best-speakers-2025.mdx"
    assert len(summary.images) == len(summary.reviews) == len(summary.links) == 2
    assert summary.committed is True
    assert commands == [["add", "-A"], ["commit", "-m", COMMIT_MESSAGE], ["push"]]

    product = extract_tiers(existing.read_text(encoding="utf-8"))["A"][0]
    assert product.image == "https://www.sonos.com/dell.png"
    assert product.review.startswith("Dell U2723QE delivers")
    assert product.link == "https://www.amazon.com/dp/B09TQ6DP27?tag=tag123"


def test_generation_failure_still_runs_passes(tmp_path):
    existing = write_existing(tmp_path)
    commands = []

    summary = run_automation(
        make_settings(tmp_path),
        pipeline=FakePipeline(tmp_path, fail=True),
        generator=FakeGenerator(),
        resolver=FakeResolver(),
        search=object(),
        runner=commands.append,
        sleep=lambda seconds: None,
    )

    assert summary.generated is None
    assert [result.path for result in summary.links] == [existing]
    assert summary.committed is False
    assert commands == []


def test_run_automation_requires_keys(tmp_path):
    with pytest.raises(ConfigurationError):
        run_automation(make_settings(tmp_path, openai_api_key=None))


def test_auto_commit_failure_is_logged(caplog):
    def runner(args):
        if args[0] == "commit":
            raise subprocess.CalledProcessError(1, ["git", *args], stderr="nothing to commit")
        return None

    assert auto_commit(runner=runner) is False
    assert "nothing to commit" in caplog.text


def test_run_forever_sleeps_remainder_and_survives_failures():
    calls = []
    sleeps = []
    ticks = iter([0.0, 100.0, 200.0, 4000.0, 5000.0, 5100.0])

    def cycle(settings):
        calls.append(settings)
        if len(calls) == 2:
            raise RuntimeError("boom")

    settings = Settings(cycle_minutes=60)
    completed = run_forever(
        settings,
        cycle=cycle,
        sleep=sleeps.append,
        clock=lambda: next(ticks),
        max_cycles=3,
    )

    assert completed == 3
    assert len(calls) == 3
    assert sleeps == [3500.0, 0.0]


def test_write_failure_still_runs_passes(tmp_path):
    existing = write_existing(tmp_path)

    class ReadOnlyPipeline:
        def run(self):
            raise PermissionError("content directory is read-only")

    summary = run_automation(
        make_settings(tmp_path),
        pipeline=ReadOnlyPipeline(),
        generator=FakeGenerator(),
        resolver=FakeResolver(),
        search=object(),
        runner=lambda args: None,
        sleep=lambda seconds: None,
    )

    assert summary.generated is None
    assert [result.path for result in summary.images] == [existing]
    assert [result.path for result in summary.links] == [existing]
    product = extract_tiers(existing.read_text(encoding="utf-8"))["A"][0]
    assert product.link == "https://www.amazon.com/dp/B09TQ6DP27?tag=tag123"
