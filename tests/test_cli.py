from datetime import date

import pytest

from trendtiers import cli
from trendtiers.markup import extract_tiers, write_article
from trendtiers.models import Article, ImageResult, Product, SourceTag


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.setattr("trendtiers.cli.load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.setattr("trendtiers.cli.load_credentials_file", lambda *args, **kwargs: 0)
    for name in ("SERPAPI_KEY", "OPENAI_API_KEY", "AMAZON_ASSOCIATE_TAG", "TRENDTIERS_CONTENT_DIR"):
        monkeypatch.delenv(name, raising=False)


def write_sample(content_dir, slug="best-webcams-2025"):
    article = Article(
        title="Best Webcams 2025",
        description="d",
        slug=slug,
        pub_date=date(2025, 1, 1),
        tiers={"S": [Product(name="Logitech Brio", review="TBD", link="")]},
    )
    return write_article(article, content_dir)


def test_help_exits_cleanly(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["images", "--help"])
    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert "--overwrite" in out
    assert "--dry-run" in out
    assert "--delay" in out


def test_links_command_updates_files(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("AMAZON_ASSOCIATE_TAG", "tag123")
    path = write_sample(tmp_path)

    cli.main(["--content-dir", str(tmp_path), "links"])

    product = extract_tiers(path.read_text(encoding="utf-8"))["S"][0]
    assert product.link == "https://www.amazon.com/s?k=Logitech+Brio&tag=tag123"
    assert "Links: 1 file(s), 1 product(s) changed" in capsys.readouterr().out


def test_links_dry_run_single_file(tmp_path, capsys):
    path = write_sample(tmp_path)
    before = path.read_text(encoding="utf-8")

    cli.main(["links", str(path), "--dry-run"])

    assert path.read_text(encoding="utf-8") == before
    assert "would change" in capsys.readouterr().out


def test_missing_file_exits_with_one(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["links", str(tmp_path / "nope.mdx")])
    assert excinfo.value.code == 1


def test_missing_content_dir_exits_with_one(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--content-dir", str(tmp_path / "missing"), "validate-routes"])
    assert excinfo.value.code == 1


def test_missing_configuration_exits_with_one(tmp_path):
    write_sample(tmp_path)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--content-dir", str(tmp_path), "reviews"])
    assert excinfo.value.code == 1


def test_images_command_passes_flags(tmp_path, monkeypatch, capsys):
    path = write_sample(tmp_path)
    captured = {}

    def fake_enhance_images(target, resolver, *, overwrite, dry_run, delay):
        captured.update(target=target, overwrite=overwrite, dry_run=dry_run, delay=delay)
        return cli.EnhanceResult(path=target, changed=1)

    monkeypatch.setattr("trendtiers.cli.enhance_images", fake_enhance_images)

    cli.main(["--content-dir", str(tmp_path), "images", "--overwrite", "--dry-run", "--delay", "250"])

    assert captured == {"target": path, "overwrite": True, "dry_run": True, "delay": 0.25}
    assert "Images: 1 file(s), 1 product(s) would change" in capsys.readouterr().out


def test_validate_images_strict(tmp_path, capsys):
    write_sample(tmp_path)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--content-dir", str(tmp_path), "validate-images", "--strict"])
    assert excinfo.value.code == 1
    assert "Logitech Brio (Tier S)" in capsys.readouterr().out

    cli.main(["--content-dir", str(tmp_path), "validate-images"])


def test_validate_routes_prints_report(tmp_path, capsys):
    write_sample(tmp_path)
    cli.main(["--content-dir", str(tmp_path), "validate-routes"])
    out = capsys.readouterr().out
    assert "Route: /best-webcams-2025" in out
    assert "All routes look consistent." in out


def test_resolve_image_json(monkeypatch, capsys):
    class FakeResolver:
        def __init__(self, search):
            pass

        def resolve(self, *, catalog_id=None, name=None):
            assert (catalog_id, name) == ("B0ABCDEFGH", None)
            return ImageResult("https://m.media-amazon.com/x.jpg", SourceTag.CATALOG_CDN)

    monkeypatch.setattr("trendtiers.cli.ImageResolver", FakeResolver)

    cli.main(["resolve-image", "--asin", "B0ABCDEFGH", "--json"])

    assert '"source": "catalog_cdn"' in capsys.readouterr().out


def test_forever_validates_cycle_minutes():
    with pytest.raises(SystemExit):
        cli.main(["forever", "--cycle-minutes", "0"])


def test_global_options_after_subcommand(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("AMAZON_ASSOCIATE_TAG", "tag123")
    path = write_sample(tmp_path)

    cli.main(["links", "--content-dir", str(tmp_path), "--log-level", "DEBUG"])

    product = extract_tiers(path.read_text(encoding="utf-8"))["S"][0]
    assert product.link == "https://www.amazon.com/s?k=Logitech+Brio&tag=tag123"
    assert "Links: 1 file(s), 1 product(s) changed" in capsys.readouterr().out


def test_script_wrapper_accepts_content_dir(tmp_path, monkeypatch, capsys):
    from scripts import validate_routing

    write_sample(tmp_path)
    monkeypatch.setattr("sys.argv", ["validate_routing.py", "--content-dir", str(tmp_path)])

    validate_routing.main()

    assert "Route: /best-webcams-2025" in capsys.readouterr().out
