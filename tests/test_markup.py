from datetime import date

import pytest

from trendtiers.markup import (
    TierListParseError,
    extract_tiers,
    find_tiers_block,
    parse_article,
    parse_frontmatter,
    read_article,
    render_article,
    replace_tiers,
    write_article,
)
from trendtiers.models import Article, Product, SourceTag

LEGACY_ARTICLE = """---
title: "Best Gaming Mice 2025"
description: "Ranked picks."
slug: "best-gaming-mice-2025"
pubDate: 2025-01-15
tags: ["gaming", "mice"]
---

import TierList from '../../components/TierList.astro'

# Best Gaming Mice 2025

<TierList
  category="gaming"
  tiers={{
    S: {
      label: 'Top Picks',
      products: [
        {
          name: "Logitech G Pro X Superlight",
          review: 'Feather-light {wireless} flagship.',
          link: "https://www.amazon.com/dp/B09NBWQDHB",
          image: "https://m.media-amazon.com/images/I/61.jpg",
          imageSource: "catalog_cdn",
        },
      ],
    },
    // budget picks
    B: [
      { name: "Razer Viper Mini", review: "Small and quick.", link: "" },
    ],
  }}
/>

## 📦 Summary

Closing words.
"""


def sample_article() -> Article:
    return Article(
        title='Best "Gaming" Headsets: 2025',
        description="Our ranked picks.",
        slug="best-gaming-headsets-2025",
        pub_date=date(2025, 3, 1),
        tags=["gaming", "headsets", "gaming"],
        hero_image="https://m.media-amazon.com/images/I/hero.jpg",
        introduction="We tested a lot of headsets.",
        summary="Pick the one that fits.",
        category="best gaming headsets 2025",
        tiers={
            "S": [
                Product(
                    name="SteelSeries Arctis Nova Pro",
                    review='A "reference" headset with {braces} and \\ slashes.',
                    link="https://www.amazon.com/dp/B09ZWKGJ5X?tag=mythorath-20",
                    image="https://m.media-amazon.com/images/I/nova.jpg",
                    image_source=SourceTag.CATALOG_SCRAPE,
                )
            ],
            "A": [Product(name="HyperX Cloud II", review="Comfortable.", link="https://www.amazon.com/s?k=HyperX+Cloud+II&tag=mythorath-20")],
            "B": [],
        },
    )


def test_round_trip_preserves_names_and_links(tmp_path):
    article = sample_article()
    path = write_article(article, tmp_path)

    assert path == tmp_path / "best-gaming-headsets-2025.mdx"
    loaded = read_article(path)

    assert [(p.name, p.link) for p in loaded.products] == [
        (p.name, p.link) for p in article.products
    ]
    assert loaded.title == article.title
    assert loaded.slug == article.slug
    assert loaded.pub_date == date(2025, 3, 1)
    assert loaded.tags == ["gaming", "headsets"]
    assert loaded.hero_image == article.hero_image
    assert loaded.tiers["S"][0].review == article.tiers["S"][0].review
    assert loaded.tiers["S"][0].image_source == SourceTag.CATALOG_SCRAPE
    assert list(loaded.tiers) == ["S", "A", "B"]


def test_rendered_layout():
    text = render_article(sample_article())
    assert text.startswith("---\n")
    assert "import TierList from '../../components/TierList.astro'" in text
    assert '# Best "Gaming" Headsets: 2025' in text
    assert 'category="best gaming headsets 2025"' in text
    assert "## 🎯 What We Looked For" in text
    assert "## 📦 Summary" in text
    assert '"@type": "ItemList"' in text
    assert '"imageSource": "catalog_scrape"' in text
    meta = parse_frontmatter(text)
    assert meta["pubDate"] == date(2025, 3, 1)
    assert meta["image"] == "https://m.media-amazon.com/images/I/hero.jpg"


def test_permissive_literal_is_decoded():
    tiers = extract_tiers(LEGACY_ARTICLE)
    assert list(tiers) == ["S", "B"]
    top = tiers["S"][0]
    assert top.name == "Logitech G Pro X Superlight"
    assert top.review == "Feather-light {wireless} flagship."
    assert top.image_source == "catalog_cdn"
    assert tiers["B"][0].link == ""


def test_line_reconstruction_handles_expressions():
    text = """<TierList tiers={{
  "S": [
    { name: "Acme One", review: "Solid.", link: "https://www.amazon.com/dp/B000000001", image: getImage("one") },
  ],
  "A": [
    { name: 'Acme Two', review: "It\\'s fine.", link: "" },
  ]
}} />"""
    tiers = extract_tiers(text)
    assert [p.name for p in tiers["S"]] == ["Acme One"]
    assert tiers["S"][0].link == "https://www.amazon.com/dp/B000000001"
    assert tiers["A"][0].name == "Acme Two"


def test_replace_tiers_only_touches_prop():
    tiers = extract_tiers(LEGACY_ARTICLE)
    tiers["B"][0].link = "https://www.amazon.com/s?k=Razer+Viper+Mini&tag=tag123"

    updated = replace_tiers(LEGACY_ARTICLE, tiers)

    start, end = find_tiers_block(LEGACY_ARTICLE)
    new_start, new_end = find_tiers_block(updated)
    assert updated[:new_start] == LEGACY_ARTICLE[:start]
    assert updated[new_end:] == LEGACY_ARTICLE[end:]
    assert extract_tiers(updated)["B"][0].link.endswith("tag=tag123")
    assert extract_tiers(updated)["S"][0].name == "Logitech G Pro X Superlight"


@pytest.mark.parametrize(
    "text",
    [
        "---\ntitle: x\n---\nNo component here.",
        "<TierList category='x' />",
        "<TierList tiers={tierData} />",
        "<TierList tiers={{ S: [ {name: 'open",
    ],
)
def test_unparsable_blocks_raise(text):
    with pytest.raises(TierListParseError):
        extract_tiers(text)


def test_parse_article_falls_back_to_path_for_slug(tmp_path):
    text = LEGACY_ARTICLE.replace('slug: "best-gaming-mice-2025"\n', "")
    article = parse_article(text, tmp_path / "mice.mdx")
    assert article.slug == "mice"
    assert article.pub_date == date(2025, 1, 15)
    assert article.tags == ["gaming", "mice"]
