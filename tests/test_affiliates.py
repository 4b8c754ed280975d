import pytest

from trendtiers.affiliates import (
    catalog_link,
    extract_catalog_id,
    has_tracking_tag,
    is_marketplace_url,
    normalize_affiliate_link,
    search_url,
)

TAG = "tag123"


def test_missing_tag_is_appended():
    link = "https://www.amazon.com/dp/AAAAAAAAAA"
    assert normalize_affiliate_link(link, "Widget", TAG) == (
        "https://www.amazon.com/dp/AAAAAAAAAA?tag=tag123"
    )


def test_correct_tag_is_left_unchanged():
    link = "https://www.amazon.com/dp/B0ABCDEFGH/?th=1&tag=tag123#reviews"
    assert normalize_affiliate_link(link, "Widget", TAG) == link


def test_wrong_tags_are_replaced_and_other_params_kept():
    link = "https://www.amazon.co.uk/dp/B0ABCDEFGH?tag=someone-21&th=1&tag=other#top"
    result = normalize_affiliate_link(link, "Widget", TAG)
    assert result == "https://www.amazon.co.uk/dp/B0ABCDEFGH?th=1&tag=tag123#top"
    assert has_tracking_tag(result, TAG)


@pytest.mark.parametrize(
    "link",
    [
        "",
        None,
        "https://www.bestbuy.com/site/widget/123.p",
        "https://example.com/amazon.com/dp/B0ABCDEFGH",
        "https://amazon.evil-shop.example/dp/B0ABCDEFGH",
        "https://www.amazon.com.attacker.io/dp/B0ABCDEFGH?tag=tag123",
        "https://amazon.com@phish.example/dp/B0ABCDEFGH",
        "https://notamazon.com/dp/B0ABCDEFGH",
    ],
)
def test_non_marketplace_links_become_search_urls(link):
    result = normalize_affiliate_link(link, "Example Widget (2025)", TAG)
    assert result == "https://www.amazon.com/s?k=Example+Widget+2025&tag=tag123"


def test_short_links_are_marketplace():
    assert is_marketplace_url("https://amzn.to/3abcdEF")
    assert normalize_affiliate_link("https://amzn.to/3abcdEF", "Widget", TAG) == (
        "https://amzn.to/3abcdEF?tag=tag123"
    )


@pytest.mark.parametrize(
    "link",
    [
        "",
        "https://www.amazon.com/dp/AAAAAAAAAA",
        "https://www.amazon.com/dp/B0ABCDEFGH?tag=wrong-20",
        "https://smile.amazon.de/gp/product/B0ABCDEFGH?psc=1",
        "https://www.walmart.com/ip/123",
    ],
)
def test_normalizer_is_idempotent(link):
    once = normalize_affiliate_link(link, "Widget Pro", TAG)
    assert normalize_affiliate_link(once, "Widget Pro", TAG) == once


def test_search_url_without_name_points_home():
    assert search_url("", TAG) == "https://www.amazon.com/?tag=tag123"


def test_catalog_id_helpers():
    assert extract_catalog_id("https://www.amazon.com/Widget/dp/B0ABCDEFGH/ref=sr_1") == "B0ABCDEFGH"
    assert extract_catalog_id("https://www.amazon.com/s?k=widget") is None
    assert extract_catalog_id("https://www.bestbuy.com/dp/B0ABCDEFGH") is None
    assert catalog_link("B0ABCDEFGH", TAG) == "https://www.amazon.com/dp/B0ABCDEFGH/?tag=tag123"
    with pytest.raises(ValueError):
        catalog_link("short", TAG)
