from __future__ import annotations

import unittest

from trendtiers.utils import article_slug, env_bool, env_int, looks_like_placeholder_image, slugify, truncate


class UtilsTests(unittest.TestCase):
    def test_slugify_generates_clean_url_component(self) -> None:
        self.assertEqual(
            slugify("Best Gaming Headsets 2025: Our Picks!"),
            "best-gaming-headsets-2025-our-picks",
        )

    def test_article_slug_is_capped_without_trailing_dash(self) -> None:
        slug = article_slug("The Ultimate Tier List Of Wireless Gaming Headsets For Every Budget")
        self.assertLessEqual(len(slug), 50)
        self.assertFalse(slug.endswith("-"))
        self.assertTrue(slug.startswith("the-ultimate-tier-list"))

    def test_article_slug_falls_back_for_symbols(self) -> None:
        self.assertEqual(article_slug("!!!"), "item")

    def test_truncate(self) -> None:
        self.assertEqual(truncate("abcdef", 3), "abc")
        self.assertEqual(truncate("ab", 3), "ab")

    def test_placeholder_detection(self) -> None:
        self.assertTrue(looks_like_placeholder_image(None))
        self.assertTrue(looks_like_placeholder_image("  "))
        self.assertTrue(
            looks_like_placeholder_image("https://via.placeholder.com/300x200?text=Widget")
        )
        self.assertTrue(looks_like_placeholder_image("data:image/svg+xml;base64,AAAA"))
        self.assertFalse(
            looks_like_placeholder_image("https://m.media-amazon.com/images/I/81abc.jpg")
        )


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("FLAG", "Yes")
    monkeypatch.setenv("COUNT", "12")
    monkeypatch.setenv("BROKEN", "twelve")
    assert env_bool("FLAG") is True
    assert env_bool("MISSING_FLAG", default=True) is True
    assert env_int("COUNT", 1) == 12
    assert env_int("BROKEN", 7) == 7
    assert env_int("MISSING_COUNT", 3) == 3


if __name__ == "__main__":
    unittest.main()
