"""Tests for the shared value normalizers."""

import pytest

from legacy_migrator.services.normalizers import (
    TAG_COLORS,
    default_options,
    digits_only,
    match_option,
    slugify,
    tag_color,
    vendor_code,
)


class TestTextNormalizers:

    @pytest.mark.parametrize("value,expected", [
        ("Natural Diamond", "natural-diamond"),
        ("  Café  Rings & Bands ", "cafe-rings-bands"),
        ("VIP", "vip"),
        (None, ""),
        ("---", ""),
    ])
    def test_slugify(self, value, expected):
        assert slugify(value) == expected

    def test_digits_only(self):
        assert digits_only("(555) 123-4567") == "5551234567"
        assert digits_only("555.987.6543") == "5559876543"
        assert digits_only(None) == ""

    def test_tag_color_is_stable(self):
        assert tag_color("VIP") == tag_color("VIP")
        assert tag_color("VIP") in TAG_COLORS
        assert tag_color("Rush") in TAG_COLORS

    def test_vendor_code(self):
        assert vendor_code("Gem Supply Co") == "GEMSUP"
        assert vendor_code("A&B", length=10) == "AB"


class TestMatchOption:

    def test_exact_and_case_insensitive(self):
        options = [{"value": "Round", "label": "Round Brilliant"}, "Oval"]

        assert match_option("Round", "shape", options) == "Round"
        assert match_option("oval", "shape", options) == "Oval"
        assert match_option("round brilliant", "shape", options) == "Round"

    def test_clarity_range(self):
        options = default_options("clarity_range")
        assert match_option("VS2", "clarity_range", options) == "vs1-vs2"
        assert match_option("flawless", "clarity_range", options) == "fl-if"

    def test_color_range(self):
        assert match_option("H", "color_range", default_options("color_range")) == "g-h-i-j"

    def test_weight_range_takes_first_bucket(self):
        options = default_options("main_stone_weight_range")
        assert match_option("0.63 carat", "main_stone_weight_range", options) == "50-69"
        assert match_option("1.2ct", "main_stone_weight_range", options) == "100-149"
        assert match_option("about a carat", "main_stone_weight_range", options) is None

    def test_no_match(self):
        assert match_option("", "clarity_range", default_options("clarity_range")) is None
        assert match_option("purple", "shape", ["Round"]) is None

    def test_default_options(self):
        assert default_options("engraving") == []
        assert {"value": "vs1-vs2", "label": "VS1-VS2"} in default_options("clarity_range")
        assert default_options("main_stone_weight")[0]["value"] == "01-17"
