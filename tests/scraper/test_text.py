"""Tests for text.py - price normalization."""

import pytest

from lbcscraper.scraper.text import clean_price


class TestCleanPrice:
    """Tests for clean_price."""

    def test_replaces_no_break_space(self):
        assert clean_price("35\xa0€") == "35 €"

    def test_removes_narrow_no_break_space(self):
        assert clean_price("1\u202f200\xa0€") == "1200 €"

    def test_handles_repeated_separators(self):
        assert clean_price("1\u202f200\u202f000\xa0€") == "1200000 €"

    def test_plain_string_unchanged(self):
        assert clean_price("Price not found") == "Price not found"

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_values_pass_through(self, value):
        assert clean_price(value) == value

    @pytest.mark.parametrize(
        "value",
        [
            "35\xa0€",
            "1\u202f200\xa0€",
            "\xa0 12\u202f500 \xa0€\xa0",
            "Gratuit",
        ],
    )
    def test_idempotent(self, value):
        """Normalizing twice equals normalizing once."""
        once = clean_price(value)
        assert clean_price(once) == once
        assert "\xa0" not in once
        assert "\u202f" not in once
