"""Tests for amount parsing and amounts in words."""

from decimal import Decimal

import pytest

from khata.utils.amount_parser import parse_amount
from khata.utils.amount_words import amount_in_words, number_to_words


@pytest.mark.parametrize(
    "number, words",
    [
        (0, "Zero"),
        (7, "Seven"),
        (19, "Nineteen"),
        (40, "Forty"),
        (99, "Ninety Nine"),
        (100, "One Hundred"),
        (1050, "One Thousand Fifty"),
        (100000, "One Lakh"),
        (2534000, "Twenty Five Lakh Thirty Four Thousand"),
        (10000000, "One Crore"),
    ],
)
def test_number_to_words(number, words):
    assert number_to_words(number) == words


def test_number_to_words_rejects_negative():
    with pytest.raises(ValueError):
        number_to_words(-1)


def test_amount_with_paise():
    assert amount_in_words(Decimal("1050.50")) == "One Thousand Fifty Rupees and Fifty Paise Only"


def test_whole_amount():
    assert amount_in_words(Decimal("1050")) == "One Thousand Fifty Rupees Only"


def test_negative_amount():
    """Net-return documents are spelled with a MINUS prefix."""
    assert amount_in_words(Decimal("-500")) == "MINUS Five Hundred Rupees Only"


def test_paise_are_rounded():
    assert amount_in_words(Decimal("0.999")) == "One Rupees Only"


class TestParseAmount:
    """Tests for amount string parsing."""

    def test_plain(self):
        assert parse_amount("123.45") == Decimal("123.45")

    def test_negative(self):
        assert parse_amount("-50") == Decimal("-50")

    def test_parentheses_are_negative(self):
        assert parse_amount("(75.00)") == Decimal("-75.00")

    @pytest.mark.parametrize("text", ["₹1,23,456.50", "Rs. 123456.50", "INR 1,23,456.50"])
    def test_currency_and_indian_grouping(self, text):
        assert parse_amount(text) == Decimal("123456.50")

    @pytest.mark.parametrize("text", ["", "   ", "abc", "NaN", "Infinity"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_amount(text)
