"""Tests for amount-in-words on printed documents."""

import pytest

from utils.number_words import number_to_words


def test_millions_thousands_and_cents():
    assert number_to_words(1234567.50) == (
        "One Million Two Hundred Thirty Four Thousand Five Hundred Sixty Seven and Fifty Cents"
    )


def test_zero():
    assert number_to_words(0) == "Zero"


def test_teens_and_tens():
    assert number_to_words(19) == "Nineteen"
    assert number_to_words(40) == "Forty"
    assert number_to_words(99) == "Ninety Nine"


def test_round_thousands():
    assert number_to_words(2_700_000) == "Two Million Seven Hundred Thousand"


def test_cents_only():
    assert number_to_words(0.05) == "Zero and Five Cents"


def test_negative_raises():
    with pytest.raises(ValueError):
        number_to_words(-1)
