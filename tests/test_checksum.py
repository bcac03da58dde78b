"""Tests for ISBN check digit validation."""

import pytest

from bookscan.checksum import (
    compute_isbn10_check_digit,
    compute_isbn13_check_digit,
    validate,
    validate_isbn,
    validate_isbn10,
    validate_isbn13,
    validate_isbn13_basic,
)
from bookscan.models import ChecksumPolicy, IsbnCandidate, Symbology

pytestmark = pytest.mark.unit


# ============================================================================
# ISBN-10
# ============================================================================

def test_isbn10_valid_and_invalid():
    assert validate_isbn10("0306406152") is True
    assert validate_isbn10("0306406151") is False


def test_isbn10_x_check_digit():
    assert validate_isbn10("080442957X") is True
    assert validate_isbn10("080442957x") is True
    assert validate_isbn10("0804429570") is False


@pytest.mark.parametrize("value", ["", None, "030640615", "03064061522", "03064X6152", "030640615Y"])
def test_isbn10_malformed(value):
    assert validate_isbn10(value) is False


def test_compute_isbn10_check_digit():
    assert compute_isbn10_check_digit("030640615") == "2"
    assert compute_isbn10_check_digit("080442957") == "X"
    with pytest.raises(ValueError):
        compute_isbn10_check_digit("12345")


# ============================================================================
# ISBN-13
# ============================================================================

def test_isbn13_strict():
    assert validate_isbn13("9780306406157") is True
    assert validate_isbn13("9780306406158") is False
    assert validate_isbn13("978030640615X") is False


def test_isbn13_basic_only_counts_digits():
    assert validate_isbn13_basic("9780306406158") is True
    assert validate_isbn13_basic("978030640615") is False
    assert validate_isbn13_basic("978030640615X") is False


def test_compute_isbn13_check_digit():
    assert compute_isbn13_check_digit("978030640615") == "7"
    with pytest.raises(ValueError):
        compute_isbn13_check_digit("97803064061")


# ============================================================================
# Policy-aware validation
# ============================================================================

def test_validate_isbn10_candidate():
    result = validate(IsbnCandidate("0306406152", Symbology.ISBN10))
    assert result.isbn == "0306406152"
    assert result.checksum_valid is True
    assert result.policy is ChecksumPolicy.STRICT


def test_isbn10_is_strict_under_permissive_policy():
    result = validate(IsbnCandidate("0306406151", Symbology.ISBN10), ChecksumPolicy.PERMISSIVE)
    assert result.checksum_valid is False


def test_permissive_accepts_generic_ean():
    candidate = IsbnCandidate("5781440898956", Symbology.EAN13_GENERIC)
    assert validate(candidate, ChecksumPolicy.PERMISSIVE).checksum_valid is True


def test_policies_diverge_on_bad_thirteen_digit_check():
    candidate = IsbnCandidate("5781440898957", Symbology.EAN13_GENERIC)
    assert validate(candidate, ChecksumPolicy.PERMISSIVE).checksum_valid is True
    assert validate(candidate, ChecksumPolicy.STRICT).checksum_valid is False


def test_upc_a_remainder_is_never_valid():
    candidate = IsbnCandidate("12345678905", Symbology.UPC_A)
    assert validate(candidate, ChecksumPolicy.STRICT).checksum_valid is False
    assert validate(candidate, ChecksumPolicy.PERMISSIVE).checksum_valid is False


def test_validate_isbn_cleans_input():
    assert validate_isbn("978-0-306-40615-7") is True
    assert validate_isbn("0-306-40615-2") is True
    assert validate_isbn("978-0-306-40615-8") is False
    assert validate_isbn("978-0-306-40615-8", ChecksumPolicy.PERMISSIVE) is True
    assert validate_isbn("not an isbn") is False
    assert validate_isbn(None) is False
