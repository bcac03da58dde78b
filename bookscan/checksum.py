from __future__ import annotations

from typing import Optional

from bookscan.models import ChecksumPolicy, IsbnCandidate, Symbology, ValidatedIsbn
from bookscan.symbology import clean_payload


def compute_isbn13_check_digit(prefix: str) -> str:
    if len(prefix) != 12 or not prefix.isdigit():
        raise ValueError(f"ISBN-13 prefix must be 12 digits, received '{prefix}'")
    total = 0
    for idx, digit in enumerate(prefix):
        weight = 1 if idx % 2 == 0 else 3
        total += weight * int(digit)
    return str((10 - (total % 10)) % 10)


def compute_isbn10_check_digit(prefix: str) -> str:
    if len(prefix) != 9 or not prefix.isdigit():
        raise ValueError(f"ISBN-10 prefix must be 9 digits, received '{prefix}'")
    total = sum((10 - idx) * int(digit) for idx, digit in enumerate(prefix))
    check = (11 - (total % 11)) % 11
    return "X" if check == 10 else str(check)


def validate_isbn10(isbn: Optional[str]) -> bool:
    """Weighted mod-11 check; a trailing ``X`` stands for 10."""
    if not isbn or len(isbn) != 10 or not isbn[:9].isdigit():
        return False
    last = isbn[9].upper()
    if last == "X":
        check_value = 10
    elif last.isdigit():
        check_value = int(last)
    else:
        return False
    total = sum((10 - idx) * int(digit) for idx, digit in enumerate(isbn[:9]))
    return (total + check_value) % 11 == 0


def validate_isbn13(isbn: Optional[str]) -> bool:
    if not isbn or len(isbn) != 13 or not isbn.isdigit():
        return False
    return isbn[-1] == compute_isbn13_check_digit(isbn[:12])


def validate_isbn13_basic(isbn: Optional[str]) -> bool:
    """Permissive 13-digit check: digit count only, no checksum arithmetic."""
    return bool(isbn) and len(isbn) == 13 and isbn.isdigit()


def _is_valid(digits: str, length_hint: int, policy: ChecksumPolicy) -> bool:
    if length_hint == 10:
        return validate_isbn10(digits)
    if length_hint == 13:
        if policy is ChecksumPolicy.PERMISSIVE:
            return validate_isbn13_basic(digits)
        return validate_isbn13(digits)
    return False


def validate(
    candidate: IsbnCandidate,
    policy: ChecksumPolicy = ChecksumPolicy.STRICT,
) -> ValidatedIsbn:
    """Check a parsed candidate under ``policy``.

    ISBN-10 candidates are always checked strictly. Thirteen-character
    candidates honour the policy. UPC-A remainders are eleven characters long
    and are reported invalid under either policy.
    """
    digits = candidate.digits
    if candidate.symbology is Symbology.UPC_A:
        valid = False
    else:
        valid = _is_valid(digits, len(digits), policy)
    return ValidatedIsbn(isbn=digits, checksum_valid=valid, policy=policy)


def validate_isbn(isbn: Optional[str], policy: ChecksumPolicy = ChecksumPolicy.STRICT) -> bool:
    """General purpose ISBN check for already-entered values."""
    cleaned = clean_payload(isbn)
    return _is_valid(cleaned, len(cleaned), policy)
