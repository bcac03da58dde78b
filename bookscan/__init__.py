"""Barcode-to-book resolution for reading library apps."""

from bookscan.checksum import validate, validate_isbn, validate_isbn10, validate_isbn13
from bookscan.convert import format_isbn, isbn10_to_isbn13, isbn13_to_isbn10, strip_prefix
from bookscan.errors import classify
from bookscan.models import (
    ChecksumPolicy,
    ErrorContext,
    ErrorKind,
    IsbnCandidate,
    ScanMode,
    ScanningError,
    ScanSession,
    ScanStatus,
    Symbology,
    ValidatedIsbn,
)
from bookscan.session import ScanSessionController
from bookscan.symbology import extract_candidate

__version__ = "1.0.0"

__all__ = [
    "ChecksumPolicy",
    "ErrorContext",
    "ErrorKind",
    "IsbnCandidate",
    "ScanMode",
    "ScanSession",
    "ScanSessionController",
    "ScanStatus",
    "ScanningError",
    "Symbology",
    "ValidatedIsbn",
    "classify",
    "extract_candidate",
    "format_isbn",
    "isbn10_to_isbn13",
    "isbn13_to_isbn10",
    "strip_prefix",
    "validate",
    "validate_isbn",
    "validate_isbn10",
    "validate_isbn13",
]
