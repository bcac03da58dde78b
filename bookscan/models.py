from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Symbology(str, Enum):
    ISBN13 = "isbn13"
    ISBN10 = "isbn10"
    EAN13_GENERIC = "ean13"
    UPC_A = "upca"


class ChecksumPolicy(str, Enum):
    STRICT = "strict"
    PERMISSIVE = "permissive"


class ScanMode(str, Enum):
    CAMERA = "camera"
    UPLOAD = "upload"


class ScanStatus(str, Enum):
    IDLE = "idle"
    DETECTING = "detecting"
    VALIDATING = "validating"
    LOOKING_UP = "looking_up"
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.FOUND, ScanStatus.NOT_FOUND, ScanStatus.FAILED)

    @property
    def is_busy(self) -> bool:
        return self in (ScanStatus.DETECTING, ScanStatus.VALIDATING, ScanStatus.LOOKING_UP)


class ErrorKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    DEVICE_UNAVAILABLE = "device_unavailable"
    CONSTRAINT_UNSATISFIED = "constraint_unsatisfied"
    DECODE_TIMEOUT = "decode_timeout"
    FORMAT_INVALID = "format_invalid"
    CHECKSUM_INVALID = "checksum_invalid"
    LOOKUP_NOT_FOUND = "lookup_not_found"
    LOOKUP_RATE_LIMITED = "lookup_rate_limited"
    LOOKUP_NETWORK = "lookup_network"
    LOOKUP_UNAVAILABLE = "lookup_unavailable"


class ErrorContext(str, Enum):
    CAPTURE = "capture"
    DETECTION = "detection"
    LOOKUP = "lookup"


@dataclass(frozen=True)
class IsbnCandidate:
    digits: str
    symbology: Symbology


@dataclass(frozen=True)
class ValidatedIsbn:
    isbn: str
    checksum_valid: bool
    policy: ChecksumPolicy


@dataclass(frozen=True)
class ScanningError:
    kind: ErrorKind
    user_message: str
    suggestions: Tuple[str, ...]
    retryable: bool


@dataclass(frozen=True)
class Detection:
    """One decoded barcode payload emitted by a decode engine."""
    text: str
    symbology_hint: Optional[str] = None


@dataclass(frozen=True)
class CapabilityReport:
    camera_available: bool
    upload_available: bool
    reasons: Tuple[str, ...] = tuple()


@dataclass(frozen=True)
class BookRecord:
    title: str = ""
    subtitle: Optional[str] = None
    authors: Tuple[str, ...] = tuple()
    publisher: Optional[str] = None
    published_date: Optional[str] = None
    page_count: Optional[int] = None
    description: Optional[str] = None
    categories: Tuple[str, ...] = tuple()
    language: Optional[str] = None
    thumbnail: Optional[str] = None
    isbn_13: Optional[str] = None
    isbn_10: Optional[str] = None
    volume_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def isbn(self) -> Optional[str]:
        return self.isbn_13 or self.isbn_10


@dataclass(frozen=True)
class ScanSession:
    """Snapshot of a scan session as published to subscribers."""
    mode: ScanMode
    status: ScanStatus = ScanStatus.IDLE
    detected_isbn: Optional[ValidatedIsbn] = None
    error: Optional[ScanningError] = None
    started_at: Optional[float] = None
    raw_payload: Optional[str] = None
    query: Optional[str] = None
    book: Optional[BookRecord] = None
    result_count: int = 0
