"""Exceptions and the failure classifier for barcode scanning.

Everything that can go wrong between the camera and the lookup service ends
up here: ``classify`` turns a raw failure plus the phase it happened in into
a :class:`~bookscan.models.ScanningError` the UI can show as-is. The set of
kinds is closed, each kind has a fixed ``retryable`` flag, and every
descriptor carries at least one suggestion.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import aiohttp

from bookscan.models import ErrorContext, ErrorKind, ScanningError

RAW_ERROR_LIMIT = 500


class BookScanError(Exception):
    """Base class for bookscan failures."""


class ConfigurationError(BookScanError, ValueError):
    """Raised when settings hold unusable values."""


class CaptureError(BookScanError):
    """A capture device could not be acquired or stopped unexpectedly.

    ``reason`` carries the platform error name when one is known, such as
    ``NotAllowedError`` or ``OverconstrainedError``.
    """

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class InvalidUploadError(BookScanError):
    """The uploaded file is not an accepted image."""


class BarcodeNotFoundError(BookScanError):
    """The decode engine found no barcode in the image."""


class DecodeTimeoutError(BookScanError):
    """Decoding did not finish before the deadline."""


class InvalidFormatError(BookScanError):
    """The payload does not look like any ISBN symbology."""


class InvalidChecksumError(BookScanError):
    def __init__(self, isbn: str):
        super().__init__(f"Check digit mismatch for '{isbn}'")
        self.isbn = isbn


class BookNotFoundError(BookScanError):
    def __init__(self, query: str):
        super().__init__(f"No results for {query}")
        self.query = query


class LookupServiceError(BookScanError):
    """Non-2xx answer from the book lookup service."""

    def __init__(self, status_code: int, message: str = "", body: str = ""):
        super().__init__(message or f"Lookup service returned HTTP {status_code}")
        self.status_code = status_code
        self.body = (body or "")[:RAW_ERROR_LIMIT]


RETRYABLE: Dict[ErrorKind, bool] = {
    ErrorKind.PERMISSION_DENIED: True,
    ErrorKind.DEVICE_UNAVAILABLE: False,
    ErrorKind.CONSTRAINT_UNSATISFIED: True,
    ErrorKind.DECODE_TIMEOUT: True,
    ErrorKind.FORMAT_INVALID: True,
    ErrorKind.CHECKSUM_INVALID: True,
    ErrorKind.LOOKUP_NOT_FOUND: False,
    ErrorKind.LOOKUP_RATE_LIMITED: True,
    ErrorKind.LOOKUP_NETWORK: True,
    ErrorKind.LOOKUP_UNAVAILABLE: True,
}

_Message = Tuple[str, Tuple[str, ...]]

CANONICAL_MESSAGES: Dict[ErrorKind, _Message] = {
    ErrorKind.PERMISSION_DENIED: (
        "Camera access denied. Please allow camera permissions to scan barcodes.",
        (
            "Click the camera icon in your browser's address bar",
            "Select 'Allow' for camera permissions in your browser settings",
            "Refresh the page and try again",
        ),
    ),
    ErrorKind.DEVICE_UNAVAILABLE: (
        "No camera found on this device.",
        (
            "Try using the image upload option instead",
            "Make sure your device has a working camera",
            "Check that no other apps are using the camera",
        ),
    ),
    ErrorKind.CONSTRAINT_UNSATISFIED: (
        "Camera configuration issue. Your camera doesn't support the required settings.",
        (
            "Try using the image upload option",
            "Make sure your camera supports barcode scanning",
            "Try refreshing the page",
        ),
    ),
    ErrorKind.DECODE_TIMEOUT: (
        "No barcode found in the uploaded image.",
        (
            "Retake the photo with the barcode clearly visible",
            "Ensure good lighting conditions",
            "Try a higher resolution image",
            "Use the camera scanner for better results",
        ),
    ),
    ErrorKind.FORMAT_INVALID: (
        "No valid ISBN found in barcode.",
        (
            "Scan the barcode again",
            "Make sure you are scanning the ISBN barcode on the back cover",
            "Add the book manually with its details",
        ),
    ),
    ErrorKind.CHECKSUM_INVALID: (
        "The scanned ISBN is not valid.",
        (
            "Scan the barcode again",
            "Double-check the ISBN printed on the book",
            "Add the book manually with its details",
        ),
    ),
    ErrorKind.LOOKUP_NOT_FOUND: (
        "Book not found in the database.",
        (
            "Add the book manually with its details",
            "Try scanning a different barcode",
            "Double-check the ISBN on the book",
        ),
    ),
    ErrorKind.LOOKUP_RATE_LIMITED: (
        "Too many requests. Please wait a moment before trying again.",
        (
            "Wait a few seconds and try again",
            "Add the book manually as an alternative",
        ),
    ),
    ErrorKind.LOOKUP_NETWORK: (
        "Network error while searching for the book.",
        (
            "Check your internet connection",
            "Try scanning again",
            "Add the book manually if the problem persists",
        ),
    ),
    ErrorKind.LOOKUP_UNAVAILABLE: (
        "Unable to look up the book details. The service is temporarily unavailable.",
        (
            "Try again later",
            "Check your internet connection",
            "Add the book manually if needed",
        ),
    ),
}

# Context specific wording; kinds and retry flags stay the same.
_CAMERA_NO_BARCODE: _Message = (
    "No barcode detected in camera view.",
    (
        "Make sure the barcode is clearly visible",
        "Move the camera closer to the barcode",
        "Ensure good lighting conditions",
        "Try holding the camera steady",
    ),
)
_INSECURE_CONTEXT: _Message = (
    "Camera access requires a secure connection.",
    (
        "Make sure you're using HTTPS",
        "Try accessing the site through a secure connection",
        "Use the image upload option as an alternative",
    ),
)
_CAMERA_INTERRUPTED: _Message = (
    "Camera access was interrupted. The camera may be in use by another app.",
    (
        "Make sure no other apps are using the camera",
        "Use the image upload option as an alternative",
        "Refresh the page if the problem persists",
    ),
)
_CAMERA_GENERIC: _Message = (
    "Unable to access camera for barcode scanning.",
    (
        "Try using the image upload option instead",
        "Check your camera permissions",
        "Refresh the page and try again",
    ),
)
_INVALID_UPLOAD: _Message = (
    "Please select a valid image file (JPEG, PNG, or WebP) under the size limit.",
    (
        "Choose a JPEG, PNG or WebP photo of the barcode",
        "Use a smaller image",
        "Add the book manually with its details",
    ),
)
_BAD_QUERY: _Message = (
    "Invalid search query for this barcode.",
    (
        "Scan the barcode again",
        "Add the book manually with its details",
    ),
)
_AUTH_FAILED: _Message = (
    "Book lookup is unavailable: API key invalid or quota exceeded.",
    (
        "Try again later",
        "Add the book manually if needed",
    ),
)

QUALITY_TIPS: Dict[str, Tuple[str, ...]] = {
    "blurry": (
        "Hold the camera steady",
        "Wait for the camera to focus",
        "Move closer to the barcode",
        "Clean the camera lens",
    ),
    "lighting": (
        "Ensure good lighting on the barcode",
        "Avoid shadows on the barcode",
        "Use the flashlight button if available",
        "Avoid reflective surfaces",
    ),
    "angle": (
        "Hold the camera parallel to the barcode",
        "Center the barcode in the scanning area",
        "Avoid tilting the camera",
        "Keep the barcode flat if possible",
    ),
    "distance": (
        "Move the camera closer to the barcode",
        "Fill most of the scanning area with the barcode",
        "Don't get too close - keep some margin",
        "Try different distances for best focus",
    ),
}
_GENERIC_TIPS: Tuple[str, ...] = (
    "Ensure the barcode is clear and undamaged",
    "Use good lighting",
    "Hold the camera steady",
    "Keep the barcode centered",
)

RawError = Union[BaseException, ErrorKind, int, str, None]


def quality_tips(issue: str) -> Tuple[str, ...]:
    """Tips for improving scan quality for a given issue."""
    return QUALITY_TIPS.get((issue or "").lower(), _GENERIC_TIPS)


def build_error(kind: ErrorKind, message: Optional[_Message] = None) -> ScanningError:
    user_message, suggestions = message or CANONICAL_MESSAGES[kind]
    return ScanningError(
        kind=kind,
        user_message=user_message,
        suggestions=tuple(suggestions),
        retryable=RETRYABLE[kind],
    )


def describe(raw_error: RawError) -> str:
    """Lowercased text used for pattern matching."""
    if raw_error is None:
        return ""
    if isinstance(raw_error, BaseException):
        parts = [type(raw_error).__name__, str(raw_error)]
        reason = getattr(raw_error, "reason", None)
        if reason:
            parts.append(str(reason))
        return " ".join(parts).lower()
    return str(raw_error).lower()


def _contains(text: str, needles: Sequence[str]) -> bool:
    return any(needle in text for needle in needles)


def _classify_capture(raw_error: RawError) -> ScanningError:
    if isinstance(raw_error, InvalidUploadError):
        return build_error(ErrorKind.FORMAT_INVALID, _INVALID_UPLOAD)
    if isinstance(raw_error, PermissionError):
        return build_error(ErrorKind.PERMISSION_DENIED)
    if isinstance(raw_error, FileNotFoundError):
        return build_error(ErrorKind.DEVICE_UNAVAILABLE)

    text = describe(raw_error)
    if _contains(text, ("permission", "denied", "notallowed")):
        return build_error(ErrorKind.PERMISSION_DENIED)
    if _contains(text, ("notfound", "not found", "no camera", "no device")):
        return build_error(ErrorKind.DEVICE_UNAVAILABLE)
    if _contains(text, ("constraint", "overconstrained", "resolution")):
        return build_error(ErrorKind.CONSTRAINT_UNSATISFIED)
    if _contains(text, ("security", "https", "insecure")):
        return build_error(ErrorKind.DEVICE_UNAVAILABLE, _INSECURE_CONTEXT)
    if _contains(text, ("abort", "stopped", "in use", "notreadable", "busy")):
        return build_error(ErrorKind.DEVICE_UNAVAILABLE, _CAMERA_INTERRUPTED)
    return build_error(ErrorKind.DEVICE_UNAVAILABLE, _CAMERA_GENERIC)


def _classify_detection(raw_error: RawError, capture_mode: Optional[str]) -> ScanningError:
    if isinstance(raw_error, InvalidChecksumError):
        return build_error(ErrorKind.CHECKSUM_INVALID)
    if isinstance(raw_error, InvalidFormatError):
        return build_error(ErrorKind.FORMAT_INVALID)
    if isinstance(raw_error, InvalidUploadError):
        return build_error(ErrorKind.FORMAT_INVALID, _INVALID_UPLOAD)

    text = describe(raw_error)
    if _contains(text, ("checksum", "check digit")):
        return build_error(ErrorKind.CHECKSUM_INVALID)
    if _contains(text, ("format", "invalid")):
        return build_error(ErrorKind.FORMAT_INVALID)

    # Timeouts, "not found" results and anything unrecognised during
    # detection mean no usable barcode was read.
    if capture_mode == "camera":
        return build_error(ErrorKind.DECODE_TIMEOUT, _CAMERA_NO_BARCODE)
    return build_error(ErrorKind.DECODE_TIMEOUT)


def _classify_status(status: int) -> ScanningError:
    if status == 429:
        return build_error(ErrorKind.LOOKUP_RATE_LIMITED)
    if status == 403:
        return build_error(ErrorKind.LOOKUP_UNAVAILABLE, _AUTH_FAILED)
    if status == 400:
        return build_error(ErrorKind.FORMAT_INVALID, _BAD_QUERY)
    if status == 404:
        return build_error(ErrorKind.LOOKUP_NOT_FOUND)
    return build_error(ErrorKind.LOOKUP_UNAVAILABLE)


def _classify_lookup(raw_error: RawError) -> ScanningError:
    if isinstance(raw_error, BookNotFoundError):
        return build_error(ErrorKind.LOOKUP_NOT_FOUND)
    if isinstance(raw_error, LookupServiceError):
        return _classify_status(raw_error.status_code)
    if isinstance(raw_error, aiohttp.ClientResponseError):
        return _classify_status(raw_error.status)
    if isinstance(raw_error, bool):
        return build_error(ErrorKind.LOOKUP_UNAVAILABLE)
    if isinstance(raw_error, int):
        return _classify_status(raw_error)
    if isinstance(raw_error, (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError, OSError)):
        return build_error(ErrorKind.LOOKUP_NETWORK)

    text = describe(raw_error)
    if _contains(text, ("rate limit", "quota", "too many requests", "throttl")):
        return build_error(ErrorKind.LOOKUP_RATE_LIMITED)
    if _contains(text, ("network", "fetch", "connection", "timeout", "timed out")):
        return build_error(ErrorKind.LOOKUP_NETWORK)
    if _contains(text, ("not found", "404", "no results")):
        return build_error(ErrorKind.LOOKUP_NOT_FOUND)
    return build_error(ErrorKind.LOOKUP_UNAVAILABLE)


def classify(
    raw_error: RawError,
    context: ErrorContext,
    capture_mode: Optional[Any] = None,
) -> ScanningError:
    """Map a raw failure observed in ``context`` to a user-facing error.

    ``raw_error`` may be an exception, an :class:`ErrorKind` (returned with
    its canonical wording), an HTTP status code or free text.
    ``capture_mode`` only changes the wording of detection failures.
    """
    if isinstance(raw_error, ErrorKind):
        return build_error(raw_error)

    mode = getattr(capture_mode, "value", capture_mode)
    if context is ErrorContext.CAPTURE:
        return _classify_capture(raw_error)
    if context is ErrorContext.DETECTION:
        return _classify_detection(raw_error, mode)
    return _classify_lookup(raw_error)
