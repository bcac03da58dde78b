"""Tests for failure classification."""

import asyncio

import aiohttp
import pytest

from bookscan.errors import (
    CANONICAL_MESSAGES,
    QUALITY_TIPS,
    RETRYABLE,
    BarcodeNotFoundError,
    BookNotFoundError,
    CaptureError,
    DecodeTimeoutError,
    InvalidChecksumError,
    InvalidFormatError,
    InvalidUploadError,
    LookupServiceError,
    classify,
    quality_tips,
)
from bookscan.models import ErrorContext, ErrorKind, ScanMode

pytestmark = pytest.mark.unit


def test_every_kind_has_a_descriptor():
    assert len(ErrorKind) == 10
    assert set(RETRYABLE) == set(ErrorKind)
    assert set(CANONICAL_MESSAGES) == set(ErrorKind)


@pytest.mark.parametrize("kind", list(ErrorKind))
def test_kind_input_returns_canonical_descriptor(kind):
    for context in ErrorContext:
        error = classify(kind, context)
        assert error.kind is kind
        assert error.user_message
        assert len(error.suggestions) >= 1
        assert error.retryable is RETRYABLE[kind]


def test_retryable_flags():
    assert RETRYABLE[ErrorKind.LOOKUP_NOT_FOUND] is False
    assert RETRYABLE[ErrorKind.DEVICE_UNAVAILABLE] is False
    assert RETRYABLE[ErrorKind.CHECKSUM_INVALID] is True
    assert RETRYABLE[ErrorKind.LOOKUP_RATE_LIMITED] is True


# ============================================================================
# Capture
# ============================================================================

@pytest.mark.parametrize(
    "raw, kind",
    [
        (PermissionError("denied"), ErrorKind.PERMISSION_DENIED),
        (CaptureError("Permission denied by user", reason="NotAllowedError"), ErrorKind.PERMISSION_DENIED),
        (CaptureError("Requested device not found", reason="NotFoundError"), ErrorKind.DEVICE_UNAVAILABLE),
        (FileNotFoundError("/dev/video0"), ErrorKind.DEVICE_UNAVAILABLE),
        (CaptureError("Cannot satisfy", reason="OverconstrainedError"), ErrorKind.CONSTRAINT_UNSATISFIED),
        ("camera requires https", ErrorKind.DEVICE_UNAVAILABLE),
        (CaptureError("Camera is already in use", reason="NotReadableError"), ErrorKind.DEVICE_UNAVAILABLE),
        (RuntimeError("something odd"), ErrorKind.DEVICE_UNAVAILABLE),
    ],
)
def test_capture_classification(raw, kind):
    assert classify(raw, ErrorContext.CAPTURE).kind is kind


def test_insecure_context_wording():
    error = classify(CaptureError("Blocked", reason="SecurityError"), ErrorContext.CAPTURE)
    assert error.kind is ErrorKind.DEVICE_UNAVAILABLE
    assert "secure" in error.user_message.lower()
    assert any("HTTPS" in s for s in error.suggestions)


def test_invalid_upload_is_format_invalid():
    error = classify(InvalidUploadError("Unsupported image type"), ErrorContext.CAPTURE)
    assert error.kind is ErrorKind.FORMAT_INVALID
    assert "JPEG" in error.user_message


# ============================================================================
# Detection
# ============================================================================

def test_detection_checksum_and_format():
    assert classify(InvalidChecksumError("0306406151"), ErrorContext.DETECTION).kind is ErrorKind.CHECKSUM_INVALID
    assert classify(InvalidFormatError("No ISBN"), ErrorContext.DETECTION).kind is ErrorKind.FORMAT_INVALID
    assert classify("bad check digit", ErrorContext.DETECTION).kind is ErrorKind.CHECKSUM_INVALID


def test_detection_timeout_wording_depends_on_mode():
    upload = classify(DecodeTimeoutError("slow"), ErrorContext.DETECTION, ScanMode.UPLOAD)
    camera = classify(BarcodeNotFoundError("none"), ErrorContext.DETECTION, ScanMode.CAMERA)

    assert upload.kind is camera.kind is ErrorKind.DECODE_TIMEOUT
    assert upload.user_message == "No barcode found in the uploaded image."
    assert camera.user_message == "No barcode detected in camera view."
    assert upload.retryable and camera.retryable


# ============================================================================
# Lookup
# ============================================================================

@pytest.mark.parametrize(
    "status, kind",
    [
        (429, ErrorKind.LOOKUP_RATE_LIMITED),
        (403, ErrorKind.LOOKUP_UNAVAILABLE),
        (400, ErrorKind.FORMAT_INVALID),
        (404, ErrorKind.LOOKUP_NOT_FOUND),
        (500, ErrorKind.LOOKUP_UNAVAILABLE),
        (503, ErrorKind.LOOKUP_UNAVAILABLE),
    ],
)
def test_lookup_status_mapping(status, kind):
    assert classify(LookupServiceError(status), ErrorContext.LOOKUP).kind is kind
    assert classify(status, ErrorContext.LOOKUP).kind is kind


def test_lookup_auth_failure_wording():
    error = classify(LookupServiceError(403, "forbidden"), ErrorContext.LOOKUP)
    assert "API key" in error.user_message


def test_lookup_transport_errors_are_network():
    assert classify(aiohttp.ClientConnectionError("reset"), ErrorContext.LOOKUP).kind is ErrorKind.LOOKUP_NETWORK
    assert classify(asyncio.TimeoutError(), ErrorContext.LOOKUP).kind is ErrorKind.LOOKUP_NETWORK
    assert classify(ConnectionResetError(), ErrorContext.LOOKUP).kind is ErrorKind.LOOKUP_NETWORK


@pytest.mark.parametrize(
    "text, kind",
    [
        ("Rate limit exceeded", ErrorKind.LOOKUP_RATE_LIMITED),
        ("Daily quota used up", ErrorKind.LOOKUP_RATE_LIMITED),
        ("Failed to fetch", ErrorKind.LOOKUP_NETWORK),
        ("network unreachable", ErrorKind.LOOKUP_NETWORK),
        ("404 page", ErrorKind.LOOKUP_NOT_FOUND),
        ("boom", ErrorKind.LOOKUP_UNAVAILABLE),
    ],
)
def test_lookup_text_patterns(text, kind):
    assert classify(text, ErrorContext.LOOKUP).kind is kind


def test_book_not_found_offers_manual_entry():
    error = classify(BookNotFoundError("isbn:9780306406157"), ErrorContext.LOOKUP)
    assert error.kind is ErrorKind.LOOKUP_NOT_FOUND
    assert error.retryable is False
    assert error.suggestions[0] == "Add the book manually with its details"


def test_lookup_service_error_truncates_body():
    exc = LookupServiceError(500, "oops", "x" * 2000)
    assert len(exc.body) == 500
    assert exc.status_code == 500


def test_quality_tips():
    assert quality_tips("Blurry") == QUALITY_TIPS["blurry"]
    assert len(quality_tips("glare")) == 4
    assert quality_tips("") == quality_tips("unknown")
