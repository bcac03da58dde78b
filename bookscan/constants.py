"""Shared constants used across the scanner."""
from __future__ import annotations

# Decode engine pacing (seconds between stream decode attempts)
DEFAULT_SCAN_INTERVAL = 0.3

# Upper bound for decoding a single uploaded image
DEFAULT_IMAGE_DECODE_TIMEOUT = 10.0

# Book lookup
GOOGLE_BOOKS_URL = "https://www.googleapis.com/books/v1/volumes"
DEFAULT_LOOKUP_TIMEOUT = 10.0
DEFAULT_LOOKUP_MAX_RESULTS = 5
ISBN_QUERY_PREFIX = "isbn:"

# Uploads
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
ACCEPTED_IMAGE_TYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
)

# Diagnostics ring buffer size
DEBUG_LOG_SIZE = 5

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
