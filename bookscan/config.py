"""Configuration management for bookscan."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from bookscan.constants import (
    DEFAULT_IMAGE_DECODE_TIMEOUT,
    DEFAULT_LOOKUP_MAX_RESULTS,
    DEFAULT_LOOKUP_TIMEOUT,
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_SCAN_INTERVAL,
)
from bookscan.errors import ConfigurationError
from bookscan.models import ChecksumPolicy

# Load environment variables from .env file
load_dotenv()

_TRUE_VALUES = ("true", "1", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, received '{raw}'") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, received '{raw}'")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, received '{raw}'") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, received '{raw}'")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_policy(name: str, default: ChecksumPolicy) -> ChecksumPolicy:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return ChecksumPolicy(raw.strip().lower())
    except ValueError as exc:
        choices = ", ".join(p.value for p in ChecksumPolicy)
        raise ConfigurationError(f"{name} must be one of {choices}, received '{raw}'") from exc


class Settings:
    """Settings loaded from environment variables.

    Values are read when the instance is created, so tests can build a fresh
    ``Settings()`` after changing the environment.
    """

    def __init__(self) -> None:
        # Google Books API
        self.GOOGLE_BOOKS_API_KEY: Optional[str] = os.getenv("GOOGLE_BOOKS_API_KEY") or None
        self.LOOKUP_TIMEOUT: float = _env_float("BOOKSCAN_LOOKUP_TIMEOUT", DEFAULT_LOOKUP_TIMEOUT)
        self.LOOKUP_MAX_RESULTS: int = _env_int("BOOKSCAN_LOOKUP_MAX_RESULTS", DEFAULT_LOOKUP_MAX_RESULTS)

        # Scanning
        self.SCAN_INTERVAL: float = _env_float("BOOKSCAN_SCAN_INTERVAL", DEFAULT_SCAN_INTERVAL)
        self.IMAGE_DECODE_TIMEOUT: float = _env_float(
            "BOOKSCAN_IMAGE_DECODE_TIMEOUT", DEFAULT_IMAGE_DECODE_TIMEOUT
        )
        self.MAX_UPLOAD_BYTES: int = _env_int("BOOKSCAN_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
        self.CHECKSUM_POLICY: ChecksumPolicy = _env_policy(
            "BOOKSCAN_CHECKSUM_POLICY", ChecksumPolicy.PERMISSIVE
        )
        self.CAMERA_ENABLED: bool = _env_bool("BOOKSCAN_CAMERA_ENABLED", True)
        self.UPLOAD_ENABLED: bool = _env_bool("BOOKSCAN_UPLOAD_ENABLED", True)

        # Logging
        self.LOG_LEVEL: str = os.getenv("BOOKSCAN_LOG_LEVEL", "INFO").upper()
        log_file = os.getenv("BOOKSCAN_LOG_FILE")
        self.LOG_FILE: Optional[Path] = Path(log_file).expanduser() if log_file else None

    def __repr__(self) -> str:
        return (
            f"Settings(policy={self.CHECKSUM_POLICY.value}, "
            f"decode_timeout={self.IMAGE_DECODE_TIMEOUT}, "
            f"scan_interval={self.SCAN_INTERVAL})"
        )

