"""Resolve a barcode photo to a book from the command line."""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import Optional, Sequence

from bookscan.config import Settings
from bookscan.convert import format_isbn
from bookscan.diagnostics import DebugLog
from bookscan.errors import ConfigurationError
from bookscan.logging_config import configure_logging
from bookscan.models import ScanMode, ScanSession, ScanStatus
from bookscan.session import ScanSessionController
from bookscan.vendors.google_books import GoogleBooksLookup
from bookscan.vendors.zxing_engine import ZXingImageDecoder


def add_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.add_argument("path", help="Image file containing the barcode.")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print the last scanner debug messages.",
    )
    return parser


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookscan scan-image",
        description="Decode a barcode photo and look the book up.",
    )
    add_arguments(parser)
    return parser


async def scan_file(
    data: bytes,
    content_type: Optional[str],
    settings: Settings,
    debug_log: Optional[DebugLog] = None,
) -> ScanSession:
    async with GoogleBooksLookup.from_settings(settings) as lookup:
        controller = ScanSessionController(
            lookup,
            image_decoder=ZXingImageDecoder(),
            settings=settings,
            debug_log=debug_log,
        )
        async with controller:
            if controller.mode is not ScanMode.UPLOAD:
                await controller.switch_mode(ScanMode.UPLOAD)
            return await controller.upload_image(data, content_type)


def _print_outcome(session: ScanSession) -> None:
    print(f"Status: {session.status.value}")
    if session.detected_isbn is not None:
        print(f"ISBN:   {format_isbn(session.detected_isbn.isbn)}")
    if session.book is not None:
        authors = ", ".join(session.book.authors) or "Unknown"
        print(f"Title:  {session.book.title}")
        print(f"Author: {authors}")
        if session.result_count > 1:
            print(f"({session.result_count} matches, showing the first)")
    if session.error is not None:
        print(session.error.user_message, file=sys.stderr)
        for suggestion in session.error.suggestions:
            print(f"  - {suggestion}", file=sys.stderr)


def run(namespace: argparse.Namespace) -> int:
    path = Path(namespace.path)
    if not path.is_file():
        print(f"Error: {path} is not a file", file=sys.stderr)
        return 2

    try:
        settings = Settings()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    debug_log = DebugLog() if namespace.debug else None
    content_type, _ = mimetypes.guess_type(path.name)

    session = asyncio.run(scan_file(path.read_bytes(), content_type, settings, debug_log))
    _print_outcome(session)

    if debug_log is not None:
        for message in debug_log.messages():
            print(message, file=sys.stderr)

    return 0 if session.status is ScanStatus.FOUND else 1


def main(argv: Sequence[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    return run(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
