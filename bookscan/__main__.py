"""Entrypoint for ``python -m bookscan`` commands."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from bookscan.cli import parse_isbn, scan_image


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="bookscan")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    parse_parser = subparsers.add_parser(
        "parse",
        help="Classify and validate a raw barcode payload.",
    )
    parse_isbn.add_arguments(parse_parser)
    parse_parser.set_defaults(handler=parse_isbn.run)

    scan_parser = subparsers.add_parser(
        "scan-image",
        help="Decode a barcode photo and look the book up.",
    )
    scan_image.add_arguments(scan_parser)
    scan_parser.set_defaults(handler=scan_image.run)

    args = parser.parse_args(argv)
    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 1

    return handler(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
