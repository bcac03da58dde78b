"""Inspect how a raw barcode payload would be interpreted."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, Sequence

from bookscan.checksum import validate
from bookscan.convert import format_isbn, isbn10_to_isbn13, strip_prefix
from bookscan.models import ChecksumPolicy
from bookscan.symbology import clean_payload, extract_candidate


def add_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.add_argument("raw", help="Raw text produced by a barcode decoder.")
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Print the report as JSON.",
    )
    return parser


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookscan parse",
        description="Classify and validate a raw barcode payload.",
    )
    add_arguments(parser)
    return parser


def build_report(raw: str) -> Dict[str, Any]:
    candidate = extract_candidate(raw)
    report: Dict[str, Any] = {
        "raw": raw,
        "cleaned": clean_payload(raw),
        "symbology": None,
        "strict_valid": False,
        "permissive_valid": False,
        "formatted": None,
        "isbn10": None,
        "isbn13": None,
    }
    if candidate is None:
        return report

    digits = candidate.digits
    report["symbology"] = candidate.symbology.value
    report["strict_valid"] = validate(candidate, ChecksumPolicy.STRICT).checksum_valid
    report["permissive_valid"] = validate(candidate, ChecksumPolicy.PERMISSIVE).checksum_valid
    report["formatted"] = format_isbn(digits)
    if len(digits) == 10:
        report["isbn10"] = digits
        report["isbn13"] = isbn10_to_isbn13(digits)
    elif len(digits) == 13:
        report["isbn13"] = digits
        stripped = strip_prefix(digits)
        report["isbn10"] = stripped if stripped != digits else None
    return report


def run(namespace: argparse.Namespace) -> int:
    report = build_report(namespace.raw)
    if namespace.as_json:
        print(json.dumps(report, indent=2))
    else:
        width = max(len(key) for key in report)
        for key, value in report.items():
            print(f"{key.ljust(width)}  {value if value is not None else '-'}")

    if report["symbology"] is None:
        return 1
    return 0 if report["permissive_valid"] else 1


def main(argv: Sequence[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    return run(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
