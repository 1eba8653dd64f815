"""Command-line interface for go-unexport."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import orjson

from run import FATAL_ERRORS, parse_identifiers, run_unexport

LOG_FORMAT = "unexport: %(message)s"


def configure_logging(verbose: bool) -> None:
    """Route all log records to stderr with the tool prefix."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unexport",
        description=(
            "Unexport the exported identifiers of a Go package that are not "
            "referenced by any other package of the module."
        ),
    )
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Go module root (default: .)",
    )
    parser.add_argument(
        "--package",
        default=None,
        help="Package import path to be unexported",
    )
    parser.add_argument(
        "--identifier",
        default=None,
        help=(
            "Comma-separated list of identifier names; "
            "if empty all identifiers are unexported"
        ),
    )
    parser.add_argument(
        "--dryrun",
        action="store_true",
        help="Show the change, but do not apply",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show more information. Useful for debugging.",
    )
    parser.add_argument(
        "--tags",
        default=None,
        help="Build tags to satisfy (comma or space separated)",
    )
    parser.add_argument(
        "--diff",
        action="store_true",
        help="Print a unified diff of every touched file",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the run summary as JSON on stdout",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    root = Path(args.root).expanduser().resolve()

    try:
        summary = run_unexport(
            root,
            args.package,
            parse_identifiers(args.identifier),
            dry_run=args.dryrun,
            verbose=args.verbose,
            tags=args.tags,
            diff=args.diff,
        )
    except FATAL_ERRORS as exc:
        sys.stderr.write(f"unexport: {exc}\n")
        return 1

    if args.json:
        sys.stdout.write(
            orjson.dumps(summary.to_dict(), option=orjson.OPT_INDENT_2).decode("utf-8")
        )
        sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
