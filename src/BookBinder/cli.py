from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .bind_book import bind_book
from .config import load_settings
from .errors import BindBookError, ConfigError
from .utils import configure_logging, describe_error_chain


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError("Value must be greater than 0")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookbinder",
        description="Convert a rule-book XML file into a SQLite database.",
    )
    parser.add_argument("input", type=str, help="Path to the book XML file")
    parser.add_argument("output", type=str, help="Path of the database to create")
    parser.add_argument("user_version", type=_positive_int, help="Value for PRAGMA user_version")
    parser.add_argument("--config", type=str, help="YAML settings file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)
    input_path = Path(args.input).expanduser()
    output_path = Path(args.output).expanduser()

    try:
        settings = load_settings(Path(args.config).expanduser() if args.config else None)
        bind_book(input_path, output_path, args.user_version, settings)
    except (BindBookError, ConfigError) as exc:
        logging.error(describe_error_chain(exc))
        return 1

    logging.info("The book has been created at %s", output_path.absolute())
    return 0


if __name__ == "__main__":
    sys.exit(main())
