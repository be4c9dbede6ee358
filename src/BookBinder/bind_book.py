from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from pathlib import Path

from . import book_parser
from .book_store import BookStore
from .config import BindSettings
from .errors import BindBookError, UnexpectedMarkupError
from .model import Book
from .utils import ensure_parent_dir, read_markup


def bind_book(
    input_path: str | Path,
    output_path: str | Path,
    database_version: int,
    settings: BindSettings | None = None,
) -> Book:
    """Parse the markup at ``input_path`` and write it to a new SQLite file."""
    input_path = Path(input_path)
    output_path = Path(output_path)
    settings = settings or BindSettings()

    if not input_path.is_file():
        raise BindBookError(f"File at {input_path.absolute()} is not a plain file")
    if output_path.exists():
        raise BindBookError(f"File at {output_path.absolute()} already exists, specify another output path")
    if database_version <= 0:
        raise BindBookError(f"Illegal database version ({database_version})")

    try:
        ensure_parent_dir(output_path)
    except OSError as exc:
        raise BindBookError(f"Failed to create parent directories for {output_path.absolute()}") from exc

    book = parse_book_file(input_path)

    try:
        with closing(sqlite3.connect(output_path)) as conn:
            store = BookStore(conn, settings.paragraph_delimiter, settings.blank_lines)
            store.create_schema()
            store.save_book(book)
            store.set_user_version(database_version)
    except (sqlite3.Error, OSError) as exc:
        output_path.unlink(missing_ok=True)
        raise BindBookError(f"Unable to write the database at {output_path.absolute()}") from exc
    return book


def parse_book_file(path: Path) -> Book:
    logging.info("Reading %s", path)
    data = read_markup(path)
    logging.debug("Markup length: %d bytes", len(data))
    try:
        book = book_parser.parse_book_markup(data)
    except UnexpectedMarkupError as exc:
        raise BindBookError("Unable to process the input file") from exc
    logging.info("Parsed %d parts, %d rules", len(book.parts), sum(1 for _ in book.iter_rules()))
    return book
