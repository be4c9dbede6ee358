from __future__ import annotations

import logging
import sqlite3

from .markup_json import markup_to_json
from .model import Book, Chapter, Part, Rule, Section
from .styled_text import (
    DEFAULT_PARAGRAPH_DELIMITER,
    split_with_blank_lines,
    styled_text_from_paragraphs,
    styled_text_from_rich_text,
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS parts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS chapters (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    part_id INTEGER NOT NULL REFERENCES parts(id),
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    chapter_id INTEGER NOT NULL REFERENCES chapters(id),
    name TEXT NOT NULL,
    name_markup TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS rules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    section_id INTEGER NOT NULL REFERENCES sections(id),
    annotation TEXT NOT NULL,
    annotation_markup TEXT NOT NULL,
    content TEXT NOT NULL,
    content_markup TEXT NOT NULL
);
"""


class BookStore:
    """Writes a parsed book into SQLite.

    Rows are inserted in document order, so rule ids match the 1-based rule
    numbers that links refer to.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        paragraph_delimiter: str = DEFAULT_PARAGRAPH_DELIMITER,
        blank_lines: bool = False,
    ):
        self.conn = conn
        self.paragraph_delimiter = paragraph_delimiter
        self.blank_lines = blank_lines

    def create_schema(self) -> None:
        with self.conn:
            self.conn.executescript(SCHEMA)

    def save_book(self, book: Book) -> None:
        with self.conn:
            for part in book.parts:
                self._save_part(part)
        logging.info("Stored %d parts", len(book.parts))

    def set_user_version(self, version: int) -> None:
        if version <= 0:
            raise ValueError(f"Illegal database version ({version})")
        # PRAGMA does not accept bound parameters
        self.conn.execute(f"PRAGMA user_version = {int(version)}")

    def user_version(self) -> int:
        return self.conn.execute("PRAGMA user_version").fetchone()[0]

    def _save_part(self, part: Part) -> None:
        cursor = self.conn.execute("INSERT INTO parts (name) VALUES (?)", (part.name,))
        for chapter in part.chapters:
            self._save_chapter(chapter, cursor.lastrowid)

    def _save_chapter(self, chapter: Chapter, part_id: int) -> None:
        cursor = self.conn.execute(
            "INSERT INTO chapters (part_id, name) VALUES (?, ?)",
            (part_id, chapter.name),
        )
        for section in chapter.sections:
            self._save_section(section, cursor.lastrowid)

    def _save_section(self, section: Section, chapter_id: int) -> None:
        name = styled_text_from_rich_text(section.name)
        cursor = self.conn.execute(
            "INSERT INTO sections (chapter_id, name, name_markup) VALUES (?, ?, ?)",
            (chapter_id, name.string, markup_to_json(name)),
        )
        logging.debug("Section %r: %d rules", name.string, len(section.rules))
        for rule in section.rules:
            self._save_rule(rule, cursor.lastrowid)

    def _save_rule(self, rule: Rule, section_id: int) -> None:
        paragraphs = split_with_blank_lines(rule.paragraphs) if self.blank_lines else rule.paragraphs
        content = styled_text_from_paragraphs(paragraphs, self.paragraph_delimiter)
        annotation = styled_text_from_rich_text(rule.annotation)
        self.conn.execute(
            "INSERT INTO rules (section_id, annotation, annotation_markup, content, content_markup) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                section_id,
                annotation.string,
                markup_to_json(annotation),
                content.string,
                markup_to_json(content),
            ),
        )
