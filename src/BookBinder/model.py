from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class ParagraphStyle(str, Enum):
    NORMAL = "normal"
    QUOTE = "quote"
    FOOTNOTE = "footnote"
    FOOTNOTE_QUOTE = "footnoteQuote"


class CharacterStyleType(str, Enum):
    EMPHASIS = "emphasis"
    STRONG_EMPHASIS = "strong_emphasis"
    MISSPELL = "misspell"


@dataclass(frozen=True)
class CharacterStyle:
    start: int
    end: int
    style_type: CharacterStyleType

    @classmethod
    def emphasis(cls, start: int, end: int) -> "CharacterStyle":
        return cls(start, end, CharacterStyleType.EMPHASIS)

    @classmethod
    def strong_emphasis(cls, start: int, end: int) -> "CharacterStyle":
        return cls(start, end, CharacterStyleType.STRONG_EMPHASIS)

    @classmethod
    def misspell(cls, start: int, end: int) -> "CharacterStyle":
        return cls(start, end, CharacterStyleType.MISSPELL)


@dataclass(frozen=True)
class Link:
    start: int
    end: int
    rule_id: int


@dataclass(frozen=True)
class RichText:
    """Text of one markup fragment with styles and links local to it."""

    string: str
    styles: List[CharacterStyle] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)


@dataclass(frozen=True)
class Paragraph:
    content: RichText
    style: ParagraphStyle = ParagraphStyle.NORMAL
    outer_indent_level: int = 0
    inner_indent_level: int = 0
    hanging_text: str = ""


@dataclass(frozen=True)
class Rule:
    annotation: RichText
    paragraphs: List[Paragraph]


@dataclass(frozen=True)
class Section:
    name: RichText
    rules: List[Rule]


@dataclass(frozen=True)
class Chapter:
    name: str
    sections: List[Section]


@dataclass(frozen=True)
class Part:
    name: str
    chapters: List[Chapter]


@dataclass(frozen=True)
class Book:
    parts: List[Part]

    def iter_rules(self):
        """Yield rules in document order, which is also their id order."""
        for part in self.parts:
            for chapter in part.chapters:
                for section in chapter.sections:
                    yield from section.rules
