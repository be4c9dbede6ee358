from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Sequence, Union

from .model import CharacterStyleType, Paragraph, ParagraphStyle, RichText

DEFAULT_PARAGRAPH_DELIMITER = "\n"


class ParagraphAppearance(str, Enum):
    NORMAL = "NORMAL"
    QUOTE = "QUOTE"
    FOOTNOTE = "FOOTNOTE"
    FOOTNOTE_QUOTE = "FOOTNOTE_QUOTE"


class CharacterAppearance(str, Enum):
    EMPHASIS = "EMPHASIS"
    STRONG_EMPHASIS = "STRONG_EMPHASIS"
    MISSPELL = "MISSPELL"


_PARAGRAPH_APPEARANCES = {
    ParagraphStyle.QUOTE: ParagraphAppearance.QUOTE,
    ParagraphStyle.FOOTNOTE: ParagraphAppearance.FOOTNOTE,
    ParagraphStyle.FOOTNOTE_QUOTE: ParagraphAppearance.FOOTNOTE_QUOTE,
}

_CHARACTER_APPEARANCES = {
    CharacterStyleType.EMPHASIS: CharacterAppearance.EMPHASIS,
    CharacterStyleType.STRONG_EMPHASIS: CharacterAppearance.STRONG_EMPHASIS,
    CharacterStyleType.MISSPELL: CharacterAppearance.MISSPELL,
}


@dataclass(frozen=True)
class Indent:
    outer: int = 0
    inner: int = 0
    hanging_text: str = ""

    @property
    def is_default(self) -> bool:
        return self.outer == 0 and self.inner == 0 and self.hanging_text == ""


@dataclass(frozen=True)
class _Span:
    start: int
    end: int

    def __post_init__(self) -> None:
        assert 0 <= self.start < self.end, f"Empty or negative span [{self.start}, {self.end})"


@dataclass(frozen=True)
class ParagraphStyleSpan(_Span):
    appearance: ParagraphAppearance


@dataclass(frozen=True)
class IndentSpan(_Span):
    indent: Indent


ParagraphSpan = Union[ParagraphStyleSpan, IndentSpan]


@dataclass(frozen=True)
class CharacterSpan(_Span):
    appearance: CharacterAppearance


@dataclass(frozen=True)
class LinkSpan(_Span):
    rule_id: int


@dataclass
class StyledText:
    """Flat string plus spans addressed in that string."""

    string: str
    paragraph_spans: List[ParagraphSpan] = field(default_factory=list)
    character_spans: List[CharacterSpan] = field(default_factory=list)
    link_spans: List[LinkSpan] = field(default_factory=list)


def styled_text_from_rich_text(text: RichText) -> StyledText:
    return StyledText(
        text.string,
        character_spans=_character_spans(text, 0),
        link_spans=_link_spans(text, 0),
    )


def styled_text_from_paragraphs(
    paragraphs: Iterable[Paragraph],
    delimiter: str = DEFAULT_PARAGRAPH_DELIMITER,
) -> StyledText:
    """Join paragraphs with ``delimiter`` and shift their spans to global offsets.

    The delimiter follows every paragraph, the last one included. Paragraph
    spans cover the paragraph text only, never the delimiter; for each
    paragraph the indent span precedes the style span.
    """
    chunks: list[str] = []
    paragraph_spans: list[ParagraphSpan] = []
    character_spans: list[CharacterSpan] = []
    link_spans: list[LinkSpan] = []
    cursor = 0

    for paragraph in paragraphs:
        paragraph_spans.extend(_paragraph_spans(paragraph, cursor))
        character_spans.extend(_character_spans(paragraph.content, cursor))
        link_spans.extend(_link_spans(paragraph.content, cursor))
        chunks.append(paragraph.content.string)
        chunks.append(delimiter)
        cursor += len(paragraph.content.string) + len(delimiter)

    return StyledText("".join(chunks), paragraph_spans, character_spans, link_spans)


def split_with_blank_lines(paragraphs: Sequence[Paragraph]) -> list[Paragraph]:
    """Insert an empty paragraph between every pair of neighbours.

    The blank line takes the indent of the paragraph before it and a style
    chosen by ``intermediate_line_style``.
    """
    if not paragraphs:
        return []
    result: list[Paragraph] = []
    for current, following in zip(paragraphs, paragraphs[1:]):
        result.append(current)
        result.append(
            Paragraph(
                RichText(""),
                intermediate_line_style(current.style, following.style),
                current.outer_indent_level,
                current.inner_indent_level,
                current.hanging_text,
            )
        )
    result.append(paragraphs[-1])
    return result


def intermediate_line_style(first: ParagraphStyle, second: ParagraphStyle) -> ParagraphStyle:
    if first == second:
        return first
    if {first, second} == {ParagraphStyle.FOOTNOTE, ParagraphStyle.FOOTNOTE_QUOTE}:
        return ParagraphStyle.FOOTNOTE
    return ParagraphStyle.NORMAL


def _paragraph_spans(paragraph: Paragraph, offset: int) -> list[ParagraphSpan]:
    length = len(paragraph.content.string)
    if length == 0:
        # nothing to cover
        return []
    end = offset + length
    spans: list[ParagraphSpan] = []
    indent = Indent(paragraph.outer_indent_level, paragraph.inner_indent_level, paragraph.hanging_text)
    if not indent.is_default:
        spans.append(IndentSpan(offset, end, indent))
    appearance = _PARAGRAPH_APPEARANCES.get(paragraph.style)
    if appearance is not None:
        spans.append(ParagraphStyleSpan(offset, end, appearance))
    return spans


def _character_spans(text: RichText, offset: int) -> list[CharacterSpan]:
    return [
        CharacterSpan(offset + style.start, offset + style.end, _CHARACTER_APPEARANCES[style.style_type])
        for style in text.styles
    ]


def _link_spans(text: RichText, offset: int) -> list[LinkSpan]:
    return [LinkSpan(offset + link.start, offset + link.end, link.rule_id) for link in text.links]
