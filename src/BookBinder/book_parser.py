from __future__ import annotations

import re
from typing import Callable, Dict, List, TypeVar

from .errors import IllegalAttributeValueError, MissingAttributeError, UnexpectedMarkupError
from .model import (
    Book,
    Chapter,
    CharacterStyle,
    CharacterStyleType,
    Link,
    Paragraph,
    ParagraphStyle,
    Part,
    RichText,
    Rule,
    Section,
)
from .tokens import Token, TokenSource, TokenType, open_xml_stream

ELEMENT_BOOK = "book"
ELEMENT_PART = "part"
ELEMENT_CHAPTER = "chapter"
ELEMENT_SECTION = "section"
ELEMENT_NAME = "name"
ELEMENT_RULE = "rule"
ELEMENT_ANNOTATION = "annotation"
ELEMENT_CONTENT = "content"
ELEMENT_PARAGRAPH = "p"
ELEMENT_EMPHASIS = "e"
ELEMENT_STRONG_EMPHASIS = "s"
ELEMENT_MISSPELL = "m"
ELEMENT_LINK = "l"
ELEMENT_LINE_BREAK = "br"

ATTR_STYLE = "style"
ATTR_OUTER_INDENT = "outerIndent"
ATTR_INNER_INDENT = "innerIndent"
ATTR_HANGING_TEXT = "hangingText"
ATTR_RULE = "rule"

MAX_INDENT_LEVEL = 5

_STYLE_TAGS = {
    ELEMENT_EMPHASIS: CharacterStyleType.EMPHASIS,
    ELEMENT_STRONG_EMPHASIS: CharacterStyleType.STRONG_EMPHASIS,
    ELEMENT_MISSPELL: CharacterStyleType.MISSPELL,
}

_INTEGER = re.compile(r"[+-]?\d+")
# attribute integers are 32-bit signed
_MIN_INT = -(2**31)
_MAX_INT = 2**31 - 1

T = TypeVar("T")


def parse_book_markup(data: bytes | str) -> Book:
    return parse_book(open_xml_stream(data))


def parse_book(stream: TokenSource) -> Book:
    """Consume a whole document and return the validated book tree.

    Raises UnexpectedMarkupError on the first grammar violation; attribute
    problems are chained as the error's cause.
    """
    _consume_start_document(stream)
    book = _consume_start_element(stream, ELEMENT_BOOK)
    parts = _parse_list(stream, book, ELEMENT_PART, parse_part)
    _consume_end_element(stream, ELEMENT_BOOK)
    _consume_end_document(stream)
    return Book(parts=parts)


def parse_part(stream: TokenSource) -> Part:
    part = _consume_start_element(stream, ELEMENT_PART)
    name = parse_name(stream).string
    chapters = _parse_list(stream, part, ELEMENT_CHAPTER, parse_chapter)
    _consume_end_element(stream, ELEMENT_PART)
    return Part(name=name, chapters=chapters)


def parse_chapter(stream: TokenSource) -> Chapter:
    chapter = _consume_start_element(stream, ELEMENT_CHAPTER)
    name = parse_name(stream).string
    sections = _parse_list(stream, chapter, ELEMENT_SECTION, parse_section)
    _consume_end_element(stream, ELEMENT_CHAPTER)
    return Chapter(name=name, sections=sections)


def parse_section(stream: TokenSource) -> Section:
    section = _consume_start_element(stream, ELEMENT_SECTION)
    name = parse_name(stream)
    rules = _parse_list(stream, section, ELEMENT_RULE, parse_rule)
    _consume_end_element(stream, ELEMENT_SECTION)
    return Section(name=name, rules=rules)


def parse_name(stream: TokenSource) -> RichText:
    return _parse_text_element(stream, ELEMENT_NAME)


def parse_rule(stream: TokenSource) -> Rule:
    _consume_start_element(stream, ELEMENT_RULE)
    annotation = parse_rule_annotation(stream)
    paragraphs = parse_rule_content(stream)
    _consume_end_element(stream, ELEMENT_RULE)
    return Rule(annotation=annotation, paragraphs=paragraphs)


def parse_rule_annotation(stream: TokenSource) -> RichText:
    return _parse_text_element(stream, ELEMENT_ANNOTATION)


def parse_rule_content(stream: TokenSource) -> List[Paragraph]:
    content = _consume_start_element(stream, ELEMENT_CONTENT)
    paragraphs = _parse_list(stream, content, ELEMENT_PARAGRAPH, parse_paragraph)
    _consume_end_element(stream, ELEMENT_CONTENT)
    return paragraphs


def parse_paragraph(stream: TokenSource) -> Paragraph:
    element = _consume_start_element(stream, ELEMENT_PARAGRAPH)

    style = _read_attribute(element, "Illegal paragraph style", _paragraph_style)
    outer_indent = _read_attribute(
        element, "Illegal outer indent level", lambda attrs: _indent_level(attrs, ATTR_OUTER_INDENT)
    )
    inner_indent = _read_attribute(
        element, "Illegal inner indent level", lambda attrs: _indent_level(attrs, ATTR_INNER_INDENT)
    )
    hanging_text = element.attrs.get(ATTR_HANGING_TEXT, "")

    content = parse_styled_text(stream)
    _consume_end_element(stream, ELEMENT_PARAGRAPH)

    return Paragraph(
        content=content,
        style=style,
        outer_indent_level=outer_indent,
        inner_indent_level=inner_indent,
        hanging_text=hanging_text,
    )


def parse_styled_text(stream: TokenSource) -> RichText:
    """Read mixed text, line breaks, style spans and links up to the parent's end tag."""
    first = stream.peek()
    if first.is_end:
        raise UnexpectedMarkupError("Text must not be empty", first.location)

    chunks: list[str] = []
    styles: list[CharacterStyle] = []
    links: list[Link] = []
    offset = 0
    while not stream.peek().is_end:
        token = stream.peek()
        if token.is_text:
            text = stream.next().text
        elif _is_line_break(token):
            text = parse_line_break(stream)
        elif _is_style_start(token):
            text, style_type = parse_styled_substring(stream)
            styles.append(CharacterStyle(offset, offset + len(text), style_type))
        elif _is_link_start(token):
            text, rule_id = parse_link(stream)
            links.append(Link(offset, offset + len(text), rule_id))
        else:
            raise UnexpectedMarkupError(f"Unexpected styled text element {token.describe()}", token.location)
        chunks.append(text)
        offset += len(text)
    return RichText("".join(chunks), styles=styles, links=links)


def parse_styled_substring(stream: TokenSource) -> tuple[str, CharacterStyleType]:
    element = _consume_start_element(stream)
    style_type = _STYLE_TAGS.get(element.name)
    if style_type is None:
        raise UnexpectedMarkupError(f"Unknown style tag <{element.name}>", element.location)
    text = _parse_span_text(stream, element)
    _consume_end_element(stream, element.name)
    return text, style_type


def parse_link(stream: TokenSource) -> tuple[str, int]:
    element = _consume_start_element(stream, ELEMENT_LINK)
    try:
        rule_id = _referenced_rule_id(element.attrs)
    except MissingAttributeError as exc:
        raise UnexpectedMarkupError("Missing reference", element.location, exc) from exc
    except IllegalAttributeValueError as exc:
        raise UnexpectedMarkupError("Illegal reference value", element.location, exc) from exc
    text = _parse_span_text(stream, element)
    _consume_end_element(stream, ELEMENT_LINK)
    return text, rule_id


def parse_line_break(stream: TokenSource) -> str:
    _consume_start_element(stream, ELEMENT_LINE_BREAK)
    _consume_end_element(stream, ELEMENT_LINE_BREAK)
    return "\n"


def _parse_text_element(stream: TokenSource, name: str) -> RichText:
    _consume_start_element(stream, name)
    text = parse_styled_text(stream)
    _consume_end_element(stream, name)
    return text


def _parse_span_text(stream: TokenSource, element: Token) -> str:
    chunks: list[str] = []
    while not stream.peek().is_end:
        token = stream.peek()
        if token.is_text:
            chunks.append(stream.next().text)
        elif _is_line_break(token):
            chunks.append(parse_line_break(stream))
        elif _is_style_start(token):
            raise UnexpectedMarkupError(
                f"Style tags must not be nested, found <{token.name}> inside <{element.name}>", token.location
            )
        else:
            raise UnexpectedMarkupError(
                f"Unexpected element {token.describe()} inside <{element.name}>", token.location
            )
    if not chunks:
        raise UnexpectedMarkupError(f"<{element.name}> must not be empty", element.location)
    return "".join(chunks)


def _parse_list(stream: TokenSource, container: Token, item_name: str, parse_item: Callable[[TokenSource], T]) -> List[T]:
    _skip_whitespace(stream)
    if stream.peek().is_end:
        raise UnexpectedMarkupError(
            f"<{container.name}> must contain at least one <{item_name}>", container.location
        )
    items: List[T] = []
    while True:
        items.append(parse_item(stream))
        _skip_whitespace(stream)
        if stream.peek().is_end:
            return items


def _read_attribute(element: Token, message: str, reader: Callable[[Dict[str, str]], T]) -> T:
    try:
        return reader(element.attrs)
    except (MissingAttributeError, IllegalAttributeValueError) as exc:
        raise UnexpectedMarkupError(f"{message}: {exc}", element.location, exc) from exc


def _paragraph_style(attrs: Dict[str, str]) -> ParagraphStyle:
    value = attrs.get(ATTR_STYLE, ParagraphStyle.NORMAL.value)
    try:
        return ParagraphStyle(value)
    except ValueError:
        raise IllegalAttributeValueError(f"Illegal '{ATTR_STYLE}' attribute value {value!r}") from None


def _indent_level(attrs: Dict[str, str], name: str) -> int:
    value = attrs.get(name)
    if value is None:
        return 0
    level = _parse_int(value)
    if level is None:
        raise IllegalAttributeValueError(f"Illegal '{name}' attribute value {value!r}, it must be an integer")
    if not 0 <= level <= MAX_INDENT_LEVEL:
        raise IllegalAttributeValueError(
            f"Illegal '{name}' attribute value {level}, it must be in [0..{MAX_INDENT_LEVEL}]"
        )
    return level


def _referenced_rule_id(attrs: Dict[str, str]) -> int:
    if ATTR_RULE not in attrs:
        raise MissingAttributeError(f"Missing attribute '{ATTR_RULE}'")
    value = attrs[ATTR_RULE]
    rule_id = _parse_int(value)
    if rule_id is None:
        raise IllegalAttributeValueError(f"Illegal '{ATTR_RULE}' attribute value {value!r}, it must be an integer")
    if rule_id < 1:
        raise IllegalAttributeValueError(f"Illegal '{ATTR_RULE}' attribute value {rule_id}, it must be >= 1")
    return rule_id


def _parse_int(value: str) -> int | None:
    if not _INTEGER.fullmatch(value):
        return None
    number = int(value)
    if not _MIN_INT <= number <= _MAX_INT:
        return None
    return number


def _is_style_start(token: Token) -> bool:
    return token.is_start and token.name in _STYLE_TAGS


def _is_link_start(token: Token) -> bool:
    return token.is_start and token.name == ELEMENT_LINK


def _is_line_break(token: Token) -> bool:
    return token.is_start and token.name == ELEMENT_LINE_BREAK


def _skip_whitespace(stream: TokenSource) -> None:
    while stream.peek().is_whitespace:
        stream.next()


def _consume_start_document(stream: TokenSource) -> None:
    token = stream.next()
    if token.type != TokenType.START_DOCUMENT:
        raise UnexpectedMarkupError(f"A START_DOCUMENT was expected but it was {token.describe()}", token.location)


def _consume_end_document(stream: TokenSource) -> None:
    _skip_whitespace(stream)
    token = stream.next()
    if token.type != TokenType.END_DOCUMENT:
        raise UnexpectedMarkupError(f"An END_DOCUMENT was expected but it was {token.describe()}", token.location)


def _consume_start_element(stream: TokenSource, required_name: str | None = None) -> Token:
    _skip_whitespace(stream)
    token = stream.next()
    if not token.is_start:
        expected = f"A <{required_name}> element" if required_name else "A start element"
        raise UnexpectedMarkupError(f"{expected} was expected but it was {token.describe()}", token.location)
    if required_name is not None and token.name != required_name:
        raise UnexpectedMarkupError(
            f"A <{required_name}> element was expected but it was <{token.name}>", token.location
        )
    return token


def _consume_end_element(stream: TokenSource, required_name: str) -> Token:
    _skip_whitespace(stream)
    token = stream.next()
    if not token.is_end:
        raise UnexpectedMarkupError(
            f"A </{required_name}> element was expected but it was {token.describe()}", token.location
        )
    if token.name != required_name:
        raise UnexpectedMarkupError(
            f"A </{required_name}> element was expected but it was </{token.name}>", token.location
        )
    return token
