from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Protocol

from lxml import etree

from .errors import MarkupSyntaxError, UnexpectedMarkupError

XML_WHITESPACE = " \t\r\n"


class TokenType(str, Enum):
    START_DOCUMENT = "START_DOCUMENT"
    END_DOCUMENT = "END_DOCUMENT"
    START_ELEMENT = "START_ELEMENT"
    END_ELEMENT = "END_ELEMENT"
    TEXT = "TEXT"


@dataclass(frozen=True)
class Location:
    """Source position of a token.

    Start tags carry the line lxml reports. Text and end tags are placed on
    the line where the preceding token's text ends, so a start tag whose
    attributes span several lines shifts them.
    """

    line: int | None = None
    column: int | None = None

    def __str__(self) -> str:
        if self.line is None:
            return "unknown location"
        if self.column is None:
            return f"line {self.line}"
        return f"line {self.line}, column {self.column}"


@dataclass(frozen=True)
class Token:
    type: TokenType
    name: str | None = None
    attrs: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    location: Location = Location()

    @property
    def is_start(self) -> bool:
        return self.type == TokenType.START_ELEMENT

    @property
    def is_end(self) -> bool:
        return self.type == TokenType.END_ELEMENT

    @property
    def is_text(self) -> bool:
        return self.type == TokenType.TEXT

    @property
    def is_whitespace(self) -> bool:
        return self.is_text and self.text.strip(XML_WHITESPACE) == ""

    def describe(self) -> str:
        if self.is_start:
            return f"<{self.name}>"
        if self.is_end:
            return f"</{self.name}>"
        return self.type.value


class TokenSource(Protocol):
    def peek(self) -> Token: ...

    def next(self) -> Token: ...


class TokenStream:
    """Pull cursor over an already tokenized document."""

    def __init__(self, tokens: Iterable[Token]):
        self._tokens: List[Token] = list(tokens)
        self._index = 0

    def peek(self) -> Token:
        if self._index >= len(self._tokens):
            raise UnexpectedMarkupError("Unexpected end of input", self._last_location())
        return self._tokens[self._index]

    def next(self) -> Token:
        token = self.peek()
        self._index += 1
        return token

    def _last_location(self) -> Location:
        if self._tokens:
            return self._tokens[-1].location
        return Location()


def tokenize_xml(data: bytes | str) -> list[Token]:
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not data.strip():
        raise MarkupSyntaxError("Malformed XML: document is empty", Location(1))
    parser = etree.XMLParser(remove_comments=True, remove_pis=True)
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as exc:
        line, column = exc.position if exc.position else (exc.lineno, None)
        raise MarkupSyntaxError(f"Malformed XML: {exc.msg}", Location(line, column), exc) from exc

    tokens: list[Token] = [Token(TokenType.START_DOCUMENT, location=Location(1))]
    _walk(root, tokens)
    tokens.append(Token(TokenType.END_DOCUMENT, location=tokens[-1].location))
    return tokens


def open_xml_stream(data: bytes | str) -> TokenStream:
    return TokenStream(tokenize_xml(data))


def _walk(element, tokens: list[Token]) -> None:
    location = Location(element.sourceline)
    name = etree.QName(element).localname
    attrs = {etree.QName(key).localname: value for key, value in element.attrib.items()}
    tokens.append(Token(TokenType.START_ELEMENT, name=name, attrs=attrs, location=location))
    if element.text:
        tokens.append(Token(TokenType.TEXT, text=element.text, location=location))
    for child in element:
        if isinstance(child.tag, str):
            _walk(child, tokens)
        if child.tail:
            tokens.append(Token(TokenType.TEXT, text=child.tail, location=_end_location(tokens)))
    tokens.append(Token(TokenType.END_ELEMENT, name=name, location=_end_location(tokens)))


def _end_location(tokens: list[Token]) -> Location:
    """Line where the last emitted token stops, i.e. where the next one starts."""
    last = tokens[-1]
    if last.is_text and last.location.line is not None:
        return Location(last.location.line + last.text.count("\n"))
    return Location(last.location.line)
