import textwrap

import pytest

from BookBinder import book_parser
from BookBinder.errors import (
    IllegalAttributeValueError,
    MarkupSyntaxError,
    MissingAttributeError,
    UnexpectedMarkupError,
)
from BookBinder.model import (
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
from BookBinder.tokens import Location, Token, TokenStream, TokenType, open_xml_stream, tokenize_xml


def _stream(xml: str, skip: int = 1) -> TokenStream:
    stream = open_xml_stream(textwrap.dedent(xml).strip())
    for _ in range(skip):
        stream.next()
    return stream


def _text_stream(inner: str) -> TokenStream:
    # skip START_DOCUMENT and the <test> wrapper
    return _stream(f"<test>{inner}</test>", skip=2)


RULE_XML = """
    <rule>
        <annotation>Annotation</annotation>
        <content>
            <p>Paragraph 1</p>
        </content>
    </rule>
"""

EXPECTED_RULE = Rule(RichText("Annotation"), [Paragraph(RichText("Paragraph 1"))])


@pytest.mark.parametrize("tag,style_type", [
    ("e", CharacterStyleType.EMPHASIS),
    ("s", CharacterStyleType.STRONG_EMPHASIS),
    ("m", CharacterStyleType.MISSPELL),
])
@pytest.mark.parametrize("text", ["\n", " ", "Emphasized text", " Emphasized text "])
def test_style_span_keeps_text_verbatim(tag, style_type, text):
    stream = _stream(f"<{tag}>{text}</{tag}>")
    assert book_parser.parse_styled_substring(stream) == (text, style_type)


def test_empty_style_span_is_rejected():
    with pytest.raises(UnexpectedMarkupError):
        book_parser.parse_styled_substring(_stream("<e></e>"))


@pytest.mark.parametrize("text", ["\n", " ", "Link text", " Link text "])
def test_link_content(text):
    stream = _stream(f'<l rule="1">{text}</l>')
    assert book_parser.parse_link(stream) == (text, 1)


@pytest.mark.parametrize("rule_id", [1, 2, 3, 5, 10, 100])
def test_link_destinations(rule_id):
    stream = _stream(f'<l rule="{rule_id}">Content</l>')
    assert book_parser.parse_link(stream) == ("Content", rule_id)


def test_largest_link_destination():
    stream = _stream('<l rule="2147483647">Content</l>')
    assert book_parser.parse_link(stream) == ("Content", 2147483647)


def test_empty_link_is_rejected():
    with pytest.raises(UnexpectedMarkupError):
        book_parser.parse_link(_stream('<l rule="1"></l>'))


def test_link_without_rule_reports_missing_attribute():
    with pytest.raises(UnexpectedMarkupError) as excinfo:
        book_parser.parse_link(_stream("<l>Content</l>"))
    assert isinstance(excinfo.value.__cause__, MissingAttributeError)
    assert excinfo.value.message == "Missing reference"


@pytest.mark.parametrize("rule_id", ["", "str", "10.1", "0", "-1", "abc", "2147483648", "99999999999999999999"])
def test_link_with_bad_rule_reports_illegal_value(rule_id):
    with pytest.raises(UnexpectedMarkupError) as excinfo:
        book_parser.parse_link(_stream(f'<l rule="{rule_id}">Content</l>'))
    assert isinstance(excinfo.value.__cause__, IllegalAttributeValueError)
    assert excinfo.value.message == "Illegal reference value"
    assert excinfo.value.location == Location(1)


@pytest.mark.parametrize("text", [" ", "\n", "Text", "Te xt\nText\n"])
def test_plain_text(text):
    assert book_parser.parse_styled_text(_text_stream(text)) == RichText(text)


def test_styled_text_offsets():
    stream = _text_stream('<e>01</e>23<s>45</s>67<m>89</m>01<l rule="1">23</l>')

    output = book_parser.parse_styled_text(stream)

    styles = [
        CharacterStyle.emphasis(0, 2),
        CharacterStyle.strong_emphasis(4, 6),
        CharacterStyle.misspell(8, 10),
    ]
    assert output == RichText("01234567890123", styles, [Link(12, 14, 1)])


def test_empty_text_is_rejected():
    with pytest.raises(UnexpectedMarkupError):
        book_parser.parse_styled_text(_text_stream(""))


def test_nested_style_tags_are_rejected():
    with pytest.raises(UnexpectedMarkupError, match="must not be nested"):
        book_parser.parse_styled_text(_text_stream("<e><m>Text</m></e>"))


def test_style_inside_link_is_rejected():
    with pytest.raises(UnexpectedMarkupError):
        book_parser.parse_styled_text(_text_stream('<l rule="1"><e>Text</e></l>'))


def test_unknown_element_in_text_is_rejected():
    with pytest.raises(UnexpectedMarkupError, match="<x>"):
        book_parser.parse_styled_text(_text_stream("Text <x>more</x>"))


@pytest.mark.parametrize("markup", ["<br></br>", "<br/>", "<br> </br>"])
def test_line_break_becomes_newline(markup):
    assert book_parser.parse_styled_text(_text_stream(markup)) == RichText("\n")


def test_line_break_with_text_is_rejected():
    with pytest.raises(UnexpectedMarkupError):
        book_parser.parse_styled_text(_text_stream("<br>Text</br>"))


def test_line_break_between_text():
    assert book_parser.parse_styled_text(_text_stream("Line1<br/>Line2")) == RichText("Line1\nLine2")


def test_line_break_inside_style_extends_span():
    output = book_parser.parse_styled_text(_text_stream("<e>Line1<br/>Line2</e>"))
    assert output == RichText("Line1\nLine2", [CharacterStyle(0, 11, CharacterStyleType.EMPHASIS)])


def test_line_break_inside_link_extends_span():
    output = book_parser.parse_styled_text(_text_stream('<l rule="1">Line1<br/>Line2</l>'))
    assert output == RichText("Line1\nLine2", links=[Link(0, 11, 1)])


def test_paragraph_defaults():
    output = book_parser.parse_paragraph(_stream("<p>Paragraph content</p>"))
    assert output == Paragraph(RichText("Paragraph content"), ParagraphStyle.NORMAL, 0, 0, "")


@pytest.mark.parametrize("value,style", [
    ("normal", ParagraphStyle.NORMAL),
    ("quote", ParagraphStyle.QUOTE),
    ("footnote", ParagraphStyle.FOOTNOTE),
    ("footnoteQuote", ParagraphStyle.FOOTNOTE_QUOTE),
])
def test_paragraph_styles(value, style):
    output = book_parser.parse_paragraph(_stream(f'<p style="{value}">Paragraph content</p>'))
    assert output == Paragraph(RichText("Paragraph content"), style)


def test_unknown_paragraph_style_is_rejected():
    with pytest.raises(UnexpectedMarkupError) as excinfo:
        book_parser.parse_paragraph(_stream('<p style="some_unknown_style">Paragraph content</p>'))
    assert isinstance(excinfo.value.__cause__, IllegalAttributeValueError)


@pytest.mark.parametrize("indent", [0, 1, 2, 3, 4, 5])
def test_outer_indent(indent):
    output = book_parser.parse_paragraph(_stream(f'<p outerIndent="{indent}">Paragraph content</p>'))
    assert output == Paragraph(RichText("Paragraph content"), outer_indent_level=indent)


@pytest.mark.parametrize("indent", [0, 1, 2, 3, 4, 5])
def test_inner_indent(indent):
    output = book_parser.parse_paragraph(_stream(f'<p innerIndent="{indent}">Paragraph content</p>'))
    assert output == Paragraph(RichText("Paragraph content"), inner_indent_level=indent)


@pytest.mark.parametrize("attr", ["outerIndent", "innerIndent"])
@pytest.mark.parametrize("value", ["-10", "-1", "6", "10", "one", "1.5", ""])
def test_illegal_indent_is_rejected(attr, value):
    with pytest.raises(UnexpectedMarkupError) as excinfo:
        book_parser.parse_paragraph(_stream(f'<p {attr}="{value}">Paragraph content</p>'))
    assert isinstance(excinfo.value.__cause__, IllegalAttributeValueError)


@pytest.mark.parametrize("hanging_text", ["", "1. ", "1) ", "f) "])
def test_hanging_text(hanging_text):
    output = book_parser.parse_paragraph(_stream(f'<p hangingText="{hanging_text}">Paragraph content</p>'))
    assert output == Paragraph(RichText("Paragraph content"), hanging_text=hanging_text)


def test_rule_annotation():
    stream = _stream("<annotation><e>01</e>23<s>45</s>67<m>89</m></annotation>")
    assert book_parser.parse_rule_annotation(stream) == RichText(
        "0123456789",
        [
            CharacterStyle.emphasis(0, 2),
            CharacterStyle.strong_emphasis(4, 6),
            CharacterStyle.misspell(8, 10),
        ],
    )


def test_empty_annotation_is_rejected():
    with pytest.raises(UnexpectedMarkupError):
        book_parser.parse_rule_annotation(_stream("<annotation></annotation>"))


def test_rule_content():
    stream = _stream("""
        <content>
            <p>Paragraph 1</p>
            <p>Paragraph 2</p>
        </content>
    """)
    assert book_parser.parse_rule_content(stream) == [
        Paragraph(RichText("Paragraph 1")),
        Paragraph(RichText("Paragraph 2")),
    ]


@pytest.mark.parametrize("xml", ["<content></content>", "<content>\n  \n</content>"])
def test_empty_content_is_rejected(xml):
    with pytest.raises(UnexpectedMarkupError, match="at least one <p>"):
        book_parser.parse_rule_content(_stream(xml))


def test_rule():
    assert book_parser.parse_rule(_stream(RULE_XML)) == EXPECTED_RULE


@pytest.mark.parametrize("xml", [
    "<rule></rule>",
    "<rule><content><p>Paragraph 1</p></content></rule>",
    "<rule><annotation>Annotation</annotation></rule>",
])
def test_incomplete_rule_is_rejected(xml):
    with pytest.raises(UnexpectedMarkupError):
        book_parser.parse_rule(_stream(xml))


def test_section():
    stream = _stream(f"<section><name>Section 1</name>{RULE_XML}</section>")
    assert book_parser.parse_section(stream) == Section(RichText("Section 1"), [EXPECTED_RULE])


@pytest.mark.parametrize("xml", [
    f"<section>{RULE_XML}</section>",
    f"<section><name></name>{RULE_XML}</section>",
    "<section><name>Section 1</name></section>",
])
def test_incomplete_section_is_rejected(xml):
    with pytest.raises(UnexpectedMarkupError):
        book_parser.parse_section(_stream(xml))


def test_chapter_name_is_plain():
    stream = _stream(f"""
        <chapter>
            <name>Chapter <e>1</e></name>
            <section><name>Section 1</name>{RULE_XML}</section>
        </chapter>
    """)
    output = book_parser.parse_chapter(stream)
    assert output == Chapter("Chapter 1", [Section(RichText("Section 1"), [EXPECTED_RULE])])


def test_part_without_chapters_is_rejected():
    stream = _stream("""
        <part>
            <name>Part 1</name>
        </part>
    """)
    with pytest.raises(UnexpectedMarkupError, match="at least one <chapter>") as excinfo:
        book_parser.parse_part(stream)
    assert excinfo.value.location == Location(1)


@pytest.mark.parametrize("xml", ["<chapter><name>Chapter 1</name></chapter>", "<chapter>\n<name>Chapter 1</name>\n</chapter>"])
def test_chapter_without_sections_is_rejected(xml):
    with pytest.raises(UnexpectedMarkupError, match="at least one <section>") as excinfo:
        book_parser.parse_chapter(_stream(xml))
    assert excinfo.value.location == Location(1)


@pytest.mark.parametrize("parse,xml", [
    (book_parser.parse_part, "<part><name></name><chapter/></part>"),
    (book_parser.parse_chapter, "<chapter><name></name><section/></chapter>"),
])
def test_empty_part_or_chapter_name_is_rejected(parse, xml):
    with pytest.raises(UnexpectedMarkupError, match="Text must not be empty"):
        parse(_stream(xml))


@pytest.mark.parametrize("xml", ["<p></p>", "<p/>", '<p style="quote"></p>'])
def test_empty_paragraph_is_rejected(xml):
    with pytest.raises(UnexpectedMarkupError, match="Text must not be empty"):
        book_parser.parse_paragraph(_stream(xml))


def test_text_after_multiline_element_is_located_at_its_end():
    tokens = tokenize_xml("<a><b>x\ny\nz</b>tail</a>")

    tail = next(token for token in tokens if token.is_text and token.text == "tail")
    end_b = next(token for token in tokens if token.is_end and token.name == "b")

    assert end_b.location == Location(3)
    assert tail.location == Location(3)


BOOK_XML = f"""
    <?xml version="1.0" encoding="UTF-8"?>
    <book>
        <part>
            <name>Part 1</name>
            <chapter>
                <name>Chapter 1</name>
                <section>
                    <name>Section 1</name>
                    {RULE_XML}
                </section>
            </chapter>
        </part>
    </book>
"""


def test_book():
    output = book_parser.parse_book_markup(textwrap.dedent(BOOK_XML).strip())

    sections = [Section(RichText("Section 1"), [EXPECTED_RULE])]
    assert output == Book([Part("Part 1", [Chapter("Chapter 1", sections)])])


@pytest.mark.parametrize("xml", [
    '<?xml version="1.0" encoding="UTF-8"?>\n<book/>',
    '<?xml version="1.0" encoding="UTF-8"?>\n<book></book>',
    '<?xml version="1.0" encoding="UTF-8"?>\n<book>\n</book>',
])
def test_empty_book_is_rejected(xml):
    with pytest.raises(UnexpectedMarkupError, match="at least one <part>") as excinfo:
        book_parser.parse_book_markup(xml)
    assert excinfo.value.location == Location(2)


def test_wrong_root_is_rejected():
    with pytest.raises(UnexpectedMarkupError, match="A <book> element was expected"):
        book_parser.parse_book_markup("<library></library>")


@pytest.mark.parametrize("data", ["", "<book>", "<book><part></book>"])
def test_malformed_xml_is_reported(data):
    with pytest.raises(MarkupSyntaxError):
        book_parser.parse_book_markup(data)


def test_parser_runs_on_hand_built_tokens():
    tokens = [
        Token(TokenType.START_DOCUMENT),
        Token(TokenType.START_ELEMENT, name="p", attrs={"style": "quote", "hangingText": "1) "}),
        Token(TokenType.TEXT, text="Quoted "),
        Token(TokenType.START_ELEMENT, name="l", attrs={"rule": "7"}),
        Token(TokenType.TEXT, text="rule"),
        Token(TokenType.END_ELEMENT, name="l"),
        Token(TokenType.END_ELEMENT, name="p"),
        Token(TokenType.END_DOCUMENT),
    ]
    stream = TokenStream(tokens)
    stream.next()

    output = book_parser.parse_paragraph(stream)

    assert output == Paragraph(
        RichText("Quoted rule", links=[Link(7, 11, 7)]),
        ParagraphStyle.QUOTE,
        hanging_text="1) ",
    )


def test_running_out_of_tokens_is_a_structural_error():
    stream = TokenStream([Token(TokenType.START_ELEMENT, name="p"), Token(TokenType.TEXT, text="Text")])
    with pytest.raises(UnexpectedMarkupError, match="Unexpected end of input"):
        book_parser.parse_paragraph(stream)
