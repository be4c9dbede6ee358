from __future__ import annotations

import json
from typing import Any

from .styled_text import CharacterSpan, IndentSpan, LinkSpan, ParagraphSpan, ParagraphStyleSpan, StyledText

SPAN_KIND_STYLE = "style"
SPAN_KIND_INDENT = "indent"


def markup_to_dict(text: StyledText) -> dict[str, list[dict[str, Any]]]:
    """Compact span markup stored next to the plain string."""
    return {
        "ps": [_paragraph_span(span) for span in text.paragraph_spans],
        "cs": [_character_span(span) for span in text.character_spans],
        "ls": [_link_span(span) for span in text.link_spans],
    }


def markup_to_json(text: StyledText) -> str:
    return json.dumps(markup_to_dict(text), ensure_ascii=False, separators=(",", ":"))


def _paragraph_span(span: ParagraphSpan) -> dict[str, Any]:
    if isinstance(span, ParagraphStyleSpan):
        return {"t": SPAN_KIND_STYLE, "s": span.start, "e": span.end, "a": span.appearance.value}
    if isinstance(span, IndentSpan):
        return {
            "t": SPAN_KIND_INDENT,
            "s": span.start,
            "e": span.end,
            "o": span.indent.outer,
            "i": span.indent.inner,
            "ht": span.indent.hanging_text,
        }
    raise TypeError(f"Unsupported paragraph span {span!r}")


def _character_span(span: CharacterSpan) -> dict[str, Any]:
    return {"s": span.start, "e": span.end, "a": span.appearance.value}


def _link_span(span: LinkSpan) -> dict[str, Any]:
    return {"s": span.start, "e": span.end, "ri": span.rule_id}
