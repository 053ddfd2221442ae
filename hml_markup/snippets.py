"""Inline code snippets (`` `code` ``)."""

from __future__ import annotations

import string
from typing import TYPE_CHECKING

from .elements import detab
from .models import BlockType, HandlerCapability
from .passes import Handler

if TYPE_CHECKING:
    from .context import PipelineContext

NAMED_ENTITIES = {
    " ": "&nbsp;",
    '"': "&quot;",
    "&": "&amp;",
    "'": "&apos;",
    "<": "&lt;",
    ">": "&gt;",
}


def to_entity(char: str) -> str:
    """Map one character to the form used inside a snippet.

    Examples:
        to_entity("(")  # "&#40;"
    """
    if char in NAMED_ENTITIES:
        return NAMED_ENTITIES[char]
    if char in string.punctuation:
        return f"&#{ord(char)};"
    return char


def render_snippet(body: str, tab_width: int = 4) -> str:
    """Render the text between two backquotes.

    The body is detabbed as if it started one column in, so that a leading
    tab lines up with the backquote it follows.
    """
    body = detab(" " + body, tab_width)[1:]
    body = body.replace("\\`", "`")
    return "<nobr><code>" + "".join(to_entity(char) for char in body) + "</code></nobr>"


class CodeSnippetHandler(Handler):
    """Replaces a backquoted snippet, delimiters included, with inline code."""

    capabilities = frozenset({HandlerCapability.SNIPPET})

    def __init__(self, context: PipelineContext | None = None):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        return render_snippet(body)
