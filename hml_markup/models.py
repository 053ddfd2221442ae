"""Data models for hml-markup."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path


class RegionKind(Enum):
    """Kinds of delimited regions recognized in a document.

    Each value is the display text used when the kind appears in a
    diagnostic.

    Attributes:
        PLAIN_TEXT: Ordinary markup between recognized delimiters.
        SHORTHAND_CODE_LINE: One or more consecutive lines starting with a comma.
        CODE_BLOCK_OPEN: ``<pre ...>`` tag.
        CODE_BLOCK_CLOSE: ``</pre>`` tag.
        LISTING_OPEN: ``<listing ...>`` tag.
        LISTING_CLOSE: ``</listing>`` tag.
        COMMENT_OPEN: ``<!=`` delimiter.
        COMMENT_CLOSE: ``=!>`` delimiter.
        INLINE_SNIPPET_DELIMITER: Unescaped single backquote.
    """

    PLAIN_TEXT = "...text..."
    SHORTHAND_CODE_LINE = ", ..."
    CODE_BLOCK_OPEN = "<pre...>"
    CODE_BLOCK_CLOSE = "</pre>"
    LISTING_OPEN = "<listing...>"
    LISTING_CLOSE = "</listing>"
    COMMENT_OPEN = "<!="
    COMMENT_CLOSE = "=!>"
    INLINE_SNIPPET_DELIMITER = "`"

    def __str__(self) -> str:
        return self.value


class BlockType(Enum):
    """Block categories passed to handlers and used to index macro lists."""

    CODE = auto()
    TEXT = auto()
    SNIPPET = auto()
    REF = auto()


class HandlerCapability(Enum):
    """Region categories a handler can accept."""

    CODE = auto()
    SNIPPET = auto()
    TEXT = auto()


@dataclass(frozen=True)
class Token:
    """A classified span of the input text.

    Attributes:
        kind: Region kind of the span.
        start: Offset of the first character.
        end: Offset one past the last character.
    """

    kind: RegionKind
    start: int
    end: int

    def lexeme(self, text: str) -> str:
        return text[self.start : self.end]


@dataclass
class Document:
    """Mutable text buffer threaded through the passes.

    Attributes:
        text: Current document contents; each successful pass replaces it.
        path: File the document was read from, if any. Relative includes are
            resolved against its directory.
    """

    text: str
    path: Path | None = None


@dataclass
class ExpansionResult:
    """Structured result of expanding one document.

    Attributes:
        html: Expanded output.
        error_count: Number of diagnostics reported during the run.
        diagnostics: Rendered diagnostics, one string per report.
    """

    html: str
    error_count: int
    diagnostics: list[str]
