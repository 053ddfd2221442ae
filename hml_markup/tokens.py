"""Region classification and the token cursor used by every pass."""

from __future__ import annotations

from .constants import KIND_ORDER, REGION_PATTERNS
from .exceptions import (
    DelimiterNotFoundError,
    EndOfInputError,
    OverlappingRegionsError,
)
from .models import RegionKind, Token


def classify_regions(text: str) -> list[Token]:
    """Find every delimiter in `text`.

    Matches of all kinds are sorted by start offset, ties broken by kind
    order. Tokens starting inside a shorthand block belong to that block and
    are dropped.

    Args:
        text: Document text.

    Returns:
        list[Token]: Delimiter tokens only; plain text is not included.

    Examples:
        classify_regions("a `b` c")
    """
    candidates = [
        Token(kind, match.start(), match.end())
        for kind, pattern in REGION_PATTERNS
        for match in pattern.finditer(text)
    ]
    candidates.sort(key=lambda token: (token.start, KIND_ORDER[token.kind]))

    tokens: list[Token] = []
    for token in candidates:
        if tokens:
            previous = tokens[-1]
            if previous.kind is RegionKind.SHORTHAND_CODE_LINE and token.start < previous.end:
                continue
        tokens.append(token)
    return tokens


def build_tokens(text: str) -> list[Token]:
    """Cover `text` with a gap-free, ordered token sequence.

    Args:
        text: Document text.

    Returns:
        list[Token]: Delimiter tokens with plain-text tokens filling the gaps.
        Empty input yields an empty list.

    Raises:
        OverlappingRegionsError: If two delimiters overlap.
    """
    tokens: list[Token] = []
    position = 0
    previous = None
    for token in classify_regions(text):
        if previous is not None and token.start < previous.end:
            raise OverlappingRegionsError(previous, token)
        if token.start > position:
            tokens.append(Token(RegionKind.PLAIN_TEXT, position, token.start))
        tokens.append(token)
        position = token.end
        previous = token

    if position < len(text):
        tokens.append(Token(RegionKind.PLAIN_TEXT, position, len(text)))
    return tokens


class TokenStream:
    """Cursor over the tokens of one document.

    Args:
        text: Document text the tokens index into.
        tokens: Precomputed tokens; built from `text` when omitted.
    """

    def __init__(self, text: str, tokens: list[Token] | None = None):
        self.text = text
        self.tokens = build_tokens(text) if tokens is None else list(tokens)
        self.index = 0

    def __iter__(self):
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    @property
    def at_end(self) -> bool:
        return self.index >= len(self.tokens)

    def current(self) -> Token:
        """Return the token under the cursor.

        Raises:
            EndOfInputError: If the cursor is past the last token.
        """
        if self.at_end:
            raise EndOfInputError(len(self.text))
        return self.tokens[self.index]

    def advance(self) -> Token | None:
        """Move to the next token and return it, or None at the end."""
        if not self.at_end:
            self.index += 1
        return None if self.at_end else self.tokens[self.index]

    def match(self, kind: RegionKind) -> bool:
        return self.current().kind is kind

    def lexeme(self, token: Token | None = None) -> str:
        token = self.current() if token is None else token
        return token.lexeme(self.text)

    def skip_to(self, kind: RegionKind) -> Token:
        """Advance until the current token is of `kind`.

        The current token itself counts, so a cursor already on `kind` does
        not move.

        Raises:
            DelimiterNotFoundError: If the input ends first.
        """
        opener = self.tokens[self.index - 1] if 0 < self.index <= len(self.tokens) else None
        while not self.at_end:
            token = self.tokens[self.index]
            if token.kind is kind:
                return token
            self.index += 1
        raise DelimiterNotFoundError(kind, opener)

    def find_matching_close(self, open_kind: RegionKind, close_kind: RegionKind) -> Token:
        """Find the close token balancing the open token under the cursor.

        Open tokens of the same kind increase the nesting depth; the first
        close token at depth zero wins. Tokens of other kinds are skipped.
        The cursor is left on the returned token.

        Args:
            open_kind: Kind of the token under the cursor.
            close_kind: Kind of the balancing delimiter.

        Returns:
            Token: The matching close token.

        Raises:
            ValueError: If the cursor is not on an `open_kind` token.
            DelimiterNotFoundError: If the input ends before the block closes.

        Examples:
            stream.find_matching_close(RegionKind.CODE_BLOCK_OPEN, RegionKind.CODE_BLOCK_CLOSE)
        """
        opener = self.current()
        if opener.kind is not open_kind:
            raise ValueError(f"Expected {open_kind} at offset {opener.start}, found {opener.kind}")

        depth = 0
        self.advance()
        while not self.at_end:
            token = self.tokens[self.index]
            if token.kind is close_kind:
                if depth == 0:
                    return token
                depth -= 1
            elif token.kind is open_kind:
                depth += 1
            self.index += 1
        raise DelimiterNotFoundError(close_kind, opener)
