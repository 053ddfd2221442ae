"""Package-specific exception types."""

from __future__ import annotations


class MarkupError(ValueError):
    """Base class for errors found while segmenting a document.

    Args:
        message: Human-readable description of the problem.
        position: Offset in the document where the problem was detected, or
            None when it is not tied to a location.
    """

    def __init__(self, message: str, position: int | None = None):
        self.position = position
        super().__init__(message)


class OverlappingRegionsError(MarkupError):
    """Raised when two delimiters of different kinds claim the same characters.

    Args:
        first: Token that starts first.
        second: Token that starts inside `first`.
    """

    def __init__(self, first, second):
        self.first = first
        self.second = second
        super().__init__(self._build_message(), second.start)

    def _build_message(self) -> str:
        return (
            f"{self.second.kind} at offset {self.second.start} overlaps "
            f"{self.first.kind} at offset {self.first.start}"
        )


class EndOfInputError(MarkupError):
    """Raised when the token cursor is used after the last token."""

    def __init__(self, position: int | None = None):
        super().__init__("Unexpected end of input", position)


class DelimiterNotFoundError(MarkupError):
    """Raised when a closing delimiter cannot be found before the end of input.

    Args:
        expected: Kind of the delimiter that was searched for.
        opener: Token that started the search.
    """

    def __init__(self, expected, opener=None):
        self.expected = expected
        self.opener = opener
        message = f"Could not find {expected}"
        if opener is None:
            super().__init__(message)
        else:
            super().__init__(f"{message} to match {opener.kind}", opener.start)


class UnmatchedDelimiterError(MarkupError):
    """Raised when a close delimiter appears without a matching open delimiter.

    Args:
        token: The orphaned close token.
    """

    def __init__(self, token):
        self.token = token
        super().__init__(f"Found {token.kind} without matching start element", token.start)


class MultilineSnippetError(MarkupError):
    """Raised when an inline code snippet spans a line break."""

    def __init__(self, position: int):
        super().__init__(
            "Code snippets (`code`) must be on a single line. "
            "Missing or extra backquote? Aborting this pass.",
            position,
        )


class HandlerConfigurationError(ValueError):
    """Raised when a handler declares none of the region capabilities.

    Args:
        handler: The misconfigured handler.
    """

    def __init__(self, handler):
        self.handler = handler
        super().__init__(
            f"{type(handler).__name__} must declare at least one of CODE, SNIPPET or TEXT"
        )


class MacroDefinitionError(ValueError):
    """Raised for a macro definition line that cannot be loaded.

    Args:
        line_number: One-based line number of the definition.
        line: The offending definition text.
        reason: What is wrong with it.
    """

    def __init__(self, line_number: int, line: str, reason: str):
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        return f"Line {self.line_number}: {self.reason}: {self.line}"


class IncludeError(ValueError):
    """Base class for an ``<include>`` or ``<import>`` directive that cannot be satisfied."""


class MarkerNotFoundError(IncludeError):
    """Raised when a ``from=`` or ``to=`` pattern matches nothing in the included text.

    Args:
        argument: Name of the directive argument, ``from`` or ``to``.
        pattern: The pattern that was searched for.
    """

    def __init__(self, argument: str, pattern: str):
        self.argument = argument
        self.pattern = pattern
        super().__init__(f'Can\'t find match for {argument}="{pattern}"')


class MalformedMarkerError(IncludeError):
    """Raised when a ``from=`` or ``to=`` pattern does not compile.

    Args:
        argument: Name of the directive argument, ``from`` or ``to``.
        pattern: The offending pattern.
        reason: Why the pattern was rejected.
    """

    def __init__(self, argument: str, pattern: str, reason: str):
        self.argument = argument
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Malformed {argument}='{pattern}' argument: {reason}")


class IncludeDepthError(IncludeError):
    """Raised when includes nest deeper than the configured limit."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Includes nested more than {limit} levels deep")


class MissingSourceError(IncludeError):
    """Raised when a directive names neither a file nor a URL."""

    def __init__(self):
        super().__init__("src= or href= argument required")
