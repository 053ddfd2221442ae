"""Collection and rendering of document diagnostics."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Diagnostic:
    """A single reported problem.

    Attributes:
        message: Description of the problem.
        line_number: One-based line of the document, or None when unknown.
        excerpt: Text of the offending line, or None when unknown.
    """

    message: str
    line_number: int | None = None
    excerpt: str | None = None

    def render(self) -> str:
        if self.line_number is None:
            return self.message
        rendered = f"Line {self.line_number}: {self.message}"
        if self.excerpt:
            rendered += f"\n\t{self.excerpt}"
        return rendered


@dataclass
class DiagnosticSink:
    """Accumulates diagnostics for one run.

    Reporting never raises; callers keep going after a report unless they
    decide otherwise.

    Attributes:
        diagnostics: Reported diagnostics in order.
    """

    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.diagnostics)

    def report(
        self, message: str, position: int | None = None, context: str | None = None
    ) -> Diagnostic:
        """Record a diagnostic.

        Args:
            message: Description of the problem.
            position: Offset of the problem inside `context`.
            context: Text that `position` refers to.

        Returns:
            Diagnostic: The recorded diagnostic.

        Examples:
            sink.report("Missing topic name for index entry.", 12, text)
        """
        line_number = None
        excerpt = None
        if position is not None and context is not None:
            position = max(0, min(position, len(context)))
            line_number = context.count("\n", 0, position) + 1
            line_start = context.rfind("\n", 0, position) + 1
            line_end = context.find("\n", position)
            if line_end == -1:
                line_end = len(context)
            excerpt = context[line_start:line_end].strip()

        diagnostic = Diagnostic(message, line_number, excerpt)
        self.diagnostics.append(diagnostic)
        logger.debug("Reported: %s", diagnostic.render())
        return diagnostic

    def render(self) -> str:
        return "\n".join(diagnostic.render() for diagnostic in self.diagnostics)

    def clear(self) -> None:
        self.diagnostics.clear()
