"""A single transformation pass over a document."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from .constants import CLOSE_KINDS, MATCHING_CLOSE, SHORTHAND_LINE_PREFIX
from .diagnostics import DiagnosticSink
from .exceptions import HandlerConfigurationError, MarkupError, MultilineSnippetError, UnmatchedDelimiterError
from .models import BlockType, Document, HandlerCapability, RegionKind
from .tokens import TokenStream

logger = logging.getLogger(__name__)


class Handler(ABC):
    """Base class for the per-region transformations a pass runs.

    Subclasses declare which region categories they accept in
    `capabilities` and return the replacement for a whole region from
    `filter`.
    """

    capabilities: frozenset[HandlerCapability] = frozenset()

    def accepts(self, capability: HandlerCapability) -> bool:
        return capability in self.capabilities

    @abstractmethod
    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        """Transform one region.

        Args:
            prefix: Opening delimiter of the region (empty for plain text).
            body: Text between the delimiters.
            suffix: Closing delimiter of the region (empty for plain text).
            block_type: Category of the region.

        Returns:
            str: Text that replaces the whole region, delimiters included.
        """


class DefaultHandler(Handler):
    """Reassembles a region unchanged."""

    def __init__(self, capability: HandlerCapability):
        self.capabilities = frozenset({capability})

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        return prefix + body + suffix


class Pass:
    """One left-to-right walk over a document's tokens.

    Each region is handed to the handlers registered for its category, in
    registration order, each receiving the previous one's output as its
    body. Categories without a registered handler pass through unchanged.

    Args:
        handlers: Handlers to run; each is registered under every capability
            it declares.
        diagnostics: Sink that receives pass failures.
        name: Label used in log records.

    Raises:
        HandlerConfigurationError: If a handler declares no capability.
    """

    def __init__(self, handlers: Iterable[Handler], diagnostics: DiagnosticSink, name: str = "pass"):
        self.diagnostics = diagnostics
        self.name = name
        self.handlers: dict[HandlerCapability, list[Handler]] = {
            capability: [] for capability in HandlerCapability
        }
        for handler in handlers:
            if not handler.capabilities:
                raise HandlerConfigurationError(handler)
            for capability in handler.capabilities:
                self.handlers[capability].append(handler)

        for capability, registered in self.handlers.items():
            if not registered:
                registered.append(DefaultHandler(capability))

    def __repr__(self) -> str:
        return f"Pass({self.name!r})"

    def process(self, document: Document) -> bool:
        """Run the pass, replacing the document text on success.

        Structural problems are reported to the sink and leave the document
        untouched. So does any unexpected exception raised by a handler.

        Args:
            document: Document to transform in place.

        Returns:
            bool: True when the pass completed.
        """
        text = document.text
        try:
            output = self._transform(text)
        except MarkupError as error:
            self.diagnostics.report(str(error), error.position, text)
            return False
        except Exception as error:
            logger.exception("Internal error in %s", self)
            self.diagnostics.report(f"Internal error in {self.name} pass: {error}")
            return False

        document.text = output
        return True

    def _transform(self, text: str) -> str:
        stream = TokenStream(text)
        parts: list[str] = []

        while not stream.at_end:
            token = stream.current()
            kind = token.kind

            if kind is RegionKind.PLAIN_TEXT:
                parts.append(self._run(HandlerCapability.TEXT, "", token.lexeme(text), "", BlockType.TEXT))

            elif kind is RegionKind.COMMENT_OPEN:
                stream.find_matching_close(kind, MATCHING_CLOSE[kind])

            elif kind is RegionKind.INLINE_SNIPPET_DELIMITER:
                stream.advance()
                closer = stream.skip_to(RegionKind.INLINE_SNIPPET_DELIMITER)
                body = text[token.end : closer.start]
                if "\n" in body:
                    raise MultilineSnippetError(token.start)
                parts.append(
                    self._run(
                        HandlerCapability.SNIPPET,
                        token.lexeme(text),
                        body,
                        closer.lexeme(text),
                        BlockType.SNIPPET,
                    )
                )

            elif kind is RegionKind.SHORTHAND_CODE_LINE:
                body = SHORTHAND_LINE_PREFIX.sub("\n", "\n" + token.lexeme(text))
                parts.append(self._run(HandlerCapability.CODE, "<pre>", body, "</pre>", BlockType.CODE))

            elif kind in (RegionKind.CODE_BLOCK_OPEN, RegionKind.LISTING_OPEN):
                closer = stream.find_matching_close(kind, MATCHING_CLOSE[kind])
                parts.append(
                    self._run(
                        HandlerCapability.CODE,
                        token.lexeme(text),
                        text[token.end : closer.start],
                        closer.lexeme(text),
                        BlockType.CODE,
                    )
                )

            elif kind in CLOSE_KINDS:
                raise UnmatchedDelimiterError(token)

            stream.advance()

        return "".join(parts)

    def _run(
        self, capability: HandlerCapability, prefix: str, body: str, suffix: str, block_type: BlockType
    ) -> str:
        for handler in self.handlers[capability]:
            body = handler.filter(prefix, body, suffix, block_type)
        return body
