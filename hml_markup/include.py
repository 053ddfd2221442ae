"""``<include>`` and ``<import>`` directives."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from .elements import format_arguments, parse_arguments
from .exceptions import (
    IncludeDepthError,
    IncludeError,
    MalformedMarkerError,
    MarkerNotFoundError,
    MissingSourceError,
)
from .filesystem import read_document, read_url, resolve_reference
from .models import BlockType, HandlerCapability
from .passes import Handler

if TYPE_CHECKING:
    from .context import PipelineContext

logger = logging.getLogger(__name__)

DIRECTIVE = re.compile(r"<\s*(include|import)\s+[^>]*>\s*", re.MULTILINE | re.DOTALL)
CONSUMED_ARGUMENTS = ("src", "href", "from", "to", "remove-mark", "numbers", "line-numbers")


def is_false(value: str | None) -> bool:
    return value is not None and value.strip().lower() in ("false", "no", "off", "0")


def select_lines(text: str, start: str | None, end: str | None, remove_mark: bool) -> str:
    """Cut `text` down to the lines between two markers.

    The selection runs from the start of the line matching `start` through
    the end of the line matching `end`, both inclusive. The search for `end`
    begins after the `start` line.

    Args:
        text: Included content.
        start: Pattern of the first line, or None to start at the top.
        end: Pattern of the last line, or None to run to the end.
        remove_mark: Remove the matched marker text, and its line break
            when nothing else is on the line.

    Raises:
        IncludeError: If a pattern is malformed or does not match.

    Examples:
        select_lines(source, "--\\(", "\\)--", remove_mark=True)
    """
    if start is not None:
        pattern = _compile("from", start)
        match = pattern.search(text)
        if match is None:
            raise MarkerNotFoundError("from", start)
        text = text[text.rfind("\n", 0, match.start()) + 1 :]
        if remove_mark:
            text = re.sub(r"[ \t]*" + start + r"([ \t]*\n)?", "", text, count=1, flags=re.MULTILINE)

    if end is not None:
        pattern = _compile("to", end)
        match = pattern.search(text)
        if match is None:
            raise MarkerNotFoundError("to", end)
        line_end = text.find("\n", match.end())
        text = text if line_end == -1 else text[: line_end + 1]
        if remove_mark:
            text = re.sub(r"[ \t]*" + end + r"([ \t]*\n)?", "", text, count=1, flags=re.MULTILINE)

    return text


def _compile(name: str, pattern: str) -> re.Pattern:
    try:
        return re.compile(pattern, re.MULTILINE)
    except re.error as error:
        raise MalformedMarkerError(name, pattern, str(error)) from error


class IncludeHandler(Handler):
    """Replaces include directives with file or URL contents.

    ``<import>`` inserts the content as is. ``<include>`` wraps it in a
    ``<listing>`` (or a ``<pre>`` when ``numbers="false"``) naming the file.
    Included content is itself scanned for directives.
    """

    capabilities = frozenset({HandlerCapability.TEXT})

    def __init__(self, context: PipelineContext):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        return self._expand(body, self.context.base_dir, depth=0)

    def _expand(self, text: str, base_dir: Path | None, depth: int) -> str:
        def replace(match: re.Match) -> str:
            try:
                return self._render(match.group(1), parse_arguments(match.group(0)), base_dir, depth)
            except (IncludeError, IOError) as error:
                self.context.diagnostics.report(
                    f"Error in <{match.group(1)}>: {error}", match.start(), text
                )
                return ""

        return DIRECTIVE.sub(replace, text)

    def _render(self, tag: str, arguments: dict[str, str], base_dir: Path | None, depth: int) -> str:
        if depth >= self.context.config.max_include_depth:
            raise IncludeDepthError(self.context.config.max_include_depth)

        max_size = self.context.max_file_size
        if "src" in arguments:
            name = arguments["src"]
            path = resolve_reference(name, base_dir)
            logger.info("Including %s", path)
            content = read_document(path, max_size)
            nested_base = path.parent
        elif "href" in arguments:
            name = arguments["href"]
            logger.info("Including %s", name)
            content = read_url(name, max_size)
            nested_base = base_dir
        else:
            raise MissingSourceError()

        content = select_lines(
            content,
            arguments.get("from"),
            arguments.get("to"),
            remove_mark=arguments.get("remove-mark", "").strip().lower() == "true",
        )
        content = self._expand(content, nested_base, depth + 1)

        if tag == "import":
            return content

        numbered = not (is_false(arguments.get("numbers")) or is_false(arguments.get("line-numbers")))
        element = "listing" if numbered else "pre"
        passthrough = dict(arguments)
        passthrough["file"] = name
        if content and not content.endswith("\n"):
            content += "\n"
        return (
            f"<{element}{format_arguments(passthrough, *CONSUMED_ARGUMENTS)}>\n"
            f"{content}</{element}>\n"
        )
