"""Code listings: line numbering, symbol marks and references to them."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import TYPE_CHECKING

from .constants import (
    BANG_COMMENT_KEY,
    DEFAULT_BANG_COMMENT,
    LISTING_GROUP_CLASS,
    PRE_CLASS,
    PRE_GROUP_CLASS,
    UNKNOWN_REFERENCE,
)
from .elements import detab, format_arguments, parse_arguments
from .models import BlockType, HandlerCapability
from .passes import Handler

if TYPE_CHECKING:
    from .context import PipelineContext

logger = logging.getLogger(__name__)

LISTING_TAG = re.compile(r"<\s*(listing|pre)\s*([^>]*)>", re.MULTILINE | re.DOTALL)
THREE_STAR_JAVADOC = re.compile(r"/\*\*\*.*?\*/", re.DOTALL)
THREE_SLASH_COMMENT = re.compile(r"///.*?\n", re.DOTALL)
MARK = re.compile(r"!?\{=\s*([a-zA-Z0-9_.\-/:]+)\}!?")
MARKUP_ONLY = re.compile(r"\s*<[^>]*>\s*")

# Declarations are recognized with Java syntax
JAVA_ID = r"([a-zA-Z_][a-zA-Z0-9_]*)"
ACCESS = r"(public|private|protected|/\*\s*package\s*\*/)"
CLASSIFIER = r"(class|interface|enum)"
CLASS_WITH_ACCESS = re.compile(ACCESS + r".*?" + CLASSIFIER + r"\s+" + JAVA_ID + r"(\s*\{)?")
CLASS_WITHOUT_ACCESS = re.compile(r"^(\s*)" + CLASSIFIER + r"\s+" + JAVA_ID + r"(\s*\{)?")
MEMBER = re.compile(ACCESS + r"(.*?\s)" + JAVA_ID + r"\s*[\(,;=]")

REFERENCE = re.compile(r"\{((?:[#:]|line|ref|sref)\s*)([a-zA-Z0-9_.\-/:]+)\s*(.*?)\s*\}")

ANCHOR_ARGUMENTS = ("file", "label", "prefix", "title", "first-line")


@dataclass
class Symbol:
    """Where a marked or declared name lives.

    Attributes:
        line_number: Listing line of the definition.
        label: Label of the listing, or None.
    """

    line_number: int
    label: str | None = None


@dataclass
class ClassDefinition:
    name: str
    level: int


class ClassStack:
    """Enclosing class declarations, used to qualify member names."""

    def __init__(self):
        self.classes: list[ClassDefinition] = []

    def push(self, name: str, level: int) -> None:
        self.classes.append(ClassDefinition(name, level))

    def pop_if_at_level(self, level: int) -> None:
        if self.classes and self.classes[-1].level == level:
            self.classes.pop()

    def fully_qualify(self, member_name: str) -> str:
        """Join the enclosing class names and `member_name` with dots."""
        names = [definition.name for definition in self.classes]
        if member_name:
            names.append(member_name)
        return ".".join(names)


@dataclass
class FileInfo:
    """Numbering state for the listings of one ``file=``.

    Attributes:
        last_line: Number of the last line already printed.
        stack: Classes open at the end of the last listing.
    """

    last_line: int = 0
    stack: ClassStack = field(default_factory=ClassStack)


@dataclass
class ListingState:
    """Symbols and per-file numbering shared by the listings of a run."""

    symbols: dict[str, Symbol] = field(default_factory=dict)
    files: dict[str, FileInfo] = field(default_factory=dict)
    unnamed_file: FileInfo = field(default_factory=FileInfo)
    brace_level: int = 0

    def add_symbol(self, line_number: int, prefix: str | None, label: str | None, name: str) -> str:
        """Record `name` (qualified by `prefix` when given) and return its key."""
        key = f"{prefix}.{name}" if prefix else name
        self.symbols[key] = Symbol(line_number, label)
        return key

    def file_info(self, file_name: str | None) -> FileInfo:
        """Numbering state for `file_name`; the unnamed file restarts at zero."""
        if file_name is None:
            self.unnamed_file.last_line = 0
            return self.unnamed_file
        return self.files.setdefault(file_name, FileInfo())


class ListingHandler(Handler):
    """Turns ``<listing>`` and ``<pre>`` blocks into annotated code groups.

    Listings get line numbers; ``<pre>`` blocks are laid out the same way
    without them. Both record explicit ``{=name}`` marks and inferred class,
    field and method declarations in the run's symbol table.
    """

    capabilities = frozenset({HandlerCapability.CODE})

    def __init__(self, context: PipelineContext):
        self.context = context
        self.context.settings.supply_default(BANG_COMMENT_KEY, context.config.bang_comment)
        self._bang_patterns: dict[str, re.Pattern] = {}

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        diagnostics = self.context.diagnostics
        state = self.context.listings

        body = body.lstrip("\n")
        if not body:
            diagnostics.report("Found <pre> or <listing> with no contents!")

        body = detab(body, self.context.config.tab_width)
        body = THREE_STAR_JAVADOC.sub("/**...*/", body)
        body = THREE_SLASH_COMMENT.sub("", body)

        element = LISTING_TAG.search(prefix)
        if element is None:
            diagnostics.report(f"Internal Error. Expected <listing> or <pre>, found {prefix}")
            return prefix + body + suffix
        start_name = element.group(1)
        if start_name not in suffix:
            diagnostics.report(f"Warning: mismatched listing/pre elements: {prefix}...{suffix}")
        is_listing = start_name == "listing"

        arguments = parse_arguments(element.group(2), PRE_CLASS)
        file_name = arguments.get("file")
        label = arguments.get("label")
        title = arguments.get("title")
        name_prefix = arguments.get("prefix")
        if label is None and file_name is not None:
            label = PurePath(file_name).name

        header = ""
        if title is not None:
            if not title.strip():
                if file_name is not None:
                    title = f"<em>{label}</em>"
                else:
                    diagnostics.report(
                        f'Need a file="..." when title="" (with an empty argument) is specified: {prefix}'
                    )
            label_argument = f' label="{label}"' if label is not None else ""
            header = f"<listing-title{label_argument}>{title}</listing-title>\n"

        current = state.file_info(file_name)
        first_line = arguments.get("first-line")
        if first_line is not None:
            try:
                current.last_line = int(first_line) - 1
            except ValueError:
                diagnostics.report(f"first-line='{first_line}' must be a number")

        bang = self._bang_pattern()
        annotations: list[str] = []
        code: list[str] = []
        lines = body.split("\n")
        if len(lines) > 1 and not lines[-1]:
            lines.pop()

        for line in lines:
            line, anchor = self._take_mark(line, current.last_line + 1, name_prefix, label)
            annotations.append(anchor)

            line, numbered = self._split_bang_comment(line, bang, file_name)
            if numbered:
                annotations.append(self._declare(line, current, current.last_line + 1, name_prefix, label))
                current.last_line += 1
                if is_listing:
                    annotations.append(str(current.last_line))
                annotations.append("<br>\n")
            code.append(line)

        group_class = LISTING_GROUP_CLASS if is_listing else PRE_GROUP_CLASS
        passthrough = format_arguments(arguments, *ANCHOR_ARGUMENTS)
        return (
            f'{header}<div class="{group_class}">\n'
            f'<div class="hmlCodeAnnotations">\n{"".join(annotations)}</div>\n'
            f'<div class="hmlCode">\n<pre{passthrough}>\n{"".join(code)}</pre>\n</div>\n'
            "</div>"
        )

    def _bang_pattern(self) -> re.Pattern:
        source = self.context.settings.value(BANG_COMMENT_KEY) or DEFAULT_BANG_COMMENT
        pattern = self._bang_patterns.get(source)
        if pattern is None:
            try:
                pattern = re.compile(r"(.*?)\s*" + source + r"\s*(.*?)\s*$", re.MULTILINE)
            except re.error as error:
                self.context.diagnostics.report(f"Invalid {BANG_COMMENT_KEY} setting /{source}/: {error}")
                pattern = re.compile(r"(.*?)\s*" + DEFAULT_BANG_COMMENT + r"\s*(.*?)\s*$", re.MULTILINE)
            self._bang_patterns[source] = pattern
        return pattern

    def _take_mark(self, line: str, line_number: int, prefix: str | None, label: str | None) -> tuple[str, str]:
        match = MARK.search(line)
        if match is None:
            return line, ""
        key = self.context.listings.add_symbol(line_number, prefix, label, match.group(1))
        return MARK.sub("", line), f'<a name="{key}"></a>'

    def _split_bang_comment(self, line: str, bang: re.Pattern, file_name: str | None) -> tuple[str, bool]:
        """Move markup after a bang comment out of the code.

        Returns:
            tuple[str, bool]: The line to print and whether it gets a number.
            A line holding nothing but a bang comment is not numbered and
            has no line break.
        """
        match = bang.search(line)
        if match is None:
            return line + "\n", True

        content, suffix = match.group(1), match.group(2)
        if suffix:
            if MARKUP_ONLY.sub("", suffix):
                self.context.diagnostics.report(
                    f"{file_name or 'Standard input'}: found non-HTML element to right of //! [{line}]"
                )
            suffix = suffix.replace("&", "&#38;").replace("<", "&#60;").replace(">", "&#62;")

        if content.strip():
            return content + suffix + "\n", True
        return (content + suffix).strip(), False

    def _declare(
        self, line: str, current: FileInfo, line_number: int, prefix: str | None, label: str | None
    ) -> str:
        state = self.context.listings
        state.brace_level += line.count("{")

        name = None
        match = MEMBER.search(line)
        if match is not None:
            name = current.stack.fully_qualify(match.group(3))
        else:
            match = CLASS_WITH_ACCESS.search(line) or CLASS_WITHOUT_ACCESS.search(line)
            if match is not None:
                # An opening brace on the declaration line is already counted
                level = state.brace_level - 1 if match.group(4) is not None else state.brace_level
                current.stack.push(match.group(3), level)
                name = current.stack.fully_qualify("")

        anchor = ""
        if name:
            key = state.add_symbol(line_number, prefix, label, name)
            logger.debug("Adding inferred symbol: %s", key)
            anchor = f'<a name="{key}"></a>'

        for _ in range(line.count("}")):
            state.brace_level -= 1
            current.stack.pop_if_at_level(state.brace_level)
        return anchor


def code_font(identifier: str, extra: str = "") -> str:
    """Render the part of `identifier` after its last dot in code font."""
    return f"<code>{identifier.rsplit('.', 1)[-1]}{extra}</code>"


class ListingReferenceHandler(Handler):
    """Resolves ``{#id}``, ``{line id}``, ``{:id}``, ``{sref id}`` and ``{ref id}``."""

    capabilities = frozenset({HandlerCapability.CODE, HandlerCapability.TEXT})

    def __init__(self, context: PipelineContext):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        text = prefix + body + suffix

        def replace(match: re.Match) -> str:
            request = match.group(1)[0]
            identifier = match.group(2)
            extra = match.group(3)
            symbol = self.context.listings.symbols.get(identifier)
            if symbol is None:
                self.context.diagnostics.report(
                    f"Couldn't find a {{= {identifier}}} or class/field/method definition that "
                    f"matches {match.group(0)}. If you've used <listing prefix=\"myPrefix\">, "
                    f"references take the form myPrefix.{identifier}.",
                    match.start(),
                    text,
                )
                return UNKNOWN_REFERENCE

            if request == "r":
                label = symbol.label
                if not label:
                    label = UNKNOWN_REFERENCE
                    self.context.diagnostics.report(
                        f"When using {{ref {identifier}}}, the surrounding <listing> must have a "
                        "label= argument (and that label must be used by the <listing-title>)",
                        match.start(),
                        text,
                    )
                return (
                    f"{code_font(identifier)}{extra} ({{listing {label}}}, "
                    f'<a href="#{identifier}">line {symbol.line_number}</a>)'
                )

            if request == "#":
                visible = str(symbol.line_number)
            elif request == "l":
                visible = f"line {symbol.line_number}"
            elif request == ":":
                visible = code_font(identifier, extra)
            else:
                visible = f"{code_font(identifier, extra)} (line {symbol.line_number})"
            return f'<a href="#{identifier}">{visible}</a>'

        return REFERENCE.sub(replace, text)
