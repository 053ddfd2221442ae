"""Regular-expression macros applied to text, code and reference regions.

A macro definition is one line whose first character delimits the fields::

    /pattern/replacement/FLAGS
    code: ~/\\*.*?\\*/~<span class="hmlComment">$0</span>~DOTALL

Definitions prefixed with ``code:`` apply to code blocks, ``ref:`` to both
code and text after references are resolved, and ``text:`` (the default) to
plain text. A trailing backslash continues a definition on the next line.
A ``#`` at the start of a line or a ``##`` anywhere starts a comment; write
``\\#`` for a literal ``#``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING

from .diagnostics import DiagnosticSink
from .elements import process_element
from .exceptions import MacroDefinitionError
from .models import BlockType, HandlerCapability
from .passes import Handler

if TYPE_CHECKING:
    from .context import PipelineContext

logger = logging.getLogger(__name__)

BUILTIN_MACROS = "hml.macros"

TYPE_PREFIXES = (
    ("code:", BlockType.CODE),
    ("text:", BlockType.TEXT),
    ("ref:", BlockType.REF),
)

# re.LITERAL has no counterpart; the pattern is escaped instead
LITERAL = "LITERAL"
MODIFIERS = {
    "UNIX_LINES": 0,
    "CASE_INSENSITIVE": re.IGNORECASE,
    "COMMENTS": re.VERBOSE,
    "MULTILINE": re.MULTILINE,
    LITERAL: 0,
    "DOTALL": re.DOTALL,
    "UNICODE_CASE": 0,
    "CANON_EQ": 0,
}

COMMENT = re.compile(r"((^#)|(##)).*")
MODIFIER_SEPARATOR = re.compile(r"\s*\|\s*")
GROUP_REFERENCE = re.compile(r"(?<!\\)\$(?:([0-9])|\{([a-zA-Z][a-zA-Z0-9]*)\})")
REPLACEMENT_VARIABLE = re.compile(r"(?<!\\)%\((timestamp|[mM]onth|[dD]ay|year|hr|min|sec)\)")
REPLACEMENT_ESCAPES = (("\\t", "\t"), ("\\b", "\b"), ("\\n", "\n"), ("\\r", "\r"), ("\\f", "\f"))


def expand_variables(replacement: str, now: datetime | None = None) -> str:
    """Substitute ``%(name)`` date and time variables.

    Examples:
        expand_variables("Updated %(Month) %(day), %(year)")
    """
    now = datetime.now() if now is None else now
    values = {
        "timestamp": now.strftime("%a %b %d %H:%M:%S %Y"),
        "month": str(now.month),
        "Month": now.strftime("%B"),
        "day": str(now.day),
        "Day": now.strftime("%A"),
        "year": str(now.year),
        "hr": str(now.hour % 12),
        "min": str(now.minute),
        "sec": str(now.second),
    }
    return REPLACEMENT_VARIABLE.sub(lambda match: values[match.group(1)], replacement)


def expand_replacement(template: str, match: re.Match) -> str:
    """Build the replacement for one match.

    ``$n`` and ``${name}`` insert groups (unmatched groups insert nothing)
    and a backslash makes the next character literal. Multi-digit group
    numbers are read greedily while they name an existing group.
    """
    output: list[str] = []
    group_count = match.re.groups
    position = 0
    length = len(template)
    while position < length:
        char = template[position]
        if char == "\\" and position + 1 < length:
            output.append(template[position + 1])
            position += 2
            continue

        if char == "$" and position + 1 < length:
            following = template[position + 1]
            if following in "0123456789":
                number = int(following)
                position += 2
                while position < length and template[position] in "0123456789":
                    candidate = number * 10 + int(template[position])
                    if candidate > group_count:
                        break
                    number = candidate
                    position += 1
                output.append(match.group(number) or "")
                continue
            if following == "{":
                end = template.find("}", position + 2)
                if end != -1:
                    output.append(match.group(template[position + 2 : end]) or "")
                    position = end + 1
                    continue

        output.append(char)
        position += 1
    return "".join(output)


@dataclass
class MacroDefinition:
    """A compiled pattern and its replacement template.

    Attributes:
        pattern: Compiled search pattern.
        replacement: Replacement template with escapes already decoded.
    """

    pattern: re.Pattern
    replacement: str

    def __str__(self) -> str:
        return f"{{{self.pattern.pattern}->{self.replacement}}}"

    def apply(self, text: str, now: datetime | None = None) -> str:
        """Replace every match in `text`."""
        replacement = expand_variables(self.replacement, now)
        expanded = self.pattern.sub(lambda match: expand_replacement(replacement, match), text)
        if expanded != text:
            logger.debug("Macro applied: /%s/%s/", self.pattern.pattern, self.replacement)
        return expanded


def compile_definition(
    pattern: str,
    replacement: str,
    modifiers: str | None,
    diagnostics: DiagnosticSink | None = None,
) -> MacroDefinition:
    """Compile one macro definition.

    Unknown modifiers are reported and ignored.

    Raises:
        re.error: If the pattern does not compile.
        ValueError: If the replacement refers to a group the pattern lacks.

    Examples:
        compile_definition("^x.*x$", "yes", "DOTALL|MULTILINE")
    """
    for escape, char in REPLACEMENT_ESCAPES:
        replacement = replacement.replace(escape, char)

    flags = 0
    literal = False
    if modifiers is not None:
        for modifier in MODIFIER_SEPARATOR.split(modifiers.strip()):
            if modifier not in MODIFIERS:
                if diagnostics is not None:
                    diagnostics.report(
                        f"Ignoring illegal modifier ({modifier}) found in macro definition: "
                        f"/{pattern}/{replacement}/{modifiers}/"
                    )
                continue
            flags |= MODIFIERS[modifier]
            literal = literal or modifier == LITERAL

    compiled = re.compile(re.escape(pattern) if literal else pattern, flags)

    for number, name in GROUP_REFERENCE.findall(replacement):
        if number and int(number) > compiled.groups:
            raise ValueError(f"No group {number} in pattern /{pattern}/")
        if name and name not in compiled.groupindex:
            raise ValueError(f"No group named {name} in pattern /{pattern}/")

    return MacroDefinition(compiled, replacement)


def merge_continuation_lines(text: str) -> list[tuple[int, str]]:
    """Join lines ending in a backslash with the line that follows.

    Whitespace around the backslash and leading whitespace of the next line
    are discarded.

    Returns:
        list[tuple[int, str]]: Logical lines with the number of the physical
        line each one starts on.
    """
    merged: list[tuple[int, str]] = []
    pending: str | None = None
    first_line = 0
    for line_number, line in enumerate(text.splitlines(), start=1):
        if pending is None:
            first_line = line_number
            combined = line
        else:
            combined = pending + line.lstrip()

        stripped = combined.rstrip()
        if stripped.endswith("\\"):
            pending = stripped[:-1].rstrip()
            continue
        merged.append((first_line, combined))
        pending = None

    if pending is not None:
        merged.append((first_line, pending))
    return merged


def parse_definition(line_number: int, line: str) -> tuple[BlockType, str, str, str | None] | None:
    """Split one logical definition line into its fields.

    Returns:
        tuple | None: ``(block_type, pattern, replacement, modifiers)``, or
        None for blank and comment lines.

    Raises:
        MacroDefinitionError: If the line does not have two or three fields.
    """
    line = COMMENT.sub("", line)
    line = line.replace("\\#", "#").strip()
    if not line:
        return None

    block_type = BlockType.TEXT
    for prefix, prefix_type in TYPE_PREFIXES:
        if line.startswith(prefix):
            block_type = prefix_type
            line = line[len(prefix) :].strip()
            break
    if not line:
        raise MacroDefinitionError(line_number, line, "Macro def must have either two or three fields")

    fields = line.split(line[0])
    while fields and not fields[-1]:
        fields.pop()

    if len(fields) == 4:
        return block_type, fields[1], fields[2], fields[3]
    if len(fields) == 3:
        return block_type, fields[1], fields[2], None
    if len(fields) == 2:
        return block_type, fields[1], "", None
    raise MacroDefinitionError(line_number, line, "Macro def must have either two or three fields")


class MacroSet:
    """Ordered macro lists for text, code and reference regions."""

    def __init__(self):
        self.definitions: dict[BlockType, list[MacroDefinition]] = {
            BlockType.TEXT: [],
            BlockType.CODE: [],
            BlockType.REF: [],
        }

    def __len__(self) -> int:
        return sum(len(definitions) for definitions in self.definitions.values())

    def __str__(self) -> str:
        return "\n".join(
            f"{block_type.name.lower()}: {definition}"
            for block_type, definitions in self.definitions.items()
            for definition in definitions
        )

    def add(self, block_type: BlockType, definition: MacroDefinition) -> None:
        self.definitions[block_type].append(definition)

    def transfer_to_head(self, other: MacroSet) -> None:
        """Move `other`'s definitions ahead of this set's, keeping their order."""
        for block_type, definitions in other.definitions.items():
            self.definitions[block_type][:0] = definitions
            definitions.clear()

    def load(self, text: str, diagnostics: DiagnosticSink, origin: str = "<macro>") -> int:
        """Load definitions, one per logical line.

        Bad definitions are reported and skipped; loading continues with the
        remaining lines.

        Args:
            text: Definition lines.
            diagnostics: Sink for definition errors.
            origin: Name used in diagnostics for where the lines came from.

        Returns:
            int: Number of definitions loaded.
        """
        loaded = 0
        for line_number, line in merge_continuation_lines(text):
            try:
                parsed = parse_definition(line_number, line)
                if parsed is None:
                    continue
                block_type, pattern, replacement, modifiers = parsed
                try:
                    definition = compile_definition(pattern, replacement, modifiers, diagnostics)
                except (re.error, ValueError) as error:
                    raise MacroDefinitionError(line_number, line.strip(), str(error)) from error
            except MacroDefinitionError as error:
                diagnostics.report(f"{origin}: {error}")
                continue
            self.add(block_type, definition)
            loaded += 1
        return loaded

    def load_file(self, path: Path, diagnostics: DiagnosticSink) -> int:
        try:
            text = path.read_text(encoding="UTF-8")
        except (OSError, UnicodeDecodeError) as error:
            diagnostics.report(f"Couldn't read macro-definition file {path}: {error}")
            return 0
        loaded = self.load(text, diagnostics, str(path))
        logger.info("Loaded %d macros from %s", loaded, path)
        return loaded

    def load_builtin(self, diagnostics: DiagnosticSink) -> int:
        text = resources.files("hml_markup").joinpath("data", BUILTIN_MACROS).read_text(encoding="UTF-8")
        return self.load(text, diagnostics, BUILTIN_MACROS)

    def apply(self, block_type: BlockType, text: str, now: datetime | None = None) -> str:
        for definition in self.definitions[block_type]:
            text = definition.apply(text, now)
        return text


class TextMacroHandler(Handler):
    """Loads ``<macro>`` blocks, then expands text macros."""

    capabilities = frozenset({HandlerCapability.TEXT})

    def __init__(self, context: PipelineContext):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        user_macros = MacroSet()

        def load(tag: str, arguments: dict[str, str], definitions: str, text: str, start: int) -> str:
            loaded = user_macros.load(definitions, self.context.diagnostics)
            logger.debug("Loaded %d user macros", loaded)
            return ""

        body = process_element(self.context.diagnostics, body, "macro", None, load)
        self.context.macros.transfer_to_head(user_macros)
        return prefix + self.context.macros.apply(BlockType.TEXT, body) + suffix


class CodeMacroHandler(Handler):
    """Expands code macros inside code blocks."""

    capabilities = frozenset({HandlerCapability.CODE})

    def __init__(self, context: PipelineContext):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        return prefix + self.context.macros.apply(BlockType.CODE, body) + suffix


class RefMacroHandler(Handler):
    """Expands reference macros in both code and text."""

    capabilities = frozenset({HandlerCapability.CODE, HandlerCapability.TEXT})

    def __init__(self, context: PipelineContext):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        return prefix + self.context.macros.apply(BlockType.REF, body) + suffix
