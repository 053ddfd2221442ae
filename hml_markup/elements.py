"""Helpers for rewriting HTML-like elements embedded in text regions."""

from __future__ import annotations

import re
from collections.abc import Callable

from .diagnostics import DiagnosticSink

ARGUMENT_PATTERN = re.compile(r"""([a-zA-Z-]+)\s*=\s*["']([^"']*)["']""")

ElementHandler = Callable[[str, dict[str, str], str, str, int], str]


def process_element(
    diagnostics: DiagnosticSink,
    text: str,
    element_name: str,
    default_class: str | None,
    handler: ElementHandler,
    remove_leading_space: bool = False,
) -> str:
    """Replace every ``<name ...>body</name>`` element in `text`.

    Elements do not nest; each start tag pairs with the next end tag that
    matches `element_name`.

    Args:
        diagnostics: Sink for mismatched start and end tags.
        text: Text to scan.
        element_name: Regular expression matching the tag name. It must not
            contain capturing groups.
        default_class: Value for the ``class`` argument when the tag has none.
        handler: Called as ``handler(tag, arguments, body, text, start)`` and
            returns the replacement for the whole element.
        remove_leading_space: Also remove whitespace preceding the start tag.

    Returns:
        str: Text with every element replaced.

    Examples:
        process_element(sink, text, "block(?!quote)", "hmlBlock", handle_block)
    """
    leading = r"\s*" if remove_leading_space else ""
    pattern = re.compile(
        leading
        + r"<\s*("
        + element_name
        + r""")((?:\s*[a-zA-Z_-]+\s*=\s*["'][^"']*["'])*)\s*>(.*?)<\s*/("""
        + element_name
        + r")\s*>",
        re.DOTALL | re.MULTILINE,
    )

    def replace(match: re.Match) -> str:
        start_tag, end_tag = match.group(1), match.group(4)
        if start_tag != end_tag:
            diagnostics.report(
                f"Mismatched start (<{start_tag}>) and end (</{end_tag}>) tag.",
                match.start(),
                text,
            )
        arguments = parse_arguments(match.group(2), default_class)
        return handler(start_tag, arguments, match.group(3), text, match.start())

    return pattern.sub(replace, text)


def parse_arguments(text: str, default_class: str | None = None) -> dict[str, str]:
    """Parse ``name="value"`` pairs from a start tag.

    Args:
        text: Argument portion of a tag.
        default_class: Value for ``class`` when absent; None adds nothing.

    Returns:
        dict[str, str]: Arguments in source order.

    Examples:
        parse_arguments("file='a.java' label=\\"x\\"", "hmlPre")
    """
    arguments = {name: value for name, value in ARGUMENT_PATTERN.findall(text)}
    if default_class is not None and "class" not in arguments:
        arguments["class"] = default_class
    return arguments


def format_arguments(arguments: dict[str, str], *remove: str) -> str:
    """Render arguments as `` name="value"`` pairs, skipping the `remove` keys."""
    return "".join(
        f' {name}="{value}"' for name, value in arguments.items() if name not in remove
    )


def detab(text: str, width: int = 4) -> str:
    """Expand tabs to the next multiple of `width` columns.

    Spans written as ``!<...>!`` produce markup rather than visible
    characters, so they do not advance the column.
    """
    output: list[str] = []
    column = 0
    position = 0
    length = len(text)
    while position < length:
        char = text[position]
        if char == "!" and text.startswith("!<", position):
            end = text.find(">!", position + 2)
            if end != -1 and "\n" not in text[position:end]:
                output.append(text[position : end + 2])
                position = end + 2
                continue
        if char == "\t":
            spaces = width - column % width
            output.append(" " * spaces)
            column += spaces
        elif char == "\n":
            output.append(char)
            column = 0
        else:
            output.append(char)
            column += 1
        position += 1
    return "".join(output)
