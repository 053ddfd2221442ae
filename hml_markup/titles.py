"""Section headings, numbered titles, the table of contents, and references to them."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .constants import TOC_CLASS, UNKNOWN_REFERENCE
from .elements import format_arguments, process_element
from .models import BlockType, HandlerCapability
from .passes import Handler

if TYPE_CHECKING:
    from .context import PipelineContext

REFERENCE = re.compile(
    r"\{(listing|figure|table|section|note)(-number)?\s+([^\s]*?)(?:\s+([^\}]+?))?\s*\}"
)
NUMBERED_ELEMENTS = r"h[0-9]|(?:listing|figure|table)-title"
TITLE_WORD = re.compile(r"([Ff]igure|[Tt]able|[Ll]isting|[Ss]ection)\s+")

TITLE_KINDS = {
    "listing-title": ("Listing", "hmlListingTitle"),
    "figure-title": ("Figure", "hmlFigureTitle"),
    "table-title": ("Table", "hmlTableTitle"),
}


@dataclass
class TitleState:
    """Numbering and label tables shared by the heading and title passes.

    Attributes:
        section_numbers: Current number at each heading level.
        current_level: Level of the most recent heading.
        counters: Listing, figure and table numbers within the chapter.
        labels: Identifying text ("Listing 2.1", "Section 3.4") by kind and label.
        add_section_numbers: False after an ``<h0>``.
        chapter_id: Literal chapter name replacing the chapter number.
        use_letters: Chapter numbers are shown as letters.
        toc_entries: Rendered table-of-contents lines.
        contents_target: Counter for generated heading anchors.
    """

    section_numbers: list[int] = field(default_factory=lambda: [0] * 10)
    current_level: int = 0
    counters: dict[str, int] = field(
        default_factory=lambda: {"listing": 0, "figure": 0, "table": 0}
    )
    labels: dict[str, dict[str, str]] = field(
        default_factory=lambda: {"listing": {}, "figure": {}, "table": {}, "section": {}}
    )
    add_section_numbers: bool = True
    chapter_id: str | None = None
    use_letters: bool = False
    toc_entries: list[str] = field(default_factory=list)
    contents_target: int = 0

    def chapter(self) -> str:
        if self.chapter_id is not None:
            return self.chapter_id
        if self.use_letters:
            return chr(self.section_numbers[1])
        return str(self.section_numbers[1])

    def section_number(self) -> str:
        """Dotted number of the current heading, e.g. ``2.3.1``."""
        parts = [self.chapter()]
        parts.extend(str(number) for number in self.section_numbers[2 : self.current_level + 1])
        return ".".join(parts)


def _shows_in_toc(toc: str | None) -> bool:
    return toc is None or not toc[:1].lower() in ("f", "n")


class TitlesHandler(Handler):
    """Numbers ``<hN>`` headings and ``<listing-title>``-style titles."""

    capabilities = frozenset({HandlerCapability.TEXT})

    def __init__(self, context: PipelineContext):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        # One scan, so chapter headings reset the title counters in document order
        return process_element(self.context.diagnostics, body, NUMBERED_ELEMENTS, None, self._number)

    def _number(self, tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
        if tag in TITLE_KINDS:
            return self._title(tag, arguments, body, text, start)
        return self._heading(tag, arguments, body, text, start)

    def _heading(self, tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
        state = self.context.titles
        label = arguments.get("label")
        level = int(tag[1:])

        if level in (0, 1):
            state.counters = dict.fromkeys(state.counters, 0)
            state.add_section_numbers = level != 0
            state.chapter_id = arguments.get("chapter")
            if state.chapter_id is not None:
                if state.chapter_id.isdigit():
                    state.use_letters = False
                    state.section_numbers[1] = int(state.chapter_id) - 1
                    state.chapter_id = None
                elif len(state.chapter_id) == 1 and state.chapter_id.isascii() and state.chapter_id.isalpha():
                    state.use_letters = True
                    state.section_numbers[1] = ord(state.chapter_id) - 1
                    state.chapter_id = None

        while state.current_level > level:
            state.section_numbers[state.current_level] = 0
            state.current_level -= 1
        state.current_level = level
        state.section_numbers[level] += 1

        if label is None:
            target = f"hmlContents{state.contents_target}"
            state.contents_target += 1
        else:
            target = label

        number = state.section_number()
        heading = (f"{number}. " if state.add_section_numbers else "") + body
        if label is not None:
            state.labels["section"][label] = f"Section {number}"

        in_toc = _shows_in_toc(arguments.get("toc"))
        if in_toc:
            state.toc_entries.append(
                f'<div class="hmlTocLev{level}"><a href="#{target}">{heading.strip()}</a></div>\n'
            )

        displayed = 1 if level == 0 else level
        html = f"<h{displayed}{format_arguments(arguments, 'chapter', 'label', 'toc')}>{heading}</h{displayed}>"
        return f'<a name="{target}">{html}</a>' if in_toc else html

    def _title(self, tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
        state = self.context.titles
        kind = tag.split("-")[0]
        word, css_class = TITLE_KINDS[tag]
        label = arguments.get("label")

        state.counters[kind] += 1
        identifying = f"{word} "
        if state.add_section_numbers and state.section_numbers[1] > 0:
            identifying += state.chapter() + "."
        identifying += str(state.counters[kind])

        if label is None:
            anchor = "<a>"
        else:
            state.labels[kind][label] = identifying
            anchor = f'<a name="{label}">'
        return (
            f'<div class="{css_class}">{anchor}<span class="hmlTitle">{identifying}.</span> '
            f"{body}</a></div>"
        )


class TocHandler(Handler):
    """Replaces ``<toc>title</toc>`` with the collected table of contents."""

    capabilities = frozenset({HandlerCapability.TEXT})

    def __init__(self, context: PipelineContext):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        return process_element(self.context.diagnostics, body, "toc", TOC_CLASS, self._toc)

    def _toc(self, tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
        entries = self.context.titles.toc_entries
        if not entries:
            self.context.diagnostics.report("Requested table of contents is empty!", start, text)
            return ""
        return (
            f'<div{format_arguments(arguments)}>\n<div class="hmlTocTitle">{body}</div>\n'
            + "".join(entries)
            + "</div>"
        )


class TitleReferenceHandler(Handler):
    """Resolves ``{listing x}``, ``{figure x}``, ``{table x}``, ``{section x}`` and ``{note x}``.

    A ``-number`` suffix on the kind (``{listing-number x}``) drops the word
    and keeps the number. Trailing text replaces the generated link text.
    """

    capabilities = frozenset({HandlerCapability.CODE, HandlerCapability.TEXT})

    def __init__(self, context: PipelineContext):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        text = prefix + body + suffix

        def replace(match: re.Match) -> str:
            kind, number_only, label, visible = match.groups()
            if kind == "note":
                target, identifying = self._note(label, visible, number_only is not None, match, text)
            else:
                target = label
                identifying = visible or self.context.titles.labels[kind].get(label)
                if identifying is None:
                    element = "<hN" if kind == "section" else f"<{kind}-title"
                    self.context.diagnostics.report(
                        f'No {element} label="{label}"> to match {match.group(0)}. '
                        "Missing title= in <include>?",
                        match.start(),
                        text,
                    )
                    identifying = UNKNOWN_REFERENCE
                elif number_only and not visible:
                    identifying = TITLE_WORD.sub("", identifying)
            return f'<a href="#{target}">{identifying}</a>'

        return REFERENCE.sub(replace, text)

    def _note(
        self, label: str, visible: str | None, number_only: bool, match: re.Match, text: str
    ) -> tuple[str, str]:
        note = self.context.notes.find(label)
        if note is None:
            self.context.diagnostics.report(
                f'Can\'t find <note label="{label}"> for {{note {label}}}', match.start(), text
            )
            return UNKNOWN_REFERENCE, visible or UNKNOWN_REFERENCE
        if visible:
            return note.target, visible
        return note.target, ("" if number_only else "Note ") + note.mark
