"""Miscellaneous elements: head additions, notes, index and blocks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .constants import BLOCK_CLASS, INDEX_CLASS, NOTE_CLASS, NOTES_CLASS, UNKNOWN_REFERENCE
from .elements import format_arguments, process_element
from .models import BlockType, HandlerCapability
from .notes import EndNote
from .passes import Handler

if TYPE_CHECKING:
    from .context import PipelineContext


class TagHandler(Handler):
    """Expands the elements that need no information from other passes.

    Elements are processed in a fixed order: ``<head>``, ``<note>``,
    ``<endnotes>``, ``<index-entry>``, ``<index>`` and ``<block>``.
    """

    capabilities = frozenset({HandlerCapability.TEXT})

    def __init__(self, context: PipelineContext):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        diagnostics = self.context.diagnostics
        text = process_element(diagnostics, body, "head", None, self._head)
        text = process_element(diagnostics, text, "note", NOTE_CLASS, self._note, remove_leading_space=True)
        text = process_element(diagnostics, text, "end[Nn]otes", NOTES_CLASS, self._end_notes)
        text = process_element(
            diagnostics, text, "index-entry", None, self._index_entry, remove_leading_space=True
        )
        text = process_element(diagnostics, text, "index", INDEX_CLASS, self._index)
        return process_element(diagnostics, text, "block(?!quote)", BLOCK_CLASS, self._block)

    def _head(self, tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
        self.context.head_additions.append(body)
        return ""

    def _note(self, tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
        mark = arguments.get("mark")
        if mark is None:
            self.context.note_number += 1
            mark = str(self.context.note_number)
        elif mark.strip().isdigit():
            self.context.note_number = int(mark)

        note = EndNote(self.context.next_id(), mark, body)
        if not self.context.notes.add(note, arguments.get("label")):
            self.context.diagnostics.report(
                f"Mark specified in <note mark='{mark}'> has already been used.", start, text
            )
            return UNKNOWN_REFERENCE

        return "<span{}>{}{}{}</span>".format(
            format_arguments(arguments, "mark", "label", "suffix", "prefix"),
            arguments.get("prefix", ""),
            note.reference(),
            arguments.get("suffix", ""),
        )

    def _end_notes(self, tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
        notes = self.context.notes
        if not notes:
            self.context.diagnostics.report("No notes to print!", start, text)
        block = f"<div{format_arguments(arguments, 'clear')}>\n{body}{notes.render()}</div>"

        if "clear" in arguments:
            notes.clear()
            self.context.note_number = 0
        return block

    def _index_entry(self, tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
        topic = arguments.get("topic", "").strip()
        if not topic:
            self.context.diagnostics.report("Missing topic name for index entry.", start, text)
            return ""
        return self.context.index.anchor_for(topic, body, self.context.next_id)

    def _index(self, tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
        return self.context.index.render(body, format_arguments(arguments))

    def _block(self, tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
        lines = body.strip().replace("\n", "<br>\n")
        return f"<blockquote{format_arguments(arguments)}>\n{lines}<br>\n</blockquote>"


def append_additions_to_head(context: PipelineContext, text: str) -> str:
    """Merge the collected ``<head>`` bodies into the head element of `text`."""
    additions = "".join(context.head_additions)

    def merge(tag: str, arguments: dict[str, str], body: str, context_text: str, start: int) -> str:
        return f"<head{format_arguments(arguments)}>{body}{additions}</head>"

    return process_element(context.diagnostics, text, "head", None, merge)
