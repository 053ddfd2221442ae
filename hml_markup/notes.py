"""End notes collected from ``<note>`` elements."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class EndNote:
    """One note and the anchors tying it to its reference.

    Attributes:
        note_id: Identifier unique within the run.
        mark: Text of the reference mark (usually the note number).
        content: Body of the note.
    """

    note_id: str
    mark: str
    content: str

    @property
    def target(self) -> str:
        return f"hmlNote{self.note_id}"

    def reference(self) -> str:
        return (
            f'<a name="hmlRef-{self.note_id}" id="hmlRef-{self.note_id}" '
            f'href="#{self.target}">{self.mark}</a>'
        )

    def render(self) -> str:
        return (
            f'<div class="hmlNoteGroup" id="hmlNote-{self.note_id}">'
            f'<div class="hmlNoteRef"><a name="{self.target}" href="#hmlRef-{self.note_id}">{self.mark}</a></div>'
            f'<div class="hmlNoteBody" id="hmlNoteBody-{self.note_id}">{self.content}</div>'
            "</div>\n"
        )


@dataclass
class NoteSet:
    """Notes waiting to be printed, plus a label lookup for references."""

    notes: list[EndNote] = field(default_factory=list)
    by_label: dict[str, EndNote] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.notes)

    def add(self, note: EndNote, label: str | None = None) -> bool:
        """Add `note` unless a pending note already uses its mark.

        Returns:
            bool: False when the mark is already taken.
        """
        if any(existing.mark == note.mark for existing in self.notes):
            return False
        self.notes.append(note)
        if label:
            self.by_label[label] = note
        return True

    def find(self, label: str) -> EndNote | None:
        return self.by_label.get(label)

    def render(self) -> str:
        return "".join(note.render() for note in self.notes)

    def clear(self) -> None:
        self.notes.clear()
