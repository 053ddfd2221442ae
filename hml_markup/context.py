"""State shared by the passes of one expansion run."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from .config import HmlConfig
from .diagnostics import DiagnosticSink
from .filesystem import get_max_file_size
from .index import Index
from .listing import ListingState
from .macros import MacroSet
from .notes import NoteSet
from .settings import ConfigurationStore
from .titles import TitleState

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Everything the handlers of one run read and update.

    A context lives for one run. Documents expanded in the same run see each
    other's symbols, labels and counters; a new run gets a new context.

    Attributes:
        config: Project configuration.
        diagnostics: Sink for problems found in the documents.
        settings: Values from ``<config>`` blocks and handler defaults.
        macros: Loaded macro definitions.
        listings: Listing symbols and per-file line numbering.
        titles: Heading and title numbering.
        notes: Pending end notes.
        index: Index topics.
        head_additions: Bodies of ``<head>`` elements, in document order.
        note_number: Number of the last automatically numbered note.
        base_dir: Directory of the document being expanded, for includes.
        max_file_size: Size limit for included files.
    """

    config: HmlConfig = field(default_factory=HmlConfig)
    diagnostics: DiagnosticSink = field(default_factory=DiagnosticSink)
    settings: ConfigurationStore = field(default_factory=ConfigurationStore)
    macros: MacroSet = field(default_factory=MacroSet)
    listings: ListingState = field(default_factory=ListingState)
    titles: TitleState = field(default_factory=TitleState)
    notes: NoteSet = field(default_factory=NoteSet)
    index: Index = field(default_factory=Index)
    head_additions: list[str] = field(default_factory=list)
    note_number: int = 0
    base_dir: Path | None = None
    max_file_size: int = 0
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(1), repr=False)

    @classmethod
    def create(cls, config: HmlConfig | None = None) -> PipelineContext:
        """Create the state for a new run and load its macros.

        Macro files named by the configuration come first, followed by the
        built-in definitions unless they are turned off.

        Raises:
            ValueError: If ``HML_MAX_FILE_SIZE`` is set to an invalid value.
        """
        config = config or HmlConfig()
        context = cls(config=config, max_file_size=get_max_file_size(config.max_file_size))

        for macro_file in config.macro_files:
            context.macros.load_file(Path(macro_file), context.diagnostics)
        if config.builtin_macros:
            context.macros.load_builtin(context.diagnostics)

        logger.debug("New run with %d macros", len(context.macros))
        return context

    def next_id(self) -> str:
        """Return a run-unique identifier for generated anchors."""
        return str(next(self._ids))
