"""The ordered sequence of passes that turns HML into HTML."""

from __future__ import annotations

import logging

from .config import HmlConfig
from .context import PipelineContext
from .entities import EntityUnmapper
from .include import IncludeHandler
from .listing import ListingHandler, ListingReferenceHandler
from .macros import CodeMacroHandler, RefMacroHandler, TextMacroHandler
from .models import Document, ExpansionResult
from .page import HEAD_TEMPLATE, TAIL_TEMPLATE, assemble_page, load_template
from .passes import Pass
from .settings import ConfigurationHandler
from .snippets import CodeSnippetHandler
from .tags import TagHandler, append_additions_to_head
from .titles import TitleReferenceHandler, TitlesHandler, TocHandler

logger = logging.getLogger(__name__)


class Pipeline:
    """Runs documents through the fixed sequence of passes.

    Documents expanded by the same pipeline belong to one run: symbols,
    labels, notes and counters carry from one document to the next until
    `new_run` is called.

    Args:
        config: Project configuration; defaults are used when omitted.
        context: Existing run state to continue; a new one is created when
            omitted.

    Examples:
        pipeline = Pipeline(HmlConfig(fragment=True))
        document = Document(text, path)
        errors = pipeline.expand(document)
    """

    def __init__(self, config: HmlConfig | None = None, context: PipelineContext | None = None):
        self.config = config or (context.config if context else HmlConfig())
        self.context = context or PipelineContext.create(self.config)
        self.passes = self._build_passes()

    def _build_passes(self) -> list[Pass]:
        context = self.context
        stages = [
            ("include", IncludeHandler(context)),
            ("configuration", ConfigurationHandler(context)),
            ("snippet", CodeSnippetHandler(context)),
            ("text macro", TextMacroHandler(context)),
            ("tag", TagHandler(context)),
            ("listing", ListingHandler(context)),
            ("code macro", CodeMacroHandler(context)),
            ("title", TitlesHandler(context)),
            ("ref macro", RefMacroHandler(context)),
            ("listing reference", ListingReferenceHandler(context)),
            ("title reference", TitleReferenceHandler(context)),
            ("table of contents", TocHandler(context)),
            ("entity", EntityUnmapper(context)),
        ]
        return [Pass([handler], context.diagnostics, name) for name, handler in stages]

    @property
    def error_count(self) -> int:
        return self.context.diagnostics.error_count

    def new_run(self) -> None:
        """Discard all run state and start over with a fresh context."""
        self.context = PipelineContext.create(self.config)
        self.passes = self._build_passes()

    def expand(self, document: Document) -> int:
        """Expand `document` in place.

        The passes run in order. A pass that fails leaves the document as the
        previous pass produced it and the remaining passes are skipped.

        Args:
            document: Document to expand; its text is replaced.

        Returns:
            int: Number of errors reported in the run so far.
        """
        self.context.base_dir = document.path.parent if document.path else None
        for stage in self.passes:
            logger.debug("Running %s pass", stage.name)
            if not stage.process(document):
                logger.warning("The %s pass failed, skipping the remaining passes", stage.name)
                break
        return self.error_count

    def wrap(self, body: str) -> str:
        """Surround `body` with the head and tail templates.

        Bodies of ``<head>`` elements found during the run are merged into
        the head template's ``<head>`` element.

        Raises:
            IOError: If a configured template cannot be read.
        """
        max_size = self.context.max_file_size
        head = load_template(self.config.head_template, HEAD_TEMPLATE, max_size)
        tail = load_template(self.config.tail_template, TAIL_TEMPLATE, max_size)
        return assemble_page(append_additions_to_head(self.context, head), body, tail)


def expand_markup(text: str, config: HmlConfig | None = None) -> ExpansionResult:
    """Expand one in-memory document in a run of its own.

    Args:
        text: HML source.
        config: Project configuration; defaults are used when omitted.

    Returns:
        ExpansionResult: HTML (wrapped unless ``config.fragment``), error
        count and rendered diagnostics.

    Examples:
        result = expand_markup("`x`", HmlConfig(fragment=True))
        result.html  # "<nobr><code>x</code></nobr>"
    """
    pipeline = Pipeline(config)
    document = Document(text)
    error_count = pipeline.expand(document)
    html = document.text if pipeline.config.fragment else pipeline.wrap(document.text)
    return ExpansionResult(
        html=html,
        error_count=error_count,
        diagnostics=[diagnostic.render() for diagnostic in pipeline.context.diagnostics.diagnostics],
    )
