"""Document-level settings declared in ``<config>`` blocks."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .elements import process_element
from .models import BlockType, HandlerCapability
from .passes import Handler

if TYPE_CHECKING:
    from .context import PipelineContext

SETTING_LINE = re.compile(r"^([^=:\s]+)\s*[=:]\s*(.*?)\s*$")


class ConfigurationStore:
    """Key/value settings shared by the passes of one run.

    Settings written by the document override defaults supplied by the
    handlers that read them.
    """

    def __init__(self, values: dict[str, str] | None = None):
        self.values: dict[str, str] = dict(values or {})

    def value(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def supply_default(self, key: str, value: str) -> None:
        """Store `value` under `key` unless the key is already set."""
        self.values.setdefault(key, value)

    def load(self, text: str) -> list[str]:
        """Load ``key=value`` (or ``key: value``) lines.

        Blank lines and lines starting with ``#`` or ``!`` are ignored.

        Args:
            text: Body of a configuration block.

        Returns:
            list[str]: Lines that could not be parsed.
        """
        malformed = []
        for line in text.splitlines():
            stripped = line.strip()
            if not stripped or stripped[0] in "#!":
                continue
            match = SETTING_LINE.match(stripped)
            if match is None:
                malformed.append(stripped)
                continue
            self.values[match.group(1)] = match.group(2)
        return malformed


class ConfigurationHandler(Handler):
    """Removes ``<config>`` blocks from text, loading them into the store."""

    capabilities = frozenset({HandlerCapability.TEXT})

    def __init__(self, context: PipelineContext):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        return process_element(
            self.context.diagnostics,
            body,
            "(?:HML)?config",
            None,
            self._load,
            remove_leading_space=True,
        )

    def _load(self, tag: str, arguments: dict[str, str], body: str, text: str, start: int) -> str:
        for line in self.context.settings.load(body):
            self.context.diagnostics.report(
                f"Malformed configuration. Must use key=value pairs, one per line. ({line})",
                start,
                text,
            )
        return ""
