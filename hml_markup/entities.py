"""Final restoration of escaped printable characters."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .models import BlockType, HandlerCapability
from .passes import Handler

if TYPE_CHECKING:
    from .context import PipelineContext

NUMERIC_ENTITY = re.compile(r"&#(\d+);")


def unmap_entities(text: str) -> str:
    """Replace ``&#N;`` for printable ASCII (32 to 126) with the character.

    Replacement repeats until no such entity is left, so a restored ``&``
    or ``#`` cannot leave a new entity behind.

    Examples:
        unmap_entities("x&#40;&#41;")  # "x()"
    """
    def replace(match: re.Match) -> str:
        value = int(match.group(1))
        return chr(value) if 32 <= value <= 126 else match.group(0)

    while True:
        unmapped = NUMERIC_ENTITY.sub(replace, text)
        if unmapped == text:
            return text
        text = unmapped


class EntityUnmapper(Handler):
    """Turns numeric entities for printable characters back into characters."""

    capabilities = frozenset({HandlerCapability.TEXT, HandlerCapability.CODE})

    def __init__(self, context: PipelineContext | None = None):
        self.context = context

    def filter(self, prefix: str, body: str, suffix: str, block_type: BlockType) -> str:
        return prefix + unmap_entities(body) + suffix
