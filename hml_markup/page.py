"""Head and tail templates wrapped around an expanded document."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

from .constants import DEFAULT_MAX_FILE_SIZE
from .filesystem import read_document

HEAD_TEMPLATE = "hml.head"
TAIL_TEMPLATE = "hml.tail"


def load_template(path: str | Path | None, name: str, max_size: int = DEFAULT_MAX_FILE_SIZE) -> str:
    """Read a configured template, or the bundled one called `name`.

    Args:
        path: Configured template file, or None.
        name: Bundled template used when `path` is None.
        max_size: Size limit for a configured template.

    Returns:
        str: Template text.

    Raises:
        IOError: If a configured template cannot be read.
    """
    if path is not None:
        return read_document(Path(path), max_size)
    return resources.files("hml_markup").joinpath("data", name).read_text(encoding="UTF-8")


def assemble_page(head: str, body: str, tail: str) -> str:
    if body and not body.endswith("\n"):
        body += "\n"
    return head + body + tail
