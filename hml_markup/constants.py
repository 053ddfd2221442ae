"""Constants used across the hml-markup package."""

from __future__ import annotations

import re

from .models import RegionKind

# Region delimiters, in the order used to break ties between equal offsets
REGION_PATTERNS = (
    (RegionKind.SHORTHAND_CODE_LINE, re.compile(r"^([\t ]*,.*\n)+", re.MULTILINE)),
    (RegionKind.CODE_BLOCK_OPEN, re.compile(r"<pre(?=[\s>])[^>]*?>")),
    (RegionKind.CODE_BLOCK_CLOSE, re.compile(r"</pre\s*>")),
    (RegionKind.LISTING_OPEN, re.compile(r"<listing(?=[\s>])[^>]*?>")),
    (RegionKind.LISTING_CLOSE, re.compile(r"</listing\s*>")),
    (RegionKind.COMMENT_OPEN, re.compile(r"(?<!\\)<!=")),
    (RegionKind.COMMENT_CLOSE, re.compile(r"(?<!\\)=!>")),
    (
        RegionKind.INLINE_SNIPPET_DELIMITER,
        re.compile(r"((?<![`\\])`(?!`))|(^`(?!`))|((?<![`\\])`$)", re.MULTILINE),
    ),
)
KIND_ORDER = {kind: index for index, (kind, _) in enumerate(REGION_PATTERNS)}

MATCHING_CLOSE = {
    RegionKind.CODE_BLOCK_OPEN: RegionKind.CODE_BLOCK_CLOSE,
    RegionKind.LISTING_OPEN: RegionKind.LISTING_CLOSE,
    RegionKind.COMMENT_OPEN: RegionKind.COMMENT_CLOSE,
}
CLOSE_KINDS = frozenset(MATCHING_CLOSE.values())

# A shorthand block is presented as "\n" + lines with every "\n<ws>,<tab>?" collapsed
SHORTHAND_LINE_PREFIX = re.compile(r"\n\s*,\t?")

# Defaults supplied to the document settings store
BANG_COMMENT_KEY = "bangComment"
DEFAULT_BANG_COMMENT = r"(?://|(?<!&)#+)!"

DEFAULT_TAB_WIDTH = 4
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_MAX_INCLUDE_DEPTH = 16

UNKNOWN_REFERENCE = "????"

# CSS classes of the generated markup
LISTING_GROUP_CLASS = "hmlListingGroup"
PRE_GROUP_CLASS = "hmlPreGroup"
PRE_CLASS = "hmlPre"
NOTE_CLASS = "hmlNote"
NOTES_CLASS = "hmlNotes"
INDEX_CLASS = "hmlIndex"
BLOCK_CLASS = "hmlBlock"
TOC_CLASS = "hmlToc"
