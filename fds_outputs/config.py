"""Format constants, block keyword tables, and logging setup.

WHY: The manifest and slice formats are full of magic numbers (tag
widths, record lengths, identifier limits) and keyword sets that decide
how the state machine treats a block. Keeping them as plain module-level
data makes them easy to find and adjust without touching parser logic.

HOW: Constants are module-level ints, strings, and frozensets.
configure_logging() is a convenience for scripts; the library itself
only ever calls logging.getLogger(__name__).

RULES:
- No environment variables are read; everything here is a constant
- Binary layouts are little-endian throughout
- IGNORED_BLOCKS are recognized keywords whose bodies are skipped
- HEADER_ONLY_BLOCKS are immune to the generic end-of-block reset
"""

from __future__ import annotations

import logging

# ---------------------------------------------------------------------------
# Binary slice format
# ---------------------------------------------------------------------------

RECORD_TAG_SIZE = 4
"""Width in bytes of the length tag before and after every record."""

RECORD_TAG_FORMAT = "<I"

TIME_RECORD_FORMAT = "<f"

SLICE_VALUE_DTYPE = "<f4"
"""numpy dtype of every payload value (little-endian 32-bit float)."""

DIMENSIONS_RECORD_LENGTH = 24
"""Payload length of the header's index-bounds record: six 32-bit ints."""

DIMENSIONS_RECORD_FORMAT = "<6i"

# ---------------------------------------------------------------------------
# Manifest text format
# ---------------------------------------------------------------------------

MANIFEST_ENCODING = "utf-8"

CHID_MAX_LENGTH = 50
TITLE_MAX_LENGTH = 256

# Recognized, but their bodies carry nothing the manifest model keeps.
IGNORED_BLOCKS: frozenset[str] = frozenset({
    "MATERIAL",
    "CLASS_OF_PARTICLES",
    "OUTLINE",
    "HRRPUVCUT",
    "RAMP",
    "PROP",
    "CVENT",
    "PL3D",
})

# These blocks write their body lines in column 0.
HEADER_ONLY_BLOCKS: frozenset[str] = frozenset({"FDSVERSION", "REVISION"})

DEVICE_FIELD_SEPARATOR = "%"
DEVICE_BOUNDS_MARKER = "#"

# ---------------------------------------------------------------------------
# Companion CSV tables
# ---------------------------------------------------------------------------

CSV_HEADER_ROWS = 2
"""Units row, then column-name row, then data."""

TIME_COLUMN = "Time"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    """Send fds_outputs log records to stderr at the given level."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
