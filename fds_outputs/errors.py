"""Typed exceptions for manifest, slice, and companion-file failures.

WHY: Callers need to tell a corrupt slice record apart from a truncated
file, and a malformed manifest token apart from a manifest whose meshes
do not line up. A small exception hierarchy makes each failure catchable
on its own while still allowing a broad catch per file format.

HOW: Two families (ManifestError, SliceError) plus lookup errors for the
outputs façade. Each exception stores the context it was raised with as
attributes and builds a readable message from them.

RULES:
- Parsers raise these where the failure is detected; nothing retries
- Manifest parsing is all-or-nothing: any ManifestError means no manifest
- SliceTruncatedError is also an EOFError, so end-of-stream checks work
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class ManifestError(Exception):
    """Base class for every manifest failure."""


class ManifestParseError(ManifestError, ValueError):
    """Raised when a line inside a recognized block cannot be decoded.

    WHY: A malformed number in an OBST line must abort the whole parse
    rather than produce a half-built obstruction.

    HOW: Raised by the field decoders; the state machine attaches the
    line number and block keyword before re-raising.

    RULES:
    - line_number is 1-based and None until the parser fills it in
    - block is the keyword of the active block (e.g. "OBST")
    """

    def __init__(
        self,
        message: str,
        line: str | None = None,
        line_number: int | None = None,
        block: str | None = None,
    ) -> None:
        self.reason = message
        self.line = line
        self.line_number = line_number
        self.block = block
        super().__init__(self._format())

    def _format(self) -> str:
        where = []
        if self.line_number is not None:
            where.append("line {}".format(self.line_number))
        if self.block:
            where.append("block {}".format(self.block))
        prefix = "{}: ".format(", ".join(where)) if where else ""
        suffix = " ({!r})".format(self.line) if self.line is not None else ""
        return "{}{}{}".format(prefix, self.reason, suffix)

    def locate(self, line_number: int, block: str | None) -> ManifestParseError:
        """Return a copy of this error pinned to a line and block."""
        return ManifestParseError(
            self.reason,
            line=self.line,
            line_number=line_number,
            block=block,
        )


class ManifestStructureError(ManifestError):
    """Raised when the blocks decode but do not fit together.

    WHY: Per-mesh data arrives as separate parallel lists (GRID, OBST,
    VENT, TRNX/Y/Z, PDIM, OFFSET). If one list is short the meshes
    cannot be assembled, and guessing would silently misattribute
    geometry to the wrong mesh.

    RULES:
    - Raised during finalization, after every line has been consumed
    - Also raised for missing required blocks (CHID, INPF, TITLE)
    """


# ---------------------------------------------------------------------------
# Slice files
# ---------------------------------------------------------------------------


class SliceError(Exception):
    """Base class for every slice file failure."""


class SliceFramingError(SliceError):
    """Raised when a record's leading and trailing length tags disagree.

    WHY: The tags are the only integrity check the format has. Trusting
    either one alone turns a corrupt file into wrong numbers.

    RULES:
    - offset is the byte position of the record's leading tag
    - Also raised when the dimensions record is not exactly 24 bytes
    - Also raised when a text record's leading tag runs past the end
      of the stream
    """

    def __init__(self, record: str, offset: int, leading: int, trailing: int | None = None) -> None:
        self.record = record
        self.offset = offset
        self.leading = leading
        self.trailing = trailing
        if trailing is None:
            message = "{} record at byte {} has unexpected length {}".format(record, offset, leading)
        else:
            message = "{} record at byte {}: length tags differ ({} != {})".format(
                record, offset, leading, trailing
            )
        super().__init__(message)


class SliceTruncatedError(SliceError, EOFError):
    """Raised when the stream ends before a record is complete."""

    def __init__(self, record: str, offset: int, expected: int, received: int) -> None:
        self.record = record
        self.offset = offset
        self.expected = expected
        self.received = received
        super().__init__(
            "{} record at byte {}: expected {} bytes, got {}".format(record, offset, expected, received)
        )


# ---------------------------------------------------------------------------
# Companion outputs
# ---------------------------------------------------------------------------


class CatalogLookupError(KeyError):
    """Raised when the manifest lists no companion file of a given type."""


class ColumnNotFoundError(KeyError):
    """Raised when a companion table has no column with the requested name."""


class NonNumericColumnError(ValueError):
    """Raised when narrowing a column to float meets a non-numeric cell."""

    def __init__(self, column: str, row: int, value: object) -> None:
        self.column = column
        self.row = row
        self.value = value
        super().__init__("column {!r}, row {}: {!r} is not a number".format(column, row, value))
