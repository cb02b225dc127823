"""Cursor-based reader for binary slice files.

WHY: A slice file holds one scalar field sampled on a 3-D index region
at every output time. Files routinely reach gigabytes, so they are read
through a cursor one frame at a time, never loaded whole, and any frame
can be reached in O(1) by seeking.

HOW: Every record is framed as ``u32 length | payload | u32 length``.
The header is three text records (quantity, short name, units) and one
24-byte record of six int32 index bounds. Each frame is a 4-byte float
time record followed by a record of N float32 values, where N is the
number of cells in the index region. Because every frame has the same
byte size, frame k starts at ``header_byte_length + k * frame_byte_length``.

RULES:
- Little-endian throughout
- Leading and trailing length tags must match or SliceFramingError
- Short reads raise SliceTruncatedError (an EOFError)
- frame_byte_length is computed once from the header and reused
- read_slice_file() keeps every frame decoded before the first failure
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Tuple, Union

import numpy as np

from fds_outputs.config import (
    DIMENSIONS_RECORD_FORMAT,
    DIMENSIONS_RECORD_LENGTH,
    RECORD_TAG_FORMAT,
    RECORD_TAG_SIZE,
    SLICE_VALUE_DTYPE,
    TIME_RECORD_FORMAT,
)
from fds_outputs.errors import SliceError, SliceFramingError, SliceTruncatedError

logger = logging.getLogger(__name__)

_TIME_RECORD_LENGTH = struct.calcsize(TIME_RECORD_FORMAT)
_VALUE_SIZE = np.dtype(SLICE_VALUE_DTYPE).itemsize


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Dimensions:
    """Inclusive index bounds of the sampled region."""

    i_min: int
    i_max: int
    j_min: int
    j_max: int
    k_min: int
    k_max: int

    @property
    def extents(self) -> Tuple[int, int, int]:
        """Number of cells along i, j and k."""
        return (
            self.i_max - self.i_min + 1,
            self.j_max - self.j_min + 1,
            self.k_max - self.k_min + 1,
        )

    @property
    def n_values(self) -> int:
        ni, nj, nk = self.extents
        return ni * nj * nk


@dataclass(frozen=True)
class SliceHeader:
    quantity: str
    short_name: str
    units: str
    dimensions: Dimensions


@dataclass(eq=False)
class Frame:
    """One timestamp and the flat payload sampled at that time.

    ``values`` is a float32 array in file order (i varies fastest).
    """

    time: float
    values: np.ndarray
    shape: Tuple[int, int, int] = field(default=(0, 0, 0))

    def grid(self) -> np.ndarray:
        """The payload reshaped to (ni, nj, nk)."""
        return self.values.reshape(self.shape, order="F")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return self.time == other.time and np.array_equal(self.values, other.values)


@dataclass
class SliceFile:
    """A whole slice file: the header plus every frame that decoded."""

    header: SliceHeader
    frames: List[Frame] = field(default_factory=list)


def frame_byte_length(dimensions: Dimensions) -> int:
    """Size in bytes of one framed time record plus one framed payload record."""
    time_record = 2 * RECORD_TAG_SIZE + _TIME_RECORD_LENGTH
    payload_record = 2 * RECORD_TAG_SIZE + _VALUE_SIZE * dimensions.n_values
    return time_record + payload_record


# ---------------------------------------------------------------------------
# Record framing
# ---------------------------------------------------------------------------


def _read_exact(stream: BinaryIO, size: int, record: str) -> bytes:
    offset = stream.tell()
    data = stream.read(size)
    if len(data) != size:
        raise SliceTruncatedError(record, offset, size, len(data))
    return data


def _read_tag(stream: BinaryIO, record: str) -> int:
    return struct.unpack(RECORD_TAG_FORMAT, _read_exact(stream, RECORD_TAG_SIZE, record))[0]


def _read_record(stream: BinaryIO, record: str, expected_length: Optional[int] = None) -> bytes:
    """Read one framed record and return its payload.

    Args:
        stream: Binary stream positioned at the record's leading tag.
        record: Name used in error messages ("quantity", "time", ...).
        expected_length: When given, the leading tag must equal it.

    Raises:
        SliceFramingError: Tag differs from expected_length, the trailing
            tag differs from the leading one, or an unchecked leading tag
            claims more bytes than the stream holds.
        SliceTruncatedError: The stream ended inside a record whose
            length was already checked.
    """
    offset = stream.tell()
    leading = _read_tag(stream, record)
    if expected_length is not None and leading != expected_length:
        raise SliceFramingError(record, offset, leading)
    try:
        payload = _read_exact(stream, leading, record)
    except SliceTruncatedError:
        if expected_length is not None:
            raise
        raise SliceFramingError(record, offset, leading) from None
    trailing = _read_tag(stream, record)
    if trailing != leading:
        raise SliceFramingError(record, offset, leading, trailing)
    return payload


def _read_text(stream: BinaryIO, record: str) -> str:
    return _read_record(stream, record).decode("ascii", errors="replace").strip()


def _read_header(stream: BinaryIO) -> SliceHeader:
    quantity = _read_text(stream, "quantity")
    short_name = _read_text(stream, "short_name")
    units = _read_text(stream, "units")
    offset = stream.tell()
    bounds = struct.unpack(
        DIMENSIONS_RECORD_FORMAT,
        _read_record(stream, "dimensions", DIMENSIONS_RECORD_LENGTH),
    )
    dimensions = Dimensions(*bounds)
    if any(extent <= 0 for extent in dimensions.extents):
        raise SliceError("dimensions record at byte {} has empty region {}".format(offset, bounds))
    return SliceHeader(quantity, short_name, units, dimensions)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class SliceParser:
    """Stateful cursor over the frames of one slice file.

    WHY: Post-processing often wants a handful of frames out of
    thousands, or wants to stream through all of them without holding
    more than one in memory.

    HOW: The header is decoded on construction. next_frame() decodes at
    the current position; frame_at() seeks to the computed offset first.
    Iterating yields frames until the first failure.

    RULES:
    - One parser per stream; the parser owns it for the session
    - current_frame advances only when a frame decodes successfully
    - Parsers opened with open_path() close their file on close()/exit
    """

    def __init__(self, stream: BinaryIO, owns_stream: bool = False) -> None:
        self._stream = stream
        self._owns_stream = owns_stream
        self.header = _read_header(stream)
        self._header_byte_length = stream.tell()
        self._frame_byte_length = frame_byte_length(self.header.dimensions)
        self.current_frame = 0
        logger.debug(
            "Slice header: %s [%s] region %s, header %d bytes, frame %d bytes",
            self.header.quantity, self.header.units, self.header.dimensions.extents,
            self._header_byte_length, self._frame_byte_length,
        )

    @classmethod
    def open(cls, source: BinaryIO) -> SliceParser:
        """Decode the header of a seekable binary stream the caller owns."""
        return cls(source)

    @classmethod
    def open_path(cls, path: Union[str, Path]) -> SliceParser:
        """Open the slice file at ``path``; the parser closes it when done."""
        stream = open(path, "rb")
        try:
            return cls(stream, owns_stream=True)
        except Exception:
            stream.close()
            raise

    @property
    def header_byte_length(self) -> int:
        """Byte offset of the first frame."""
        return self._header_byte_length

    @property
    def frame_byte_length(self) -> int:
        return self._frame_byte_length

    def frame_offset(self, index: int) -> int:
        return self._header_byte_length + index * self._frame_byte_length

    def next_frame(self) -> Frame:
        """Decode the frame at the current stream position.

        Raises:
            SliceFramingError: A length tag is corrupt.
            SliceTruncatedError: The stream ended inside the frame.
        """
        dimensions = self.header.dimensions
        (time,) = struct.unpack(
            TIME_RECORD_FORMAT, _read_record(self._stream, "time", _TIME_RECORD_LENGTH)
        )
        payload = _read_record(self._stream, "values", _VALUE_SIZE * dimensions.n_values)
        values = np.frombuffer(payload, dtype=SLICE_VALUE_DTYPE).astype(np.float32)
        self.current_frame += 1
        return Frame(time=time, values=values, shape=dimensions.extents)

    def seek_frame(self, index: int) -> int:
        """Position the cursor at frame ``index`` without decoding it.

        Seeking past the end is allowed; the next read then raises
        SliceTruncatedError.
        """
        if index < 0:
            raise ValueError("frame index must be non-negative, got {}".format(index))
        offset = self._stream.seek(self.frame_offset(index))
        self.current_frame = index
        logger.debug("Seek to frame %d at byte %d", index, offset)
        return offset

    def frame_at(self, index: int) -> Frame:
        self.seek_frame(index)
        return self.next_frame()

    def frame_count(self) -> int:
        """Number of whole frames in the stream, from its size."""
        position = self._stream.tell()
        size = self._stream.seek(0, 2)
        self._stream.seek(position)
        return max(0, (size - self._header_byte_length) // self._frame_byte_length)

    def __iter__(self) -> Iterator[Frame]:
        while True:
            try:
                frame = self.next_frame()
            except SliceError:
                return
            yield frame

    def close(self) -> None:
        if self._owns_stream:
            self._stream.close()

    def __enter__(self) -> SliceParser:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _clean_end(parser: SliceParser, err: SliceError) -> bool:
    """True when err is the stream ending exactly at a frame boundary."""
    return (
        isinstance(err, SliceTruncatedError)
        and err.received == 0
        and err.offset == parser.frame_offset(parser.current_frame)
    )


def read_slice_file(source: Union[BinaryIO, str, Path], strict: bool = False) -> SliceFile:
    """Decode a whole slice file into memory.

    WHY: Small slice files (or tests) are easier to handle as one object.

    HOW: Opens a parser and calls next_frame() until it fails, keeping
    every frame decoded before the failure.

    RULES:
    - Default: a file truncated mid-frame silently loses its partial last
      frame (the failure is logged at INFO)
    - strict=True: any failure other than a clean end of stream at a
      frame boundary is re-raised
    - Header failures always raise

    Args:
        source: A seekable binary stream, or a path to open.
        strict: Re-raise mid-frame failures instead of stopping.

    Returns:
        SliceFile with the header and the decoded frames.
    """
    if isinstance(source, (str, Path)):
        parser = SliceParser.open_path(source)
    else:
        parser = SliceParser.open(source)

    with parser:
        frames = []
        while True:
            try:
                frames.append(parser.next_frame())
            except SliceError as err:
                if _clean_end(parser, err):
                    break
                if strict:
                    raise
                logger.info("Stopped reading slice after %d frames: %s", len(frames), err)
                break

    logger.debug("Read %d frames of %s", len(frames), parser.header.quantity)
    return SliceFile(header=parser.header, frames=frames)
