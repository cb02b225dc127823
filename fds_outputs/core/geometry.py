"""Geometric value types shared by the manifest model.

WHY: Meshes, obstructions, vents, and devices all describe space with the
same few shapes: a real-space box, a grid-index region, a point, a colour.
Defining them once keeps the manifest IR small and the decoders uniform.

HOW: Frozen dataclasses, one per shape. TransformTable wraps the ordered
(index, coordinate) pairs of a TRNX/TRNY/TRNZ block and answers exact-
index lookups.

RULES:
- Xb and GridRegion order their fields x1, x2, y1, y2, z1, z2 (as written)
- Colour channels are floats in the range the file gives (usually 0..1)
- TransformTable lookups are exact: no interpolation, no dense assumption
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator


@dataclass(frozen=True)
class Xyz:
    """A point or vector in real space."""

    x: float
    y: float
    z: float


@dataclass(frozen=True)
class Xb:
    """A box in real space, given as min/max pairs per axis."""

    x1: float
    x2: float
    y1: float
    y2: float
    z1: float
    z2: float

    def intersects(self, other: Xb) -> bool:
        """True when the two boxes share volume on all three axes.

        Boxes that only touch along a face do not intersect.
        """
        return (
            self.x2 > other.x1 and other.x2 > self.x1
            and self.y2 > other.y1 and other.y2 > self.y1
            and self.z2 > other.z1 and other.z2 > self.z1
        )


@dataclass(frozen=True)
class GridRegion:
    """A block of cells given by inclusive index bounds per axis."""

    i1: int
    i2: int
    j1: int
    j2: int
    k1: int
    k2: int


@dataclass(frozen=True)
class Surfaces:
    """Surface indices assigned to the six faces of an obstruction."""

    min_x: int
    max_x: int
    min_y: int
    max_y: int
    min_z: int
    max_z: int


@dataclass(frozen=True)
class Rgb:
    r: float
    g: float
    b: float


@dataclass(frozen=True)
class Rgba:
    r: float
    g: float
    b: float
    a: float


@dataclass(frozen=True)
class TransformEntry:
    """One (grid index, real coordinate) pair from a TRN block."""

    index: int
    coordinate: float


@dataclass(frozen=True)
class TransformTable:
    """Per-axis mapping from grid index to real coordinate.

    WHY: Stretched meshes do not space their grid lines evenly, so the
    real position of grid line i has to be looked up, not computed.

    HOW: Keeps the entries in file order and builds an index dict on
    construction for O(1) exact lookups.

    RULES:
    - coordinate(i) raises KeyError if index i was not listed
    - Entries keep file order; len() counts entries, not index span
    """

    entries: tuple[TransformEntry, ...] = ()
    _by_index: dict = field(default=None, init=False, repr=False, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_index", {e.index: e.coordinate for e in self.entries})

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[TransformEntry]:
        return iter(self.entries)

    def __getitem__(self, position: int) -> TransformEntry:
        return self.entries[position]

    def __contains__(self, index: object) -> bool:
        return index in self._by_index

    def coordinate(self, index: int) -> float:
        """Real coordinate of grid line ``index``."""
        try:
            return self._by_index[index]
        except KeyError:
            raise KeyError("grid index {} not in transform table".format(index)) from None
