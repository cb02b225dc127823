"""Immutable intermediate representation of a parsed .smv manifest.

WHY: Consumers (plotting scripts, the outputs façade) want geometry and
the output-file catalog as plain typed objects, never the raw block
text. Freezing everything once parsing succeeds means a manifest can be
shared freely without anyone mutating it behind the parser's back.

HOW: Frozen dataclasses holding tuples. The state machine in
smv_parser.py accumulates mutable lists in a pending aggregate and only
builds these objects during finalization.

RULES:
- Every collection is a tuple; every dataclass is frozen
- Mesh-local lists (obstructions, vents, transform tables) live on Mesh
- Catalog entries keep the filename exactly as written (relative path)
- Dummy vents share the per-mesh vent list with ordinary vents; the
  dummy flag records which category each one came from
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple

from fds_outputs.core.geometry import (
    GridRegion,
    Rgb,
    Rgba,
    Surfaces,
    TransformTable,
    Xb,
    Xyz,
)


# ---------------------------------------------------------------------------
# Geometry records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Surface:
    """A SURFACE definition: ignition, emissivity, and display properties."""

    name: str
    ignition_temperature: float
    emissivity: float
    surface_type: int
    texture_width: float
    texture_height: float
    color: Rgba
    texture_file: str


@dataclass(frozen=True)
class Obstruction:
    """A solid blockage, assembled from both halves of an OBST record.

    RULES:
    - xb_exact, id, surfaces, texture_origin come from the first pass
    - ijk, colour_index, block_type come from the second pass
    """

    xb_exact: Xb
    id: int
    surfaces: Surfaces
    ijk: GridRegion
    colour_index: int
    block_type: int
    texture_origin: Optional[Xyz] = None


@dataclass(frozen=True)
class Vent:
    """An opening on a mesh face, assembled from both halves of a VENT record."""

    xb_exact: Xb
    vent_id: int
    surface_index: int
    ijk: GridRegion
    vent_index: int
    vent_type: int
    texture_origin: Optional[Xyz] = None
    color: Optional[Rgba] = None
    dummy: bool = False


@dataclass(frozen=True)
class Mesh:
    """One rectilinear grid block with everything attached to it."""

    name: str
    i_bar: int
    j_bar: int
    k_bar: int
    mesh_type: int
    obstructions: Tuple[Obstruction, ...]
    vents: Tuple[Vent, ...]
    trnx: TransformTable
    trny: TransformTable
    trnz: TransformTable
    dims: Xb
    color: Rgb
    offset: Xyz

    def xb_from_grid(self, ijk: GridRegion) -> Xb:
        """Map a grid-index region to its real-space box.

        Raises:
            KeyError: If any bound is missing from its transform table.
        """
        return Xb(
            self.trnx.coordinate(ijk.i1),
            self.trnx.coordinate(ijk.i2),
            self.trny.coordinate(ijk.j1),
            self.trny.coordinate(ijk.j2),
            self.trnz.coordinate(ijk.k1),
            self.trnz.coordinate(ijk.k2),
        )


# ---------------------------------------------------------------------------
# Output-file catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CsvEntry:
    """A CSVF catalog entry: a type tag ("hrr", "devc", ...) and a filename."""

    type_tag: str
    filename: str


@dataclass(frozen=True)
class SliceEntry:
    """An SLCF/SLCC catalog entry pointing at a binary slice file."""

    mesh: int
    cell_centred: bool
    header: str
    extent: Optional[GridRegion]
    filename: str
    long_name: str
    short_name: str
    units: str


@dataclass(frozen=True)
class BoundaryEntry:
    """A BNDF catalog entry pointing at a boundary output file."""

    mesh: int
    flag: int
    filename: str
    long_name: str
    short_name: str
    units: str


@dataclass(frozen=True)
class ParticleEntry:
    """A PRT5 catalog entry: particle file plus the particle classes in it."""

    mesh: int
    filename: str
    class_indices: Tuple[int, ...]


class Smoke3dType(Enum):
    F = "SMOKF3D"
    G = "SMOKG3D"


@dataclass(frozen=True)
class Smoke3dEntry:
    smoke_type: Smoke3dType
    mesh: int
    filename: str
    long_name: str
    short_name: str
    units: str


# ---------------------------------------------------------------------------
# Events and devices
# ---------------------------------------------------------------------------


class EventKind(Enum):
    OPEN_VENT = "OPEN_VENT"
    CLOSE_VENT = "CLOSE_VENT"
    SHOW_OBST = "SHOW_OBST"
    HIDE_OBST = "HIDE_OBST"


@dataclass(frozen=True)
class Event:
    """A timed vent open/close or obstruction show/hide."""

    kind: EventKind
    mesh: int
    index: int
    time: float


@dataclass(frozen=True)
class Device:
    """A DEVICE definition (name, measured quantity, placement)."""

    name: str
    quantity: str
    position: Xyz
    orientation: Xyz
    state0: int
    n_params: int
    bounds: Optional[Tuple[Xyz, Xyz]]
    prop_id: str


@dataclass(frozen=True)
class DeviceActivation:
    name: str
    index: int
    time: float
    state: int


@dataclass(frozen=True)
class ViewTimes:
    start: float
    stop: float
    n_times: int


# ---------------------------------------------------------------------------
# Top level
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Manifest:
    """The complete, immutable content of a .smv manifest.

    WHY: This is what parse_manifest() returns and what every consumer
    reads. It bundles geometry (meshes, surfaces), global scalars, timed
    events, devices, and the catalog of companion output files.

    HOW: Built once by the parser's finalization step. Mesh-local data is
    reached through ``meshes``; catalog entries through the per-type
    tuples or catalog()/output_files().

    RULES:
    - meshes[i] corresponds to the i-th GRID block in the file
    - Optional scalars are None when their block was absent
    - Catalog filenames are relative to the manifest's directory
    """

    title: str
    chid: str
    input_filename: str
    meshes: Tuple[Mesh, ...] = ()
    surfaces: Tuple[Surface, ...] = ()
    csvfs: Tuple[CsvEntry, ...] = ()
    slices: Tuple[SliceEntry, ...] = ()
    boundaries: Tuple[BoundaryEntry, ...] = ()
    particles: Tuple[ParticleEntry, ...] = ()
    smoke3d: Tuple[Smoke3dEntry, ...] = ()
    xyzs: Tuple[str, ...] = ()
    events: Tuple[Event, ...] = ()
    devices: Tuple[Device, ...] = ()
    device_activations: Tuple[DeviceActivation, ...] = ()
    endf_filename: Optional[str] = None
    fds_version: Optional[str] = None
    fds_build: Optional[str] = None
    revision: Optional[str] = None
    surf_def: Optional[str] = None
    n_meshes: Optional[int] = None
    solid_ht3d: Optional[int] = None
    view_times: Optional[ViewTimes] = None
    albedo: Optional[float] = None
    i_blank: Optional[int] = None
    gvec: Optional[Xyz] = None
    texture_origin: Optional[Xyz] = None

    def catalog(self, type_tag: str) -> Optional[CsvEntry]:
        """First CSVF entry with the given type tag, or None."""
        for entry in self.csvfs:
            if entry.type_tag == type_tag:
                return entry
        return None

    def output_files(self) -> Iterator[str]:
        """Every companion filename the manifest references, in catalog order."""
        for csvf in self.csvfs:
            yield csvf.filename
        for entries in (self.slices, self.boundaries, self.particles, self.smoke3d):
            for entry in entries:
                yield entry.filename
        yield from self.xyzs
