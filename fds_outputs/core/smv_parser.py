"""Block state machine that turns .smv manifest text into a Manifest.

WHY: The manifest is a flat sequence of blocks with no explicit end
markers. A block's extent is implied by indentation, by counts declared
inside the block, or by the order of physical lines, and per-mesh data
is spread over many separate blocks that must stay index-aligned. A
single explicit state machine is the only way to reproduce these legacy
framing rules faithfully.

HOW: Each line is classified by its first character. A line starting in
column 0 is a block header; a line starting with whitespace is block
body. The parser holds one _State (a Mode plus that mode's payload) and
dispatches every line to the handler for the current mode. Handlers
write finished records into a mutable _PendingManifest. After the last
line, finalization checks the per-mesh parallel lists and builds the
immutable Manifest.

RULES:
- Empty lines are skipped everywhere
- A header line ends the active block, except that:
    * TRN blocks are finalized by it (they have no declared length)
    * OBST/VENT blocks declaring zero records are finalized as empty
    * FDSVERSION/REVISION and the third SURFACE line consume it as body
- Body lines outside any block are ignored
- Unknown keywords are reported to the diagnostics sink, never fatal
- Malformed tokens abort the parse with ManifestParseError
- End of input finalizes the active block exactly like a header line
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Union

from fds_outputs.config import HEADER_ONLY_BLOCKS, IGNORED_BLOCKS, MANIFEST_ENCODING
from fds_outputs.core import records
from fds_outputs.core.counted import CountedPairs
from fds_outputs.core.geometry import TransformEntry, TransformTable, Xyz
from fds_outputs.core.manifest import (
    BoundaryEntry,
    CsvEntry,
    Device,
    DeviceActivation,
    Event,
    EventKind,
    Manifest,
    Mesh,
    Obstruction,
    ParticleEntry,
    SliceEntry,
    Smoke3dEntry,
    Smoke3dType,
    Surface,
    Vent,
    ViewTimes,
)
from fds_outputs.errors import ManifestParseError, ManifestStructureError

logger = logging.getLogger(__name__)

DiagnosticSink = Callable[[str], None]


class Mode(Enum):
    """Every state the parser can be in; one per physical line layout."""

    NONE = auto()
    IGNORED = auto()
    TITLE = auto()
    FDS_VERSION = auto()
    FDS_BUILD = auto()
    REVISION = auto()
    CHID = auto()
    INPF = auto()
    ENDF = auto()
    SURFDEF = auto()
    XYZ = auto()
    NMESHES = auto()
    VIEW_TIMES = auto()
    ALBEDO = auto()
    IBLANK = auto()
    GVEC = auto()
    TOFFSET = auto()
    SOLID_HT3D = auto()
    OFFSET = auto()
    GRID = auto()
    PDIM = auto()
    TRN_COUNT = auto()
    TRN_ENTRIES = auto()
    OBST_COUNT = auto()
    OBST_LINES = auto()
    VENT_COUNT = auto()
    VENT_LINES = auto()
    SURFACE_NAME = auto()
    SURFACE_PROPERTIES = auto()
    SURFACE_DISPLAY = auto()
    SURFACE_TEXTURE = auto()
    CSVF_TYPE = auto()
    CSVF_FILE = auto()
    SLCF_FILE = auto()
    SLCF_LONG_NAME = auto()
    SLCF_SHORT_NAME = auto()
    SLCF_UNITS = auto()
    BNDF_FILE = auto()
    BNDF_LONG_NAME = auto()
    BNDF_SHORT_NAME = auto()
    BNDF_UNITS = auto()
    SMOKE3D_FILE = auto()
    SMOKE3D_LONG_NAME = auto()
    SMOKE3D_SHORT_NAME = auto()
    SMOKE3D_UNITS = auto()
    PRT5_FILE = auto()
    PRT5_CLASS_COUNT = auto()
    PRT5_CLASSES = auto()
    DEVICE_LABEL = auto()
    DEVICE_PLACEMENT = auto()
    DEVICE_ACT = auto()
    EVENT = auto()


class _State(NamedTuple):
    mode: Mode
    block: str = ""
    args: tuple = ()


_IDLE = _State(Mode.NONE)

# Four-line label records: each mode stores one stripped line and moves on.
_LABEL_SEQUENCES: Dict[Mode, Optional[Mode]] = {
    Mode.SLCF_FILE: Mode.SLCF_LONG_NAME,
    Mode.SLCF_LONG_NAME: Mode.SLCF_SHORT_NAME,
    Mode.SLCF_SHORT_NAME: Mode.SLCF_UNITS,
    Mode.SLCF_UNITS: None,
    Mode.BNDF_FILE: Mode.BNDF_LONG_NAME,
    Mode.BNDF_LONG_NAME: Mode.BNDF_SHORT_NAME,
    Mode.BNDF_SHORT_NAME: Mode.BNDF_UNITS,
    Mode.BNDF_UNITS: None,
    Mode.SMOKE3D_FILE: Mode.SMOKE3D_LONG_NAME,
    Mode.SMOKE3D_LONG_NAME: Mode.SMOKE3D_SHORT_NAME,
    Mode.SMOKE3D_SHORT_NAME: Mode.SMOKE3D_UNITS,
    Mode.SMOKE3D_UNITS: None,
}

# Blocks whose header line is all the state machine needs to start.
_SIMPLE_BLOCKS: Dict[str, Mode] = {
    "TITLE": Mode.TITLE,
    "FDSVERSION": Mode.FDS_VERSION,
    "REVISION": Mode.REVISION,
    "CHID": Mode.CHID,
    "INPF": Mode.INPF,
    "ENDF": Mode.ENDF,
    "SURFDEF": Mode.SURFDEF,
    "XYZ": Mode.XYZ,
    "NMESHES": Mode.NMESHES,
    "VIEWTIMES": Mode.VIEW_TIMES,
    "ALBEDO": Mode.ALBEDO,
    "IBLANK": Mode.IBLANK,
    "GVEC": Mode.GVEC,
    "TOFFSET": Mode.TOFFSET,
    "SOLID_HT3D": Mode.SOLID_HT3D,
    "OFFSET": Mode.OFFSET,
    "PDIM": Mode.PDIM,
    "OBST": Mode.OBST_COUNT,
    "VENT": Mode.VENT_COUNT,
    "SURFACE": Mode.SURFACE_NAME,
    "CSVF": Mode.CSVF_TYPE,
    "DEVICE": Mode.DEVICE_LABEL,
}

_TRN_AXES = {"TRNX": "x", "TRNY": "y", "TRNZ": "z"}

_EVENT_BLOCKS = {kind.value: kind for kind in EventKind}


@dataclass
class _TransformAccumulator:
    axis: str
    skip: int
    entries: List[TransformEntry] = field(default_factory=list)


@dataclass
class _PendingManifest:
    """Mutable aggregate the handlers write into while lines are consumed."""

    title: Optional[str] = None
    title_line: int = 0
    chid: Optional[str] = None
    chid_line: int = 0
    input_filename: Optional[str] = None
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
    grids: List[tuple] = field(default_factory=list)
    pdims: List[tuple] = field(default_factory=list)
    offsets: List[Xyz] = field(default_factory=list)
    obsts: List[List[Obstruction]] = field(default_factory=list)
    vents: List[List[Vent]] = field(default_factory=list)
    trnx: List[List[TransformEntry]] = field(default_factory=list)
    trny: List[List[TransformEntry]] = field(default_factory=list)
    trnz: List[List[TransformEntry]] = field(default_factory=list)
    surfaces: List[Surface] = field(default_factory=list)
    csvfs: List[CsvEntry] = field(default_factory=list)
    slices: List[SliceEntry] = field(default_factory=list)
    boundaries: List[BoundaryEntry] = field(default_factory=list)
    particles: List[ParticleEntry] = field(default_factory=list)
    smoke3d: List[Smoke3dEntry] = field(default_factory=list)
    xyzs: List[str] = field(default_factory=list)
    events: List[Event] = field(default_factory=list)
    devices: List[Device] = field(default_factory=list)
    device_activations: List[DeviceActivation] = field(default_factory=list)


def _body_text(line: str) -> str:
    """Drop the single leading space that marks a body line."""
    return line[1:] if line.startswith(" ") else line.lstrip()


def _pair_obstruction(first, second, category: int) -> Obstruction:
    return records.pair_obstruction(first, second)


def _pair_vent(first, second, category: int) -> Vent:
    # Category 0 holds ordinary vents, category 1 the dummy vents.
    return records.pair_vent(first, second, dummy=category == 1)


class ManifestParser:
    """Line-at-a-time driver for the manifest state machine.

    WHY: Keeps the current state, the pending aggregate, and the line
    counter together so that handlers stay small and errors can report
    where they happened.

    HOW: feed() classifies and dispatches one line; finish() ends the
    active block and finalizes. parse_manifest() wraps both.

    RULES:
    - One parser per manifest; not reusable after finish()
    - on_diagnostic receives one message per unrecognized block keyword;
      by default the message is logged as a warning
    """

    def __init__(self, on_diagnostic: Optional[DiagnosticSink] = None) -> None:
        self._on_diagnostic = on_diagnostic
        self._state = _IDLE
        self._pending = _PendingManifest()
        self._line_number = 0
        self._handlers: Dict[Mode, Callable[[str], _State]] = {
            Mode.IGNORED: self._ignored,
            Mode.TITLE: self._title,
            Mode.FDS_VERSION: self._fds_version,
            Mode.FDS_BUILD: self._fds_build,
            Mode.REVISION: self._revision,
            Mode.CHID: self._chid,
            Mode.INPF: self._inpf,
            Mode.ENDF: self._endf,
            Mode.SURFDEF: self._surfdef,
            Mode.XYZ: self._xyz,
            Mode.NMESHES: self._nmeshes,
            Mode.VIEW_TIMES: self._view_times,
            Mode.ALBEDO: self._albedo,
            Mode.IBLANK: self._iblank,
            Mode.GVEC: self._gvec,
            Mode.TOFFSET: self._toffset,
            Mode.SOLID_HT3D: self._solid_ht3d,
            Mode.OFFSET: self._offset,
            Mode.GRID: self._grid,
            Mode.PDIM: self._pdim,
            Mode.TRN_COUNT: self._trn_count,
            Mode.TRN_ENTRIES: self._trn_entries,
            Mode.OBST_COUNT: self._obst_count,
            Mode.OBST_LINES: self._counted_lines,
            Mode.VENT_COUNT: self._vent_count,
            Mode.VENT_LINES: self._counted_lines,
            Mode.SURFACE_NAME: self._surface_name,
            Mode.SURFACE_PROPERTIES: self._surface_properties,
            Mode.SURFACE_DISPLAY: self._surface_display,
            Mode.SURFACE_TEXTURE: self._surface_texture,
            Mode.CSVF_TYPE: self._csvf_type,
            Mode.CSVF_FILE: self._csvf_file,
            Mode.PRT5_FILE: self._prt5_file,
            Mode.PRT5_CLASS_COUNT: self._prt5_class_count,
            Mode.PRT5_CLASSES: self._prt5_classes,
            Mode.DEVICE_LABEL: self._device_label,
            Mode.DEVICE_PLACEMENT: self._device_placement,
            Mode.DEVICE_ACT: self._device_act,
            Mode.EVENT: self._event,
        }
        for mode in _LABEL_SEQUENCES:
            self._handlers[mode] = self._label_line

    # -- driving -----------------------------------------------------------

    def feed(self, line: str) -> None:
        """Consume one line (without its line terminator)."""
        self._line_number += 1
        if not line:
            return
        block = self._state.block
        try:
            if not line[0].isspace() and not self._consumes_headers():
                self._end_block()
            if self._state.mode is Mode.NONE:
                if not line[0].isspace():
                    block = line.split(None, 1)[0]
                    self._state = self._start_block(line)
                return
            self._state = self._handlers[self._state.mode](line)
        except ManifestParseError as err:
            raise err.locate(self._line_number, block or None) from err

    def finish(self) -> Manifest:
        """End the active block and assemble the immutable manifest."""
        self._end_block()
        return _finalize(self._pending)

    def _consumes_headers(self) -> bool:
        # Header-only blocks and the third SURFACE line read column-0 text.
        return self._state.block in HEADER_ONLY_BLOCKS or self._state.mode is Mode.SURFACE_DISPLAY

    def _end_block(self) -> None:
        """Apply the end-of-block rules, then return to no active block."""
        state = self._state
        pending = self._pending
        if state.mode is Mode.TRN_ENTRIES:
            accumulator = state.args[0]
            getattr(pending, "trn" + accumulator.axis).append(accumulator.entries)
            logger.debug("TRN%s: %d entries", accumulator.axis.upper(), len(accumulator.entries))
        elif state.mode in (Mode.OBST_LINES, Mode.VENT_LINES) and state.args[0].awaiting_empty:
            target = pending.obsts if state.mode is Mode.OBST_LINES else pending.vents
            target.append([])
        elif state.mode is not Mode.NONE and state.mode is not Mode.IGNORED:
            logger.debug("Block %s ended early at line %d", state.block, self._line_number)
        self._state = _IDLE

    def _start_block(self, line: str) -> _State:
        """Resolve a header keyword to the first mode of its block."""
        parts = line.split(None, 1)
        name = parts[0]
        remainder = parts[1] if len(parts) > 1 else ""

        if name in _SIMPLE_BLOCKS:
            return _State(_SIMPLE_BLOCKS[name], name)
        if name in IGNORED_BLOCKS:
            return _State(Mode.IGNORED, name)
        if name in _TRN_AXES:
            return _State(Mode.TRN_COUNT, name, (_TRN_AXES[name],))
        if name in _EVENT_BLOCKS:
            return _State(Mode.EVENT, name, (_EVENT_BLOCKS[name], records.parse_int(remainder, "mesh")))
        if name == "GRID":
            return _State(Mode.GRID, name, (remainder.strip(),))
        if name in ("SLCF", "SLCC"):
            mesh, extent = records.parse_slice_header(remainder)
            return _State(Mode.SLCF_FILE, name, (name == "SLCC", mesh, remainder.strip(), extent))
        if name == "BNDF":
            tokens = records.LineTokens(remainder)
            return _State(Mode.BNDF_FILE, name, (tokens.next_int("mesh"), tokens.next_int("flag")))
        if name in ("SMOKF3D", "SMOKG3D"):
            return _State(Mode.SMOKE3D_FILE, name, (Smoke3dType(name), records.parse_int(remainder, "mesh")))
        if name == "PRT5":
            return _State(Mode.PRT5_FILE, name, (records.parse_int(remainder, "mesh"),))
        if name == "DEVICE_ACT":
            if not remainder.strip():
                raise ManifestParseError("missing field 'device name'", line=line)
            return _State(Mode.DEVICE_ACT, name, (remainder.strip(),))

        self._diagnose('Unrecognized block: "{}" (line {})'.format(name, self._line_number))
        return _IDLE

    def _diagnose(self, message: str) -> None:
        if self._on_diagnostic is None:
            logger.warning(message)
        else:
            self._on_diagnostic(message)

    # -- single-line blocks -------------------------------------------------

    def _ignored(self, line: str) -> _State:
        return self._state

    def _title(self, line: str) -> _State:
        self._pending.title = _body_text(line)
        self._pending.title_line = self._line_number
        return _IDLE

    def _fds_version(self, line: str) -> _State:
        self._pending.fds_version = line.strip()
        return _State(Mode.FDS_BUILD, self._state.block)

    def _fds_build(self, line: str) -> _State:
        self._pending.fds_build = line.strip()
        return _IDLE

    def _revision(self, line: str) -> _State:
        self._pending.revision = line.strip()
        return _IDLE

    def _chid(self, line: str) -> _State:
        self._pending.chid = _body_text(line)
        self._pending.chid_line = self._line_number
        return _IDLE

    def _inpf(self, line: str) -> _State:
        self._pending.input_filename = line.strip()
        return _IDLE

    def _endf(self, line: str) -> _State:
        self._pending.endf_filename = line.strip()
        return _IDLE

    def _surfdef(self, line: str) -> _State:
        self._pending.surf_def = line.strip()
        return _IDLE

    def _xyz(self, line: str) -> _State:
        self._pending.xyzs.append(line.strip())
        return _IDLE

    def _nmeshes(self, line: str) -> _State:
        self._pending.n_meshes = records.parse_int(line, "n_meshes")
        return _IDLE

    def _view_times(self, line: str) -> _State:
        self._pending.view_times = records.parse_view_times(line)
        return _IDLE

    def _albedo(self, line: str) -> _State:
        self._pending.albedo = records.parse_float(line, "albedo")
        return _IDLE

    def _iblank(self, line: str) -> _State:
        self._pending.i_blank = records.parse_int(line, "i_blank")
        return _IDLE

    def _gvec(self, line: str) -> _State:
        self._pending.gvec = records.parse_xyz(line, "gvec")
        return _IDLE

    def _toffset(self, line: str) -> _State:
        self._pending.texture_origin = records.parse_xyz(line, "texture_origin")
        return _IDLE

    def _solid_ht3d(self, line: str) -> _State:
        self._pending.solid_ht3d = records.parse_int(line, "solid_ht3d")
        return _IDLE

    # -- per-mesh blocks ----------------------------------------------------

    def _offset(self, line: str) -> _State:
        self._pending.offsets.append(records.parse_xyz(line, "offset"))
        return _IDLE

    def _grid(self, line: str) -> _State:
        (name,) = self._state.args
        self._pending.grids.append((name,) + records.parse_grid(line))
        return _IDLE

    def _pdim(self, line: str) -> _State:
        self._pending.pdims.append(records.parse_pdim(line))
        return _IDLE

    def _trn_count(self, line: str) -> _State:
        (axis,) = self._state.args
        skip = records.parse_int(line, "skip_count")
        return _State(Mode.TRN_ENTRIES, self._state.block, (_TransformAccumulator(axis, skip),))

    def _trn_entries(self, line: str) -> _State:
        accumulator = self._state.args[0]
        if accumulator.skip > 0:
            accumulator.skip -= 1
        else:
            accumulator.entries.append(records.parse_transform_entry(line))
        return self._state

    def _obst_count(self, line: str) -> _State:
        n = records.parse_int(line, "n_obstructions")
        pairs = CountedPairs((n,), records.parse_obst_first, records.parse_obst_second, _pair_obstruction)
        return _State(Mode.OBST_LINES, self._state.block, (pairs,))

    def _vent_count(self, line: str) -> _State:
        n_vents, n_dummy = records.parse_counts(line)
        pairs = CountedPairs((n_vents, n_dummy), records.parse_vent_first, records.parse_vent_second, _pair_vent)
        return _State(Mode.VENT_LINES, self._state.block, (pairs,))

    def _counted_lines(self, line: str) -> _State:
        pairs = self._state.args[0]
        try:
            pairs.feed(line)
        except ManifestStructureError as err:
            raise ManifestStructureError(
                "line {}, block {}: {}".format(self._line_number, self._state.block, err)
            ) from err
        if not pairs.complete:
            return self._state
        target = self._pending.obsts if self._state.mode is Mode.OBST_LINES else self._pending.vents
        target.append(pairs.combine())
        logger.debug("%s: %d records for mesh %d", self._state.block, pairs.total, len(target))
        return _IDLE

    # -- surfaces -----------------------------------------------------------

    def _surface_name(self, line: str) -> _State:
        return _State(Mode.SURFACE_PROPERTIES, self._state.block, (line.strip(),))

    def _surface_properties(self, line: str) -> _State:
        ignition_temperature, emissivity = records.parse_surface_properties(line)
        return _State(Mode.SURFACE_DISPLAY, self._state.block, self._state.args + (ignition_temperature, emissivity))

    def _surface_display(self, line: str) -> _State:
        return _State(Mode.SURFACE_TEXTURE, self._state.block, self._state.args + records.parse_surface_display(line))

    def _surface_texture(self, line: str) -> _State:
        name, ignition_temperature, emissivity, surface_type, width, height, color = self._state.args
        self._pending.surfaces.append(Surface(
            name=name,
            ignition_temperature=ignition_temperature,
            emissivity=emissivity,
            surface_type=surface_type,
            texture_width=width,
            texture_height=height,
            color=color,
            texture_file=line.strip(),
        ))
        return _IDLE

    # -- output catalog -----------------------------------------------------

    def _csvf_type(self, line: str) -> _State:
        return _State(Mode.CSVF_FILE, self._state.block, (line.strip(),))

    def _csvf_file(self, line: str) -> _State:
        (type_tag,) = self._state.args
        self._pending.csvfs.append(CsvEntry(type_tag=type_tag, filename=line.strip()))
        return _IDLE

    def _label_line(self, line: str) -> _State:
        """One line of a filename/long name/short name/units record."""
        mode, block, args = self._state
        args = args + (line.strip(),)
        next_mode = _LABEL_SEQUENCES[mode]
        if next_mode is not None:
            return _State(next_mode, block, args)

        pending = self._pending
        if mode is Mode.SLCF_UNITS:
            cell_centred, mesh, header, extent, filename, long_name, short_name, units = args
            pending.slices.append(SliceEntry(
                mesh=mesh,
                cell_centred=cell_centred,
                header=header,
                extent=extent,
                filename=filename,
                long_name=long_name,
                short_name=short_name,
                units=units,
            ))
        elif mode is Mode.BNDF_UNITS:
            mesh, flag, filename, long_name, short_name, units = args
            pending.boundaries.append(BoundaryEntry(mesh, flag, filename, long_name, short_name, units))
        else:
            smoke_type, mesh, filename, long_name, short_name, units = args
            pending.smoke3d.append(Smoke3dEntry(smoke_type, mesh, filename, long_name, short_name, units))
        return _IDLE

    def _prt5_file(self, line: str) -> _State:
        return _State(Mode.PRT5_CLASS_COUNT, self._state.block, self._state.args + (line.strip(),))

    def _prt5_class_count(self, line: str) -> _State:
        n_classes = records.parse_int(line, "n_classes")
        state = _State(Mode.PRT5_CLASSES, self._state.block, self._state.args + (n_classes, ()))
        return self._prt5_done(state) if n_classes == 0 else state

    def _prt5_classes(self, line: str) -> _State:
        mesh, filename, n_classes, classes = self._state.args
        classes = classes + (records.parse_int(line, "class_index"),)
        state = _State(Mode.PRT5_CLASSES, self._state.block, (mesh, filename, n_classes, classes))
        return self._prt5_done(state) if len(classes) >= n_classes else state

    def _prt5_done(self, state: _State) -> _State:
        mesh, filename, _, classes = state.args
        self._pending.particles.append(ParticleEntry(mesh=mesh, filename=filename, class_indices=classes))
        return _IDLE

    # -- devices and events -------------------------------------------------

    def _device_label(self, line: str) -> _State:
        return _State(Mode.DEVICE_PLACEMENT, self._state.block, records.parse_device_label(line))

    def _device_placement(self, line: str) -> _State:
        name, quantity = self._state.args
        self._pending.devices.append(records.parse_device_placement(name, quantity, line))
        return _IDLE

    def _device_act(self, line: str) -> _State:
        (name,) = self._state.args
        self._pending.device_activations.append(records.parse_device_activation(name, line))
        return _IDLE

    def _event(self, line: str) -> _State:
        kind, mesh = self._state.args
        index, time = records.parse_event(line)
        self._pending.events.append(Event(kind=kind, mesh=mesh, index=index, time=time))
        return _IDLE


# ---------------------------------------------------------------------------
# Finalization
# ---------------------------------------------------------------------------


def _finalize(pending: _PendingManifest) -> Manifest:
    """Validate the pending aggregate and build the immutable Manifest.

    RULES:
    - CHID, INPF and TITLE are required
    - Every per-mesh list has exactly one entry per GRID block
    - A declared NMESHES must equal the number of GRID blocks
    """
    for block, value in (("CHID", pending.chid), ("INPF", pending.input_filename), ("TITLE", pending.title)):
        if value is None:
            raise ManifestStructureError("missing required block {}".format(block))

    n_grids = len(pending.grids)
    per_mesh = {
        "OBST": pending.obsts,
        "VENT": pending.vents,
        "TRNX": pending.trnx,
        "TRNY": pending.trny,
        "TRNZ": pending.trnz,
        "PDIM": pending.pdims,
        "OFFSET": pending.offsets,
    }
    unbalanced = ["{}={}".format(name, len(items)) for name, items in per_mesh.items() if len(items) != n_grids]
    if unbalanced:
        raise ManifestStructureError(
            "mesh entries unbalanced: {} GRID blocks but {}".format(n_grids, ", ".join(unbalanced))
        )
    if pending.n_meshes is not None and pending.n_meshes != n_grids:
        raise ManifestStructureError(
            "NMESHES declares {} meshes but {} GRID blocks were found".format(pending.n_meshes, n_grids)
        )

    try:
        title = records.parse_title(pending.title)
    except ManifestParseError as err:
        raise err.locate(pending.title_line, "TITLE") from err
    try:
        chid = records.parse_chid(pending.chid)
    except ManifestParseError as err:
        raise err.locate(pending.chid_line, "CHID") from err

    meshes = []
    for grid, obsts, vents, trnx, trny, trnz, pdim, offset in zip(
        pending.grids,
        pending.obsts,
        pending.vents,
        pending.trnx,
        pending.trny,
        pending.trnz,
        pending.pdims,
        pending.offsets,
    ):
        name, i_bar, j_bar, k_bar, mesh_type = grid
        dims, color = pdim
        meshes.append(Mesh(
            name=name,
            i_bar=i_bar,
            j_bar=j_bar,
            k_bar=k_bar,
            mesh_type=mesh_type,
            obstructions=tuple(obsts),
            vents=tuple(vents),
            trnx=TransformTable(tuple(trnx)),
            trny=TransformTable(tuple(trny)),
            trnz=TransformTable(tuple(trnz)),
            dims=dims,
            color=color,
            offset=offset,
        ))

    manifest = Manifest(
        title=title,
        chid=chid,
        input_filename=pending.input_filename,
        meshes=tuple(meshes),
        surfaces=tuple(pending.surfaces),
        csvfs=tuple(pending.csvfs),
        slices=tuple(pending.slices),
        boundaries=tuple(pending.boundaries),
        particles=tuple(pending.particles),
        smoke3d=tuple(pending.smoke3d),
        xyzs=tuple(pending.xyzs),
        events=tuple(pending.events),
        devices=tuple(pending.devices),
        device_activations=tuple(pending.device_activations),
        endf_filename=pending.endf_filename,
        fds_version=pending.fds_version,
        fds_build=pending.fds_build,
        revision=pending.revision,
        surf_def=pending.surf_def,
        n_meshes=pending.n_meshes,
        solid_ht3d=pending.solid_ht3d,
        view_times=pending.view_times,
        albedo=pending.albedo,
        i_blank=pending.i_blank,
        gvec=pending.gvec,
        texture_origin=pending.texture_origin,
    )
    logger.info(
        "Parsed manifest %s: %d meshes, %d surfaces, %d catalog entries",
        chid, len(meshes), len(manifest.surfaces), len(manifest.csvfs),
    )
    return manifest


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def _split_lines(data: Union[bytes, str, Iterable[str]]) -> Iterable[str]:
    if isinstance(data, bytes):
        data = data.decode(MANIFEST_ENCODING, errors="replace")
    if isinstance(data, str):
        return data.splitlines()
    return (line.rstrip("\r\n") for line in data)


def parse_manifest(
    data: Union[bytes, str, Iterable[str]],
    on_diagnostic: Optional[DiagnosticSink] = None,
) -> Manifest:
    """Parse a complete .smv manifest.

    WHY: Single entry point for callers holding the manifest in memory
    (bytes from disk or a network fetch, a str, or an open text file).

    HOW: Splits the input into lines, feeds each one through a fresh
    ManifestParser, then finalizes.

    RULES:
    - All-or-nothing: either a full Manifest or an exception
    - on_diagnostic, when given, receives unrecognized-block messages
      instead of the module logger

    Args:
        data: Manifest content as bytes, str, or an iterable of lines.
        on_diagnostic: Optional sink for non-fatal diagnostics.

    Returns:
        The immutable Manifest.

    Raises:
        ManifestParseError: A token in a recognized block is malformed.
        ManifestStructureError: Blocks are missing or per-mesh lists
            do not line up.
    """
    parser = ManifestParser(on_diagnostic=on_diagnostic)
    for line in _split_lines(data):
        parser.feed(line)
    return parser.finish()


def read_manifest(path: Union[str, Path], on_diagnostic: Optional[DiagnosticSink] = None) -> Manifest:
    """Read and parse the manifest file at ``path``."""
    path = Path(path)
    logger.debug("Reading manifest %s", path)
    return parse_manifest(path.read_bytes(), on_diagnostic=on_diagnostic)
