"""Fixed-layout field decoders for individual manifest lines.

WHY: Each body line of a manifest block has a fixed whitespace-separated
layout (six floats then an int, three floats, a name then a count...).
Decoding them in one place keeps the state machine about sequencing only,
and gives every malformed token the same typed error.

HOW: LineTokens walks the tokens of one line and converts them on
demand, raising ManifestParseError with the field name when a token is
missing or does not convert. One decoder function per line layout.

RULES:
- Tokens are whitespace-delimited ASCII
- Any missing or malformed token raises ManifestParseError (no defaults)
- Optional trailing groups (texture origin, vent colour) are all-or-nothing
- Decoders never look at more than the one line they are given
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from fds_outputs.config import (
    CHID_MAX_LENGTH,
    DEVICE_BOUNDS_MARKER,
    DEVICE_FIELD_SEPARATOR,
    TITLE_MAX_LENGTH,
)
from fds_outputs.core.geometry import GridRegion, Rgb, Rgba, Surfaces, TransformEntry, Xb, Xyz
from fds_outputs.core.manifest import (
    Device,
    DeviceActivation,
    Obstruction,
    Vent,
    ViewTimes,
)
from fds_outputs.errors import ManifestParseError


class LineTokens:
    """Sequential typed access to the whitespace-separated tokens of a line."""

    def __init__(self, line: str) -> None:
        self.line = line
        self._tokens = line.split()
        self._pos = 0

    def has_more(self) -> bool:
        return self._pos < len(self._tokens)

    def next_str(self, name: str) -> str:
        if self._pos >= len(self._tokens):
            raise ManifestParseError("missing field '{}'".format(name), line=self.line)
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def next_int(self, name: str) -> int:
        token = self.next_str(name)
        try:
            return int(token)
        except ValueError:
            raise ManifestParseError(
                "field '{}' is not an integer: {!r}".format(name, token), line=self.line
            ) from None

    def next_float(self, name: str) -> float:
        token = self.next_str(name)
        try:
            return float(token)
        except ValueError:
            raise ManifestParseError(
                "field '{}' is not a number: {!r}".format(name, token), line=self.line
            ) from None

    def next_xyz(self, name: str) -> Xyz:
        return Xyz(
            self.next_float(name + ".x"),
            self.next_float(name + ".y"),
            self.next_float(name + ".z"),
        )

    def next_xb(self, name: str) -> Xb:
        return Xb(*(self.next_float("{}[{}]".format(name, n)) for n in range(6)))

    def next_region(self, name: str) -> GridRegion:
        return GridRegion(*(self.next_int("{}[{}]".format(name, n)) for n in range(6)))


# ---------------------------------------------------------------------------
# Two-pass record halves
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ObstFirstHalf:
    xb_exact: Xb
    blockage_id: int
    surfaces: Surfaces
    texture_origin: Optional[Xyz]


@dataclass(frozen=True)
class ObstSecondHalf:
    ijk: GridRegion
    colour_index: int
    block_type: int


@dataclass(frozen=True)
class VentFirstHalf:
    xb_exact: Xb
    vent_id: int
    surface_index: int
    texture_origin: Optional[Xyz]


@dataclass(frozen=True)
class VentSecondHalf:
    ijk: GridRegion
    vent_index: int
    vent_type: int
    color: Optional[Rgba]


def parse_obst_first(line: str) -> ObstFirstHalf:
    """``x1 x2 y1 y2 z1 z2 id s1 s2 s3 s4 s5 s6 [tx ty tz]``"""
    tokens = LineTokens(line)
    xb = tokens.next_xb("xb")
    blockage_id = tokens.next_int("id")
    surfaces = Surfaces(*(tokens.next_int("surface[{}]".format(n)) for n in range(6)))
    texture_origin = tokens.next_xyz("texture_origin") if tokens.has_more() else None
    return ObstFirstHalf(xb, blockage_id, surfaces, texture_origin)


def parse_obst_second(line: str) -> ObstSecondHalf:
    """``i1 i2 j1 j2 k1 k2 colour_index block_type``"""
    tokens = LineTokens(line)
    ijk = tokens.next_region("ijk")
    colour_index = tokens.next_int("colour_index")
    block_type = tokens.next_int("block_type")
    return ObstSecondHalf(ijk, colour_index, block_type)


def parse_vent_first(line: str) -> VentFirstHalf:
    """``x1 x2 y1 y2 z1 z2 vent_id surface_index [tx ty tz]``"""
    tokens = LineTokens(line)
    xb = tokens.next_xb("xb")
    vent_id = tokens.next_int("vent_id")
    surface_index = tokens.next_int("surface_index")
    texture_origin = tokens.next_xyz("texture_origin") if tokens.has_more() else None
    return VentFirstHalf(xb, vent_id, surface_index, texture_origin)


def parse_vent_second(line: str) -> VentSecondHalf:
    """``i1 i2 j1 j2 k1 k2 vent_index vent_type [r g b a]``"""
    tokens = LineTokens(line)
    ijk = tokens.next_region("ijk")
    vent_index = tokens.next_int("vent_index")
    vent_type = tokens.next_int("vent_type")
    color = None
    if tokens.has_more():
        color = Rgba(
            tokens.next_float("color.r"),
            tokens.next_float("color.g"),
            tokens.next_float("color.b"),
            tokens.next_float("color.a"),
        )
    return VentSecondHalf(ijk, vent_index, vent_type, color)


def pair_obstruction(first: ObstFirstHalf, second: ObstSecondHalf) -> Obstruction:
    return Obstruction(
        xb_exact=first.xb_exact,
        id=first.blockage_id,
        surfaces=first.surfaces,
        ijk=second.ijk,
        colour_index=second.colour_index,
        block_type=second.block_type,
        texture_origin=first.texture_origin,
    )


def pair_vent(first: VentFirstHalf, second: VentSecondHalf, dummy: bool = False) -> Vent:
    return Vent(
        xb_exact=first.xb_exact,
        vent_id=first.vent_id,
        surface_index=first.surface_index,
        ijk=second.ijk,
        vent_index=second.vent_index,
        vent_type=second.vent_type,
        texture_origin=first.texture_origin,
        color=second.color,
        dummy=dummy,
    )


# ---------------------------------------------------------------------------
# Single-line layouts
# ---------------------------------------------------------------------------


def parse_int(line: str, name: str = "value") -> int:
    """A line (or header remainder) holding exactly one leading integer."""
    return LineTokens(line).next_int(name)


def parse_float(line: str, name: str = "value") -> float:
    return LineTokens(line).next_float(name)


def parse_xyz(line: str, name: str = "xyz") -> Xyz:
    return LineTokens(line).next_xyz(name)


def parse_counts(line: str) -> Tuple[int, int]:
    """VENT count line: ``total_vents dummy_vents``.

    Returns:
        (ordinary vent count, dummy vent count).
    """
    tokens = LineTokens(line)
    total = tokens.next_int("total_vents")
    dummies = tokens.next_int("dummy_vents")
    if dummies < 0 or dummies > total:
        raise ManifestParseError(
            "dummy vent count {} outside 0..{}".format(dummies, total), line=line
        )
    return total - dummies, dummies


def parse_transform_entry(line: str) -> TransformEntry:
    tokens = LineTokens(line)
    index = tokens.next_int("index")
    coordinate = tokens.next_float("coordinate")
    return TransformEntry(index, coordinate)


def parse_grid(line: str) -> Tuple[int, int, int, int]:
    """GRID body: ``ibar jbar kbar mesh_type``."""
    tokens = LineTokens(line)
    return (
        tokens.next_int("i_bar"),
        tokens.next_int("j_bar"),
        tokens.next_int("k_bar"),
        tokens.next_int("mesh_type"),
    )


def parse_pdim(line: str) -> Tuple[Xb, Rgb]:
    """PDIM body: mesh bounds then the mesh outline colour."""
    tokens = LineTokens(line)
    xb = tokens.next_xb("bounds")
    color = Rgb(tokens.next_float("color.r"), tokens.next_float("color.g"), tokens.next_float("color.b"))
    return xb, color


def parse_view_times(line: str) -> ViewTimes:
    tokens = LineTokens(line)
    return ViewTimes(
        tokens.next_float("start"),
        tokens.next_float("stop"),
        tokens.next_int("n_times"),
    )


def parse_surface_properties(line: str) -> Tuple[float, float]:
    """Second SURFACE line: ``ignition_temperature emissivity``."""
    tokens = LineTokens(line)
    return tokens.next_float("ignition_temperature"), tokens.next_float("emissivity")


def parse_surface_display(line: str) -> Tuple[int, float, float, Rgba]:
    """Third SURFACE line: ``type texture_width texture_height r g b a``."""
    tokens = LineTokens(line)
    surface_type = tokens.next_int("surface_type")
    width = tokens.next_float("texture_width")
    height = tokens.next_float("texture_height")
    color = Rgba(
        tokens.next_float("color.r"),
        tokens.next_float("color.g"),
        tokens.next_float("color.b"),
        tokens.next_float("color.a"),
    )
    return surface_type, width, height, color


def parse_event(line: str) -> Tuple[int, float]:
    """Body of OPEN_VENT/CLOSE_VENT/SHOW_OBST/HIDE_OBST: ``index time``."""
    tokens = LineTokens(line)
    return tokens.next_int("index"), tokens.next_float("time")


def parse_device_activation(name: str, line: str) -> DeviceActivation:
    """DEVICE_ACT body: ``index time state``."""
    tokens = LineTokens(line)
    index = tokens.next_int("index")
    time = tokens.next_float("time")
    state = tokens.next_int("state")
    return DeviceActivation(name=name, index=index, time=time, state=state)


def parse_device_label(line: str) -> Tuple[str, str]:
    """First DEVICE line: ``name % quantity``."""
    parts = line.strip().split(DEVICE_FIELD_SEPARATOR)
    if len(parts) < 2:
        raise ManifestParseError("expected 'name % quantity'", line=line)
    return parts[0].strip(), parts[1].strip()


def parse_device_placement(name: str, quantity: str, line: str) -> Device:
    """Second DEVICE line.

    Layout: ``x y z ox oy oz state0 n_params SEP [x1 y1 z1 x2 y2 z2 %] prop_id``
    where SEP is ``#`` when the bounds group follows and ``%`` otherwise.
    """
    tokens = LineTokens(line)
    position = tokens.next_xyz("position")
    orientation = tokens.next_xyz("orientation")
    state0 = tokens.next_int("state0")
    n_params = tokens.next_int("n_params")
    separator = tokens.next_str("separator")
    bounds = None
    if separator == DEVICE_BOUNDS_MARKER:
        bounds = (tokens.next_xyz("bounds.min"), tokens.next_xyz("bounds.max"))
        tokens.next_str("separator")
    prop_id = tokens.next_str("prop_id")
    return Device(
        name=name,
        quantity=quantity,
        position=position,
        orientation=orientation,
        state0=state0,
        n_params=n_params,
        bounds=bounds,
        prop_id=prop_id,
    )


def parse_slice_header(remainder: str) -> Tuple[int, Optional[GridRegion]]:
    """Remainder of an SLCF/SLCC header line.

    ``1 # STRUCTURED &  14 14 0 10 0 24 ! 1`` gives mesh 1 and the region
    after the ``&``. Headers without ``&`` carry no region.
    """
    mesh = parse_int(remainder, "mesh")
    extent = None
    if "&" in remainder:
        extent = LineTokens(remainder.split("&", 1)[1]).next_region("extent")
    return mesh, extent


# ---------------------------------------------------------------------------
# Free-text sub-grammars
# ---------------------------------------------------------------------------


def parse_title(text: str) -> str:
    """Validate and normalise the scenario title.

    RULES:
    - Trailing whitespace is dropped; an empty title is allowed
    - At most TITLE_MAX_LENGTH characters
    """
    title = text.rstrip()
    if len(title) > TITLE_MAX_LENGTH:
        raise ManifestParseError(
            "title longer than {} characters".format(TITLE_MAX_LENGTH), line=text
        )
    return title


def parse_chid(text: str) -> str:
    """Validate the case identifier (CHID).

    RULES:
    - Surrounding whitespace is dropped
    - Non-empty, at most CHID_MAX_LENGTH characters
    - No interior whitespace and no '.' (it prefixes every output filename)
    """
    chid = text.strip()
    if not chid:
        raise ManifestParseError("CHID is empty", line=text)
    if len(chid) > CHID_MAX_LENGTH:
        raise ManifestParseError("CHID longer than {} characters".format(CHID_MAX_LENGTH), line=text)
    if any(ch.isspace() for ch in chid) or "." in chid:
        raise ManifestParseError("CHID may not contain whitespace or '.'", line=text)
    return chid
