"""Shared test fixtures for the fds_outputs test suite.

WHY: Manifest and slice tests need realistic inputs: a single-mesh
room fire case, a six-mesh case, and a long slice file. Generating them
here keeps binary blobs out of the repository and lets individual tests
build small variants with the same writers.

HOW: Plain builder functions write manifest text and framed slice bytes.
Fixtures expose the three reference cases (A: room_fire manifest, B:
six-mesh manifest, C: 945-frame slice file) and the builders themselves.

RULES:
- Fixture A: 1 mesh, 737 obstructions, 6 vents, 15 surfaces, 3 CSVF
  entries, transform tables of 25/11/25 entries
- Fixture B: 6 meshes, 17 surfaces, 4 CSVF entries, mesh 0 transform
  tables of 424/19/26 entries, empty title, CHID "abcde"
- Fixture C: region i 14..14, j 0..10, k 0..24, 945 frames, frame k at
  time k * 0.5 holding values k + arange(275)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence, Tuple

import numpy as np
import pytest


# ---------------------------------------------------------------------------
# Manifest writers
# ---------------------------------------------------------------------------


@dataclass
class MeshSpec:
    """Shape of one generated mesh."""

    name: str
    i_bar: int
    j_bar: int
    k_bar: int
    n_obst: int = 0
    n_vents: int = 0
    n_dummy: int = 0
    x0: float = 0.0
    cell: float = 0.1


def _trn_block(axis: str, n_cells: int, origin: float, cell: float, skip: int = 0) -> List[str]:
    lines = ["TRN{}".format(axis), "{:6d}".format(skip)]
    lines += ["{:6d} {:12.5f}".format(-1, 0.0) for _ in range(skip)]
    lines += ["{:6d} {:12.5f}".format(i, origin + i * cell) for i in range(n_cells + 1)]
    return lines + [""]


def _obst_lines(mesh: MeshSpec) -> List[str]:
    lines = ["OBST", "{:6d}".format(mesh.n_obst)]
    for n in range(mesh.n_obst):
        i = n % mesh.i_bar
        x1 = mesh.x0 + i * mesh.cell
        first = " {:.5f} {:.5f} {:.5f} {:.5f} {:.5f} {:.5f} {:5d} {} ".format(
            x1, x1 + mesh.cell, 0.0, mesh.cell, 0.0, mesh.cell, n + 1, " ".join(["1"] * 6)
        )
        if n % 2 == 0:
            first += " -999.00000 -999.00000 -999.00000"
        lines.append(first)
    for n in range(mesh.n_obst):
        i = n % mesh.i_bar
        lines.append(" {:4d} {:4d} {:4d} {:4d} {:4d} {:4d} {:4d} {:4d}".format(i, i + 1, 0, 1, 0, 1, -1, -1))
    return lines + [""]


def _vent_lines(mesh: MeshSpec) -> List[str]:
    total = mesh.n_vents
    lines = ["VENT", "{:6d} {:6d}".format(total, mesh.n_dummy)]
    for n in range(total):
        lines.append(" {:.5f} {:.5f} {:.5f} {:.5f} {:.5f} {:.5f} {:5d} {:4d}  0.0 0.0 0.0".format(
            mesh.x0, mesh.x0, 0.0, mesh.cell, 0.0, mesh.cell, n + 1, n % 3
        ))
    for n in range(total):
        second = " {:4d} {:4d} {:4d} {:4d} {:4d} {:4d} {:4d} {:4d}".format(0, 0, 0, 1, 0, 1, n + 1, -99)
        if n % 2 == 1:
            second += " 1.00000 0.00000 1.00000 1.00000"
        lines.append(second)
    return lines + [""]


def mesh_block(mesh: MeshSpec, trn_skip: int = 0) -> str:
    """GRID through OFFSET for one mesh, in the order FDS writes them."""
    lines = [
        "GRID  {}".format(mesh.name),
        "{:6d} {:6d} {:6d} {:6d}".format(mesh.i_bar, mesh.j_bar, mesh.k_bar, 0),
        "",
        "PDIM",
        " {:.5f} {:.5f} {:.5f} {:.5f} {:.5f} {:.5f}  0.0 0.0 0.0".format(
            mesh.x0, mesh.x0 + mesh.i_bar * mesh.cell,
            0.0, mesh.j_bar * mesh.cell,
            0.0, mesh.k_bar * mesh.cell,
        ),
        "",
    ]
    lines += _trn_block("X", mesh.i_bar, mesh.x0, mesh.cell, trn_skip)
    lines += _trn_block("Y", mesh.j_bar, 0.0, mesh.cell)
    lines += _trn_block("Z", mesh.k_bar, 0.0, mesh.cell)
    lines += _obst_lines(mesh)
    lines += _vent_lines(mesh)
    lines += ["CVENT", "     0", "", "OFFSET", " {:.5f} {:.5f} {:.5f}".format(mesh.x0, 0.0, 0.0), ""]
    return "\n".join(lines) + "\n"


def surface_block(name: str) -> str:
    return "\n".join([
        "SURFACE",
        " {}".format(name),
        "   5000.00  1.00000",
        "   0 -999.00000 -999.00000  0.80000 0.80000 0.80000 1.00000",
        " null",
        "",
    ]) + "\n"


def manifest_text(
    title: str = "Test Case",
    chid: str = "test_case",
    meshes: Sequence[MeshSpec] = (),
    n_surfaces: int = 0,
    csv_tags: Sequence[str] = (),
    extra: str = "",
    n_meshes: bool = True,
) -> str:
    """A complete manifest with the given meshes, surfaces and CSVF tags.

    ``extra`` is appended verbatim after the generated blocks.
    """
    parts = [
        "TITLE\n {}\n\n".format(title),
        "FDSVERSION\nFDS6.7.5-0-g71f025606-release\nThu Sep 17 10:04:25 2020\n",
        "REVISION\nrev-6.7.5\n\n",
        "CHID\n {}\n\n".format(chid),
        "SOLID_HT3D\n 0\n\n",
    ]
    parts += ["CSVF\n {}\n {}_{}.csv\n".format(tag, chid, tag) for tag in csv_tags]
    parts += [
        "\nINPF\n {}.fds\n\n".format(chid),
        "NMESHES\n {:6d}\n\n".format(len(meshes)) if n_meshes else "",
        "VIEWTIMES\n     0.00    600.00       0\n\n",
        "ALBEDO\n  0.30000\n\n",
        "IBLANK\n 1\n\n",
        "GVEC\n       0.00000       0.00000      -9.81000\n\n",
        "SURFDEF\n INERT\n\n",
    ]
    parts += [surface_block("SURF_{:02d}".format(n)) for n in range(n_surfaces)]
    parts += [
        "MATERIAL\n AIR\n  0.00000 0.00000 0.00000\n\n",
        "OUTLINE\n     1\n  0.0 1.0 0.0 1.0 0.0 1.0\n\n",
        "TOFFSET\n     0.00000     0.00000     0.00000\n\n",
        "HRRPUVCUT\n     1\n     200.00000\n\n",
    ]
    parts += [mesh_block(mesh) for mesh in meshes]
    parts.append(extra)
    return "".join(parts)


# ---------------------------------------------------------------------------
# Slice writers
# ---------------------------------------------------------------------------


def record(payload: bytes) -> bytes:
    """Frame a payload with matching leading and trailing length tags."""
    tag = struct.pack("<I", len(payload))
    return tag + payload + tag


def slice_header_bytes(
    bounds: Tuple[int, int, int, int, int, int],
    quantity: str = "TEMPERATURE",
    short_name: str = "temp",
    units: str = "C",
) -> bytes:
    return b"".join([
        record(quantity.ljust(30).encode("ascii")),
        record(short_name.ljust(30).encode("ascii")),
        record(units.ljust(30).encode("ascii")),
        record(struct.pack("<6i", *bounds)),
    ])


def frame_bytes(time: float, values: np.ndarray) -> bytes:
    return record(struct.pack("<f", time)) + record(np.asarray(values, dtype="<f4").tobytes())


def slice_bytes(
    bounds: Tuple[int, int, int, int, int, int],
    frames: Iterable[Tuple[float, np.ndarray]],
    **labels,
) -> bytes:
    """A whole slice file: header followed by the given (time, values) frames."""
    body = b"".join(frame_bytes(time, values) for time, values in frames)
    return slice_header_bytes(bounds, **labels) + body


def corrupt_tag(data: bytes, offset: int) -> bytes:
    """Flip the length tag that starts at ``offset``."""
    (tag,) = struct.unpack_from("<I", data, offset)
    return data[:offset] + struct.pack("<I", tag + 1) + data[offset + 4:]


SLICE_C_BOUNDS = (14, 14, 0, 10, 0, 24)
SLICE_C_VALUES = 275
SLICE_C_FRAMES = 945


def slice_c_frames(n_frames: int = SLICE_C_FRAMES) -> List[Tuple[float, np.ndarray]]:
    base = np.arange(SLICE_C_VALUES, dtype=np.float32)
    return [(k * 0.5, base + k) for k in range(n_frames)]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


FIXTURE_A_MESH = MeshSpec("Mesh01", 24, 10, 24, n_obst=737, n_vents=6, n_dummy=2)

FIXTURE_B_MESHES = [
    MeshSpec("Mesh01", 423, 18, 25, n_obst=40, n_vents=3, x0=0.0),
    MeshSpec("Mesh02", 10, 18, 25, n_obst=5, n_vents=2, n_dummy=1, x0=42.3),
    MeshSpec("Mesh03", 10, 18, 25, n_obst=0, n_vents=0, x0=43.3),
    MeshSpec("Mesh04", 12, 8, 6, n_obst=3, n_vents=1, x0=44.3),
    MeshSpec("Mesh05", 12, 8, 6, n_obst=1, n_vents=0, x0=45.5),
    MeshSpec("Mesh06", 12, 8, 6, n_obst=2, n_vents=4, n_dummy=4, x0=46.7),
]

SLICE_A_ENTRY = "\n".join([
    "SLCF     1 # STRUCTURED &    14    14     0    10     0    24 ! 1",
    " room_fire_01.sf",
    " TEMPERATURE",
    " temp",
    " C",
    "",
])


@pytest.fixture
def build_manifest() -> Callable[..., str]:
    """The manifest_text() builder, for tests that need a variant."""
    return manifest_text


@pytest.fixture
def mesh_spec() -> type:
    return MeshSpec


@pytest.fixture
def fixture_a_text() -> str:
    """Single-mesh room fire case."""
    return manifest_text(
        title="Single Couch Test Case",
        chid="room_fire",
        meshes=[FIXTURE_A_MESH],
        n_surfaces=15,
        csv_tags=["hrr", "devc", "steps"],
        extra=SLICE_A_ENTRY,
    )


@pytest.fixture
def fixture_b_text() -> str:
    """Six-mesh case with an empty title."""
    return manifest_text(
        title="",
        chid="abcde",
        meshes=FIXTURE_B_MESHES,
        n_surfaces=17,
        csv_tags=["hrr", "devc", "ctrl", "steps"],
    )


@pytest.fixture
def build_slice() -> Callable[..., bytes]:
    return slice_bytes


@pytest.fixture
def frame_builder() -> Callable[[float, np.ndarray], bytes]:
    return frame_bytes


@pytest.fixture
def tag_corrupter() -> Callable[[bytes, int], bytes]:
    return corrupt_tag


@pytest.fixture(scope="session")
def slice_c_bytes() -> bytes:
    """945-frame temperature slice on i 14..14, j 0..10, k 0..24."""
    return slice_bytes(SLICE_C_BOUNDS, slice_c_frames())


@pytest.fixture
def slice_c_path(tmp_path, slice_c_bytes):
    path = tmp_path / "room_fire_01.sf"
    path.write_bytes(slice_c_bytes)
    return path


@pytest.fixture
def small_slice_bytes() -> bytes:
    """Four frames on a 2 x 3 x 2 region."""
    rng = np.random.default_rng(7)
    frames = [(0.25 * k, rng.random(12, dtype=np.float32)) for k in range(4)]
    return slice_bytes((0, 1, 0, 2, 0, 1), frames)
