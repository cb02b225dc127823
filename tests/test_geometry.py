"""Tests for the geometric value types and mesh helpers."""

import pytest

from fds_outputs.core.geometry import GridRegion, Rgb, TransformEntry, TransformTable, Xb, Xyz
from fds_outputs.core.manifest import CsvEntry, Manifest, Mesh


def table(*pairs):
    return TransformTable(tuple(TransformEntry(i, c) for i, c in pairs))


def unit_mesh(trnx, trny=None, trnz=None):
    default = table((0, 0.0), (1, 1.0))
    return Mesh(
        name="M",
        i_bar=1,
        j_bar=1,
        k_bar=1,
        mesh_type=0,
        obstructions=(),
        vents=(),
        trnx=trnx,
        trny=trny or default,
        trnz=trnz or default,
        dims=Xb(0.0, 1.0, 0.0, 1.0, 0.0, 1.0),
        color=Rgb(0.0, 0.0, 0.0),
        offset=Xyz(0.0, 0.0, 0.0),
    )


class TestXbIntersects:

    def test_overlapping(self):
        a = Xb(0.0, 2.0, 0.0, 2.0, 0.0, 2.0)
        b = Xb(1.0, 3.0, 1.0, 3.0, 1.0, 3.0)
        assert a.intersects(b)
        assert b.intersects(a)

    def test_contained(self):
        outer = Xb(0.0, 10.0, 0.0, 10.0, 0.0, 10.0)
        inner = Xb(4.0, 5.0, 4.0, 5.0, 4.0, 5.0)
        assert outer.intersects(inner)

    def test_touching_faces_do_not_intersect(self):
        a = Xb(0.0, 1.0, 0.0, 1.0, 0.0, 1.0)
        b = Xb(1.0, 2.0, 0.0, 1.0, 0.0, 1.0)
        assert not a.intersects(b)

    def test_separated_on_one_axis(self):
        a = Xb(0.0, 1.0, 0.0, 1.0, 0.0, 1.0)
        b = Xb(0.5, 1.5, 0.5, 1.5, 2.0, 3.0)
        assert not a.intersects(b)


class TestTransformTable:
    """Exact-index lookups over (index, coordinate) pairs."""

    def test_lookup_by_index_not_position(self):
        trn = table((5, 0.5), (6, 0.75), (7, 1.25))
        assert trn.coordinate(6) == pytest.approx(0.75)
        assert trn[0] == TransformEntry(5, 0.5)

    def test_missing_index(self):
        trn = table((0, 0.0), (2, 2.0))
        assert 2 in trn
        assert 1 not in trn
        with pytest.raises(KeyError, match="grid index 1"):
            trn.coordinate(1)

    def test_sequence_behaviour(self):
        trn = table((0, 0.0), (1, 0.1), (2, 0.3))
        assert len(trn) == 3
        assert [e.index for e in trn] == [0, 1, 2]
        assert len(TransformTable()) == 0

    def test_equality_ignores_lookup_cache(self):
        assert table((0, 0.0)) == table((0, 0.0))


class TestMeshXbFromGrid:

    def test_stretched_axis(self):
        mesh = unit_mesh(table((0, 0.0), (1, 0.1), (2, 0.3), (3, 0.7)))
        box = mesh.xb_from_grid(GridRegion(1, 3, 0, 1, 0, 1))
        assert box == Xb(0.1, 0.7, 0.0, 1.0, 0.0, 1.0)

    def test_region_outside_table(self):
        mesh = unit_mesh(table((0, 0.0), (1, 1.0)))
        with pytest.raises(KeyError):
            mesh.xb_from_grid(GridRegion(0, 2, 0, 1, 0, 1))


class TestManifestCatalog:

    def test_first_matching_tag(self):
        manifest = Manifest(
            title="t",
            chid="c",
            input_filename="c.fds",
            csvfs=(CsvEntry("hrr", "a.csv"), CsvEntry("hrr", "b.csv")),
        )
        assert manifest.catalog("hrr").filename == "a.csv"
        assert list(manifest.output_files()) == ["a.csv", "b.csv"]
