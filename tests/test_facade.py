"""Tests for the Outputs façade.

WHY: The façade is the usual entry point for scripts: one manifest path
in, columns and slice cursors out. Paths must resolve against the
manifest's own directory, wherever the process is running.

HOW: A case directory in tmp_path holds the fixture A manifest, its hrr
CSV and its temperature slice file.
"""

import numpy as np
import pytest

from fds_outputs import Outputs
from fds_outputs.errors import CatalogLookupError, ColumnNotFoundError, NonNumericColumnError

HRR_CSV = (
    "s,kW,kW\n"
    "Time,HRR,NOTE\n"
    " 0.0, 0.0,start\n"
    " 1.0, 10.0,\n"
    " 2.0, 40.0,\n"
)


@pytest.fixture
def case_dir(tmp_path, fixture_a_text, build_slice):
    case = tmp_path / "cases" / "room_fire"
    case.mkdir(parents=True)
    (case / "room_fire.smv").write_text(fixture_a_text)
    (case / "room_fire_hrr.csv").write_text(HRR_CSV)
    frames = [(float(k), np.full(275, k, dtype=np.float32)) for k in range(3)]
    (case / "room_fire_01.sf").write_bytes(build_slice((14, 14, 0, 10, 0, 24), frames))
    return case


class TestCsvVectors:

    def test_get_csv_vector(self, case_dir):
        outputs = Outputs(case_dir / "room_fire.smv")
        vector = outputs.get_csv_vector("hrr", "HRR")
        np.testing.assert_allclose(vector.x, [0.0, 1.0, 2.0])
        assert list(vector.y) == [0.0, 10.0, 40.0]
        assert vector.y_units == "kW"

    def test_get_csv_vector_f64(self, case_dir):
        vector = Outputs(str(case_dir / "room_fire.smv")).get_csv_vector_f64("hrr", "HRR")
        assert vector.y.dtype == np.float64
        np.testing.assert_allclose(vector.y, [0.0, 10.0, 40.0])

    def test_non_numeric_column(self, case_dir):
        with pytest.raises(NonNumericColumnError):
            Outputs(case_dir / "room_fire.smv").get_csv_vector_f64("hrr", "NOTE")

    def test_unknown_type_tag(self, case_dir):
        with pytest.raises(CatalogLookupError, match="ctrl"):
            Outputs(case_dir / "room_fire.smv").get_csv_vector("ctrl", "HRR")

    def test_unknown_column(self, case_dir):
        with pytest.raises(ColumnNotFoundError):
            Outputs(case_dir / "room_fire.smv").get_csv_vector("hrr", "Q_RADI")

    def test_catalogued_file_missing(self, case_dir):
        with pytest.raises(FileNotFoundError):
            Outputs(case_dir / "room_fire.smv").get_csv_vector("devc", "TC01")

    def test_paths_resolve_against_manifest_directory(self, case_dir):
        outputs = Outputs(case_dir / "room_fire.smv")
        assert outputs.directory == case_dir
        assert outputs.csv_path("steps") == case_dir / "room_fire_steps.csv"


class TestSlices:

    def test_open_slice(self, case_dir):
        outputs = Outputs(case_dir / "room_fire.smv")
        (entry,) = outputs.manifest.slices
        assert outputs.slice_path(entry) == case_dir / "room_fire_01.sf"
        with outputs.open_slice(entry) as parser:
            assert parser.header.short_name == "temp"
            assert parser.frame_count() == 3
            assert parser.frame_at(2).time == pytest.approx(2.0)
