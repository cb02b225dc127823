"""Manifest-driven access to companion output files.

WHY: Catalog filenames are relative to the manifest's own directory.
Callers should be able to ask for "the HRR column of the hrr table"
without building paths or re-parsing the manifest every time.

HOW: Outputs parses the manifest once on construction and resolves
catalog entries against the manifest's parent directory on demand.

RULES:
- The manifest is parsed eagerly; parse failures surface from __init__
- Lookups by type tag use the first matching CSVF entry
- The x axis of every CSV vector is the "Time" column
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from fds_outputs.config import TIME_COLUMN
from fds_outputs.core.manifest import SliceEntry
from fds_outputs.core.slice_parser import SliceParser
from fds_outputs.core.smv_parser import DiagnosticSink, read_manifest
from fds_outputs.errors import CatalogLookupError
from fds_outputs.outputs.csv_table import DataVector, read_csv_table

logger = logging.getLogger(__name__)


class Outputs:
    """Entry point for reading a simulation's outputs from its manifest.

    Args:
        smv_path: Path to the .smv manifest.
        on_diagnostic: Optional sink for manifest diagnostics.
    """

    def __init__(self, smv_path: Union[str, Path], on_diagnostic: Optional[DiagnosticSink] = None) -> None:
        self.smv_path = Path(smv_path)
        self.manifest = read_manifest(self.smv_path, on_diagnostic=on_diagnostic)

    @property
    def directory(self) -> Path:
        return self.smv_path.parent

    def csv_path(self, type_tag: str) -> Path:
        """Absolute path of the first CSVF entry tagged ``type_tag``."""
        entry = self.manifest.catalog(type_tag)
        if entry is None:
            tags = ", ".join(csvf.type_tag for csvf in self.manifest.csvfs)
            raise CatalogLookupError("no CSVF entry of type {!r} (have: {})".format(type_tag, tags))
        return self.directory / entry.filename

    def get_csv_vector(self, type_tag: str, column: str) -> DataVector:
        """Time series of ``column`` from the CSV table tagged ``type_tag``.

        Raises:
            CatalogLookupError: The manifest lists no such table.
            ColumnNotFoundError: The table has no such column.
        """
        path = self.csv_path(type_tag)
        logger.debug("Reading %s column %r from %s", type_tag, column, path)
        return read_csv_table(path).data_vector(TIME_COLUMN, column)

    def get_csv_vector_f64(self, type_tag: str, column: str) -> DataVector:
        """Like get_csv_vector(), with the values narrowed to float64.

        Raises:
            NonNumericColumnError: A cell in the column is not a number.
        """
        return self.get_csv_vector(type_tag, column).to_float()

    def slice_path(self, entry: SliceEntry) -> Path:
        return self.directory / entry.filename

    def open_slice(self, entry: SliceEntry) -> SliceParser:
        """Open the slice file of a catalog entry; close it when done."""
        return SliceParser.open_path(self.slice_path(entry))
