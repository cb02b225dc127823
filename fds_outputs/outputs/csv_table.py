"""Reader for companion CSV tables (hrr, devc, mass, ...).

WHY: The simulation writes its time series as CSV files with two header
rows, units first and column names second. Cells are usually numbers
but may be text, so columns stay dynamically typed until a caller asks
for floats.

HOW: pandas reads every cell as a string; the two header rows are split
off, and each data cell becomes a float when it parses as one and the
stripped text otherwise. data_vector() pairs an x column with a y
column into a DataVector.

RULES:
- Row 1 holds units, row 2 holds column names, data starts at row 3
- Names and units are stripped of whitespace and surrounding quotes
- Duplicate column names resolve to the first occurrence
- The x axis of a DataVector is always float; y keeps mixed cells
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

import numpy as np
import pandas as pd

from fds_outputs.config import CSV_HEADER_ROWS
from fds_outputs.errors import ColumnNotFoundError, NonNumericColumnError

logger = logging.getLogger(__name__)

Cell = Union[float, str]


def _cell(text: str) -> Cell:
    text = text.strip()
    try:
        return float(text)
    except ValueError:
        return text


def _label(text: str) -> str:
    return text.strip().strip('"').strip()


def _floats(column: str, values: np.ndarray) -> np.ndarray:
    for row, value in enumerate(values):
        if not isinstance(value, float):
            raise NonNumericColumnError(column, row, value)
    return values.astype(np.float64)


@dataclass
class DataVector:
    """A named (x, y) series taken from two columns of a table."""

    name: str
    x_name: str
    y_name: str
    x_units: str
    y_units: str
    x: np.ndarray
    y: np.ndarray

    def __len__(self) -> int:
        return len(self.x)

    def to_float(self) -> DataVector:
        """Copy with y narrowed to float64.

        Raises:
            NonNumericColumnError: A y cell is not a number.
        """
        return DataVector(
            name=self.name,
            x_name=self.x_name,
            y_name=self.y_name,
            x_units=self.x_units,
            y_units=self.y_units,
            x=self.x,
            y=_floats(self.y_name, self.y),
        )


@dataclass
class CsvTable:
    """Units, column names, and dynamically typed cells of one CSV file."""

    units: List[str]
    columns: List[str]
    frame: pd.DataFrame

    def _position(self, name: str) -> int:
        try:
            return self.columns.index(name)
        except ValueError:
            raise ColumnNotFoundError(
                "no column {!r} (have: {})".format(name, ", ".join(self.columns))
            ) from None

    def column(self, name: str) -> np.ndarray:
        """Cells of column ``name`` as an object array."""
        return self.frame.iloc[:, self._position(name)].to_numpy(dtype=object)

    def units_of(self, name: str) -> str:
        return self.units[self._position(name)]

    def data_vector(self, x_name: str, y_name: str) -> DataVector:
        """Pair column ``x_name`` (narrowed to float) with column ``y_name``.

        Raises:
            ColumnNotFoundError: Either column is missing.
            NonNumericColumnError: An x cell is not a number.
        """
        return DataVector(
            name=y_name,
            x_name=x_name,
            y_name=y_name,
            x_units=self.units_of(x_name),
            y_units=self.units_of(y_name),
            x=_floats(x_name, self.column(x_name)),
            y=self.column(y_name),
        )


def read_csv_table(path: Union[str, Path]) -> CsvTable:
    """Read a companion CSV file.

    Args:
        path: Path to the CSV file.

    Returns:
        CsvTable with units, column names and cells.

    Raises:
        ValueError: The file has fewer than two header rows.
    """
    raw = pd.read_csv(
        path,
        header=None,
        dtype=str,
        keep_default_na=False,
        skipinitialspace=True,
    )
    if len(raw) < CSV_HEADER_ROWS:
        raise ValueError("{}: expected {} header rows, found {}".format(path, CSV_HEADER_ROWS, len(raw)))

    units = [_label(text) for text in raw.iloc[0]]
    columns = [_label(text) for text in raw.iloc[1]]
    body = raw.iloc[CSV_HEADER_ROWS:].reset_index(drop=True)
    data = pd.DataFrame({position: body.iloc[:, position].map(_cell) for position in range(len(columns))})
    logger.debug("Read %s: %d columns, %d rows", path, len(columns), len(data))
    return CsvTable(units=units, columns=columns, frame=data)
