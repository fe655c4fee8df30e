"""Read-only document model consumed by the parser.

Workbooks, sheets and rows are described as protocols so that any backend
(openpyxl, an in-memory grid, ...) can be scanned. Cells share one concrete
base class that implements the typed accessors and display rendering.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta
from enum import Enum, IntEnum
from typing import Any, Protocol

from openpyxl.utils.datetime import from_excel, to_excel

from xls_table_parser.utils.exceptions import (
    CellTypeMismatchError,
    InvalidCellIndexError,
)

DateLike = datetime | date | time | timedelta


class CellType(str, Enum):
    """Type tag of a spreadsheet cell."""

    NUMERIC = "numeric"
    STRING = "string"
    BOOLEAN = "boolean"
    FORMULA = "formula"
    ERROR = "error"
    BLANK = "blank"
    MISSING = "missing"


class CellIndex(IntEnum):
    """Column sentinels resolved against each row's occupied bounds."""

    FIRST = -1
    LAST = -2


def validate_cell_index(value: Any) -> int:
    """Check a column selector at build time.

    Args:
        value: A nonnegative int or one of the ``CellIndex`` sentinels.

    Returns:
        The index, with -1/-2 normalised to ``CellIndex`` members.

    Raises:
        InvalidCellIndexError: If the value is not a valid column selector.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidCellIndexError(value)
    if value >= 0:
        return int(value)
    if value in (CellIndex.FIRST, CellIndex.LAST):
        return CellIndex(value)
    raise InvalidCellIndexError(value)


def resolve_cell_index(row: Row, index: int) -> int | None:
    """Turn a column selector into a concrete column for one row.

    Returns None when a FIRST/LAST sentinel is applied to a row without
    occupied cells.
    """
    if index == CellIndex.FIRST:
        return row.first_occupied_index
    if index == CellIndex.LAST:
        return row.last_occupied_index
    return index


def lookup_cell(row: Row, index: int) -> SpreadsheetCell:
    """Return the cell selected by ``index``, or a MissingCell if absent."""
    column = resolve_cell_index(row, index)
    cell = row.cell(column) if column is not None else None
    if cell is None:
        return MissingCell(row.index, column)
    return cell


def row_width(row: Row) -> int:
    """Number of cells a row spans from column 0 to its last occupied cell."""
    last = row.last_occupied_index
    return 0 if last is None else last + 1


def _effective_type(value: Any) -> CellType:
    if value is None:
        return CellType.BLANK
    if isinstance(value, bool):
        return CellType.BOOLEAN
    if isinstance(value, (int, float, datetime, date, time, timedelta)):
        return CellType.NUMERIC
    return CellType.STRING


def _format_number(value: Any) -> str:
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    if isinstance(value, int):
        return str(value)
    if float(value).is_integer():
        return str(int(value))
    return format(value, ".10g")


class SpreadsheetCell(ABC):
    """A single cell of a sheet.

    Subclasses provide the type tag and raw value; this base class implements
    the typed accessors shared by every backend. Formula cells expose their
    cached result through ``value`` and the expression through ``formula``.
    """

    @property
    @abstractmethod
    def cell_type(self) -> CellType:
        """Type tag of the cell."""

    @property
    @abstractmethod
    def value(self) -> Any:
        """Raw value, or the cached result for formula cells."""

    @property
    def formula(self) -> str | None:
        """Formula expression for formula cells."""
        return None

    @property
    def row_index(self) -> int | None:
        """0-based row of the cell, when known."""
        return None

    @property
    def column_index(self) -> int | None:
        """0-based column of the cell, when known."""
        return None

    @property
    def value_type(self) -> CellType:
        """Type of the value, looking through formulas to their cached result."""
        if self.cell_type is CellType.FORMULA:
            return _effective_type(self.value)
        return self.cell_type

    @property
    def is_date(self) -> bool:
        """Whether the numeric value is a date/time."""
        return isinstance(self.value, (datetime, date, time, timedelta))

    def _mismatch(self, expected: str) -> CellTypeMismatchError:
        actual = self.cell_type.value
        if self.cell_type is CellType.FORMULA:
            actual = f"formula ({self.value_type.value} result)"
        return CellTypeMismatchError(
            expected=expected,
            actual=actual,
            row_index=self.row_index,
            column_index=self.column_index,
        )

    def as_number(self) -> int | float:
        """Numeric value of the cell; dates are returned as serial numbers.

        Raises:
            CellTypeMismatchError: If the cell does not hold a number.
        """
        if self.value_type is not CellType.NUMERIC:
            raise self._mismatch("numeric")
        value = self.value
        if isinstance(value, (datetime, date, time, timedelta)):
            serial: int | float = to_excel(value)
            return serial
        number: int | float = value
        return number

    def as_datetime(self) -> DateLike:
        """Date/time value of a numeric cell.

        Plain numbers are read as spreadsheet serial dates.

        Raises:
            CellTypeMismatchError: If the cell does not hold a number.
        """
        if self.value_type is not CellType.NUMERIC:
            raise self._mismatch("date")
        value = self.value
        if isinstance(value, (datetime, date, time, timedelta)):
            return value
        converted: DateLike = from_excel(value)
        return converted

    def as_string(self) -> str:
        """Text value of the cell.

        Raises:
            CellTypeMismatchError: If the cell does not hold text.
        """
        if self.value_type is not CellType.STRING:
            raise self._mismatch("string")
        return str(self.value)

    def as_boolean(self) -> bool:
        """Boolean value of the cell.

        Raises:
            CellTypeMismatchError: If the cell does not hold a boolean.
        """
        if self.value_type is not CellType.BOOLEAN:
            raise self._mismatch("boolean")
        return bool(self.value)

    def rendered_text(self) -> str:
        """Display-style text of any cell type."""
        cell_type = self.cell_type
        if cell_type is CellType.FORMULA:
            if self.value is None:
                return self.formula or ""
            cell_type = self.value_type
        if cell_type in (CellType.BLANK, CellType.MISSING):
            return ""
        if cell_type is CellType.BOOLEAN:
            return "TRUE" if self.value else "FALSE"
        if cell_type is CellType.NUMERIC:
            return _format_number(self.value)
        return str(self.value)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.cell_type.value}, {self.value!r}, "
            f"row={self.row_index}, column={self.column_index})"
        )


class MissingCell(SpreadsheetCell):
    """Stand-in for a cell that does not exist in its row."""

    def __init__(self, row_index: int | None, column_index: int | None) -> None:
        self._row_index = row_index
        self._column_index = column_index

    @property
    def cell_type(self) -> CellType:
        return CellType.MISSING

    @property
    def value(self) -> Any:
        return None

    @property
    def row_index(self) -> int | None:
        return self._row_index

    @property
    def column_index(self) -> int | None:
        return self._column_index

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, MissingCell)
            and other._row_index == self._row_index
            and other._column_index == self._column_index
        )

    def __hash__(self) -> int:
        return hash((MissingCell, self._row_index, self._column_index))


class Row(Protocol):
    """A sheet row; cells between the occupied bounds may still be absent."""

    @property
    def index(self) -> int: ...

    @property
    def first_occupied_index(self) -> int | None: ...

    @property
    def last_occupied_index(self) -> int | None: ...

    def cell(self, index: int) -> SpreadsheetCell | None: ...


class Sheet(Protocol):
    """An ordered, 0-indexed sequence of rows with possible gaps."""

    @property
    def name(self) -> str: ...

    @property
    def last_row_index(self) -> int:
        """Index of the last row, or -1 for an empty sheet."""
        ...

    def row(self, index: int) -> Row | None: ...


class Workbook(Protocol):
    """A collection of sheets addressable by name or 0-based position."""

    @property
    def sheet_names(self) -> list[str]: ...

    def sheet(self, key: str | int) -> Sheet:
        """Return a sheet or raise SheetNotFoundError."""
        ...
