"""In-memory workbook backend built from plain Python values."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, time, timedelta
from typing import Any

from xls_table_parser.document import CellType, SpreadsheetCell
from xls_table_parser.utils.exceptions import SheetNotFoundError


class _BlankMarker:
    """Marker for a cell that exists but holds no value."""

    _instance: _BlankMarker | None = None

    def __new__(cls) -> _BlankMarker:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "BLANK"


BLANK = _BlankMarker()
"""Use inside row values to place a blank (present but empty) cell."""

RowValues = Sequence[Any] | Mapping[int, Any] | None


class MemoryCell(SpreadsheetCell):
    """A cell held in memory."""

    def __init__(
        self,
        cell_type: CellType,
        value: Any = None,
        *,
        formula: str | None = None,
        row_index: int | None = None,
        column_index: int | None = None,
    ) -> None:
        if cell_type is CellType.MISSING:
            raise ValueError("MemoryCell cannot be missing; omit the cell instead")
        self._cell_type = cell_type
        self._value = value
        self._formula = formula
        self._row_index = row_index
        self._column_index = column_index

    @classmethod
    def numeric(cls, value: int | float | datetime | date | time | timedelta) -> MemoryCell:
        return cls(CellType.NUMERIC, value)

    @classmethod
    def string(cls, value: str) -> MemoryCell:
        return cls(CellType.STRING, value)

    @classmethod
    def boolean(cls, value: bool) -> MemoryCell:
        return cls(CellType.BOOLEAN, value)

    @classmethod
    def blank(cls) -> MemoryCell:
        return cls(CellType.BLANK)

    @classmethod
    def error(cls, code: str) -> MemoryCell:
        return cls(CellType.ERROR, code)

    @classmethod
    def formula_cell(cls, expression: str, cached: Any = None) -> MemoryCell:
        """A formula cell with an optional cached result."""
        return cls(CellType.FORMULA, cached, formula=expression)

    @classmethod
    def from_value(cls, value: Any) -> MemoryCell:
        """Infer the cell type from a Python value."""
        if isinstance(value, MemoryCell):
            return value
        if value is BLANK:
            return cls.blank()
        if isinstance(value, bool):
            return cls.boolean(value)
        if isinstance(value, (int, float, datetime, date, time, timedelta)):
            return cls.numeric(value)
        if isinstance(value, str):
            return cls.string(value)
        raise TypeError(f"Cannot store {type(value).__name__} in a cell")

    def at(self, row_index: int, column_index: int) -> MemoryCell:
        """Copy of this cell placed at the given coordinates."""
        return MemoryCell(
            self._cell_type,
            self._value,
            formula=self._formula,
            row_index=row_index,
            column_index=column_index,
        )

    @property
    def cell_type(self) -> CellType:
        return self._cell_type

    @property
    def value(self) -> Any:
        return self._value

    @property
    def formula(self) -> str | None:
        return self._formula

    @property
    def row_index(self) -> int | None:
        return self._row_index

    @property
    def column_index(self) -> int | None:
        return self._column_index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MemoryCell):
            return NotImplemented
        return (self._cell_type, self._value, self._formula) == (
            other._cell_type,
            other._value,
            other._formula,
        )

    def __hash__(self) -> int:
        return hash((self._cell_type, self._formula, repr(self._value)))


class MemoryRow:
    """A row of in-memory cells keyed by column."""

    def __init__(self, index: int, cells: Mapping[int, MemoryCell]) -> None:
        self._index = index
        self._cells = {
            column: cell.at(index, column) for column, cell in sorted(cells.items())
        }

    @classmethod
    def from_values(cls, index: int, values: Sequence[Any] | Mapping[int, Any]) -> MemoryRow:
        """Build a row; ``None`` entries leave the cell absent."""
        items: Iterable[tuple[int, Any]] = (
            values.items() if isinstance(values, Mapping) else enumerate(values)
        )
        return cls(
            index,
            {
                column: MemoryCell.from_value(value)
                for column, value in items
                if value is not None
            },
        )

    @property
    def index(self) -> int:
        return self._index

    @property
    def first_occupied_index(self) -> int | None:
        return next(iter(self._cells), None)

    @property
    def last_occupied_index(self) -> int | None:
        return next(reversed(self._cells), None)

    def cell(self, index: int) -> MemoryCell | None:
        return self._cells.get(index)

    def __repr__(self) -> str:
        return f"MemoryRow({self._index}, {list(self._cells.values())!r})"


class MemorySheet:
    """A sheet of in-memory rows; absent indices are gaps."""

    def __init__(self, name: str, rows: Iterable[MemoryRow] = ()) -> None:
        self._name = name
        self._rows = {row.index: row for row in rows}

    @classmethod
    def from_values(cls, name: str, rows: Sequence[RowValues]) -> MemorySheet:
        """Build a sheet from row values; a ``None`` row is a gap."""
        return cls(
            name,
            [
                MemoryRow.from_values(index, values)
                for index, values in enumerate(rows)
                if values is not None
            ],
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def last_row_index(self) -> int:
        return max(self._rows, default=-1)

    def row(self, index: int) -> MemoryRow | None:
        return self._rows.get(index)


class MemoryWorkbook:
    """An ordered collection of in-memory sheets.

    Example:
        workbook = MemoryWorkbook.from_values(
            {"Prices": [["title"], ["h1", "h2"], [1, "a"], [2, "b"], [BLANK]]}
        )
    """

    def __init__(self, sheets: Iterable[MemorySheet]) -> None:
        self._sheets = list(sheets)

    @classmethod
    def from_values(cls, sheets: Mapping[str, Sequence[RowValues]]) -> MemoryWorkbook:
        return cls(MemorySheet.from_values(name, rows) for name, rows in sheets.items())

    @property
    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self._sheets]

    def sheet(self, key: str | int) -> MemorySheet:
        if isinstance(key, str):
            for sheet in self._sheets:
                if sheet.name == key:
                    return sheet
        elif not isinstance(key, bool) and 0 <= key < len(self._sheets):
            return self._sheets[key]
        raise SheetNotFoundError(key, available=self.sheet_names)
