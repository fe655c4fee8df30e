"""openpyxl-backed workbook for scanning .xlsx files."""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Any

from openpyxl import Workbook as OpenpyxlWorkbook
from openpyxl import load_workbook
from openpyxl.cell import Cell
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from xls_table_parser.config import Settings, settings
from xls_table_parser.document import CellType, SpreadsheetCell
from xls_table_parser.utils.exceptions import SheetNotFoundError, WorkbookLoadError
from xls_table_parser.utils.logging import get_logger

logger = get_logger(__name__)


def _physical_cells(sheet: Worksheet) -> dict[tuple[int, int], Cell]:
    # openpyxl only stores cells that exist in the file here; iter_rows()
    # would create the rest of the bounding box on access.
    cells: dict[tuple[int, int], Cell] = sheet._cells
    return cells


class ExcelCell(SpreadsheetCell):
    """Wraps an openpyxl cell and, for formulas, its cached result."""

    def __init__(
        self,
        cell: Cell,
        *,
        computed_value: Any = None,
        computed_data_type: str | None = None,
    ) -> None:
        self._cell = cell
        self._computed_value = computed_value
        self._computed_data_type = computed_data_type

    @property
    def cell_type(self) -> CellType:
        """Map openpyxl data types to cell type tags."""
        data_type = self._cell.data_type
        if data_type == "f":
            return CellType.FORMULA
        if data_type == "e":
            return CellType.ERROR
        if self._cell.value is None:
            return CellType.BLANK
        if data_type == "b":
            return CellType.BOOLEAN
        if data_type in ("n", "d"):
            return CellType.NUMERIC
        # "s", "str" and "inlineStr"
        return CellType.STRING

    @property
    def value(self) -> Any:
        if self._cell.data_type == "f":
            return self._computed_value
        return self._cell.value

    @property
    def value_type(self) -> CellType:
        if self._cell.data_type == "f" and self._computed_data_type == "e":
            return CellType.ERROR
        return super().value_type

    @property
    def formula(self) -> str | None:
        if self._cell.data_type != "f":
            return None
        raw = self._cell.value
        # ArrayFormula objects keep their expression in .text
        return str(getattr(raw, "text", raw))

    @property
    def row_index(self) -> int | None:
        return self._cell.row - 1

    @property
    def column_index(self) -> int | None:
        return self._cell.column - 1


class ExcelRow:
    """A worksheet row restricted to physically present cells."""

    def __init__(self, index: int, cells: dict[int, ExcelCell]) -> None:
        self._index = index
        self._cells = dict(sorted(cells.items()))

    @property
    def index(self) -> int:
        return self._index

    @property
    def first_occupied_index(self) -> int | None:
        return next(iter(self._cells), None)

    @property
    def last_occupied_index(self) -> int | None:
        return next(reversed(self._cells), None)

    def cell(self, index: int) -> ExcelCell | None:
        return self._cells.get(index)


class ExcelSheet:
    """0-based view over an openpyxl worksheet."""

    def __init__(self, sheet: Worksheet, computed_sheet: Worksheet | None = None) -> None:
        self._name = sheet.title
        computed = _physical_cells(computed_sheet) if computed_sheet is not None else {}
        grouped: dict[int, dict[int, ExcelCell]] = {}
        for (row, column), cell in list(_physical_cells(sheet).items()):
            computed_cell = computed.get((row, column))
            grouped.setdefault(row - 1, {})[column - 1] = ExcelCell(
                cell,
                computed_value=computed_cell.value if computed_cell is not None else None,
                computed_data_type=(
                    computed_cell.data_type if computed_cell is not None else None
                ),
            )
        self._rows = {index: ExcelRow(index, cells) for index, cells in grouped.items()}

    @property
    def name(self) -> str:
        return self._name

    @property
    def last_row_index(self) -> int:
        return max(self._rows, default=-1)

    def row(self, index: int) -> ExcelRow | None:
        return self._rows.get(index)


class ExcelWorkbook:
    """Workbook adapter over openpyxl.

    Formula cells read their cached results from a second, ``data_only``
    copy of the workbook when one is supplied.
    """

    def __init__(
        self,
        workbook: OpenpyxlWorkbook,
        computed_workbook: OpenpyxlWorkbook | None = None,
    ) -> None:
        self._workbook = workbook
        self._computed_workbook = computed_workbook
        self._sheets: dict[str, ExcelSheet] = {}

    @classmethod
    def from_path(
        cls, file_path: Path | str, config: Settings | None = None
    ) -> ExcelWorkbook:
        """Open an .xlsx file.

        Raises:
            WorkbookLoadError: If the file is missing or not a valid workbook.
        """
        cfg = config or settings
        file_path = Path(file_path)
        if not file_path.exists():
            raise WorkbookLoadError(
                f"Excel file not found: {file_path}", file_path=str(file_path)
            )
        try:
            # Load twice: once to capture formulas, once for computed values
            workbook = load_workbook(filename=file_path, data_only=False)
            computed = (
                load_workbook(filename=file_path, data_only=True)
                if cfg.load_formula_values
                else None
            )
        except (InvalidFileException, zipfile.BadZipFile, KeyError) as e:
            raise WorkbookLoadError(
                f"Cannot open workbook: {e}", file_path=str(file_path)
            ) from e
        logger.debug(
            "Workbook loaded",
            file_path=str(file_path),
            sheets=len(workbook.sheetnames),
        )
        return cls(workbook, computed)

    @property
    def sheet_names(self) -> list[str]:
        return list(self._workbook.sheetnames)

    def sheet(self, key: str | int) -> ExcelSheet:
        names = self.sheet_names
        if isinstance(key, str):
            name = key if key in names else None
        elif not isinstance(key, bool) and 0 <= key < len(names):
            name = names[key]
        else:
            name = None
        if name is None:
            raise SheetNotFoundError(key, available=names)

        if name not in self._sheets:
            computed_sheet = (
                self._computed_workbook[name]
                if self._computed_workbook is not None
                else None
            )
            self._sheets[name] = ExcelSheet(self._workbook[name], computed_sheet)
        return self._sheets[name]
