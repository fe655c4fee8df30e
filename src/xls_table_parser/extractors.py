"""Ready-made column extractors that copy a cell into a record field.

Records may be mappings (item assignment) or any other object (attribute
assignment). Typed helpers go through the cell's typed accessors, so a cell of
the wrong type raises CellTypeMismatchError and aborts the stage.

Example:
    (
        from_sheet("Prices")
        .find_row_that(header_row)
        .no_skip()
        .stop_when(empty_row)
        .records_from(dict)
        .column(set_integer("quantity"))
        .column(set_string("label"))
        .into(records)
    )
"""

from __future__ import annotations

from collections.abc import Callable, MutableMapping
from typing import Any

from xls_table_parser.document import SpreadsheetCell
from xls_table_parser.utils.exceptions import CellTypeMismatchError

CellExtractor = Callable[[Any, SpreadsheetCell], None]


def _assign(record: Any, field: str, value: Any) -> None:
    if isinstance(record, MutableMapping):
        record[field] = value
    else:
        setattr(record, field, value)


def assign(field: str, convert: Callable[[Any], Any] | None = None) -> Callable[[Any, Any], None]:
    """Store whatever the column yields (a cell, or text for ``column_text``).

    Args:
        field: Key or attribute name on the record.
        convert: Optional conversion applied before storing.
    """

    def extract(record: Any, value: Any) -> None:
        _assign(record, field, convert(value) if convert else value)

    return extract


def set_number(field: str) -> CellExtractor:
    def extract(record: Any, cell: SpreadsheetCell) -> None:
        _assign(record, field, cell.as_number())

    return extract


def set_integer(field: str) -> CellExtractor:
    """Numeric cell holding a whole number, stored as ``int``."""

    def extract(record: Any, cell: SpreadsheetCell) -> None:
        number = cell.as_number()
        if not float(number).is_integer():
            raise CellTypeMismatchError(
                expected="integer",
                actual=f"numeric ({number})",
                row_index=cell.row_index,
                column_index=cell.column_index,
            )
        _assign(record, field, int(number))

    return extract


def set_string(field: str) -> CellExtractor:
    def extract(record: Any, cell: SpreadsheetCell) -> None:
        _assign(record, field, cell.as_string())

    return extract


def set_boolean(field: str) -> CellExtractor:
    def extract(record: Any, cell: SpreadsheetCell) -> None:
        _assign(record, field, cell.as_boolean())

    return extract


def set_date(field: str) -> CellExtractor:
    def extract(record: Any, cell: SpreadsheetCell) -> None:
        _assign(record, field, cell.as_datetime())

    return extract


def set_text(field: str) -> CellExtractor:
    """Display text of any cell; never raises on type."""

    def extract(record: Any, cell: SpreadsheetCell) -> None:
        _assign(record, field, cell.rendered_text())

    return extract


def set_raw_value(field: str) -> CellExtractor:
    """Raw value as stored (None for blank and missing cells)."""

    def extract(record: Any, cell: SpreadsheetCell) -> None:
        _assign(record, field, cell.value)

    return extract
