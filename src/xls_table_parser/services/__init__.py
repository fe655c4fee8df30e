"""Workbook backends for xls table parsing."""

from xls_table_parser.services.excel_workbook import ExcelWorkbook
from xls_table_parser.services.memory_workbook import (
    BLANK,
    MemoryCell,
    MemoryRow,
    MemorySheet,
    MemoryWorkbook,
)

__all__ = [
    "BLANK",
    "ExcelWorkbook",
    "MemoryCell",
    "MemoryRow",
    "MemorySheet",
    "MemoryWorkbook",
]
