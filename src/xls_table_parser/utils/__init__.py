"""Utilities package for xls table parsing.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from xls_table_parser.utils.exceptions import (
    CellTypeMismatchError,
    ErrorCode,
    ExtractionError,
    InvalidArgumentError,
    InvalidCellIndexError,
    InvalidSinkError,
    InvalidSkipCountError,
    MissingCellError,
    SheetNotFoundError,
    StartIndexOutOfRangeError,
    StructuralMismatchError,
    TableParserError,
    WorkbookLoadError,
)
from xls_table_parser.utils.logging import (
    LogContext,
    StructuredLogger,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Exceptions
    "CellTypeMismatchError",
    "ErrorCode",
    "ExtractionError",
    "InvalidArgumentError",
    "InvalidCellIndexError",
    "InvalidSinkError",
    "InvalidSkipCountError",
    "MissingCellError",
    "SheetNotFoundError",
    "StartIndexOutOfRangeError",
    "StructuralMismatchError",
    "TableParserError",
    "WorkbookLoadError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
]
