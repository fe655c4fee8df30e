"""Centralized exception classes for xls table parsing.

This module provides a hierarchy of custom exceptions with error codes and
structured error details for consistent error handling across the builder,
the stage engine and the plan orchestrator.

Exception Hierarchy:
    TableParserError (base)
    ├── InvalidArgumentError
    │   ├── InvalidCellIndexError
    │   ├── InvalidSkipCountError
    │   ├── StartIndexOutOfRangeError
    │   ├── SheetNotFoundError
    │   └── InvalidSinkError
    ├── WorkbookLoadError
    └── ExtractionError
        ├── StructuralMismatchError
        ├── CellTypeMismatchError
        └── MissingCellError

Error Codes:
    All errors have a unique error code (e.g., "E1001") that can be used
    for programmatic error handling and documentation.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Enumeration of all error codes used in the library.

    Error codes are grouped by category:
    - E1xxx: Invalid arguments and document access errors
    - E2xxx: Extraction errors raised while scanning a stage
    - E9xxx: Internal/unexpected errors
    """

    # Argument / document errors (E1xxx)
    INVALID_ARGUMENT = "E1001"
    INVALID_CELL_INDEX = "E1002"
    INVALID_SKIP_COUNT = "E1003"
    START_INDEX_OUT_OF_RANGE = "E1004"
    SHEET_NOT_FOUND = "E1005"
    INVALID_SINK = "E1006"
    WORKBOOK_LOAD_FAILED = "E1007"

    # Extraction errors (E2xxx)
    EXTRACTION_FAILED = "E2001"
    STRUCTURAL_MISMATCH = "E2002"
    CELL_TYPE_MISMATCH = "E2003"
    MISSING_CELL = "E2004"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"
    CONFIGURATION_ERROR = "E9002"


class TableParserError(Exception):
    """Base exception for all table parsing errors.

    All custom exceptions in the library inherit from this class.
    It provides:
    - Unique error codes for programmatic handling
    - Structured error details for logging and debugging

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for structured logging.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# Invalid Argument Errors (E1xxx)
# =============================================================================


class InvalidArgumentError(TableParserError):
    """Base class for arguments rejected before or at the start of an operation."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVALID_ARGUMENT,
        argument: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the offending argument name.

        Args:
            message: Error message.
            error_code: Error code.
            argument: Name of the rejected argument.
            details: Additional details.
        """
        details = details or {}
        if argument:
            details["argument"] = argument
        super().__init__(message, error_code, details)
        self.argument = argument


class InvalidCellIndexError(InvalidArgumentError):
    """Raised when a cell index is neither nonnegative nor a FIRST/LAST sentinel."""

    def __init__(
        self,
        cell_index: Any,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the rejected index.

        Args:
            cell_index: The value that was supplied as a cell index.
            details: Additional details.
        """
        details = details or {}
        details["cell_index"] = repr(cell_index)
        super().__init__(
            message=f"Invalid cell index: {cell_index!r}",
            error_code=ErrorCode.INVALID_CELL_INDEX,
            argument="cell_index",
            details=details,
        )
        self.cell_index = cell_index


class InvalidSkipCountError(InvalidArgumentError):
    """Raised when a negative number of rows to skip is requested."""

    def __init__(
        self,
        skip_count: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the rejected count.

        Args:
            skip_count: The requested number of rows to skip.
            details: Additional details.
        """
        details = details or {}
        details["skip_count"] = skip_count
        super().__init__(
            message=f"Number of rows to skip cannot be negative, got {skip_count}",
            error_code=ErrorCode.INVALID_SKIP_COUNT,
            argument="skip_count",
            details=details,
        )
        self.skip_count = skip_count


class StartIndexOutOfRangeError(InvalidArgumentError):
    """Raised when a scan is asked to start outside the sheet's row range."""

    def __init__(
        self,
        start_index: int,
        last_row_index: int,
        sheet_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with range information.

        Args:
            start_index: Requested start row.
            last_row_index: Last row index of the sheet.
            sheet_name: Name of the scanned sheet.
            details: Additional details.
        """
        details = details or {}
        details["start_index"] = start_index
        details["last_row_index"] = last_row_index
        if sheet_name is not None:
            details["sheet_name"] = sheet_name
        message = (
            f"Start row ({start_index}) is outside the sheet rows "
            f"(last row index is {last_row_index})"
        )
        super().__init__(
            message=message,
            error_code=ErrorCode.START_INDEX_OUT_OF_RANGE,
            argument="start",
            details=details,
        )
        self.start_index = start_index
        self.last_row_index = last_row_index


class SheetNotFoundError(InvalidArgumentError):
    """Raised when a workbook has no sheet with the requested name or position."""

    def __init__(
        self,
        sheet: str | int,
        available: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the requested sheet.

        Args:
            sheet: Sheet name or 0-based position that was requested.
            available: Names of the sheets the workbook does have.
            details: Additional details.
        """
        details = details or {}
        details["sheet"] = sheet
        if available is not None:
            details["available_sheets"] = available
        super().__init__(
            message=f"Sheet not found: {sheet!r}",
            error_code=ErrorCode.SHEET_NOT_FOUND,
            argument="sheet",
            details=details,
        )
        self.sheet = sheet


class InvalidSinkError(InvalidArgumentError):
    """Raised when a sink is neither callable nor an appendable container."""

    def __init__(
        self,
        sink: Any,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the rejected sink.

        Args:
            sink: The object offered as a sink.
            details: Additional details.
        """
        details = details or {}
        details["sink_type"] = type(sink).__name__
        super().__init__(
            message=(
                f"Sink of type {type(sink).__name__} is not callable and has "
                "no append() or add() method"
            ),
            error_code=ErrorCode.INVALID_SINK,
            argument="sink",
            details=details,
        )


class WorkbookLoadError(TableParserError):
    """Raised when a workbook file cannot be opened."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with file path information.

        Args:
            message: Error message.
            file_path: Path to the problematic file.
            details: Additional details.
        """
        details = details or {}
        if file_path:
            details["file_path"] = file_path
        super().__init__(message, ErrorCode.WORKBOOK_LOAD_FAILED, details)
        self.file_path = file_path


# =============================================================================
# Extraction Errors (E2xxx)
# =============================================================================


class ExtractionError(TableParserError):
    """Base class for errors that abort a stage while it is scanning."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.EXTRACTION_FAILED,
        sheet_name: str | None = None,
        row_index: int | None = None,
        column_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with sheet coordinates.

        Args:
            message: Error message.
            error_code: Error code.
            sheet_name: Sheet being scanned.
            row_index: 0-based row where the error occurred.
            column_index: 0-based column where the error occurred.
            details: Additional details.
        """
        details = details or {}
        if sheet_name is not None:
            details["sheet_name"] = sheet_name
        if row_index is not None:
            details["row_index"] = row_index
        if column_index is not None:
            details["column_index"] = column_index
        super().__init__(message, error_code, details)
        self.sheet_name = sheet_name
        self.row_index = row_index
        self.column_index = column_index


class StructuralMismatchError(ExtractionError):
    """Raised when a row has fewer occupied cells than declared extractors."""

    def __init__(
        self,
        expected: int,
        actual: int,
        sheet_name: str | None = None,
        row_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with expected vs. actual cell counts.

        Args:
            expected: Number of declared column extractors.
            actual: Number of cells the row actually spans.
            sheet_name: Sheet being scanned.
            row_index: Offending row.
            details: Additional details.
        """
        details = details or {}
        details["expected_cells"] = expected
        details["actual_cells"] = actual
        message = (
            f"Not enough cells in row {row_index}: {expected} column "
            f"extractors declared, but the row spans {actual} cells"
        )
        super().__init__(
            message=message,
            error_code=ErrorCode.STRUCTURAL_MISMATCH,
            sheet_name=sheet_name,
            row_index=row_index,
            details=details,
        )
        self.expected = expected
        self.actual = actual


class CellTypeMismatchError(ExtractionError):
    """Raised when a typed accessor disagrees with the cell's actual type."""

    def __init__(
        self,
        expected: str,
        actual: str,
        sheet_name: str | None = None,
        row_index: int | None = None,
        column_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the requested and actual cell types.

        Args:
            expected: Type requested by the accessor.
            actual: Type the cell actually has.
            sheet_name: Sheet being scanned.
            row_index: Row of the cell.
            column_index: Column of the cell.
            details: Additional details.
        """
        details = details or {}
        details["expected_type"] = expected
        details["actual_type"] = actual
        where = ""
        if row_index is not None and column_index is not None:
            where = f" at row {row_index}, column {column_index}"
        super().__init__(
            message=f"Cannot read a {actual} cell as {expected}{where}",
            error_code=ErrorCode.CELL_TYPE_MISMATCH,
            sheet_name=sheet_name,
            row_index=row_index,
            column_index=column_index,
            details=details,
        )
        self.expected = expected
        self.actual = actual

    def located(
        self, sheet_name: str | None, row_index: int, column_index: int | None
    ) -> "CellTypeMismatchError":
        """Return a copy of this error carrying sheet coordinates."""
        return CellTypeMismatchError(
            expected=self.expected,
            actual=self.actual,
            sheet_name=sheet_name,
            row_index=row_index,
            column_index=column_index,
        )


class MissingCellError(ExtractionError):
    """Raised for an absent cell when the missing-cell policy is ``raise``."""

    def __init__(
        self,
        sheet_name: str | None,
        row_index: int,
        column_index: int | None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the coordinates of the absent cell.

        Args:
            sheet_name: Sheet being scanned.
            row_index: Row of the absent cell.
            column_index: Column of the absent cell, if it could be resolved.
            details: Additional details.
        """
        super().__init__(
            message=f"Row {row_index} has no cell {column_index}",
            error_code=ErrorCode.MISSING_CELL,
            sheet_name=sheet_name,
            row_index=row_index,
            column_index=column_index,
            details=details,
        )
