"""Single-stage extraction: scan one sheet and turn matching rows into records.

A stage drops rows until its start predicate matches. That row anchors the
table (typically its title) and is never emitted. The stage then skips
``skip_count`` further rows and maps every following row into a record until
its stop predicate matches. Once the anchor is found the start predicate is
not consulted again. The stop row itself is not emitted; its index is
reported so the next stage can continue from it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from xls_table_parser.config import MissingCellPolicy, Settings, settings
from xls_table_parser.document import (
    MissingCell,
    Row,
    Sheet,
    SpreadsheetCell,
    Workbook,
    resolve_cell_index,
    row_width,
    validate_cell_index,
)
from xls_table_parser.utils.exceptions import (
    CellTypeMismatchError,
    InvalidArgumentError,
    InvalidSkipCountError,
    MissingCellError,
    StartIndexOutOfRangeError,
    StructuralMismatchError,
)
from xls_table_parser.utils.logging import LogContext, get_logger, timed_operation

logger = get_logger(__name__)

RecordT = TypeVar("RecordT")
RowPredicate = Callable[[Row], bool]


@dataclass(frozen=True)
class ColumnExtractor(Generic[RecordT]):
    """Copies one cell of a row into a record.

    Attributes:
        apply: Called with the record and the cell (or its display text).
        cell_index: Fixed column or sentinel; None for sequential columns.
        offset: Position after the row's first occupied cell, for
            sequential columns.
        rendered: Pass ``cell.rendered_text()`` instead of the cell.
    """

    apply: Callable[[RecordT, Any], Any]
    cell_index: int | None = None
    offset: int = 0
    rendered: bool = False

    def __post_init__(self) -> None:
        if self.cell_index is not None:
            validate_cell_index(self.cell_index)
        if self.offset < 0:
            raise InvalidArgumentError(
                f"Column offset must be non-negative, got {self.offset}",
                argument="offset",
            )

    def target_column(self, row: Row) -> int | None:
        """Physical column this extractor reads in ``row``."""
        if self.cell_index is None:
            first = row.first_occupied_index
            return None if first is None else first + self.offset
        return resolve_cell_index(row, self.cell_index)

    def extract(self, record: RecordT, cell: SpreadsheetCell) -> None:
        self.apply(record, cell.rendered_text() if self.rendered else cell)


class CardinalityReporter:
    """Reports rows wider than the extractor list.

    The first report in a scope is a warning; later ones drop to debug.
    """

    def __init__(self) -> None:
        self.reported = 0

    def report(self, sheet_name: str, row_index: int, width: int, expected: int) -> None:
        level = logging.WARNING if self.reported == 0 else logging.DEBUG
        self.reported += 1
        logger.log(
            level,
            "Row has more cells than column extractors; extra cells ignored",
            sheet=sheet_name,
            row=row_index,
            cells=width,
            extractors=expected,
        )


@dataclass(frozen=True)
class StageResult:
    """Outcome of one stage run.

    Attributes:
        stop_index: Index of the row matching the stop predicate, or
            ``last_row_index + 1`` when the sheet ran out first.
        exhausted: True when no row matched the stop predicate.
    """

    stage_index: int
    sheet_name: str
    start_index: int
    stop_index: int
    rows_scanned: int
    records_emitted: int
    exhausted: bool


@dataclass(frozen=True)
class ExtractionStage(Generic[RecordT]):
    """A fully configured scan of one sheet."""

    sheet: str | int
    start_predicate: RowPredicate
    skip_count: int
    stop_predicate: RowPredicate
    record_factory: Callable[[], RecordT]
    extractors: tuple[ColumnExtractor[RecordT], ...]
    sink: Callable[[RecordT], Any]

    def __post_init__(self) -> None:
        if self.skip_count < 0:
            raise InvalidSkipCountError(self.skip_count)
        if not self.extractors:
            raise InvalidArgumentError(
                "A stage needs at least one column extractor",
                argument="extractors",
            )

    def run(
        self,
        workbook: Workbook,
        start: int = 0,
        *,
        config: Settings | None = None,
        reporter: CardinalityReporter | None = None,
        stage_index: int = 0,
    ) -> StageResult:
        """Resolve the stage's sheet in ``workbook`` and scan it from ``start``.

        Raises:
            SheetNotFoundError: If the sheet does not exist.
            StartIndexOutOfRangeError: If ``start`` is past the last row.
            ExtractionError: On structural, type or missing-cell failures.
        """
        sheet = workbook.sheet(self.sheet)
        return self.scan(
            sheet,
            start,
            config=config,
            reporter=reporter,
            stage_index=stage_index,
        )

    def scan(
        self,
        sheet: Sheet,
        start: int = 0,
        *,
        config: Settings | None = None,
        reporter: CardinalityReporter | None = None,
        stage_index: int = 0,
    ) -> StageResult:
        cfg = config or settings
        reporter = reporter or CardinalityReporter()
        last_row_index = sheet.last_row_index
        if start < 0 or start > last_row_index:
            raise StartIndexOutOfRangeError(start, last_row_index, sheet_name=sheet.name)

        with LogContext(stage=stage_index, sheet=sheet.name), timed_operation(
            logger, "stage"
        ) as metrics:
            logger.info(
                "Scanning sheet",
                start=start,
                last_row=last_row_index,
                skip=self.skip_count,
                extractors=len(self.extractors),
            )
            started = False
            to_skip = self.skip_count
            stop_index: int | None = None

            for index in range(start, last_row_index + 1):
                row = sheet.row(index)
                if row is None:
                    continue
                metrics.rows_scanned += 1

                if not started:
                    if self.start_predicate(row):
                        started = True
                        logger.debug("Start row found", row=index)
                    continue
                if to_skip > 0:
                    to_skip -= 1
                    continue
                if self.stop_predicate(row):
                    stop_index = index
                    break

                self.sink(self._extract_row(sheet.name, row, cfg, reporter))
                metrics.records_emitted += 1

            exhausted = stop_index is None
            if stop_index is None:
                stop_index = last_row_index + 1
            if not started:
                logger.info("No row matched the start condition", start=start)

            logger.info(
                "Stage finished",
                start=start,
                stop_index=stop_index,
                records=metrics.records_emitted,
                exhausted=exhausted,
            )
            return StageResult(
                stage_index=stage_index,
                sheet_name=sheet.name,
                start_index=start,
                stop_index=stop_index,
                rows_scanned=metrics.rows_scanned,
                records_emitted=metrics.records_emitted,
                exhausted=exhausted,
            )

    def _extract_row(
        self,
        sheet_name: str,
        row: Row,
        cfg: Settings,
        reporter: CardinalityReporter,
    ) -> RecordT:
        width = row_width(row)
        expected = len(self.extractors)
        if width < expected and cfg.strict_cardinality:
            raise StructuralMismatchError(
                expected, width, sheet_name=sheet_name, row_index=row.index
            )
        if width > expected:
            reporter.report(sheet_name, row.index, width, expected)

        record = self.record_factory()
        for extractor in self.extractors:
            column = extractor.target_column(row)
            cell = self._cell_at(sheet_name, row, column, cfg)
            try:
                extractor.extract(record, cell)
            except CellTypeMismatchError as e:
                raise e.located(sheet_name, row.index, column) from e
        return record

    def _cell_at(
        self,
        sheet_name: str,
        row: Row,
        column: int | None,
        cfg: Settings,
    ) -> SpreadsheetCell:
        cell = row.cell(column) if column is not None else None
        if cell is not None:
            return cell
        if cfg.missing_cell_policy is MissingCellPolicy.RAISE:
            raise MissingCellError(sheet_name, row.index, column)
        logger.warning(
            "Cell missing; passing a MissingCell placeholder",
            sheet=sheet_name,
            row=row.index,
            column=column,
        )
        return MissingCell(row.index, column)
