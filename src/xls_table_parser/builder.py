"""Staged fluent builder for extraction plans.

Each step is an immutable object exposing only the calls allowed next, so a
plan is always authored in the order sheet, start condition, skip, stop
condition, record factory, columns, sink::

    plan = (
        from_sheet("Prices")
        .find_row_where(0).string_contains("title")
        .skip(1)
        .stop_when_cell(0).is_blank()
        .records_from(dict)
        .column(set_number("num"))
        .column(set_string("label"))
        .into(records)
    )

Start and stop conditions can be plain callables taking a row, or condition
chains written inline. An inline chain keeps its builder state alongside the
accumulated terms and the active column, so ``and_other_cell`` and friends
can be used freely before moving on.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from xls_table_parser.conditions import CellCondition, RowCondition
from xls_table_parser.document import validate_cell_index
from xls_table_parser.plan import ContinuationPolicy, ExtractionPlan, PlannedStage
from xls_table_parser.sinks import as_sink
from xls_table_parser.stage import ColumnExtractor, ExtractionStage, RowPredicate
from xls_table_parser.utils.exceptions import InvalidArgumentError, InvalidSkipCountError

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class StageDraft:
    """Choices made so far for the stage under construction."""

    sheet: str | int
    policy: ContinuationPolicy
    previous: tuple[PlannedStage, ...] = ()
    start_predicate: RowPredicate | None = None
    skip_count: int = 0
    stop_predicate: RowPredicate | None = None
    record_factory: Callable[[], Any] | None = None
    extractors: tuple[ColumnExtractor[Any], ...] = ()
    next_offset: int = 0


def _validate_sheet(sheet: Any) -> str | int:
    if isinstance(sheet, str):
        return sheet
    if isinstance(sheet, int) and not isinstance(sheet, bool) and sheet >= 0:
        return sheet
    raise InvalidArgumentError(
        f"Sheet must be a name or a non-negative index, got {sheet!r}",
        argument="sheet",
    )


def _with_skip(draft: StageDraft, skip_count: int) -> StopStep:
    if skip_count < 0:
        raise InvalidSkipCountError(skip_count)
    return StopStep(dataclasses.replace(draft, skip_count=skip_count))


def _plain_condition(link: RowCondition) -> RowCondition:
    # Drop the builder state so the stored predicate holds only its terms
    return RowCondition(terms=link.terms, active_index=link.active_index)


def from_sheet(sheet: str | int) -> StartStep:
    """Begin a plan whose first stage reads ``sheet`` (name or 0-based index).

    Raises:
        InvalidArgumentError: If ``sheet`` is neither a string nor a
            non-negative integer.
    """
    return start_stage(sheet, ContinuationPolicy.FRESH_FROM_ZERO)


def start_stage(
    sheet: str | int,
    policy: ContinuationPolicy,
    previous: tuple[PlannedStage, ...] = (),
) -> StartStep:
    """Begin a stage after ``previous`` with the given continuation policy."""
    return StartStep(StageDraft(_validate_sheet(sheet), policy, previous))


@dataclass(frozen=True)
class StartStep:
    draft: StageDraft

    def find_row_that(self, predicate: RowPredicate) -> SkipStep:
        """Start the table at the first row for which ``predicate`` is true."""
        return SkipStep(dataclasses.replace(self.draft, start_predicate=predicate))

    def find_row_where(self, cell_index: int) -> CellCondition[StartConditionLink]:
        """Start the table at the first row matching an inline condition."""
        index = validate_cell_index(cell_index)
        link = StartConditionLink(terms=(), active_index=index, draft=self.draft)
        return CellCondition(link, None, index)


@dataclass(frozen=True)
class SkipStep:
    draft: StageDraft

    def skip(self, count: int) -> StopStep:
        """Skip ``count`` rows after the start row (e.g. column headers).

        Raises:
            InvalidSkipCountError: If ``count`` is negative.
        """
        return _with_skip(self.draft, count)

    def no_skip(self) -> StopStep:
        return _with_skip(self.draft, 0)


@dataclass(frozen=True)
class StartConditionLink(RowCondition):
    """A start condition chain that can also proceed to the skip step."""

    draft: StageDraft

    def _committed(self) -> StageDraft:
        return dataclasses.replace(
            self.draft, start_predicate=_plain_condition(self)
        )

    def skip(self, count: int) -> StopStep:
        return _with_skip(self._committed(), count)

    def no_skip(self) -> StopStep:
        return _with_skip(self._committed(), 0)


@dataclass(frozen=True)
class StopStep:
    draft: StageDraft

    def stop_when(self, predicate: RowPredicate) -> RecordStep:
        """End the table before the first row for which ``predicate`` is true."""
        return RecordStep(dataclasses.replace(self.draft, stop_predicate=predicate))

    def stop_when_cell(self, cell_index: int) -> CellCondition[StopConditionLink]:
        """End the table before the first row matching an inline condition."""
        index = validate_cell_index(cell_index)
        link = StopConditionLink(terms=(), active_index=index, draft=self.draft)
        return CellCondition(link, None, index)


@dataclass(frozen=True)
class RecordStep:
    draft: StageDraft

    def records_from(self, factory: Callable[[], RecordT]) -> ColumnStep[RecordT]:
        """Create each record by calling ``factory()``."""
        return ColumnStep(dataclasses.replace(self.draft, record_factory=factory))


@dataclass(frozen=True)
class StopConditionLink(RowCondition):
    """A stop condition chain that can also proceed to the record step."""

    draft: StageDraft

    def records_from(self, factory: Callable[[], RecordT]) -> ColumnStep[RecordT]:
        draft = dataclasses.replace(self.draft, stop_predicate=_plain_condition(self))
        return RecordStep(draft).records_from(factory)


@dataclass(frozen=True)
class ColumnStep(Generic[RecordT]):
    draft: StageDraft

    def _add(self, extractor: ColumnExtractor[RecordT], sequential: bool) -> ColumnsStep[RecordT]:
        draft = dataclasses.replace(
            self.draft,
            extractors=self.draft.extractors + (extractor,),
            next_offset=self.draft.next_offset + (1 if sequential else 0),
        )
        return ColumnsStep(draft)

    def _extractor(
        self,
        apply: Callable[[RecordT, Any], Any],
        index: int | None,
        rendered: bool,
    ) -> ColumnExtractor[RecordT]:
        if index is None:
            return ColumnExtractor(apply, offset=self.draft.next_offset, rendered=rendered)
        return ColumnExtractor(apply, cell_index=validate_cell_index(index), rendered=rendered)

    def column(
        self,
        extractor: Callable[[RecordT, Any], Any],
        index: int | None = None,
    ) -> ColumnsStep[RecordT]:
        """Add a column extractor receiving ``(record, cell)``.

        Args:
            extractor: Writes the cell into the record.
            index: Fixed column (or ``CellIndex`` sentinel). When omitted the
                column is the next one after the previous sequential column,
                counting from the row's first occupied cell.

        Raises:
            InvalidCellIndexError: If ``index`` is out of range.
        """
        return self._add(self._extractor(extractor, index, False), index is None)

    def column_text(
        self,
        extractor: Callable[[RecordT, str], Any],
        index: int | None = None,
    ) -> ColumnsStep[RecordT]:
        """Like ``column`` but the extractor receives the cell's display text."""
        return self._add(self._extractor(extractor, index, True), index is None)


@dataclass(frozen=True)
class ColumnsStep(ColumnStep[RecordT]):
    def into(self, sink: Any) -> ExtractionPlan:
        """Finish the stage, delivering records to ``sink``.

        Args:
            sink: A callable taking one record, or a container with an
                ``append`` or ``add`` method.

        Raises:
            InvalidSinkError: If ``sink`` is neither.
        """
        draft = self.draft
        stage: ExtractionStage[RecordT] = ExtractionStage(
            sheet=draft.sheet,
            start_predicate=draft.start_predicate,
            skip_count=draft.skip_count,
            stop_predicate=draft.stop_predicate,
            record_factory=draft.record_factory,
            extractors=draft.extractors,
            sink=as_sink(sink),
        )
        return ExtractionPlan(draft.previous + (PlannedStage(stage, draft.policy),))
