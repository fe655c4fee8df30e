"""Multi-stage extraction plans and the row cursor shared between stages."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from xls_table_parser.config import Settings, WarningScope, settings
from xls_table_parser.document import Workbook
from xls_table_parser.stage import CardinalityReporter, ExtractionStage, StageResult
from xls_table_parser.utils.exceptions import TableParserError
from xls_table_parser.utils.logging import LogContext, get_logger, timed_operation

if TYPE_CHECKING:
    from xls_table_parser.builder import StartStep

logger = get_logger(__name__)


class ContinuationPolicy(str, Enum):
    """Where a stage starts scanning relative to the previous stage."""

    FRESH_FROM_ZERO = "fresh_from_zero"
    CONTINUE_FROM_LAST_ROW = "continue_from_last_row"


@dataclass(frozen=True)
class PlannedStage:
    """A stage paired with its continuation policy."""

    stage: ExtractionStage[Any]
    policy: ContinuationPolicy = ContinuationPolicy.FRESH_FROM_ZERO


@dataclass(frozen=True)
class PlanResult:
    """Outcome of a full plan run.

    Attributes:
        run_id: Identifier attached to every log line of the run.
        stages: Per-stage results in execution order.
    """

    run_id: str
    stages: tuple[StageResult, ...]

    @property
    def total_records(self) -> int:
        return sum(result.records_emitted for result in self.stages)

    @property
    def stop_index(self) -> int | None:
        """Stop index of the last stage, or None for an empty plan."""
        return self.stages[-1].stop_index if self.stages else None


@dataclass(frozen=True)
class ExtractionPlan:
    """An ordered, reusable list of extraction stages.

    Plans are immutable; running one twice on the same workbook delivers the
    same records to the sinks again.

    Example:
        plan = (
            from_sheet("Report")
            .find_row_where(0).string_contains("Sales")
            .skip(1)
            .stop_when_cell(0).is_blank()
            .records_from(dict)
            .column(set_string("region"))
            .column(set_number("total"))
            .into(sales)
            .then_continue_same_sheet()
            ...
        )
        result = plan.run(ExcelWorkbook.from_path("report.xlsx"))
    """

    stages: tuple[PlannedStage, ...]

    def __len__(self) -> int:
        return len(self.stages)

    def run(self, workbook: Workbook, *, config: Settings | None = None) -> PlanResult:
        """Execute every stage in order against ``workbook``.

        The cursor starts at row 0 and is set to each stage's stop index after
        it runs. A ``CONTINUE_FROM_LAST_ROW`` stage starts at the cursor; a
        ``FRESH_FROM_ZERO`` stage starts at row 0.

        Raises:
            TableParserError: The first stage failure; later stages do not run.
        """
        cfg = config or settings
        run_id = uuid.uuid4().hex
        shared_reporter = (
            CardinalityReporter()
            if cfg.cardinality_warning_scope is WarningScope.PLAN
            else None
        )
        results: list[StageResult] = []
        cursor = 0

        with LogContext(run_id=run_id), timed_operation(logger, "plan") as metrics:
            logger.info("Running extraction plan", stages=len(self.stages))
            for stage_index, planned in enumerate(self.stages):
                start = (
                    cursor
                    if planned.policy is ContinuationPolicy.CONTINUE_FROM_LAST_ROW
                    else 0
                )
                try:
                    result = planned.stage.run(
                        workbook,
                        start,
                        config=cfg,
                        reporter=shared_reporter or CardinalityReporter(),
                        stage_index=stage_index,
                    )
                except TableParserError as e:
                    logger.error(
                        "Plan aborted",
                        stage=stage_index,
                        error_code=e.error_code.value,
                        error=e.message,
                    )
                    raise

                cursor = result.stop_index
                results.append(result)
                metrics.stages_run += 1
                metrics.rows_scanned += result.rows_scanned
                metrics.records_emitted += result.records_emitted
                logger.log_progress("plan", stage_index + 1, len(self.stages))

        return PlanResult(run_id=run_id, stages=tuple(results))

    def then_from_sheet(self, sheet: str | int) -> StartStep:
        """Add a stage reading ``sheet`` from its first row."""
        from xls_table_parser.builder import start_stage

        return start_stage(sheet, ContinuationPolicy.FRESH_FROM_ZERO, self.stages)

    def then_restart_same_sheet(self) -> StartStep:
        """Add a stage rescanning the previous stage's sheet from row 0."""
        from xls_table_parser.builder import start_stage

        return start_stage(
            self._last_sheet(), ContinuationPolicy.FRESH_FROM_ZERO, self.stages
        )

    def then_continue_same_sheet(self) -> StartStep:
        """Add a stage on the same sheet starting at the previous stop index."""
        from xls_table_parser.builder import start_stage

        return start_stage(
            self._last_sheet(), ContinuationPolicy.CONTINUE_FROM_LAST_ROW, self.stages
        )

    def _last_sheet(self) -> str | int:
        return self.stages[-1].stage.sheet
