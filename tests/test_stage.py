"""Tests for the single-stage extraction engine."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import pytest

from xls_table_parser.conditions import where
from xls_table_parser.config import Settings
from xls_table_parser.document import MissingCell, SpreadsheetCell
from xls_table_parser.extractors import set_number, set_raw_value, set_string
from xls_table_parser.services import BLANK, MemoryWorkbook
from xls_table_parser.stage import (
    CardinalityReporter,
    ColumnExtractor,
    ExtractionStage,
    RowPredicate,
)
from xls_table_parser.utils.exceptions import (
    CellTypeMismatchError,
    InvalidArgumentError,
    InvalidSkipCountError,
    MissingCellError,
    StartIndexOutOfRangeError,
    StructuralMismatchError,
)

STAGE_LOGGER = "xls_table_parser.stage"


def _stage(
    sink: Callable[[Any], Any],
    *extractors: Callable[[Any, Any], Any],
    start: RowPredicate | None = None,
    stop: RowPredicate | None = None,
    skip: int = 0,
    sheet: str | int = "Prices",
) -> ExtractionStage[dict]:
    return ExtractionStage(
        sheet=sheet,
        start_predicate=start or where(0).string_contains("title"),
        skip_count=skip,
        stop_predicate=stop or where(0).is_blank(),
        record_factory=dict,
        extractors=tuple(
            ColumnExtractor(apply, offset=offset) for offset, apply in enumerate(extractors)
        ),
        sink=sink,
    )


def _book(*rows: Any) -> MemoryWorkbook:
    return MemoryWorkbook.from_values({"Prices": list(rows)})


class TestRowWindow:
    """Tests for start, skip and stop detection."""

    def test_titled_table(self, titled_table: MemoryWorkbook, config: Settings) -> None:
        """Title row anchors the table, one header row is skipped, blank row stops."""
        records: list[dict] = []
        stage = _stage(records.append, set_number("num"), set_string("label"), skip=1)

        result = stage.run(titled_table, 0, config=config)

        assert records == [{"num": 1, "label": "a"}, {"num": 2, "label": "b"}]
        assert result.stop_index == 4
        assert result.records_emitted == 2
        assert result.exhausted is False
        assert result.sheet_name == "Prices"
        assert result.start_index == 0

    def test_no_skip(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book(["title"], [1], [2], [BLANK])
        stage = _stage(records.append, set_number("n"))

        result = stage.run(workbook, config=config)

        assert records == [{"n": 1}, {"n": 2}]
        assert result.stop_index == 3

    def test_rows_before_start_are_dropped(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book([0], ["noise"], ["title"], [1], [BLANK])
        stage = _stage(records.append, set_number("n"))

        result = stage.run(workbook, config=config)

        assert records == [{"n": 1}]
        assert result.stop_index == 4

    def test_start_predicate_not_rechecked(self, config: Settings) -> None:
        """Once started, rows failing the start condition are still retained."""
        records: list[dict] = []
        workbook = _book(["title"], [1], [2], [BLANK])
        start_calls: list[int] = []

        def start(row: Any) -> bool:
            start_calls.append(row.index)
            return row.index == 0

        stage = _stage(records.append, set_number("n"), start=start)
        stage.run(workbook, config=config)

        assert start_calls == [0]
        assert len(records) == 2

    def test_stop_row_is_not_emitted(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book(["title"], [1], ["end"], [2])
        stage = _stage(records.append, set_number("n"), stop=where(0).string_equals("end"))

        result = stage.run(workbook, config=config)

        assert records == [{"n": 1}]
        assert result.stop_index == 2

    def test_sheet_exhausted_reports_one_past_last_row(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book(["title"], [1], [2])
        stage = _stage(records.append, set_number("n"))

        result = stage.run(workbook, config=config)

        assert records == [{"n": 1}, {"n": 2}]
        assert result.stop_index == 3
        assert result.exhausted is True

    def test_start_never_matches(self, config: Settings) -> None:
        """No start row yields no records and a stop index past the last row."""
        records: list[dict] = []
        workbook = _book([1], [2], [3], [4])
        stage = _stage(records.append, set_number("n"))

        result = stage.run(workbook, config=config)

        assert records == []
        assert result.stop_index == 4
        assert result.exhausted is True

    def test_gaps_are_skipped_silently(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book(["title"], None, [1], None, None, [2], [BLANK])
        stage = _stage(records.append, set_number("n"))

        result = stage.run(workbook, config=config)

        assert records == [{"n": 1}, {"n": 2}]
        assert result.stop_index == 6
        assert result.rows_scanned == 4

    def test_skip_counts_present_rows_only(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book(["title"], None, ["header"], [1], [BLANK])
        stage = _stage(records.append, set_number("n"), skip=1)

        stage.run(workbook, config=config)

        assert records == [{"n": 1}]

    def test_scan_from_later_start(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book(["title"], [1], [BLANK], ["title"], [7], [BLANK])
        stage = _stage(records.append, set_number("n"))

        result = stage.run(workbook, 2, config=config)

        assert records == [{"n": 7}]
        assert result.stop_index == 5


class TestStartIndex:
    """Tests for start index validation."""

    def test_start_beyond_last_row(self, titled_table: MemoryWorkbook, config: Settings) -> None:
        """Start past the last row fails before anything reaches the sink."""
        records: list[dict] = []
        stage = _stage(records.append, set_number("num"), set_string("label"), skip=1)

        with pytest.raises(StartIndexOutOfRangeError) as exc_info:
            stage.run(titled_table, 5, config=config)

        assert exc_info.value.start_index == 5
        assert exc_info.value.last_row_index == 4
        assert isinstance(exc_info.value, InvalidArgumentError)
        assert records == []

    def test_start_at_last_row_is_allowed(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book([1], ["title"])
        stage = _stage(records.append, set_number("n"))

        result = stage.run(workbook, 1, config=config)

        assert records == []
        assert result.stop_index == 2

    def test_negative_start(self, titled_table: MemoryWorkbook, config: Settings) -> None:
        stage = _stage(lambda record: None, set_number("n"))

        with pytest.raises(StartIndexOutOfRangeError):
            stage.run(titled_table, -1, config=config)

    def test_empty_sheet(self, config: Settings) -> None:
        stage = _stage(lambda record: None, set_number("n"))

        with pytest.raises(StartIndexOutOfRangeError):
            stage.run(_book(), 0, config=config)


class TestCardinality:
    """Tests for row width checks against the extractor count."""

    def test_wider_rows_warn_once(
        self, config: Settings, caplog: pytest.LogCaptureFixture
    ) -> None:
        records: list[dict] = []
        workbook = _book(["title"], [1, "a", "x"], [2, "b", "y"], [BLANK])
        stage = _stage(records.append, set_number("num"), set_string("label"))

        with caplog.at_level(logging.DEBUG, logger=STAGE_LOGGER):
            stage.run(workbook, config=config)

        levels = [
            record.levelno
            for record in caplog.records
            if "more cells than column extractors" in record.getMessage()
        ]
        assert levels == [logging.WARNING, logging.DEBUG]
        assert records == [{"num": 1, "label": "a"}, {"num": 2, "label": "b"}]

    def test_shared_reporter_warns_once_across_runs(
        self, config: Settings, caplog: pytest.LogCaptureFixture
    ) -> None:
        workbook = _book(["title"], [1, "a"], [BLANK])
        stage = _stage(lambda record: None, set_number("num"))
        reporter = CardinalityReporter()

        with caplog.at_level(logging.WARNING, logger=STAGE_LOGGER):
            stage.run(workbook, config=config, reporter=reporter)
            stage.run(workbook, config=config, reporter=reporter)

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert reporter.reported == 2

    def test_narrower_row_raises(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book(["title"], [1, "a"], [2], [BLANK])
        stage = _stage(records.append, set_number("num"), set_string("label"))

        with pytest.raises(StructuralMismatchError) as exc_info:
            stage.run(workbook, config=config)

        assert exc_info.value.row_index == 2
        assert exc_info.value.expected == 2
        assert exc_info.value.actual == 1
        assert exc_info.value.sheet_name == "Prices"
        # Records before the failing row were already delivered
        assert records == [{"num": 1, "label": "a"}]

    def test_narrower_row_tolerated_when_not_strict(self) -> None:
        records: list[dict] = []
        workbook = _book(["title"], [2], [BLANK])
        stage = _stage(records.append, set_number("num"), set_raw_value("label"))
        lenient = Settings(_env_file=None, strict_cardinality=False)

        stage.run(workbook, config=lenient)

        assert records == [{"num": 2, "label": None}]


class TestCellResolution:
    """Tests for how extractors find their cells."""

    def test_missing_cell_passes_placeholder(
        self, config: Settings, caplog: pytest.LogCaptureFixture
    ) -> None:
        seen: list[SpreadsheetCell] = []
        records: list[dict] = []
        workbook = _book(["title"], {0: 1, 2: "c"}, [BLANK])

        def capture(record: dict, cell: SpreadsheetCell) -> None:
            seen.append(cell)

        stage = _stage(records.append, set_number("a"), capture, set_string("c"))

        with caplog.at_level(logging.WARNING, logger=STAGE_LOGGER):
            stage.run(workbook, config=config)

        assert seen == [MissingCell(1, 1)]
        assert records == [{"a": 1, "c": "c"}]
        assert any("Cell missing" in r.getMessage() for r in caplog.records)

    def test_missing_cell_raises_under_raise_policy(self) -> None:
        workbook = _book(["title"], {0: 1, 2: "c"}, [BLANK])
        stage = _stage(lambda record: None, set_number("a"), set_raw_value("b"), set_string("c"))
        strict = Settings(_env_file=None, missing_cell_policy="raise")

        with pytest.raises(MissingCellError) as exc_info:
            stage.run(workbook, config=strict)

        assert exc_info.value.row_index == 1
        assert exc_info.value.column_index == 1

    def test_sequential_columns_start_at_first_occupied_cell(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book(["title"], {1: 5, 2: "x"}, [BLANK])
        stage = _stage(records.append, set_number("n"), set_string("s"))

        stage.run(workbook, config=config)

        assert records == [{"n": 5, "s": "x"}]

    def test_fixed_index_extractors(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book(["title"], ["a", "b", 3], [BLANK])
        stage = ExtractionStage(
            sheet="Prices",
            start_predicate=where(0).string_equals("title"),
            skip_count=0,
            stop_predicate=where(0).is_blank(),
            record_factory=dict,
            extractors=(
                ColumnExtractor(set_number("last"), cell_index=-2),
                ColumnExtractor(set_string("first"), cell_index=0),
                ColumnExtractor(set_string("second"), cell_index=1),
            ),
            sink=records.append,
        )

        stage.run(workbook, config=config)

        assert records == [{"last": 3, "first": "a", "second": "b"}]

    def test_rendered_text_extractor(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book(["title"], [2.0, True], [BLANK])
        stage = ExtractionStage(
            sheet=0,
            start_predicate=where(0).string_equals("title"),
            skip_count=0,
            stop_predicate=where(0).is_blank(),
            record_factory=dict,
            extractors=(
                ColumnExtractor(lambda r, text: r.update(n=text), rendered=True),
                ColumnExtractor(lambda r, text: r.update(b=text), offset=1, rendered=True),
            ),
            sink=records.append,
        )

        stage.run(workbook, config=config)

        assert records == [{"n": "2", "b": "TRUE"}]


class TestTypeMismatch:
    """Tests for extractor type failures."""

    def test_mismatch_carries_coordinates(self, config: Settings) -> None:
        records: list[dict] = []
        workbook = _book(["title"], [1, "a"], ["x", "b"], [BLANK])
        stage = _stage(records.append, set_number("num"), set_string("label"))

        with pytest.raises(CellTypeMismatchError) as exc_info:
            stage.run(workbook, config=config)

        error = exc_info.value
        assert error.sheet_name == "Prices"
        assert error.row_index == 2
        assert error.column_index == 0
        assert error.expected == "numeric"
        assert error.actual == "string"
        assert "row 2, column 0" in str(error)
        assert records == [{"num": 1, "label": "a"}]

    def test_mismatch_on_missing_cell(self) -> None:
        workbook = _book(["title"], {0: 1, 2: "c"}, [BLANK])
        stage = _stage(lambda record: None, set_number("a"), set_string("b"), set_string("c"))
        lenient = Settings(_env_file=None)

        with pytest.raises(CellTypeMismatchError) as exc_info:
            stage.run(workbook, config=lenient)

        assert exc_info.value.actual == "missing"
        assert exc_info.value.column_index == 1


class TestStageValidation:
    """Tests for stage construction checks."""

    def test_negative_skip(self) -> None:
        with pytest.raises(InvalidSkipCountError):
            _stage(lambda record: None, set_number("n"), skip=-1)

    def test_requires_extractors(self) -> None:
        with pytest.raises(InvalidArgumentError):
            _stage(lambda record: None)
