"""Tests for record sinks."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from types import SimpleNamespace

import pandas as pd
import pytest
from pydantic import BaseModel

from xls_table_parser.builder import from_sheet
from xls_table_parser.config import Settings
from xls_table_parser.extractors import set_number, set_string
from xls_table_parser.services import MemoryWorkbook
from xls_table_parser.sinks import DataFrameCollector, as_sink, record_to_mapping
from xls_table_parser.utils.exceptions import InvalidSinkError


@dataclass
class Row:
    num: int
    label: str


class Item(BaseModel):
    num: int
    label: str


class TestAsSink:
    """Tests for sink normalisation."""

    def test_callable_used_directly(self) -> None:
        def sink(record: object) -> None:
            pass

        assert as_sink(sink) is sink

    def test_append_and_add(self) -> None:
        items: list = []
        queue: deque = deque()
        unique: set = set()

        as_sink(items)(1)
        as_sink(queue)(2)
        as_sink(unique)(3)

        assert items == [1]
        assert list(queue) == [2]
        assert unique == {3}

    @pytest.mark.parametrize("target", [None, 42, "text", (1, 2)])
    def test_rejects_other_values(self, target: object) -> None:
        with pytest.raises(InvalidSinkError):
            as_sink(target)


class TestRecordToMapping:
    """Tests for record flattening."""

    def test_supported_record_kinds(self) -> None:
        expected = {"num": 1, "label": "a"}

        assert record_to_mapping({"num": 1, "label": "a"}) == expected
        assert record_to_mapping(Row(1, "a")) == expected
        assert record_to_mapping(Item(num=1, label="a")) == expected
        assert record_to_mapping(SimpleNamespace(num=1, label="a")) == expected


class TestDataFrameCollector:
    """Tests for the DataFrame-building sink."""

    def test_collects_plan_output(
        self, titled_table: MemoryWorkbook, config: Settings
    ) -> None:
        collector = DataFrameCollector()

        (
            from_sheet("Prices")
            .find_row_where(0).string_contains("title")
            .skip(1)
            .stop_when_cell(0).is_blank()
            .records_from(dict)
            .column(set_number("num"))
            .column(set_string("label"))
            .into(collector)
            .run(titled_table, config=config)
        )

        df = collector.to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == ["num", "label"]
        assert df["num"].tolist() == [1, 2]
        assert df.iloc[1]["label"] == "b"
        assert len(collector) == 2

    def test_column_order_and_empty(self) -> None:
        collector = DataFrameCollector(columns=["label", "num"])

        empty = collector.to_dataframe()
        assert list(empty.columns) == ["label", "num"]
        assert empty.empty

        collector(Row(1, "a"))
        df = collector.to_dataframe()
        assert list(df.columns) == ["label", "num"]
        assert df.iloc[0]["label"] == "a"

    def test_clear(self) -> None:
        collector = DataFrameCollector()
        collector({"a": 1})

        collector.clear()

        assert collector.records == []
        assert collector.to_dataframe().empty
