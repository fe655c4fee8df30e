"""Destinations for the records produced by a stage."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import pandas as pd
from pydantic import BaseModel

from xls_table_parser.utils.exceptions import InvalidSinkError

RecordSink = Callable[[Any], Any]


def as_sink(target: Any) -> RecordSink:
    """Normalise a sink argument into a one-argument callable.

    Callables are used as-is; containers contribute their ``append`` (lists,
    deques) or ``add`` (sets) method.

    Raises:
        InvalidSinkError: If the target is neither.
    """
    if callable(target):
        sink: RecordSink = target
        return sink
    for method_name in ("append", "add"):
        method = getattr(target, method_name, None)
        if callable(method):
            bound: RecordSink = method
            return bound
    raise InvalidSinkError(target)


def record_to_mapping(record: Any) -> dict[str, Any]:
    """Flatten a record into a dict of field values."""
    if isinstance(record, Mapping):
        return dict(record)
    if isinstance(record, BaseModel):
        return record.model_dump()
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    return dict(vars(record))


class DataFrameCollector:
    """Sink that accumulates records and renders them as a DataFrame.

    Example:
        collector = DataFrameCollector()
        plan = (... .into(collector))
        plan.run(workbook)
        df = collector.to_dataframe()
    """

    def __init__(self, columns: Sequence[str] | None = None) -> None:
        """Initialize the collector.

        Args:
            columns: Column order for the frame; defaults to the order in
                which fields first appear in the records.
        """
        self._columns = list(columns) if columns is not None else None
        self._records: list[Any] = []

    def __call__(self, record: Any) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> list[Any]:
        return list(self._records)

    def clear(self) -> None:
        self._records.clear()

    def to_dataframe(self) -> pd.DataFrame:
        rows = [record_to_mapping(record) for record in self._records]
        return pd.DataFrame(rows, columns=self._columns)
