from __future__ import annotations

import pytest

from xls_table_parser.config import Settings
from xls_table_parser.services import BLANK, MemoryWorkbook
from xls_table_parser.utils.logging import clear_context


@pytest.fixture(autouse=True)
def _clean_log_context() -> None:
    clear_context()


@pytest.fixture
def config() -> Settings:
    """Settings with defaults only, independent of the environment."""
    return Settings(_env_file=None)


@pytest.fixture
def titled_table() -> MemoryWorkbook:
    """Title row, header row, two data rows and a blank terminator."""
    return MemoryWorkbook.from_values(
        {
            "Prices": [
                ["title"],
                ["h1", "h2"],
                [1, "a"],
                [2, "b"],
                [BLANK],
            ]
        }
    )


@pytest.fixture
def two_tables() -> MemoryWorkbook:
    """Two titled tables stacked on one sheet, plus a second sheet."""
    return MemoryWorkbook.from_values(
        {
            "Report": [
                ["Sales"],
                ["region", "total"],
                ["north", 10],
                ["south", 20],
                [BLANK],
                ["Costs"],
                ["region", "total"],
                ["north", 3],
                [BLANK],
            ],
            "Notes": [
                ["Notes"],
                ["first"],
                ["second"],
            ],
        }
    )
