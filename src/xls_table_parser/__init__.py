"""XLS Table Parser - declarative extraction of row tables from spreadsheets."""

from xls_table_parser.builder import from_sheet
from xls_table_parser.conditions import CellCondition, RowCondition, where
from xls_table_parser.document import CellIndex, CellType, MissingCell, SpreadsheetCell
from xls_table_parser.plan import ContinuationPolicy, ExtractionPlan, PlanResult
from xls_table_parser.services import ExcelWorkbook, MemoryWorkbook
from xls_table_parser.sinks import DataFrameCollector
from xls_table_parser.stage import ColumnExtractor, ExtractionStage, StageResult

__all__ = [
    "CellCondition",
    "CellIndex",
    "CellType",
    "ColumnExtractor",
    "ContinuationPolicy",
    "DataFrameCollector",
    "ExcelWorkbook",
    "ExtractionPlan",
    "ExtractionStage",
    "MemoryWorkbook",
    "MissingCell",
    "PlanResult",
    "RowCondition",
    "SpreadsheetCell",
    "StageResult",
    "from_sheet",
    "where",
]
__version__ = "0.1.0"
