"""excel-analytics -- column analytics for uploaded Excel spreadsheets.

Public API exports for models, the analytics engine, cell normalization,
errors, configuration, workbook parsing, storage, and the file API.
"""

from excel_analytics.api import SpreadsheetFileAPI, create_default_api
from excel_analytics.cells import (
    Cell,
    EmptyCell,
    NumberCell,
    TextCell,
    normalize_cell,
    parse_number,
)
from excel_analytics.config import AnalyticsConfig
from excel_analytics.engine import classify_column, compute_analytics, compute_column_stat
from excel_analytics.errors import AnalyticsError, AnalyticsException, ErrorCode
from excel_analytics.models import (
    AnalyticsSummary,
    ColumnKind,
    ColumnStat,
    DashboardStats,
    FileListPage,
    FileRecord,
    FileSummary,
    Pagination,
    ProcessingStatus,
    SpreadsheetDataView,
    SpreadsheetTable,
    WorkbookMetadata,
)
from excel_analytics.parser import ParsedWorkbook, WorkbookParser
from excel_analytics.protocols import FileRecordStore
from excel_analytics.security import UploadValidator
from excel_analytics.stores import FileSystemRecordStore

__all__ = [
    # Enums
    "ColumnKind",
    "ProcessingStatus",
    # Cells
    "Cell",
    "EmptyCell",
    "NumberCell",
    "TextCell",
    "normalize_cell",
    "parse_number",
    # Core models
    "SpreadsheetTable",
    "ColumnStat",
    "AnalyticsSummary",
    "WorkbookMetadata",
    "FileRecord",
    # Read models
    "FileSummary",
    "Pagination",
    "FileListPage",
    "SpreadsheetDataView",
    "DashboardStats",
    # Engine
    "compute_analytics",
    "compute_column_stat",
    "classify_column",
    # Parsing
    "WorkbookParser",
    "ParsedWorkbook",
    "UploadValidator",
    # Storage
    "FileRecordStore",
    "FileSystemRecordStore",
    # API
    "SpreadsheetFileAPI",
    "create_default_api",
    # Errors
    "ErrorCode",
    "AnalyticsError",
    "AnalyticsException",
    # Config
    "AnalyticsConfig",
]
