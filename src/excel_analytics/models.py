"""Pydantic data models and enumerations for excel-analytics.

Defines the parsed table handed to the analytics engine, the immutable
analytics summary it produces, the persisted file record, and the read
models returned by :class:`~excel_analytics.api.SpreadsheetFileAPI`.
"""

from __future__ import annotations

import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ColumnKind(str, Enum):
    """Classification assigned to a column by the analytics engine."""

    NUMBER = "number"
    TEXT = "text"


class ProcessingStatus(str, Enum):
    """Lifecycle of an uploaded file record."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Parsed spreadsheet
# ---------------------------------------------------------------------------


class SpreadsheetTable(BaseModel):
    """A decoded worksheet: one header row and a grid of raw cell values.

    Rows are expected to hold ``len(headers)`` cells each.  Values are kept
    raw (``None``, ``str``, ``int``/``float``, ``bool``) and only turned into
    tagged cells by :func:`~excel_analytics.cells.normalize_cell`.
    """

    headers: list[str]
    rows: list[list[Any]] = []
    sheet_names: list[str] = []


class WorkbookMetadata(BaseModel):
    """Workbook-level facts captured while decoding an upload."""

    worksheet_count: int = 0
    has_formulas: bool = False
    has_charts: bool = False
    last_modified: datetime.datetime | None = None


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class ColumnStat(BaseModel):
    """Statistics for one column.

    ``average`` and ``sum`` are only set for numeric columns.  ``min`` and
    ``max`` are floats for numeric columns, strings for text columns, and
    ``None`` for a column with no non-empty values.

    Serialized names follow the JSON contract (``type``, ``nonEmpty``,
    ``unique``); the Python attribute names are used in code.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    kind: ColumnKind = Field(alias="type")
    non_empty_count: int = Field(alias="nonEmpty", ge=0)
    unique_count: int = Field(alias="unique", ge=0)
    average: float | None = None
    sum: float | None = None
    min: float | str | None = None
    max: float | str | None = None


class AnalyticsSummary(BaseModel):
    """Aggregate statistics describing one spreadsheet table."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total_rows: int = Field(alias="totalRows", ge=0)
    total_columns: int = Field(alias="totalColumns", ge=0)
    non_empty_cells: int = Field(alias="nonEmptyCells", ge=0)
    empty_cells: int = Field(alias="emptyCells", ge=0)
    column_stats: list[ColumnStat] = Field(alias="columnStats", default_factory=list)

    def completeness(self) -> float:
        """Share of populated cells in the grid (0.0 for an empty grid)."""
        total = self.total_rows * self.total_columns
        if total == 0:
            return 0.0
        return self.non_empty_cells / total

    def to_json(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape, omitting absent fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Persisted record
# ---------------------------------------------------------------------------


class FileRecord(BaseModel):
    """One uploaded spreadsheet with its parsed data and analytics."""

    id: str
    filename: str
    original_name: str
    mimetype: str
    size: int
    uploaded_by: str
    upload_date: datetime.datetime
    file_path: str
    content_hash: str
    engine_version: str
    data: SpreadsheetTable | None = None
    analytics: AnalyticsSummary | None = None
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    processing_error: str | None = None
    metadata: WorkbookMetadata = Field(default_factory=WorkbookMetadata)

    @property
    def row_count(self) -> int:
        return len(self.data.rows) if self.data is not None else 0

    @property
    def column_count(self) -> int:
        return len(self.data.headers) if self.data is not None else 0


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


class FileSummary(BaseModel):
    """List-view projection of a :class:`FileRecord` (no cell data)."""

    id: str
    filename: str
    size: int
    upload_date: datetime.datetime
    row_count: int
    column_count: int
    processing_status: ProcessingStatus


class Pagination(BaseModel):
    current: int
    pages: int
    total: int


class FileListPage(BaseModel):
    files: list[FileSummary]
    pagination: Pagination


class DataViewMetadata(BaseModel):
    total_rows: int
    total_columns: int
    filename: str
    upload_date: datetime.datetime


class SpreadsheetDataView(BaseModel):
    """Headers and rows of a processed file, for table and chart views."""

    headers: list[str]
    rows: list[list[Any]]
    sheet_names: list[str]
    metadata: DataViewMetadata


class RecentUpload(BaseModel):
    id: str
    filename: str
    upload_date: datetime.datetime
    row_count: int


class DashboardStats(BaseModel):
    """Per-owner totals shown on the dashboard."""

    total_files: int
    total_rows: int
    recent_uploads: list[RecentUpload]
