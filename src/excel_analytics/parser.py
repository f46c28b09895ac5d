"""Workbook decoding for uploaded spreadsheets.

Turns an ``.xlsx`` / ``.xls`` file into a :class:`SpreadsheetTable`: the
first worksheet's first row becomes the header list and every following row
becomes a data row, padded or truncated to the header width.

Decoding strategy:

1. **openpyxl** with ``data_only=True`` (cached values) for ``.xlsx`` files.
   A second, formula-preserving load records whether the sheet has formulas.
2. **pandas** ``ExcelFile`` for ``.xls`` files, and as a fallback when
   openpyxl cannot open a file (recorded as ``W_PARSER_FALLBACK``).

Only the first worksheet is analysed; the names of all worksheets are kept
on the table.
"""

from __future__ import annotations

import datetime
import logging
import math
import numbers
import time
from pathlib import Path
from typing import Any

import openpyxl
from openpyxl.worksheet.worksheet import Worksheet
import pandas as pd
from pydantic import BaseModel

from excel_analytics.cells import cell_text, is_empty, normalize_cell
from excel_analytics.config import AnalyticsConfig
from excel_analytics.errors import AnalyticsError, AnalyticsException, ErrorCode
from excel_analytics.models import SpreadsheetTable, WorkbookMetadata

logger = logging.getLogger("excel_analytics")

_OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class ParsedWorkbook(BaseModel):
    """Output of :meth:`WorkbookParser.parse`."""

    table: SpreadsheetTable
    metadata: WorkbookMetadata
    warnings: list[AnalyticsError] = []


class WorkbookParser:
    """Decode the first worksheet of an Excel workbook.

    Parameters
    ----------
    config:
        Configuration controlling ``max_rows_in_memory`` and
        ``trim_blank_edges``.
    """

    def __init__(self, config: AnalyticsConfig) -> None:
        self._config = config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, file_path: str) -> ParsedWorkbook:
        """Parse *file_path* into a table plus workbook metadata.

        Raises
        ------
        FileNotFoundError
            If *file_path* does not exist.
        AnalyticsException
            ``E_PARSE_PASSWORD``, ``E_PARSE_CORRUPT``, ``E_PARSE_EMPTY`` or
            ``E_PARSE_TOO_LARGE``.
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        start = time.monotonic()
        warnings: list[AnalyticsError] = []
        grid: list[list[Any]] | None = None
        sheet_names: list[str] = []
        metadata = WorkbookMetadata()

        if path.suffix.lower() != ".xls":
            try:
                grid, sheet_names, metadata = self._read_openpyxl(file_path)
            except AnalyticsException:
                raise
            except Exception as exc:
                if _is_password_error(exc):
                    raise _password_exception(file_path, exc) from exc
                logger.warning(
                    "openpyxl could not open file %s: %s; trying pandas fallback",
                    file_path,
                    exc,
                )
                warnings.append(
                    AnalyticsError(
                        code=ErrorCode.W_PARSER_FALLBACK,
                        message=(
                            f"Workbook parsed via pandas fallback. "
                            f"Reason: {exc}"
                        ),
                        stage="parse",
                        recoverable=True,
                    )
                )

        if grid is None:
            try:
                grid, sheet_names, metadata = self._read_pandas(file_path)
            except AnalyticsException:
                raise
            except Exception as exc:
                if _is_password_error(exc) or _is_encrypted_package(path):
                    raise _password_exception(file_path, exc) from exc
                logger.error("Parse failed: corrupt file %s: %s", file_path, exc)
                raise AnalyticsException(
                    code=ErrorCode.E_PARSE_CORRUPT,
                    message=f"Failed to process Excel file: {exc}",
                    stage="parse",
                ) from exc

        if self._config.trim_blank_edges:
            grid = _trim_blank_edges(grid)

        if not grid:
            raise AnalyticsException(
                code=ErrorCode.E_PARSE_EMPTY,
                message="Uploaded Excel file is empty or contains no data.",
                stage="parse",
            )
        self._check_row_limit(len(grid) - 1, sheet_names)

        if len(sheet_names) > 1:
            warnings.append(
                AnalyticsError(
                    code=ErrorCode.W_SHEETS_IGNORED,
                    message=(
                        f"Only the first worksheet was analysed; ignored: "
                        f"{sheet_names[1:]}"
                    ),
                    sheet_name=sheet_names[0],
                    stage="parse",
                    recoverable=True,
                )
            )

        table = _build_table(grid, sheet_names)
        if self._config.log_sample_data and table.rows:
            logger.debug("First data row of %s: %s", file_path, table.rows[0])

        logger.info(
            "Parsed %s: %d rows x %d columns in %.3fs",
            file_path,
            len(table.rows),
            len(table.headers),
            time.monotonic() - start,
        )
        return ParsedWorkbook(table=table, metadata=metadata, warnings=warnings)

    # ------------------------------------------------------------------
    # openpyxl
    # ------------------------------------------------------------------

    def _read_openpyxl(
        self, file_path: str
    ) -> tuple[list[list[Any]], list[str], WorkbookMetadata]:
        """Read the first worksheet's cached values with openpyxl."""
        wb = openpyxl.load_workbook(file_path, data_only=True)
        try:
            sheet_names = list(wb.sheetnames)
            worksheets = [ws for ws in wb.worksheets if isinstance(ws, Worksheet)]
            has_charts = bool(wb.chartsheets) or any(
                getattr(ws, "_charts", None) for ws in worksheets
            )
            metadata = WorkbookMetadata(
                worksheet_count=len(sheet_names),
                has_formulas=False,
                has_charts=has_charts,
                last_modified=wb.properties.modified,
            )
            if not worksheets:
                return [], sheet_names, metadata

            ws = worksheets[0]
            self._check_row_limit((ws.max_row or 0) - 1, sheet_names)
            grid = [list(row) for row in ws.iter_rows(values_only=True)]
        finally:
            wb.close()

        metadata.has_formulas = self._detect_formulas(file_path, ws.title)
        return grid, sheet_names, metadata

    def _detect_formulas(self, file_path: str, sheet_name: str) -> bool:
        """Return True if *sheet_name* contains at least one formula cell."""
        try:
            wb = openpyxl.load_workbook(file_path)
        except Exception:
            logger.debug(
                "Formula scan skipped for %s", file_path, exc_info=True
            )
            return False
        try:
            ws = wb[sheet_name]
            return any(
                cell.data_type == "f" for row in ws.iter_rows() for cell in row
            )
        finally:
            wb.close()

    # ------------------------------------------------------------------
    # pandas
    # ------------------------------------------------------------------

    def _read_pandas(
        self, file_path: str
    ) -> tuple[list[list[Any]], list[str], WorkbookMetadata]:
        """Read the first worksheet with pandas (no header inference)."""
        with pd.ExcelFile(file_path) as xls:
            sheet_names = [str(name) for name in xls.sheet_names]
            metadata = WorkbookMetadata(worksheet_count=len(sheet_names))
            if not sheet_names:
                return [], sheet_names, metadata
            df = xls.parse(xls.sheet_names[0], header=None)

        df = df.astype(object).where(pd.notna(df), None)
        return df.values.tolist(), sheet_names, metadata

    # ------------------------------------------------------------------
    # Limits
    # ------------------------------------------------------------------

    def _check_row_limit(self, data_rows: int, sheet_names: list[str]) -> None:
        limit = self._config.max_rows_in_memory
        if data_rows > limit:
            logger.warning(
                "Worksheet exceeds max_rows_in_memory (%d > %d)", data_rows, limit
            )
            raise AnalyticsException(
                code=ErrorCode.E_PARSE_TOO_LARGE,
                message=(
                    f"Worksheet has {data_rows} data rows, exceeding "
                    f"max_rows_in_memory ({limit})."
                ),
                sheet_name=sheet_names[0] if sheet_names else None,
                stage="parse",
            )


# ---------------------------------------------------------------------------
# Failure classification
# ---------------------------------------------------------------------------


def _is_password_error(exc: Exception) -> bool:
    exc_msg = str(exc).lower()
    return "password" in exc_msg or "encrypted" in exc_msg


def _is_encrypted_package(path: Path) -> bool:
    """True for an OOXML workbook stored inside an OLE2 container.

    Excel saves password-protected ``.xlsx`` files that way.
    """
    if path.suffix.lower() not in (".xlsx", ".xlsm"):
        return False
    with open(path, "rb") as fh:
        return fh.read(len(_OLE2_SIGNATURE)) == _OLE2_SIGNATURE


def _password_exception(file_path: str, exc: Exception) -> AnalyticsException:
    logger.error("Parse failed: password-protected file %s", file_path)
    return AnalyticsException(
        code=ErrorCode.E_PARSE_PASSWORD,
        message=f"File is password-protected: {exc}",
        stage="parse",
    )


# ---------------------------------------------------------------------------
# Grid helpers
# ---------------------------------------------------------------------------


def _to_raw(value: Any) -> Any:
    """Convert a decoded value into a JSON-friendly raw cell value."""
    if value is None or isinstance(value, (str, bool)):
        return value
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        value = float(value)
        return None if math.isnan(value) else value
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if hasattr(value, "item"):
        # numpy scalars (e.g. bool_) coming out of the pandas path
        return _to_raw(value.item())
    return str(value)


def _is_blank(value: Any) -> bool:
    return is_empty(normalize_cell(value))


def _trim_blank_edges(grid: list[list[Any]]) -> list[list[Any]]:
    """Drop trailing rows and trailing columns that hold no value at all."""
    end = len(grid)
    while end > 0 and all(_is_blank(v) for v in grid[end - 1]):
        end -= 1
    rows = grid[:end]

    width = 0
    for row in rows:
        for index in range(len(row) - 1, -1, -1):
            if not _is_blank(row[index]):
                width = max(width, index + 1)
                break
    return [row[:width] for row in rows]


def _build_table(grid: list[list[Any]], sheet_names: list[str]) -> SpreadsheetTable:
    header_row = grid[0]
    headers = [cell_text(normalize_cell(_to_raw(value))) for value in header_row]
    width = len(headers)

    rows: list[list[Any]] = []
    for raw_row in grid[1:]:
        row = [_to_raw(value) for value in raw_row[:width]]
        if len(row) < width:
            row.extend([None] * (width - len(row)))
        rows.append(row)

    return SpreadsheetTable(headers=headers, rows=rows, sheet_names=sheet_names)
