"""Shared test fixtures for excel-analytics tests.

Provides a default ``AnalyticsConfig``, an ``.xlsx`` workbook factory built
with openpyxl under ``tmp_path``, a filesystem record store, and a
``FileRecord`` builder.
"""

from __future__ import annotations

import datetime
import pathlib
import struct
from collections.abc import Callable
from typing import Any

import openpyxl
import pytest

from excel_analytics.config import AnalyticsConfig
from excel_analytics.models import (
    FileRecord,
    ProcessingStatus,
    SpreadsheetTable,
)
from excel_analytics.stores.filesystem import FileSystemRecordStore

WorkbookFactory = Callable[..., pathlib.Path]


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_config() -> AnalyticsConfig:
    """Return an AnalyticsConfig with all defaults."""
    return AnalyticsConfig()


# ---------------------------------------------------------------------------
# Workbooks
# ---------------------------------------------------------------------------


CITY_ROWS: list[list[Any]] = [
    ["City", "Population"],
    ["NYC", 8000000],
    ["LA", 4000000],
    ["LA", None],
]


@pytest.fixture()
def make_workbook(tmp_path: pathlib.Path) -> WorkbookFactory:
    """Factory writing an ``.xlsx`` file and returning its path.

    ``rows`` go into the first sheet (named ``Data``); ``extra_sheets`` maps
    additional sheet names to their rows.
    """

    def _make(
        rows: list[list[Any]],
        name: str = "book.xlsx",
        extra_sheets: dict[str, list[list[Any]]] | None = None,
    ) -> pathlib.Path:
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Data"
        for row in rows:
            ws.append(row)
        for sheet_name, sheet_rows in (extra_sheets or {}).items():
            extra = wb.create_sheet(sheet_name)
            for row in sheet_rows:
                extra.append(row)
        path = tmp_path / name
        wb.save(path)
        return path

    return _make


def _biff_record(code: int, payload: bytes) -> bytes:
    return struct.pack("<HH", code, len(payload)) + payload


def make_biff2_stream(rows: list[list[Any]], encrypted: bool = False) -> bytes:
    """Return a single-sheet Excel 2.x (BIFF2) ``.xls`` stream.

    Strings become LABEL records, numbers NUMBER records, and ``None``
    leaves the cell out.  ``encrypted`` adds a FILEPASS record.
    """
    attr = b"\x00\x00\x00"
    records = [
        _biff_record(0x0009, struct.pack("<HH", 0x0007, 0x0010)),  # BOF
        _biff_record(0x0042, struct.pack("<H", 1252)),  # CODEPAGE
    ]
    if encrypted:
        records.append(_biff_record(0x002F, b"\x00\x00\x00\x00"))  # FILEPASS
    for r, row in enumerate(rows):
        for c, value in enumerate(row):
            if value is None:
                continue
            if isinstance(value, str):
                text = value.encode("cp1252")
                payload = struct.pack("<HH3sB", r, c, attr, len(text)) + text
                records.append(_biff_record(0x0004, payload))  # LABEL
            else:
                payload = struct.pack("<HH3sd", r, c, attr, float(value))
                records.append(_biff_record(0x0003, payload))  # NUMBER
    records.append(_biff_record(0x000A, b""))  # EOF
    return b"".join(records)


@pytest.fixture()
def city_workbook(make_workbook: WorkbookFactory) -> pathlib.Path:
    return make_workbook(CITY_ROWS, name="cities.xlsx")


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@pytest.fixture()
def record_store(tmp_path: pathlib.Path) -> FileSystemRecordStore:
    return FileSystemRecordStore(str(tmp_path / "store"))


def make_record(**overrides: object) -> FileRecord:
    """Build a completed FileRecord with a small table and no analytics."""
    defaults: dict = dict(
        id="file1",
        filename="file-1-1.xlsx",
        original_name="cities.xlsx",
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        size=1024,
        uploaded_by="user1",
        upload_date=datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc),
        file_path="/nonexistent/file-1-1.xlsx",
        content_hash="a" * 64,
        engine_version="excel_analytics:1.0.0",
        data=SpreadsheetTable(
            headers=["City", "Population"],
            rows=[["NYC", 8000000], ["LA", 4000000]],
            sheet_names=["Data"],
        ),
        processing_status=ProcessingStatus.COMPLETED,
    )
    defaults.update(overrides)
    return FileRecord(**defaults)
