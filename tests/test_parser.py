"""Tests for WorkbookParser: openpyxl decoding, pandas fallback, and errors."""

from __future__ import annotations

import datetime
from pathlib import Path

import openpyxl
import pytest

from excel_analytics.config import AnalyticsConfig
from excel_analytics.errors import AnalyticsException, ErrorCode
from excel_analytics.parser import WorkbookParser, _trim_blank_edges

from conftest import CITY_ROWS, WorkbookFactory, make_biff2_stream


@pytest.fixture()
def parser(sample_config: AnalyticsConfig) -> WorkbookParser:
    return WorkbookParser(sample_config)


# ---------------------------------------------------------------------------
# TestOpenpyxlDecoding
# ---------------------------------------------------------------------------


class TestOpenpyxlDecoding:
    def test_headers_and_rows(self, parser: WorkbookParser, city_workbook: Path) -> None:
        parsed = parser.parse(str(city_workbook))
        assert parsed.table.headers == ["City", "Population"]
        assert parsed.table.rows == [
            ["NYC", 8000000],
            ["LA", 4000000],
            ["LA", None],
        ]
        assert parsed.table.sheet_names == ["Data"]
        assert parsed.warnings == []

    def test_metadata(self, parser: WorkbookParser, city_workbook: Path) -> None:
        metadata = parser.parse(str(city_workbook)).metadata
        assert metadata.worksheet_count == 1
        assert metadata.has_formulas is False
        assert metadata.has_charts is False

    def test_short_rows_are_padded(
        self, parser: WorkbookParser, make_workbook: WorkbookFactory
    ) -> None:
        path = make_workbook([["A", "B", "C"], ["x"], ["y", 2]])
        rows = parser.parse(str(path)).table.rows
        assert rows == [["x", None, None], ["y", 2, None]]

    def test_header_only(
        self, parser: WorkbookParser, make_workbook: WorkbookFactory
    ) -> None:
        table = parser.parse(str(make_workbook([["A", "B"]]))).table
        assert table.headers == ["A", "B"]
        assert table.rows == []

    def test_numeric_and_missing_headers_become_text(
        self, parser: WorkbookParser, make_workbook: WorkbookFactory
    ) -> None:
        path = make_workbook([[2024, None, "Name"], [1, 2, 3]])
        assert parser.parse(str(path)).table.headers == ["2024", "", "Name"]

    def test_dates_become_iso_strings(
        self, parser: WorkbookParser, make_workbook: WorkbookFactory
    ) -> None:
        path = make_workbook([["When"], [datetime.datetime(2024, 1, 2, 3, 4)]])
        value = parser.parse(str(path)).table.rows[0][0]
        assert isinstance(value, str)
        assert value.startswith("2024-01-02T03:04")

    def test_formulas_detected(
        self, parser: WorkbookParser, make_workbook: WorkbookFactory
    ) -> None:
        path = make_workbook([["A", "B", "Total"], [1, 2, "=A2+B2"]])
        parsed = parser.parse(str(path))
        assert parsed.metadata.has_formulas is True
        # No cached value was ever computed for the formula cell.
        assert parsed.table.rows[0][2] is None

    def test_extra_sheets_are_reported(
        self, parser: WorkbookParser, make_workbook: WorkbookFactory
    ) -> None:
        path = make_workbook(CITY_ROWS, extra_sheets={"Other": [["z"]]})
        parsed = parser.parse(str(path))
        assert parsed.table.sheet_names == ["Data", "Other"]
        assert parsed.metadata.worksheet_count == 2
        assert [w.code for w in parsed.warnings] == [ErrorCode.W_SHEETS_IGNORED]
        assert parsed.table.headers == ["City", "Population"]


# ---------------------------------------------------------------------------
# TestXlsDecoding
# ---------------------------------------------------------------------------


class TestXlsDecoding:
    def test_legacy_workbook_read_with_xlrd(
        self, parser: WorkbookParser, tmp_path: Path
    ) -> None:
        pytest.importorskip("xlrd")
        path = tmp_path / "legacy.xls"
        path.write_bytes(make_biff2_stream(CITY_ROWS))

        parsed = parser.parse(str(path))
        assert parsed.table.headers == ["City", "Population"]
        assert parsed.table.rows == [
            ["NYC", 8000000],
            ["LA", 4000000],
            ["LA", None],
        ]
        assert parsed.table.sheet_names == ["Sheet 1"]
        assert parsed.metadata.worksheet_count == 1
        assert parsed.warnings == []

    def test_encrypted_xls(self, parser: WorkbookParser, tmp_path: Path) -> None:
        pytest.importorskip("xlrd")
        path = tmp_path / "locked.xls"
        path.write_bytes(make_biff2_stream(CITY_ROWS, encrypted=True))
        with pytest.raises(AnalyticsException) as info:
            parser.parse(str(path))
        assert info.value.code is ErrorCode.E_PARSE_PASSWORD

    def test_password_message_from_pandas_reader(
        self,
        parser: WorkbookParser,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def _encrypted(self, file_path):
            raise ValueError("Workbook is encrypted")

        monkeypatch.setattr(WorkbookParser, "_read_pandas", _encrypted)
        path = tmp_path / "locked.xls"
        path.write_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1")
        with pytest.raises(AnalyticsException) as info:
            parser.parse(str(path))
        assert info.value.code is ErrorCode.E_PARSE_PASSWORD

    def test_xlsx_in_ole2_container_is_password_protected(
        self, parser: WorkbookParser, tmp_path: Path
    ) -> None:
        path = tmp_path / "locked.xlsx"
        path.write_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 504)
        with pytest.raises(AnalyticsException) as info:
            parser.parse(str(path))
        assert info.value.code is ErrorCode.E_PARSE_PASSWORD


# ---------------------------------------------------------------------------
# TestFallback
# ---------------------------------------------------------------------------


class TestFallback:
    def test_pandas_fallback_on_openpyxl_failure(
        self,
        parser: WorkbookParser,
        city_workbook: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def _boom(self, file_path):
            raise ValueError("simulated openpyxl failure")

        monkeypatch.setattr(WorkbookParser, "_read_openpyxl", _boom)
        parsed = parser.parse(str(city_workbook))
        assert [w.code for w in parsed.warnings] == [ErrorCode.W_PARSER_FALLBACK]
        assert parsed.table.headers == ["City", "Population"]
        assert parsed.table.rows[0] == ["NYC", 8000000]
        assert parsed.table.rows[2] == ["LA", None]
        assert parsed.table.sheet_names == ["Data"]

    def test_password_protected(
        self,
        parser: WorkbookParser,
        city_workbook: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def _encrypted(self, file_path):
            raise ValueError("File is encrypted")

        monkeypatch.setattr(WorkbookParser, "_read_openpyxl", _encrypted)
        with pytest.raises(AnalyticsException) as info:
            parser.parse(str(city_workbook))
        assert info.value.code is ErrorCode.E_PARSE_PASSWORD


# ---------------------------------------------------------------------------
# TestParseErrors
# ---------------------------------------------------------------------------


class TestParseErrors:
    def test_missing_file(self, parser: WorkbookParser, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            parser.parse(str(tmp_path / "missing.xlsx"))

    def test_corrupt_file(self, parser: WorkbookParser, tmp_path: Path) -> None:
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"this is not a workbook")
        with pytest.raises(AnalyticsException) as info:
            parser.parse(str(path))
        assert info.value.code is ErrorCode.E_PARSE_CORRUPT

    def test_empty_workbook(self, parser: WorkbookParser, tmp_path: Path) -> None:
        path = tmp_path / "empty.xlsx"
        openpyxl.Workbook().save(path)
        with pytest.raises(AnalyticsException) as info:
            parser.parse(str(path))
        assert info.value.code is ErrorCode.E_PARSE_EMPTY

    def test_too_many_rows(self, make_workbook: WorkbookFactory) -> None:
        parser = WorkbookParser(AnalyticsConfig(max_rows_in_memory=2))
        path = make_workbook([["n"], [1], [2], [3]])
        with pytest.raises(AnalyticsException) as info:
            parser.parse(str(path))
        assert info.value.code is ErrorCode.E_PARSE_TOO_LARGE
        assert info.value.error.sheet_name == "Data"


# ---------------------------------------------------------------------------
# TestTrimBlankEdges
# ---------------------------------------------------------------------------


class TestTrimBlankEdges:
    def test_trailing_blank_rows_and_columns(self) -> None:
        grid = [
            ["A", "B", None],
            [1, None, ""],
            [None, None, None],
            ["", None, None],
        ]
        assert _trim_blank_edges(grid) == [["A", "B"], [1, None]]

    def test_inner_blank_rows_kept(self) -> None:
        grid = [["A"], [None], [1]]
        assert _trim_blank_edges(grid) == grid

    def test_all_blank(self) -> None:
        assert _trim_blank_edges([[None, ""], [None]]) == []
