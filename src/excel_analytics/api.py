"""API surface for excel-analytics.

Provides the per-owner file operations consumed by an HTTP layer: upload,
paginated listing, data and analytics retrieval, dashboard statistics, and
deletion.  Authentication is the caller's concern; every operation takes an
already-authenticated ``owner_id`` and treats other owners' records as
missing.
"""

from __future__ import annotations

import datetime
import hashlib
import logging
import math
import secrets
import time
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

from excel_analytics.config import AnalyticsConfig
from excel_analytics.engine import compute_analytics
from excel_analytics.errors import AnalyticsException, ErrorCode
from excel_analytics.models import (
    AnalyticsSummary,
    DashboardStats,
    DataViewMetadata,
    FileListPage,
    FileRecord,
    FileSummary,
    Pagination,
    ProcessingStatus,
    RecentUpload,
    SpreadsheetDataView,
)
from excel_analytics.parser import WorkbookParser
from excel_analytics.security import UploadValidator
from excel_analytics.stores.filesystem import FileSystemRecordStore

if TYPE_CHECKING:
    from excel_analytics.protocols import FileRecordStore

logger = logging.getLogger("excel_analytics")

_DEFAULT_MIMETYPE = "application/octet-stream"


def _stored_filename(original_name: str) -> str:
    """Build a unique on-disk name: ``file-{epoch_ms}-{random}{ext}``."""
    suffix = Path(original_name).suffix.lower()
    if not (suffix[1:].isascii() and suffix[1:].isalnum()):
        suffix = ""
    epoch_ms = int(time.time() * 1000)
    return f"file-{epoch_ms}-{secrets.randbelow(1_000_000_000)}{suffix}"


def _summarize(record: FileRecord) -> FileSummary:
    return FileSummary(
        id=record.id,
        filename=record.original_name,
        size=record.size,
        upload_date=record.upload_date,
        row_count=record.row_count,
        column_count=record.column_count,
        processing_status=record.processing_status,
    )


class SpreadsheetFileAPI:
    """File operations for spreadsheet uploads.

    Composes a :class:`~excel_analytics.protocols.FileRecordStore`
    (persistence), an :class:`~excel_analytics.security.UploadValidator`,
    and a :class:`~excel_analytics.parser.WorkbookParser`.
    """

    def __init__(
        self,
        store: FileRecordStore,
        config: AnalyticsConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or AnalyticsConfig()
        self._validator = UploadValidator(self._config)
        self._parser = WorkbookParser(self._config)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def upload_file(
        self,
        owner_id: str,
        original_name: str,
        content: bytes,
        mimetype: str | None = None,
    ) -> FileRecord:
        """Validate, store, parse, and analyse an uploaded workbook.

        The stored upload is removed again if any later step fails.

        Returns:
            FileRecord: The persisted record, ``processing_status=completed``.

        Raises:
            AnalyticsException: Validation, parse, or store failures.
        """
        errors = self._validator.validate(original_name, mimetype, content)
        if errors:
            logger.warning(
                "Rejected upload %s for owner %s: %s",
                original_name,
                owner_id,
                errors[0].code.value,
            )
            raise AnalyticsException.from_error(errors[0])

        stored_name = _stored_filename(original_name)
        file_path = self._store.store_upload(stored_name, content)

        try:
            parsed = self._parser.parse(file_path)
            record = FileRecord(
                id=uuid.uuid4().hex,
                filename=stored_name,
                original_name=original_name,
                mimetype=mimetype or _DEFAULT_MIMETYPE,
                size=len(content),
                uploaded_by=owner_id,
                upload_date=datetime.datetime.now(datetime.timezone.utc),
                file_path=file_path,
                content_hash=hashlib.sha256(content).hexdigest(),
                engine_version=self._config.engine_version,
                data=parsed.table,
                analytics=compute_analytics(parsed.table),
                processing_status=ProcessingStatus.COMPLETED,
                metadata=parsed.metadata,
            )
            self._store.save(record)
        except Exception as exc:
            logger.error("File upload failed for %s: %s", original_name, exc)
            Path(file_path).unlink(missing_ok=True)
            raise

        for warning in parsed.warnings:
            logger.warning("%s: %s", original_name, warning.message)
        logger.info(
            "Stored upload %s as %s (%d rows, %d columns)",
            original_name,
            record.id,
            record.row_count,
            record.column_count,
        )
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_files(
        self,
        owner_id: str,
        page: int = 1,
        limit: int | None = None,
    ) -> FileListPage:
        """List the owner's files, newest first, one page at a time.

        A non-positive *page* or *limit* falls back to the first page and
        the configured page size.
        """
        page = page if page and page > 0 else 1
        limit = limit if limit and limit > 0 else self._config.default_page_size
        skip = (page - 1) * limit

        records = self._store.list_for_owner(owner_id, offset=skip, limit=limit)
        total = self._store.count_for_owner(owner_id)
        return FileListPage(
            files=[_summarize(r) for r in records],
            pagination=Pagination(
                current=page, pages=math.ceil(total / limit), total=total
            ),
        )

    def get_file_data(self, owner_id: str, file_id: str) -> SpreadsheetDataView:
        """Return headers and rows of a processed file."""
        record = self._require_completed(owner_id, file_id)
        assert record.data is not None
        return SpreadsheetDataView(
            headers=record.data.headers,
            rows=record.data.rows,
            sheet_names=record.data.sheet_names,
            metadata=DataViewMetadata(
                total_rows=record.row_count,
                total_columns=record.column_count,
                filename=record.original_name,
                upload_date=record.upload_date,
            ),
        )

    def get_analytics(self, owner_id: str, file_id: str) -> AnalyticsSummary:
        """Return the file's analytics, recomputing and saving them if absent."""
        record = self._require_completed(owner_id, file_id)
        if record.analytics is not None:
            return record.analytics

        assert record.data is not None
        analytics = compute_analytics(record.data)
        self._store.save(record.model_copy(update={"analytics": analytics}))
        logger.info("Recomputed analytics for %s", file_id)
        return analytics

    def get_dashboard_stats(self, owner_id: str) -> DashboardStats:
        """Return file count, total analysed rows, and most recent uploads."""
        records = self._store.list_for_owner(owner_id)
        total_rows = sum(
            r.analytics.total_rows
            for r in records
            if r.processing_status is ProcessingStatus.COMPLETED
            and r.analytics is not None
        )
        recent = records[: self._config.recent_uploads_limit]
        return DashboardStats(
            total_files=len(records),
            total_rows=total_rows,
            recent_uploads=[
                RecentUpload(
                    id=r.id,
                    filename=r.original_name,
                    upload_date=r.upload_date,
                    row_count=r.row_count,
                )
                for r in recent
            ],
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_file(self, owner_id: str, file_id: str) -> None:
        """Delete the stored upload and the record.

        A missing physical file is logged and the record is still removed.
        """
        record = self._require(owner_id, file_id)

        path = Path(record.file_path)
        if path.exists():
            path.unlink()
            logger.info("Deleted physical file: %s", path)
        else:
            logger.warning(
                "%s: physical file not found at %s, deleting record only.",
                ErrorCode.W_PHYSICAL_FILE_MISSING.value,
                path,
            )

        self._store.delete(owner_id, file_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require(self, owner_id: str, file_id: str) -> FileRecord:
        record = self._store.get(owner_id, file_id)
        if record is None:
            raise AnalyticsException(
                code=ErrorCode.E_FILE_NOT_FOUND,
                message="File not found",
                file_id=file_id,
                stage="api",
            )
        return record

    def _require_completed(self, owner_id: str, file_id: str) -> FileRecord:
        record = self._require(owner_id, file_id)
        if record.processing_status is not ProcessingStatus.COMPLETED or record.data is None:
            raise AnalyticsException(
                code=ErrorCode.E_FILE_NOT_READY,
                message="File is still being processed",
                file_id=file_id,
                stage="api",
                recoverable=True,
            )
        return record


def create_default_api(
    *,
    store: FileRecordStore | None = None,
    config: AnalyticsConfig | None = None,
) -> SpreadsheetFileAPI:
    """Create a SpreadsheetFileAPI with sensible defaults.

    Without an explicit *store*, records and uploads are kept in a
    :class:`~excel_analytics.stores.FileSystemRecordStore` rooted at
    ``config.storage_dir``.
    """
    config = config or AnalyticsConfig()
    if store is None:
        store = FileSystemRecordStore(config.storage_dir)
    return SpreadsheetFileAPI(store, config)
