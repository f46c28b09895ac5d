"""Filesystem-based FileRecordStore implementation.

Persists file records as JSON and raw uploads as-is:
    {base_path}/records/{owner_id}/{file_id}.json  -- record data
    {base_path}/files/{stored_filename}            -- uploaded workbook

Implements the FileRecordStore protocol via structural subtyping.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from pydantic import ValidationError

from excel_analytics.errors import AnalyticsException, ErrorCode
from excel_analytics.models import FileRecord

logger = logging.getLogger("excel_analytics")

_SAFE_SEGMENT = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.@-]*")


def _is_safe_segment(value: str) -> bool:
    """True if *value* can be used as a single path component."""
    return bool(_SAFE_SEGMENT.fullmatch(value)) and ".." not in value


class FileSystemRecordStore:
    """Filesystem-based FileRecordStore implementation.

    Passes ``isinstance(store, FileRecordStore)``.
    """

    def __init__(self, base_path: str) -> None:
        """Initialize the store.

        Args:
            base_path: Root directory for records and uploads.
                Created if it does not exist.
        """
        self._base_path = Path(base_path)
        self._records_dir = self._base_path / "records"
        self._files_dir = self._base_path / "files"
        self._records_dir.mkdir(parents=True, exist_ok=True)
        self._files_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def save(self, record: FileRecord) -> None:
        """Persist a record (insert or replace)."""
        if not (_is_safe_segment(record.uploaded_by) and _is_safe_segment(record.id)):
            raise ValueError(
                f"Unsafe owner or file id: {record.uploaded_by!r}/{record.id!r}"
            )
        owner_dir = self._records_dir / record.uploaded_by
        data = record.model_dump(mode="json", by_alias=True)
        try:
            owner_dir.mkdir(parents=True, exist_ok=True)
            (owner_dir / f"{record.id}.json").write_text(json.dumps(data))
        except OSError as exc:
            raise AnalyticsException(
                code=ErrorCode.E_STORE_WRITE_FAILED,
                message=f"Failed to write record '{record.id}': {exc}",
                file_id=record.id,
                stage="store",
            ) from exc

    def get(self, owner_id: str, file_id: str) -> FileRecord | None:
        """Return the owner's record, or None if it does not exist."""
        path = self._record_path(owner_id, file_id)
        if path is None or not path.exists():
            return None
        return self._load_record(path)

    def list_for_owner(
        self, owner_id: str, offset: int = 0, limit: int | None = None
    ) -> list[FileRecord]:
        """Return the owner's records, newest upload first."""
        records = self._load_all(owner_id)
        records.sort(key=lambda r: r.upload_date, reverse=True)
        end = None if limit is None else offset + limit
        return records[offset:end]

    def count_for_owner(self, owner_id: str) -> int:
        """Return how many records the owner has."""
        owner_dir = self._owner_dir(owner_id)
        if owner_dir is None or not owner_dir.exists():
            return 0
        return sum(1 for _ in owner_dir.glob("*.json"))

    def delete(self, owner_id: str, file_id: str) -> bool:
        """Delete a record. Returns True if something was deleted."""
        path = self._record_path(owner_id, file_id)
        if path is None or not path.exists():
            return False
        path.unlink()
        return True

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def store_upload(self, filename: str, content: bytes) -> str:
        """Write raw upload bytes under ``files/`` and return the path."""
        if not _is_safe_segment(filename):
            raise ValueError(f"Unsafe upload filename: {filename!r}")
        path = self._files_dir / filename
        try:
            path.write_bytes(content)
        except OSError as exc:
            raise AnalyticsException(
                code=ErrorCode.E_STORE_WRITE_FAILED,
                message=f"Failed to store upload '{filename}': {exc}",
                stage="store",
            ) from exc
        return str(path)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _owner_dir(self, owner_id: str) -> Path | None:
        if not _is_safe_segment(owner_id):
            return None
        return self._records_dir / owner_id

    def _record_path(self, owner_id: str, file_id: str) -> Path | None:
        owner_dir = self._owner_dir(owner_id)
        if owner_dir is None or not _is_safe_segment(file_id):
            return None
        return owner_dir / f"{file_id}.json"

    def _load_all(self, owner_id: str) -> list[FileRecord]:
        owner_dir = self._owner_dir(owner_id)
        if owner_dir is None or not owner_dir.exists():
            return []
        return [self._load_record(path) for path in sorted(owner_dir.glob("*.json"))]

    def _load_record(self, path: Path) -> FileRecord:
        try:
            data = json.loads(path.read_text())
            return FileRecord.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.error("Failed to load record %s: %s", path, exc)
            raise AnalyticsException(
                code=ErrorCode.E_STORE_READ_FAILED,
                message=f"Failed to load record {path.name}: {exc}",
                file_id=path.stem,
                stage="store",
            ) from exc
