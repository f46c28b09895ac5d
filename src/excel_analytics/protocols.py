"""Storage protocol for excel-analytics.

Defines the structural-subtyping interface that record stores must satisfy.
The protocol is ``@runtime_checkable`` so callers can optionally verify
conformance with ``isinstance`` checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from excel_analytics.models import FileRecord


@runtime_checkable
class FileRecordStore(Protocol):
    """Interface for file-record persistence (e.g. filesystem, document DB)."""

    def save(self, record: FileRecord) -> None:
        """Persist a record (insert or replace)."""
        ...

    def get(self, owner_id: str, file_id: str) -> FileRecord | None:
        """Return the owner's record, or None if it does not exist."""
        ...

    def list_for_owner(
        self, owner_id: str, offset: int = 0, limit: int | None = None
    ) -> list[FileRecord]:
        """Return the owner's records, newest upload first."""
        ...

    def count_for_owner(self, owner_id: str) -> int:
        """Return how many records the owner has."""
        ...

    def delete(self, owner_id: str, file_id: str) -> bool:
        """Delete a record. Returns True if something was deleted."""
        ...

    def store_upload(self, filename: str, content: bytes) -> str:
        """Write raw upload bytes and return the stored file path."""
        ...
