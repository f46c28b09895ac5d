"""Concrete record stores for excel-analytics."""

from excel_analytics.stores.filesystem import FileSystemRecordStore

__all__ = ["FileSystemRecordStore"]
