"""Normalized error codes and structured error model for excel-analytics.

Every failure surfaced by the upload pipeline carries a stable ``ErrorCode``.
``AnalyticsError`` is the Pydantic data model; ``AnalyticsException`` wraps it
so it can be raised and caught in control flow.  The analytics engine itself
never raises -- these codes belong to validation, parsing, and storage.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Normalized error codes for the excel-analytics pipeline.

    Codes prefixed with ``E_`` are errors; codes prefixed with ``W_`` are
    non-fatal warnings.  Every member's name equals its string value.
    """

    # Upload validation errors
    E_UPLOAD_MISSING = "E_UPLOAD_MISSING"
    E_UPLOAD_UNSUPPORTED_FORMAT = "E_UPLOAD_UNSUPPORTED_FORMAT"
    E_UPLOAD_TOO_LARGE = "E_UPLOAD_TOO_LARGE"
    E_UPLOAD_CORRUPT = "E_UPLOAD_CORRUPT"

    # Parse errors
    E_PARSE_CORRUPT = "E_PARSE_CORRUPT"
    E_PARSE_PASSWORD = "E_PARSE_PASSWORD"
    E_PARSE_EMPTY = "E_PARSE_EMPTY"
    E_PARSE_TOO_LARGE = "E_PARSE_TOO_LARGE"

    # Record errors
    E_FILE_NOT_FOUND = "E_FILE_NOT_FOUND"
    E_FILE_NOT_READY = "E_FILE_NOT_READY"

    # Store errors
    E_STORE_READ_FAILED = "E_STORE_READ_FAILED"
    E_STORE_WRITE_FAILED = "E_STORE_WRITE_FAILED"

    # Warnings (non-fatal)
    W_PARSER_FALLBACK = "W_PARSER_FALLBACK"
    W_SHEETS_IGNORED = "W_SHEETS_IGNORED"
    W_PHYSICAL_FILE_MISSING = "W_PHYSICAL_FILE_MISSING"


class AnalyticsError(BaseModel):
    """Structured error with code, message, and context.

    Note: this is a data model, not a Python exception.  Use
    :class:`AnalyticsException` to raise it.
    """

    code: ErrorCode
    message: str
    stage: str | None = None
    recoverable: bool = False
    file_id: str | None = None
    sheet_name: str | None = None


class AnalyticsException(Exception):
    """Raisable exception wrapping an :class:`AnalyticsError`.

    The structured error is available as ``.error``; the common fields are
    exposed as convenience properties.
    """

    def __init__(self, **kwargs: object) -> None:
        self.error = AnalyticsError(**kwargs)  # type: ignore[arg-type]
        super().__init__(self.error.message)

    @classmethod
    def from_error(cls, error: AnalyticsError) -> AnalyticsException:
        return cls(**error.model_dump())

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def stage(self) -> str | None:
        return self.error.stage

    @property
    def recoverable(self) -> bool:
        return self.error.recoverable
