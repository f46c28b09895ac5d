"""Upload validation for spreadsheet files.

Checks that an upload is present, is an Excel workbook by name or MIME type,
fits within the size limit, and starts with the container signature its
extension promises.  All checks are fail-fast: the first fatal error stops
further checks.
"""

from __future__ import annotations

import logging
import pathlib
from typing import TYPE_CHECKING

from excel_analytics.errors import AnalyticsError, ErrorCode

if TYPE_CHECKING:
    from excel_analytics.config import AnalyticsConfig

logger = logging.getLogger("excel_analytics")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_MAGIC_BYTES: dict[str, bytes] = {
    ".xlsx": b"PK\x03\x04",  # ZIP/OOXML container
    ".xls": b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",  # OLE2 compound document
}


# ---------------------------------------------------------------------------
# UploadValidator
# ---------------------------------------------------------------------------


class UploadValidator:
    """File-level checks run before an upload is stored or parsed."""

    def __init__(self, config: AnalyticsConfig) -> None:
        self._config = config

    def validate(
        self, original_name: str, mimetype: str | None, content: bytes
    ) -> list[AnalyticsError]:
        """Run all checks on an upload.

        Returns a list of errors (empty if all checks pass).
        """
        cfg = self._config

        # 1. Presence
        if not content:
            return [
                AnalyticsError(
                    code=ErrorCode.E_UPLOAD_MISSING,
                    message="No file uploaded.",
                    stage="upload",
                )
            ]

        # 2. Extension or MIME type; either one is enough.
        suffix = pathlib.Path(original_name).suffix.lower()
        allowed_suffixes = {ext.lower() for ext in cfg.allowed_extensions}
        if suffix not in allowed_suffixes and mimetype not in cfg.allowed_mimetypes:
            return [
                AnalyticsError(
                    code=ErrorCode.E_UPLOAD_UNSUPPORTED_FORMAT,
                    message="Only Excel files (.xlsx, .xls) are allowed.",
                    stage="upload",
                )
            ]

        # 3. Size
        if len(content) > cfg.max_upload_bytes:
            return [
                AnalyticsError(
                    code=ErrorCode.E_UPLOAD_TOO_LARGE,
                    message=(
                        f"File is {len(content)} bytes, exceeding the "
                        f"{cfg.max_upload_bytes}-byte limit."
                    ),
                    stage="upload",
                )
            ]

        # 4. Magic bytes (only for extensions we know a signature for)
        if cfg.verify_magic_bytes and suffix in _MAGIC_BYTES:
            signature = _MAGIC_BYTES[suffix]
            if not content.startswith(signature):
                logger.warning(
                    "Rejected upload %s: signature does not match %s",
                    original_name,
                    suffix,
                )
                return [
                    AnalyticsError(
                        code=ErrorCode.E_UPLOAD_CORRUPT,
                        message=(
                            f"File content does not look like a {suffix} workbook."
                        ),
                        stage="upload",
                    )
                ]

        return []
