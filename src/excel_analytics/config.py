"""Configuration model for excel-analytics.

Provides ``AnalyticsConfig`` with all tunable parameters and sensible
defaults.  Supports loading overrides from YAML or JSON files via the
``from_file()`` classmethod.
"""

from __future__ import annotations

import json
import pathlib
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel


class AnalyticsConfig(BaseModel):
    """All tunable parameters with sensible defaults.

    Override individual values via constructor kwargs or load a complete
    config from a file with ``AnalyticsConfig.from_file(path)``.
    """

    # --- Identity ---
    engine_version: str = "excel_analytics:1.0.0"

    # --- Storage ---
    storage_dir: str = "uploads"

    # --- Upload validation ---
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_extensions: list[str] = [".xlsx", ".xls"]
    allowed_mimetypes: list[str] = [
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-excel",
    ]
    verify_magic_bytes: bool = True

    # --- Parsing ---
    max_rows_in_memory: int = 100_000
    trim_blank_edges: bool = True

    # --- Listing / dashboard ---
    default_page_size: int = 10
    recent_uploads_limit: int = 5

    # --- Logging / PII safety ---
    log_sample_data: bool = False

    @classmethod
    def from_file(cls, path: str) -> AnalyticsConfig:
        """Load a config from a ``.yaml`` / ``.yml`` or ``.json`` file.

        Keys in the file override the defaults.  An empty file yields the
        default config.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the extension is not recognized or the file does
                not hold a mapping.
            ImportError: If a YAML file is given and ``pyyaml`` is missing.
        """
        config_path = pathlib.Path(path)
        if not config_path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")

        loader = _LOADERS.get(config_path.suffix.lower())
        if loader is None:
            raise ValueError(
                f"Unsupported config file extension '{config_path.suffix}' "
                f"for {path}; expected one of {sorted(_LOADERS)}."
            )

        data = loader(config_path.read_text())
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(
                f"Config file {path} must contain a mapping, "
                f"got {type(data).__name__}."
            )
        return cls.model_validate(data)


def _load_yaml(text: str) -> Any:
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as exc:
        raise ImportError(
            "pyyaml is required for YAML config files; "
            "install excel-analytics[yaml]."
        ) from exc
    return yaml.safe_load(text)


def _load_json(text: str) -> Any:
    return json.loads(text) if text.strip() else None


_LOADERS: dict[str, Callable[[str], Any]] = {
    ".yaml": _load_yaml,
    ".yml": _load_yaml,
    ".json": _load_json,
}
