"""Cell normalization for spreadsheet values.

Raw values arrive from the workbook decoder (or from a caller) untyped: a
string, a number, a boolean, a date, or nothing at all.  ``normalize_cell``
turns each one into a tagged cell -- :class:`EmptyCell`, :class:`NumberCell`
or :class:`TextCell` -- before any aggregation happens, so the engine never
inspects runtime types itself.
"""

from __future__ import annotations

import datetime
import math
import numbers
import re
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class EmptyCell:
    """A cell with no value (``None``, ``""`` or a float NaN)."""


@dataclass(frozen=True)
class NumberCell:
    """A cell holding a native numeric value."""

    value: float


@dataclass(frozen=True)
class TextCell:
    """A cell holding any non-empty, non-numeric value, kept as text."""

    value: str


Cell = Union[EmptyCell, NumberCell, TextCell]

EMPTY = EmptyCell()

# Plain decimal literal: optional sign, digits with optional fraction (or a
# bare fraction), optional exponent.  No underscores, no nan/inf.
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def normalize_cell(raw: Any) -> Cell:
    """Map a raw spreadsheet value onto the tagged cell union."""
    if isinstance(raw, (EmptyCell, NumberCell, TextCell)):
        return raw
    if raw is None:
        return EMPTY
    if isinstance(raw, bool):
        return TextCell("TRUE" if raw else "FALSE")
    if isinstance(raw, numbers.Real):
        try:
            value = float(raw)
        except OverflowError:
            # Integers wider than a double stay countable as text.
            return TextCell(str(raw))
        if math.isnan(value):
            return EMPTY
        return NumberCell(value)
    if isinstance(raw, str):
        return TextCell(raw) if raw != "" else EMPTY
    if isinstance(raw, (datetime.datetime, datetime.date, datetime.time)):
        return TextCell(raw.isoformat())
    return TextCell(str(raw))


def normalize_row(row: list[Any], width: int) -> list[Cell]:
    """Normalize *row* to exactly *width* cells.

    Missing trailing cells become :data:`EMPTY`; cells beyond *width* are
    dropped.
    """
    cells = [normalize_cell(raw) for raw in row[:width]]
    if len(cells) < width:
        cells.extend([EMPTY] * (width - len(cells)))
    return cells


def is_empty(cell: Cell) -> bool:
    return isinstance(cell, EmptyCell)


def format_number(value: float) -> str:
    """Render a float the way a spreadsheet shows it (``3.0`` -> ``"3"``)."""
    if math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value)


def cell_text(cell: Cell) -> str:
    """Return the text form of *cell* (``""`` for empty cells)."""
    if isinstance(cell, TextCell):
        return cell.value
    if isinstance(cell, NumberCell):
        return format_number(cell.value)
    return ""


def parse_number(cell: Cell) -> float | None:
    """Parse *cell* as a finite number, or return ``None``.

    Numeric cells parse to their value.  Text cells parse only when the
    trimmed text is a plain decimal literal.
    """
    if isinstance(cell, NumberCell):
        return cell.value if math.isfinite(cell.value) else None
    if isinstance(cell, TextCell):
        text = cell.value.strip()
        if not _DECIMAL_RE.fullmatch(text):
            return None
        value = float(text)
        return value if math.isfinite(value) else None
    return None
