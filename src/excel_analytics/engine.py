"""Column-wise analytics over a parsed spreadsheet table.

:func:`compute_analytics` is a pure, single-pass aggregation: it classifies
every column as numeric or text, computes per-column statistics, and counts
populated versus empty cells across the declared grid.  It never raises for
a well-formed table and degrades to zero-valued output for an empty one.

Column classification is strict: see :func:`classify_column`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from excel_analytics.cells import (
    Cell,
    cell_text,
    is_empty,
    normalize_row,
    parse_number,
)
from excel_analytics.models import (
    AnalyticsSummary,
    ColumnKind,
    ColumnStat,
    SpreadsheetTable,
)

logger = logging.getLogger("excel_analytics")


# ---------------------------------------------------------------------------
# Classification rule
# ---------------------------------------------------------------------------


def classify_column(
    column_data: Sequence[Cell],
) -> tuple[ColumnKind, list[float]]:
    """Classify a column from its non-empty cells.

    A column is :attr:`ColumnKind.NUMBER` only when it has at least one
    value and *every* value parses as a finite number.  A single value that
    does not parse makes the whole column :attr:`ColumnKind.TEXT`, however
    many numeric values surround it.  A column with no values is text.
    Text counts as numeric only when it is a whole decimal literal, so
    values with a numeric prefix such as ``"12kg"`` are text.

    Returns:
        The column kind and, for numeric columns, the parsed values in row
        order (empty for text columns).
    """
    if not column_data:
        return ColumnKind.TEXT, []

    parsed: list[float] = []
    for cell in column_data:
        value = parse_number(cell)
        if value is None:
            return ColumnKind.TEXT, []
        parsed.append(value)
    return ColumnKind.NUMBER, parsed


# ---------------------------------------------------------------------------
# Per-column statistics
# ---------------------------------------------------------------------------


def compute_column_stat(name: str, column_data: Sequence[Cell]) -> ColumnStat:
    """Compute the statistics of one column from its non-empty cells."""
    non_empty = len(column_data)
    unique = len(set(column_data))
    kind, numbers = classify_column(column_data)

    if kind is ColumnKind.NUMBER:
        total = 0.0
        low = high = numbers[0]
        for value in numbers:
            total += value
            if value < low:
                low = value
            if value > high:
                high = value
        return ColumnStat(
            name=name,
            kind=kind,
            non_empty_count=non_empty,
            unique_count=unique,
            sum=total,
            average=total / non_empty,
            min=low,
            max=high,
        )

    if non_empty == 0:
        return ColumnStat(
            name=name, kind=kind, non_empty_count=0, unique_count=0
        )

    # Ordinal reduction, first value is the initial accumulator.
    texts = [cell_text(cell) for cell in column_data]
    low_text = high_text = texts[0]
    for text in texts[1:]:
        if text < low_text:
            low_text = text
        if text > high_text:
            high_text = text
    return ColumnStat(
        name=name,
        kind=kind,
        non_empty_count=non_empty,
        unique_count=unique,
        min=low_text,
        max=high_text,
    )


# ---------------------------------------------------------------------------
# Table analytics
# ---------------------------------------------------------------------------


def compute_analytics(table: SpreadsheetTable) -> AnalyticsSummary:
    """Compute the :class:`AnalyticsSummary` of *table*.

    Rows shorter than the header list are read as if padded with empty
    cells; cells beyond the header list are ignored.  The same table always
    yields an equal summary.
    """
    headers = table.headers
    rows = table.rows
    total_columns = len(headers)

    columns: list[list[Cell]] = [[] for _ in headers]
    non_empty_cells = 0
    empty_cells = 0

    for row in rows:
        for j, cell in enumerate(normalize_row(row, total_columns)):
            if is_empty(cell):
                empty_cells += 1
            else:
                non_empty_cells += 1
                columns[j].append(cell)

    column_stats = [
        compute_column_stat(name, column_data)
        for name, column_data in zip(headers, columns)
    ]

    for stat in column_stats:
        logger.debug(
            "Column '%s': kind=%s, non_empty=%d, unique=%d",
            stat.name,
            stat.kind.value,
            stat.non_empty_count,
            stat.unique_count,
        )

    return AnalyticsSummary(
        total_rows=len(rows),
        total_columns=total_columns,
        non_empty_cells=non_empty_cells,
        empty_cells=empty_cells,
        column_stats=column_stats,
    )
