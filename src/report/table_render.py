"""Plain-text rendering of record sets and summaries."""

from __future__ import annotations

from core.constants import LIST_DISPLAY_SEPARATOR, MISSING_DISPLAY_TEXT
from core.types import DerivationFailure, RecordSet, Summary
from core.values import Value, is_missing


def format_value(value: Value) -> str:
    """Render one cell value for display."""
    if is_missing(value):
        return MISSING_DISPLAY_TEXT
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, tuple):
        return LIST_DISPLAY_SEPARATOR.join(value)
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def render_table(record_set: RecordSet, max_rows: int | None = None) -> str:
    """Render a header line and one tab-separated line per row.

    Args:
        record_set: Record set to render.
        max_rows: Optional cap on printed rows.

    Returns:
        Multi-line text table.
    """
    lines = ["\t".join(record_set.column_names)]
    rows = record_set.rows if max_rows is None else record_set.rows[:max_rows]
    for row in rows:
        lines.append("\t".join(format_value(row[name]) for name in record_set.column_names))
    hidden = record_set.row_count - len(rows)
    if hidden > 0:
        lines.append(f"... {hidden} more rows")
    return "\n".join(lines)


def render_summary(summary: Summary) -> str:
    """Render numeric and categorical summaries as text tables."""
    lines = [f"rows\t{summary.row_count}"]
    if summary.numeric:
        lines.append("column\tcount\tmissing\tmin\tmean\tmax\tsd")
        for stats in summary.numeric:
            lines.append(
                "\t".join(
                    (
                        stats.column,
                        str(stats.count),
                        str(stats.missing_count),
                        _format_statistic(stats.minimum),
                        _format_statistic(stats.mean),
                        _format_statistic(stats.maximum),
                        _format_statistic(stats.std_dev),
                    )
                )
            )
    for table in summary.categorical:
        lines.append(f"{table.column}\tcount")
        for label, count in table.frequencies:
            lines.append(f"{label}\t{count}")
        if table.missing_count:
            lines.append(f"{MISSING_DISPLAY_TEXT}\t{table.missing_count}")
    return "\n".join(lines)


def render_failures(failures: tuple[DerivationFailure, ...]) -> str:
    """Render dropped rows, one per line."""
    return "\n".join(
        f"row {failure.row_index}\t{failure.rule_name}\t{failure.message}" for failure in failures
    )


def _format_statistic(value: float | None) -> str:
    return MISSING_DISPLAY_TEXT if value is None else f"{value:.4g}"
