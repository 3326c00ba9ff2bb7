"""Descriptive statistics for record sets.

This module computes numeric statistics and categorical frequency tables.
Missing values are excluded from every statistic and counted separately;
they are never replaced with zero.
"""

from __future__ import annotations

import statistics

from core.constants import CATEGORICAL_COLUMN_TYPES, NUMERIC_COLUMN_TYPES
from core.types import CategoricalSummary, NumericSummary, RecordSet, Summary
from core.values import coerce_value, is_missing


def summarize(record_set: RecordSet) -> Summary:
    """Summarize every column of a record set.

    Args:
        record_set: Record set to describe.

    Returns:
        Numeric summaries, categorical frequency tables, and per-column
        missing counts, all in schema order.
    """
    numeric: list[NumericSummary] = []
    categorical: list[CategoricalSummary] = []
    missing_counts: list[tuple[str, int]] = []
    for column in record_set.columns:
        values = record_set.column_values(column.name)
        missing_counts.append((column.name, sum(1 for value in values if is_missing(value))))
        if column.column_type in NUMERIC_COLUMN_TYPES:
            numeric.append(summarize_numeric(column.name, values))
        elif column.column_type in CATEGORICAL_COLUMN_TYPES:
            categorical.append(summarize_categorical(column.name, values))
    return Summary(
        row_count=record_set.row_count,
        numeric=tuple(numeric),
        categorical=tuple(categorical),
        missing_counts=tuple(missing_counts),
    )


def summarize_numeric(column: str, values: list) -> NumericSummary:
    """Compute statistics over the present values of one column.

    Args:
        column: Column name.
        values: Column values, possibly including the missing marker.

    Returns:
        Statistics over present values; standard deviation is the sample
        deviation and needs at least two values.
    """
    present = [float(value) for value in values if not is_missing(value)]
    missing_count = len(values) - len(present)
    if not present:
        return NumericSummary(column, 0, missing_count, None, None, None, None)
    std_dev = statistics.stdev(present) if len(present) > 1 else None
    return NumericSummary(
        column=column,
        count=len(present),
        missing_count=missing_count,
        minimum=min(present),
        maximum=max(present),
        mean=statistics.fmean(present),
        std_dev=std_dev,
    )


def summarize_categorical(column: str, values: list) -> CategoricalSummary:
    """Count labels, most frequent first and ties in label order.

    Args:
        column: Column name.
        values: Column values, possibly including the missing marker.

    Returns:
        Frequency table plus missing count.
    """
    counts: dict[str, int] = {}
    missing_count = 0
    for value in values:
        if is_missing(value):
            missing_count += 1
            continue
        label = str(coerce_value(value, "categorical"))
        counts[label] = counts.get(label, 0) + 1
    frequencies = tuple(sorted(counts.items(), key=lambda item: (-item[1], item[0])))
    return CategoricalSummary(column=column, frequencies=frequencies, missing_count=missing_count)
