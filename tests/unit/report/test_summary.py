"""Unit tests for summary statistics."""

from __future__ import annotations

import pytest

from core.types import RecordSet
from core.values import MISSING
from report.summary import summarize, summarize_categorical, summarize_numeric
from tests.fixture_paths import permit_record_set


def test_summarize_numeric_excludes_missing_values() -> None:
    """Missing values are counted, never treated as zero."""
    stats = summarize_numeric("x", [2, 4, MISSING, 6])

    assert stats.mean == 4
    assert stats.missing_count == 1
    assert stats.count == 3
    assert (stats.minimum, stats.maximum) == (2, 6)
    assert stats.std_dev == pytest.approx(2.0)


def test_summarize_numeric_handles_sparse_columns() -> None:
    """Deviation needs two values and an all-missing column has no statistics."""
    single = summarize_numeric("x", [5])
    empty = summarize_numeric("x", [MISSING, MISSING])

    assert single.mean == 5 and single.std_dev is None
    assert empty.count == 0 and empty.mean is None and empty.missing_count == 2


def test_summarize_categorical_orders_by_count_then_label() -> None:
    """Frequencies list the most common label first with ties by label."""
    table = summarize_categorical("g", ["b", "a", "b", MISSING, "c", "a", "b"])

    assert table.frequencies == (("b", 3), ("a", 2), ("c", 1))
    assert table.missing_count == 1


def test_summarize_covers_numeric_and_categorical_columns() -> None:
    """Numeric and categorical columns get tables; every column gets a missing count."""
    record_set = RecordSet.from_dicts(
        [
            {"age": 30, "region": "north", "smoker": True},
            {"age": MISSING, "region": "south", "smoker": False},
            {"age": 40, "region": "north", "smoker": True},
        ],
        column_types={"region": "categorical"},
    )

    summary = summarize(record_set)

    assert summary.row_count == 3
    assert [stats.column for stats in summary.numeric] == ["age"]
    assert [table.column for table in summary.categorical] == ["region", "smoker"]
    assert summary.categorical[1].frequencies == (("true", 2), ("false", 1))
    assert dict(summary.missing_counts) == {"age": 1, "region": 0, "smoker": 0}


def test_summarize_skips_text_and_list_columns() -> None:
    """Free text and list columns have no statistics table."""
    summary = summarize(permit_record_set())

    assert [stats.column for stats in summary.numeric] == ["permit_id", "weight"]
    assert summary.categorical == ()
