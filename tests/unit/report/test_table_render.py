"""Unit tests for plain-text rendering."""

from __future__ import annotations

from core.types import DerivationFailure
from core.values import MISSING
from report.summary import summarize
from report.table_render import format_value, render_failures, render_summary, render_table
from tests.fixture_paths import permit_record_set


def test_format_value_renders_each_value_kind() -> None:
    """Cells should render missing, booleans, lists and reals readably."""
    assert format_value(MISSING) == "NA"
    assert format_value(False) == "false"
    assert format_value(("comedy", "drama")) == "comedy;drama"
    assert format_value(12.5) == "12.5"
    assert format_value("") == ""


def test_render_table_caps_rows() -> None:
    """Tables should print a header and note hidden rows."""
    lines = render_table(permit_record_set(), max_rows=2).splitlines()

    assert lines[0] == "permit_id\tzip_city\tweight\tgenres"
    assert lines[1] == "1\tBronx\t12.5\tcomedy;drama"
    assert lines[-1] == "... 2 more rows"
    assert len(lines) == 4


def test_render_summary_lists_numeric_statistics() -> None:
    """Summary text should carry counts and missing values per column."""
    text = render_summary(summarize(permit_record_set()))

    assert text.splitlines()[0] == "rows\t4"
    assert "weight\t3\t1\t8\t13.5\t20\t6.062" in text


def test_render_failures_lists_one_line_per_row() -> None:
    """Failures should show the row, rule and message."""
    text = render_failures((DerivationFailure(2, "log_weight", "non-positive"),))

    assert text == "row 2\tlog_weight\tnon-positive"
