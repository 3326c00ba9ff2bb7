"""Unit tests for ordered derivations."""

from __future__ import annotations

import math

import pytest

from core.errors import NodsTransformError
from core.types import RecordSet
from core.values import MISSING
from tests.fixture_paths import permit_record_set
from transforms.derivations import (
    DerivationRule,
    apply_derivations,
    coerce_rule,
    collapse_rule,
    fill_missing_rule,
    list_length_rule,
    log_rule,
    pick_label_rule,
    ratio_rule,
    regex_extract_rule,
    regex_replace_rule,
)

_ADD_A = DerivationRule("a", ("x",), "integer", lambda row: row["x"] + 1)  # type: ignore[operator]
_ADD_B_FROM_A = DerivationRule("b", ("a",), "integer", lambda row: row["a"] * 10)  # type: ignore[operator]


def _numbers() -> RecordSet:
    return RecordSet.from_dicts([{"x": 1}, {"x": 2}, {"x": 3}])


def test_later_rules_see_earlier_outputs() -> None:
    """A rule should read a column derived earlier in the same pass."""
    derived, failures = apply_derivations(_numbers(), [_ADD_A, _ADD_B_FROM_A])

    assert failures == ()
    assert derived.column_names == ("x", "a", "b")
    assert [row["b"] for row in derived.rows] == [20, 30, 40]


def test_reversed_rule_order_fails_with_missing_input() -> None:
    """A rule declared before its input producer fails every row."""
    derived, failures = apply_derivations(_numbers(), [_ADD_B_FROM_A, _ADD_A])

    assert derived.is_empty
    assert [failure.rule_name for failure in failures] == ["b", "b", "b"]
    assert "missing input" in failures[0].message


def test_failing_row_is_dropped_while_others_proceed() -> None:
    """One bad row should be reported without aborting the others."""
    record_set = RecordSet.from_dicts([{"w": 10.0}, {"w": 0.0}, {"w": MISSING}, {"w": 100.0}])

    derived, failures = apply_derivations(record_set, [log_rule("log_w", "w", base=10)])

    assert [row["log_w"] for row in derived.rows] == [
        pytest.approx(1.0),
        MISSING,
        pytest.approx(2.0),
    ]
    assert [(failure.row_index, failure.rule_name) for failure in failures] == [(1, "log_w")]
    assert "non-positive" in failures[0].message


def test_apply_derivations_rejects_existing_output_name() -> None:
    """Rules may not overwrite existing columns."""
    with pytest.raises(NodsTransformError, match="overwrite"):
        apply_derivations(permit_record_set(), [coerce_rule("weight", "permit_id", "real")])


def test_apply_derivations_leaves_input_untouched() -> None:
    """Deriving should build a new record set."""
    record_set = _numbers()

    apply_derivations(record_set, [_ADD_A])

    assert record_set.column_names == ("x",)
    assert "a" not in record_set.rows[0]


def test_coerce_rule_truncates_reals() -> None:
    """Coercing reals to integers truncates toward zero."""
    record_set = RecordSet.from_dicts([{"w": 2.9}, {"w": -2.9}])

    derived, _ = apply_derivations(record_set, [coerce_rule("w_int", "w", "integer")])

    assert [row["w_int"] for row in derived.rows] == [2, -2]


def test_coerce_rule_failure_drops_row() -> None:
    """Text that cannot become a number fails only its own row."""
    record_set = RecordSet.from_dicts([{"age": "34"}, {"age": "old"}])

    derived, failures = apply_derivations(record_set, [coerce_rule("age_n", "age", "integer")])

    assert [row["age_n"] for row in derived.rows] == [34]
    assert failures[0].row_index == 1


def test_ratio_rule_rejects_zero_denominator() -> None:
    """Division by zero fails the row."""
    record_set = RecordSet.from_dicts([{"a": 1, "b": 4}, {"a": 1, "b": 0}])

    derived, failures = apply_derivations(record_set, [ratio_rule("r", "a", "b")])

    assert [row["r"] for row in derived.rows] == [0.25]
    assert "zero" in failures[0].message


def test_collapse_rule_maps_labels_and_keeps_missing() -> None:
    """Collapsing should map known labels, group the rest, and keep missing."""
    record_set = RecordSet.from_dicts([{"g": "horror"}, {"g": "drama"}, {"g": MISSING}])
    rule = collapse_rule("group", "g", {"horror": "genre"}, other="other")

    derived, _ = apply_derivations(record_set, [rule])

    assert derived.column_type("group") == "categorical"
    assert [row["group"] for row in derived.rows] == ["genre", "other", MISSING]


def test_fill_missing_rule_is_explicit_imputation() -> None:
    """Only the fill rule replaces the missing marker."""
    record_set = RecordSet.from_dicts([{"w": 3.0}, {"w": MISSING}])

    derived, _ = apply_derivations(record_set, [fill_missing_rule("w_filled", "w", 0.0, "real")])

    assert [row["w_filled"] for row in derived.rows] == [3.0, 0.0]
    assert derived.rows[1]["w"] is MISSING


def test_regex_rules_replace_and_extract() -> None:
    """Regex rules should rewrite text and extract groups."""
    record_set = RecordSet.from_dicts([{"title": "Alien (1979)"}, {"title": "Untitled"}])
    rules = [
        regex_replace_rule("clean", "title", r"\s*\(\d{4}\)", ""),
        regex_extract_rule("year", "title", r"\((\d{4})\)", group=1),
    ]

    derived, _ = apply_derivations(record_set, rules)

    assert [row["clean"] for row in derived.rows] == ["Alien", "Untitled"]
    assert [row["year"] for row in derived.rows] == ["1979", MISSING]


def test_list_length_rule_counts_empty_list_as_zero() -> None:
    """An empty list is zero labels, not missing."""
    derived, _ = apply_derivations(permit_record_set(), [list_length_rule("n", "genres")])

    assert [row["n"] for row in derived.rows] == [2, 1, 0, 1]


def test_pick_label_rule_is_seeded_and_order_independent() -> None:
    """Seeded picks should depend only on the seed and the label set."""
    record_set = RecordSet.from_dicts(
        [{"g": ("comedy", "drama", "horror")}, {"g": ("horror", "comedy", "drama")}, {"g": ()}]
    )
    rule = pick_label_rule("genre", "g", seed=20)

    first, _ = apply_derivations(record_set, [rule])
    second, _ = apply_derivations(record_set, [pick_label_rule("genre", "g", seed=20)])

    picks = [row["genre"] for row in first.rows]
    assert picks == [row["genre"] for row in second.rows]
    assert picks[0] == picks[1]
    assert picks[0] in ("comedy", "drama", "horror")
    assert picks[2] is MISSING


def test_pick_label_rule_requires_integer_seed() -> None:
    """A seedless pick is a configuration error."""
    with pytest.raises(NodsTransformError):
        pick_label_rule("genre", "g", seed=None)  # type: ignore[arg-type]


def test_log_rule_uses_natural_log_by_default() -> None:
    """Without a base the rule takes the natural logarithm."""
    derived, _ = apply_derivations(RecordSet.from_dicts([{"w": math.e}]), [log_rule("l", "w")])

    assert derived.rows[0]["l"] == pytest.approx(1.0)


def test_regex_replace_rule_rejects_unknown_group_reference() -> None:
    """A replacement naming a group the pattern lacks fails at build time."""
    with pytest.raises(NodsTransformError, match="replacement"):
        regex_replace_rule("r", "title", "a", r"\1")


def test_regex_replace_rule_keeps_valid_group_reference() -> None:
    """Replacements may reference groups the pattern defines."""
    record_set = RecordSet.from_dicts([{"title": "abc"}, {"title": "xyz"}])

    derived, failures = apply_derivations(
        record_set, [regex_replace_rule("r", "title", "(a)", r"\1\1")]
    )

    assert failures == ()
    assert [row["r"] for row in derived.rows] == ["aabc", "xyz"]


@pytest.mark.parametrize("group", [-1, 2])
def test_regex_extract_rule_rejects_out_of_range_group(group: int) -> None:
    """Negative and too-large groups fail before any row runs."""
    with pytest.raises(NodsTransformError, match="group"):
        regex_extract_rule("r", "title", "(a)", group=group)
