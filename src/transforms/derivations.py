"""Ordered column derivations with per-row failure isolation.

This module applies derivation rules in declared order. Each rule adds
one column and may read columns derived earlier in the same pass. A row
whose rule fails is dropped and reported; the other rows continue.
"""

from __future__ import annotations

import math
import random
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

from core.errors import DerivationError, NodsTransformError
from core.types import ColumnSpec, DerivationFailure, RecordSet, Row
from core.values import MISSING, ColumnType, Value, coerce_value, is_missing


@dataclass(frozen=True)
class DerivationRule:
    """Compute one new column from existing columns of a row.

    Attributes:
        name: Output column name.
        inputs: Columns the rule reads; all must exist when it runs.
        output_type: Type of the new column; results are coerced to it.
        compute: Function from the row to the new value.
    """

    name: str
    inputs: tuple[str, ...]
    output_type: ColumnType
    compute: Callable[[Row], Value]

    def derive(self, row: Row) -> Value:
        """Compute the output value for one row.

        Raises:
            DerivationError: If an input is absent or computation fails.
        """
        absent = [name for name in self.inputs if name not in row]
        if absent:
            raise DerivationError(
                f"Rule '{self.name}' is missing input column(s) {', '.join(absent)}. "
                "Declare the rules that produce them first."
            )
        return coerce_value(self.compute(row), self.output_type)


def apply_derivations(
    record_set: RecordSet,
    rules: Iterable[DerivationRule],
) -> tuple[RecordSet, tuple[DerivationFailure, ...]]:
    """Apply rules in order to every row.

    Args:
        record_set: Input record set; left untouched.
        rules: Rules in the order they must run.

    Returns:
        New record set with one extra column per rule, and the failures
        for rows that were dropped.

    Raises:
        NodsTransformError: If two columns would share a name.
    """
    rule_list = list(rules)
    _check_output_names(record_set, rule_list)
    columns = record_set.columns + tuple(
        ColumnSpec(name=rule.name, column_type=rule.output_type) for rule in rule_list
    )
    rows: list[dict[str, Value]] = []
    failures: list[DerivationFailure] = []
    for row_index, source_row in enumerate(record_set.rows):
        row = dict(source_row)
        failure = _derive_row(row, row_index, rule_list)
        if failure is None:
            rows.append(row)
        else:
            failures.append(failure)
    return RecordSet(columns=columns, rows=tuple(rows)), tuple(failures)


def _derive_row(
    row: dict[str, Value],
    row_index: int,
    rules: list[DerivationRule],
) -> DerivationFailure | None:
    for rule in rules:
        try:
            row[rule.name] = rule.derive(row)
        except DerivationError as error:
            return DerivationFailure(row_index=row_index, rule_name=rule.name, message=str(error))
    return None


def _check_output_names(record_set: RecordSet, rules: list[DerivationRule]) -> None:
    seen = set(record_set.column_names)
    for rule in rules:
        if rule.name in seen:
            raise NodsTransformError(
                f"Derivation '{rule.name}' would overwrite an existing column. "
                "Choose a new output name."
            )
        seen.add(rule.name)


def coerce_rule(name: str, source: str, target_type: ColumnType) -> DerivationRule:
    """Copy a column converted to another type.

    Reals convert to integers by truncating toward zero.
    """
    return DerivationRule(name, (source,), target_type, lambda row: row[source])


def log_rule(name: str, source: str, base: float | None = None) -> DerivationRule:
    """Take the logarithm of a numeric column.

    Non-positive input fails the row instead of producing an undefined value.
    """

    def compute(row: Row) -> Value:
        value = row[source]
        if is_missing(value):
            return MISSING
        number = _require_number(value, name)
        if number <= 0:
            raise DerivationError(
                f"Rule '{name}' cannot take the logarithm of non-positive value {value!r}."
            )
        return math.log(number) if base is None else math.log(number, base)

    return DerivationRule(name, (source,), "real", compute)


def ratio_rule(name: str, numerator: str, denominator: str) -> DerivationRule:
    """Divide one numeric column by another."""

    def compute(row: Row) -> Value:
        top, bottom = row[numerator], row[denominator]
        if is_missing(top) or is_missing(bottom):
            return MISSING
        divisor = _require_number(bottom, name)
        if divisor == 0:
            raise DerivationError(f"Rule '{name}' cannot divide by zero in '{denominator}'.")
        return _require_number(top, name) / divisor

    return DerivationRule(name, (numerator, denominator), "real", compute)


def collapse_rule(
    name: str,
    source: str,
    mapping: Mapping[str, str],
    other: str | None = None,
) -> DerivationRule:
    """Collapse category labels into fewer groups.

    Labels absent from ``mapping`` become ``other`` when given and are
    kept otherwise.
    """

    def compute(row: Row) -> Value:
        value = row[source]
        if is_missing(value):
            return MISSING
        label = coerce_value(value, "categorical")
        if label in mapping:
            return mapping[label]  # type: ignore[index]
        return other if other is not None else label

    return DerivationRule(name, (source,), "categorical", compute)


def fill_missing_rule(
    name: str,
    source: str,
    fill_value: Value,
    output_type: ColumnType,
) -> DerivationRule:
    """Replace missing values with an explicit constant.

    This is the only built-in rule that replaces the missing marker.
    """

    def compute(row: Row) -> Value:
        value = row[source]
        return fill_value if is_missing(value) else value

    return DerivationRule(name, (source,), output_type, compute)


def regex_replace_rule(name: str, source: str, pattern: str, replacement: str) -> DerivationRule:
    """Replace every match of a pattern in a text column.

    Group references in ``replacement`` are checked against the pattern
    when the rule is built, not when the first row matches.
    """
    compiled = _compile(name, pattern)
    try:
        compiled.sub(replacement, "")
    except (re.error, IndexError) as error:
        raise NodsTransformError(
            f"Rule '{name}' has an invalid replacement {replacement!r} "
            f"for pattern {pattern!r}: {error}."
        ) from error

    def compute(row: Row) -> Value:
        value = row[source]
        if is_missing(value):
            return MISSING
        try:
            return compiled.sub(replacement, _require_text(value, name))
        except (re.error, IndexError) as error:
            raise DerivationError(f"Rule '{name}' failed to replace {value!r}: {error}.") from error

    return DerivationRule(name, (source,), "string", compute)


def regex_extract_rule(name: str, source: str, pattern: str, group: int = 0) -> DerivationRule:
    """Extract the first match of a pattern; no match is missing."""
    compiled = _compile(name, pattern)
    if group < 0 or group > compiled.groups:
        raise NodsTransformError(
            f"Rule '{name}' asks for group {group} but pattern {pattern!r} "
            f"has {compiled.groups} group(s)."
        )

    def compute(row: Row) -> Value:
        value = row[source]
        if is_missing(value):
            return MISSING
        match = compiled.search(_require_text(value, name))
        if match is None or match.group(group) is None:
            return MISSING
        return match.group(group)

    return DerivationRule(name, (source,), "string", compute)


def list_length_rule(name: str, source: str) -> DerivationRule:
    """Count the labels in a list column; an empty list counts zero."""

    def compute(row: Row) -> Value:
        value = row[source]
        if is_missing(value):
            return MISSING
        if not isinstance(value, tuple):
            raise DerivationError(f"Rule '{name}' expects a list value, got {value!r}.")
        return len(value)

    return DerivationRule(name, (source,), "integer", compute)


def pick_label_rule(name: str, source: str, seed: int) -> DerivationRule:
    """Pick one label from a list column with a seeded random choice.

    The choice depends only on the seed and the set of labels, so runs
    are reproducible and independent of row order. An empty list yields
    a missing value.
    """
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise NodsTransformError(f"Rule '{name}' needs an integer seed, got {seed!r}.")

    def compute(row: Row) -> Value:
        value = row[source]
        if is_missing(value):
            return MISSING
        if not isinstance(value, tuple):
            raise DerivationError(f"Rule '{name}' expects a list value, got {value!r}.")
        if not value:
            return MISSING
        labels = sorted(set(value))
        chooser = random.Random(f"{seed}|{'|'.join(labels)}")
        return chooser.choice(labels)

    return DerivationRule(name, (source,), "categorical", compute)


def _require_number(value: Value, rule_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DerivationError(f"Rule '{rule_name}' expects a number, got {value!r}.")
    return value


def _require_text(value: Value, rule_name: str) -> str:
    if not isinstance(value, str):
        raise DerivationError(f"Rule '{rule_name}' expects text, got {value!r}.")
    return value


def _compile(rule_name: str, pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as error:
        raise NodsTransformError(
            f"Rule '{rule_name}' has an invalid regular expression {pattern!r}: {error}."
        ) from error
