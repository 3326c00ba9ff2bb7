"""Conjunctive row filtering.

This module keeps rows that satisfy every predicate in one pass.
Declarative column predicates cover the comparisons pipeline files use;
any plain callable over a row works as a predicate too.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Literal, Union

from core.errors import NodsTransformError
from core.types import RecordSet, Row
from core.values import Value, is_missing

FilterOperator = Literal[
    "equals",
    "not_equals",
    "one_of",
    "greater_than",
    "greater_or_equal",
    "less_than",
    "less_or_equal",
    "not_missing",
    "is_missing",
    "contains",
    "matches",
]
SUPPORTED_FILTER_OPERATORS: tuple[FilterOperator, ...] = (
    "equals",
    "not_equals",
    "one_of",
    "greater_than",
    "greater_or_equal",
    "less_than",
    "less_or_equal",
    "not_missing",
    "is_missing",
    "contains",
    "matches",
)
_VALUELESS_OPERATORS = ("not_missing", "is_missing")


@dataclass(frozen=True)
class ColumnPredicate:
    """Keep rows whose column value satisfies one comparison.

    A missing value fails every operator except ``is_missing``.

    Attributes:
        column: Column tested.
        operator: Comparison name.
        value: Comparison operand; a sequence for ``one_of``, a regex for
            ``matches``, unused for the missingness operators.
    """

    column: str
    operator: FilterOperator
    value: object = None

    def __post_init__(self) -> None:
        if self.operator not in SUPPORTED_FILTER_OPERATORS:
            supported = ", ".join(SUPPORTED_FILTER_OPERATORS)
            raise NodsTransformError(
                f"Unsupported filter operator '{self.operator}'. Use one of: {supported}."
            )
        if self.operator not in _VALUELESS_OPERATORS and self.value is None:
            raise NodsTransformError(
                f"Filter on '{self.column}' with operator '{self.operator}' needs a value."
            )
        if self.operator == "matches":
            try:
                re.compile(str(self.value))
            except re.error as error:
                raise NodsTransformError(
                    f"Invalid regular expression {self.value!r} for '{self.column}': {error}."
                ) from error

    def __call__(self, row: Row) -> bool:
        value = row[self.column]
        if self.operator == "is_missing":
            return is_missing(value)
        if is_missing(value):
            return False
        if self.operator == "not_missing":
            return True
        return _compare(value, self.operator, self.value)


Predicate = Union[ColumnPredicate, Callable[[Row], bool]]


def filter_rows(record_set: RecordSet, predicates: Iterable[Predicate]) -> RecordSet:
    """Keep rows for which every predicate returns True.

    Args:
        record_set: Input record set; left untouched.
        predicates: Predicates combined conjunctively. None keeps all rows.

    Returns:
        New record set with the same schema.

    Raises:
        NodsTransformError: If a column predicate names an unknown column.
    """
    predicate_list = list(predicates)
    _check_predicate_columns(record_set, predicate_list)
    kept = tuple(
        dict(row) for row in record_set.rows if all(predicate(row) for predicate in predicate_list)
    )
    return RecordSet(columns=record_set.columns, rows=kept)


def _check_predicate_columns(record_set: RecordSet, predicates: list[Predicate]) -> None:
    for predicate in predicates:
        if isinstance(predicate, ColumnPredicate) and not record_set.has_column(predicate.column):
            available = ", ".join(record_set.column_names)
            raise NodsTransformError(
                f"Filter references unknown column '{predicate.column}'. "
                f"Available columns: {available}."
            )


def _compare(value: Value, operator: FilterOperator, operand: object) -> bool:
    if operator == "equals":
        return _equal(value, operand)
    if operator == "not_equals":
        return not _equal(value, operand)
    if operator == "one_of":
        candidates = operand if isinstance(operand, (list, tuple, set, frozenset)) else (operand,)
        return any(_equal(value, candidate) for candidate in candidates)
    if operator == "contains":
        return isinstance(value, tuple) and operand in value
    if operator == "matches":
        return isinstance(value, str) and re.search(str(operand), value) is not None
    return _order(value, operator, operand)


def _equal(value: Value, operand: object) -> bool:
    if isinstance(value, tuple) and isinstance(operand, list):
        return value == tuple(operand)
    if isinstance(value, bool) or isinstance(operand, bool):
        return type(value) is type(operand) and value == operand
    return value == operand


def _order(value: Value, operator: FilterOperator, operand: object) -> bool:
    if not _orderable(value, operand):
        return False
    if operator == "greater_than":
        return value > operand  # type: ignore[operator]
    if operator == "greater_or_equal":
        return value >= operand  # type: ignore[operator]
    if operator == "less_than":
        return value < operand  # type: ignore[operator]
    return value <= operand  # type: ignore[operator]


def _orderable(value: object, operand: object) -> bool:
    numeric = (int, float)
    if isinstance(value, bool) or isinstance(operand, bool):
        return False
    if isinstance(value, numeric) and isinstance(operand, numeric):
        return True
    return isinstance(value, str) and isinstance(operand, str)
