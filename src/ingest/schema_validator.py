"""Schema comparison for fetched record sets.

This module reports schema drift between a record set and the columns a
caller expects. It never raises; the caller decides whether to abort.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Mapping

from core.types import RecordSet, TypeMismatch, ValidationReport
from core.values import ColumnType, is_missing, value_conforms


def validate_record_set(
    record_set: RecordSet,
    expected_columns: Mapping[str, ColumnType],
) -> ValidationReport:
    """Compare actual columns and values against expectations.

    Args:
        record_set: Record set to inspect.
        expected_columns: Expected column names mapped to their types.

    Returns:
        Report of missing, unexpected, and mistyped columns.
    """
    actual = set(record_set.column_names)
    expected = set(expected_columns)
    missing_columns = tuple(sorted(expected - actual))
    unexpected_columns = tuple(sorted(actual - expected))
    mismatches: list[TypeMismatch] = []
    for name, expected_type in expected_columns.items():
        if name not in actual:
            continue
        mismatch = _find_type_mismatch(record_set, name, expected_type)
        if mismatch is not None:
            mismatches.append(mismatch)
    return ValidationReport(
        missing_columns=missing_columns,
        unexpected_columns=unexpected_columns,
        type_mismatches=tuple(mismatches),
    )


def _find_type_mismatch(
    record_set: RecordSet,
    column: str,
    expected_type: ColumnType,
) -> TypeMismatch | None:
    """Collect present values that do not conform to the expected type.

    Categorical columns accept text values since labels load as text.
    """
    offending = [
        value
        for value in record_set.column_values(column)
        if not is_missing(value) and not value_conforms(value, expected_type)
    ]
    if not offending:
        return None
    return TypeMismatch(
        column=column,
        expected_type=expected_type,
        observed_type=record_set.column_type(column),
        offending_count=len(offending),
        example_value=offending[0],
    )


def apply_declared_types(
    record_set: RecordSet,
    expected_columns: Mapping[str, ColumnType],
    report: ValidationReport,
) -> RecordSet:
    """Fix declared types on the columns whose values already conform.

    Inference never yields ``categorical``, so a declared categorical text
    column only gets its type here. Mismatched and undeclared columns keep
    their inferred types.

    Args:
        record_set: Fetched record set.
        expected_columns: Expected column names mapped to their types.
        report: Validation report for ``record_set``.

    Returns:
        Record set sharing the same rows with the declared column types.
    """
    mismatched = {mismatch.column for mismatch in report.type_mismatches}
    columns = tuple(
        replace(column, column_type=expected_columns[column.name])
        if column.name in expected_columns and column.name not in mismatched
        else column
        for column in record_set.columns
    )
    if columns == record_set.columns:
        return record_set
    return RecordSet(columns=columns, rows=record_set.rows)
