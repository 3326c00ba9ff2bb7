"""Shared typed models.

This module defines immutable data models used by source, validation,
transform, and report layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from core.errors import NodsSchemaError
from core.values import MISSING, ColumnType, Value, infer_column_type, value_conforms

Row = Mapping[str, Value]


@dataclass(frozen=True)
class ColumnSpec:
    """One named, typed column.

    Attributes:
        name: Column name.
        column_type: Semantic type fixed at ingestion.
    """

    name: str
    column_type: ColumnType


@dataclass(frozen=True)
class RecordSet:
    """Ordered rows sharing one fixed column schema.

    Every row holds exactly the declared columns and every present value
    conforms to its column type. Stages build new record sets instead of
    mutating rows in place.

    Attributes:
        columns: Ordered column schema.
        rows: Row mappings keyed by column name.
    """

    columns: tuple[ColumnSpec, ...]
    rows: tuple[dict[str, Value], ...] = ()

    def __post_init__(self) -> None:
        names = [column.name for column in self.columns]
        if len(set(names)) != len(names):
            raise NodsSchemaError(f"Duplicate column names in schema: {names}.")
        expected = set(names)
        for index, row in enumerate(self.rows):
            if set(row) != expected:
                raise NodsSchemaError(
                    f"Row {index} columns {sorted(row)} do not match schema {sorted(expected)}. "
                    "Every row must carry exactly the declared columns."
                )
            for column in self.columns:
                value = row[column.name]
                if not value_conforms(value, column.column_type):
                    raise NodsSchemaError(
                        f"Row {index} value {value!r} in column '{column.name}' "
                        f"does not conform to type '{column.column_type}'."
                    )

    @classmethod
    def from_dicts(
        cls,
        rows: Iterable[Mapping[str, Value]],
        column_types: Mapping[str, ColumnType] | None = None,
    ) -> "RecordSet":
        """Build a record set from loose row mappings.

        Columns are the union of keys in first-seen order. Absent keys are
        filled with ``MISSING``. Types come from ``column_types`` when given
        and are otherwise inferred from the observed values.

        Args:
            rows: Row mappings.
            column_types: Optional explicit types by column name.

        Returns:
            Validated record set.
        """
        row_list = [dict(row) for row in rows]
        names: list[str] = list(column_types or {})
        for row in row_list:
            for name in row:
                if name not in names:
                    names.append(name)
        filled = tuple({name: row.get(name, MISSING) for name in names} for row in row_list)
        explicit = column_types or {}
        columns = tuple(
            ColumnSpec(
                name=name,
                column_type=explicit.get(name)
                or infer_column_type(row[name] for row in filled),
            )
            for name in names
        )
        return cls(columns=columns, rows=filled)

    @property
    def column_names(self) -> tuple[str, ...]:
        """Column names in schema order."""
        return tuple(column.name for column in self.columns)

    @property
    def row_count(self) -> int:
        """Number of rows."""
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        """Whether no rows matched; an empty set is a valid result."""
        return not self.rows

    def has_column(self, name: str) -> bool:
        """Return whether the schema declares a column."""
        return name in self.column_names

    def column_type(self, name: str) -> ColumnType:
        """Return the declared type of a column.

        Raises:
            KeyError: If the column is not declared.
        """
        for column in self.columns:
            if column.name == name:
                return column.column_type
        raise KeyError(name)

    def column_values(self, name: str) -> list[Value]:
        """Return all values of one column in row order."""
        return [row[name] for row in self.rows]


@dataclass(frozen=True)
class FetchRequest:
    """One request against a record source.

    Attributes:
        endpoint: URL, file path, or in-memory label.
        filter_params: Field-name to value filters passed to the source.
    """

    endpoint: str
    filter_params: Mapping[str, object] = field(default_factory=dict)

    def describe(self) -> str:
        """Render the request for error messages."""
        if not self.filter_params:
            return f"{self.endpoint} (no filter parameters)"
        params = ", ".join(f"{key}={value!r}" for key, value in self.filter_params.items())
        return f"{self.endpoint} with {params}"


@dataclass(frozen=True)
class TypeMismatch:
    """Observed values violating an expected column type.

    Attributes:
        column: Column name.
        expected_type: Type the caller expected.
        observed_type: Type recorded in the record set schema.
        offending_count: Number of present values that do not conform.
        example_value: First offending value.
    """

    column: str
    expected_type: ColumnType
    observed_type: ColumnType
    offending_count: int
    example_value: Value


@dataclass(frozen=True)
class ValidationReport:
    """Schema comparison between a record set and expectations.

    Attributes:
        missing_columns: Expected columns absent from the record set.
        unexpected_columns: Record set columns nobody expected.
        type_mismatches: Columns whose values violate the expected type.
    """

    missing_columns: tuple[str, ...] = ()
    unexpected_columns: tuple[str, ...] = ()
    type_mismatches: tuple[TypeMismatch, ...] = ()

    @property
    def is_valid(self) -> bool:
        """Whether the record set matches expectations exactly."""
        return not (self.missing_columns or self.unexpected_columns or self.type_mismatches)

    def describe(self) -> tuple[str, ...]:
        """Render one readable line per detected problem."""
        lines = [f"missing column '{name}'" for name in self.missing_columns]
        lines.extend(f"unexpected column '{name}'" for name in self.unexpected_columns)
        for mismatch in self.type_mismatches:
            lines.append(
                f"column '{mismatch.column}' expected {mismatch.expected_type} "
                f"but observed {mismatch.observed_type} "
                f"({mismatch.offending_count} offending values, "
                f"e.g. {mismatch.example_value!r})"
            )
        return tuple(lines)


@dataclass(frozen=True)
class DerivationFailure:
    """One dropped row and the reason it was dropped.

    Attributes:
        row_index: Zero-based index of the row in the stage input.
        rule_name: Derivation rule that failed.
        message: Error message from the rule.
    """

    row_index: int
    rule_name: str
    message: str


@dataclass(frozen=True)
class NumericSummary:
    """Descriptive statistics for one numeric column.

    Missing values are excluded from every statistic. They are counted,
    not imputed.

    Attributes:
        column: Column name.
        count: Number of present values.
        missing_count: Number of missing values.
        minimum: Smallest present value.
        maximum: Largest present value.
        mean: Arithmetic mean of present values.
        std_dev: Sample standard deviation (n - 1), None below two values.
    """

    column: str
    count: int
    missing_count: int
    minimum: float | None
    maximum: float | None
    mean: float | None
    std_dev: float | None


@dataclass(frozen=True)
class CategoricalSummary:
    """Frequency table for one categorical column.

    Attributes:
        column: Column name.
        frequencies: (label, count) pairs, most frequent first, ties by label.
        missing_count: Number of missing values.
    """

    column: str
    frequencies: tuple[tuple[str, int], ...]
    missing_count: int


@dataclass(frozen=True)
class Summary:
    """Summary tables for a whole record set."""

    row_count: int
    numeric: tuple[NumericSummary, ...]
    categorical: tuple[CategoricalSummary, ...]
    missing_counts: tuple[tuple[str, int], ...]


@dataclass(frozen=True)
class PipelineResult:
    """Final output of one pipeline run.

    Attributes:
        record_set: Projected record set after all stages.
        validation: Validation report for the fetched record set.
        failures: Aggregated derivation failures in stage order.
        summary: Optional summary of the final record set.
    """

    record_set: RecordSet
    validation: ValidationReport
    failures: tuple[DerivationFailure, ...]
    summary: Summary | None
