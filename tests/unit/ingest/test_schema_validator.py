"""Unit tests for schema validation."""

from __future__ import annotations

from core.types import RecordSet
from core.values import MISSING
from ingest.schema_validator import apply_declared_types, validate_record_set
from tests.fixture_paths import permit_record_set


def test_validate_record_set_accepts_matching_schema() -> None:
    """Matching columns and types should validate cleanly."""
    report = validate_record_set(
        permit_record_set(),
        {"permit_id": "integer", "zip_city": "string", "weight": "real", "genres": "string_list"},
    )

    assert report.is_valid
    assert report.describe() == ()


def test_validate_record_set_reports_missing_and_unexpected_columns() -> None:
    """Schema drift should list missing and unexpected columns, sorted."""
    report = validate_record_set(
        permit_record_set(),
        {"permit_id": "integer", "zip_city": "string", "status": "string", "owner": "string"},
    )

    assert report.missing_columns == ("owner", "status")
    assert report.unexpected_columns == ("genres", "weight")


def test_validate_record_set_reports_type_mismatch_with_example() -> None:
    """Mistyped columns should report the offending count and an example."""
    record_set = RecordSet.from_dicts([{"age": "34"}, {"age": "old"}, {"age": MISSING}])

    report = validate_record_set(record_set, {"age": "integer"})

    mismatch = report.type_mismatches[0]
    assert mismatch.column == "age"
    assert mismatch.observed_type == "string"
    assert mismatch.offending_count == 2
    assert mismatch.example_value == "34"


def test_validate_record_set_treats_integers_as_reals() -> None:
    """Integer values conform to an expected real column."""
    record_set = RecordSet.from_dicts([{"weight": 3}, {"weight": 4}])

    assert validate_record_set(record_set, {"weight": "real"}).is_valid


def test_apply_declared_types_fixes_conforming_columns() -> None:
    """Declared types replace inferred ones only where values conform."""
    record_set = RecordSet.from_dicts(
        [{"borough": "Bronx", "age": "34"}, {"borough": "Queens", "age": "old"}]
    )
    expected = {"borough": "categorical", "age": "integer"}
    report = validate_record_set(record_set, expected)

    typed = apply_declared_types(record_set, expected, report)

    assert typed.column_type("borough") == "categorical"
    assert typed.column_type("age") == "string"
    assert typed.rows == record_set.rows
