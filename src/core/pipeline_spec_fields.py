"""Type-safe field parsing helpers for pipeline files.

This module centralizes primitive parsing so pipeline file sections
produce consistent validation errors.
"""

from __future__ import annotations

from typing import Mapping, Sequence, cast

from core.constants import SUPPORTED_COLUMN_TYPES
from core.errors import NodsPipelineSpecError
from core.values import ColumnType


def expect_mapping(value: object, context: str) -> Mapping[str, object]:
    """Require a mapping with string keys."""
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise NodsPipelineSpecError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise NodsPipelineSpecError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def expect_sequence(value: object, context: str) -> Sequence[object]:
    """Require a list that is not a string."""
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise NodsPipelineSpecError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def required_string(args: Mapping[str, object], field_name: str, context: str) -> str:
    """Read a required string field."""
    value = optional_string(args, field_name, context)
    if value is None:
        raise NodsPipelineSpecError(f"Invalid {context}: missing required field '{field_name}'.")
    return value


def optional_string(args: Mapping[str, object], field_name: str, context: str) -> str | None:
    """Read an optional string field."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    raise NodsPipelineSpecError(
        f"Invalid {context}: field '{field_name}' must be a string when provided."
    )


def raw_string(args: Mapping[str, object], field_name: str, context: str) -> str:
    """Read a required string field without stripping whitespace."""
    value = args.get(field_name)
    if isinstance(value, str):
        return value
    raise NodsPipelineSpecError(f"Invalid {context}: field '{field_name}' must be a string.")


def optional_int(args: Mapping[str, object], field_name: str, context: str) -> int | None:
    """Read an optional integer field."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise NodsPipelineSpecError(f"Invalid {context}: field '{field_name}' must be an integer.")
    return value


def optional_float(args: Mapping[str, object], field_name: str, context: str) -> float | None:
    """Read an optional numeric field."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise NodsPipelineSpecError(f"Invalid {context}: field '{field_name}' must be numeric.")
    return float(value)


def optional_bool(
    args: Mapping[str, object],
    field_name: str,
    context: str,
    default_value: bool,
) -> bool:
    """Read an optional boolean field."""
    value = args.get(field_name)
    if value is None:
        return default_value
    if isinstance(value, bool):
        return value
    raise NodsPipelineSpecError(f"Invalid {context}: field '{field_name}' must be true/false.")


def parse_column_type(raw_value: object, context: str) -> ColumnType:
    """Parse a column type name."""
    if isinstance(raw_value, str) and raw_value in SUPPORTED_COLUMN_TYPES:
        return cast(ColumnType, raw_value)
    supported_rows = ", ".join(SUPPORTED_COLUMN_TYPES)
    raise NodsPipelineSpecError(
        f"Invalid column type {raw_value!r} in {context}. Use one of: {supported_rows}."
    )


def reject_unknown_keys(
    mapping: Mapping[str, object],
    allowed_keys: set[str],
    context: str,
) -> None:
    """Fail when a mapping carries keys outside the allowed set."""
    unknown_keys = sorted(set(mapping) - allowed_keys)
    if unknown_keys:
        raise NodsPipelineSpecError(
            f"Invalid {context}: unknown field(s) {', '.join(unknown_keys)}."
        )
