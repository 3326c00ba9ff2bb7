"""Tagged cell values and explicit coercion rules.

This module defines the missingness marker, the supported column types,
and every conversion between them. Coercions never guess: each target
type documents how it treats numbers, text, and missing input.
"""

from __future__ import annotations

import math
from typing import Iterable, Literal, Union

from core.constants import (
    DEFAULT_LIST_DELIMITER,
    FALSE_TOKENS,
    MISSING_TEXT_TOKENS,
    TRUE_TOKENS,
)
from core.errors import CoercionError

ColumnType = Literal["string", "integer", "real", "categorical", "boolean", "string_list"]


class Missing:
    """Marker for a value that is not present.

    There is exactly one instance, ``MISSING``. It is falsy but never
    equal to ``""``, ``0``, ``False`` or an empty list.
    """

    _instance: "Missing | None" = None

    def __new__(cls) -> "Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "MISSING"


MISSING = Missing()

Value = Union[str, int, float, bool, tuple[str, ...], Missing]


def is_missing(value: object) -> bool:
    """Return whether a value is the missingness marker."""
    return value is MISSING


def infer_column_type(values: Iterable[Value]) -> ColumnType:
    """Infer one column type from observed values.

    Args:
        values: Cell values of one column. ``MISSING`` is ignored.

    Returns:
        The narrowest type that every present value conforms to.
        All-missing and mixed columns infer as ``string``.
    """
    observed: set[str] = set()
    for value in values:
        if is_missing(value):
            continue
        observed.add(_value_kind(value))
    if not observed:
        return "string"
    if observed == {"integer"}:
        return "integer"
    if observed <= {"integer", "real"}:
        return "real"
    if len(observed) == 1:
        kind = observed.pop()
        if kind in ("boolean", "string", "string_list"):
            return kind  # type: ignore[return-value]
    return "string"


def value_conforms(value: Value, column_type: ColumnType) -> bool:
    """Check whether a value may be stored in a column of a type.

    Args:
        value: Cell value.
        column_type: Declared column type.

    Returns:
        True when the value is missing or has the declared shape.
    """
    if is_missing(value):
        return True
    if column_type in ("string", "categorical"):
        return isinstance(value, str)
    if column_type == "boolean":
        return isinstance(value, bool)
    if column_type == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if column_type == "real":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if column_type == "string_list":
        return isinstance(value, tuple) and all(isinstance(item, str) for item in value)
    return False


def coerce_value(
    value: Value,
    column_type: ColumnType,
    list_delimiter: str = DEFAULT_LIST_DELIMITER,
) -> Value:
    """Convert a value to a column type.

    Rules:
        integer: reals truncate toward zero (``2.9 -> 2``, ``-2.9 -> -2``);
            numeric text is parsed with the same truncation; booleans and
            non-finite reals are rejected.
        real: integers widen; numeric text is parsed; non-finite is rejected.
        boolean: ``0``/``1`` and the true/false text tokens only.
        string, categorical: numbers via ``str``; booleans as ``true``/``false``.
        string_list: text splits on ``list_delimiter`` with blanks removed,
            so ``""`` becomes an empty list rather than missing.
        ``MISSING`` stays ``MISSING`` for every target type.

    Raises:
        CoercionError: If the value cannot be represented.
    """
    if is_missing(value):
        return MISSING
    if column_type == "integer":
        return _to_integer(value)
    if column_type == "real":
        return _to_real(value)
    if column_type == "boolean":
        return _to_boolean(value)
    if column_type in ("string", "categorical"):
        return _to_text(value)
    if column_type == "string_list":
        return _to_string_list(value, list_delimiter)
    raise CoercionError(f"Unsupported column type '{column_type}'.")


def parse_text_cell(text: str) -> Value:
    """Parse a delimited-text cell into a typed value.

    ``""`` and ``NA`` load as ``MISSING``; integer and real literals load
    as numbers; any other text is kept verbatim. Digits with a leading
    zero (``02134``) and literals with ``_`` separators stay text.
    """
    stripped = text.strip()
    if stripped in MISSING_TEXT_TOKENS:
        return MISSING
    if "_" in stripped or _has_leading_zero(stripped):
        return text
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        parsed = float(stripped)
    except ValueError:
        return text
    return parsed if math.isfinite(parsed) else text


def _has_leading_zero(text: str) -> bool:
    digits = text.lstrip("+-")
    return len(digits) > 1 and digits[0] == "0" and digits[1].isdigit()


def from_json_value(value: object) -> Value:
    """Convert a decoded JSON value into a cell value.

    Raises:
        CoercionError: If the value is a nested object or a non-text list.
    """
    if value is None:
        return MISSING
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, list):
        if all(isinstance(item, str) for item in value):
            return tuple(value)
        raise CoercionError(f"Unsupported list value {value!r}: only lists of text are allowed.")
    raise CoercionError(f"Unsupported value {value!r}: nested objects are not tabular.")


def to_json_value(value: Value) -> object:
    """Convert a cell value into a JSON-serializable value."""
    if is_missing(value):
        return None
    if isinstance(value, tuple):
        return list(value)
    return value


def _value_kind(value: Value) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "real"
    if isinstance(value, str):
        return "string"
    if isinstance(value, tuple):
        return "string_list"
    return "unknown"


def _to_integer(value: Value) -> int:
    if isinstance(value, bool):
        raise CoercionError(f"Cannot coerce boolean {value!r} to integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CoercionError(f"Cannot coerce non-finite real {value!r} to integer.")
        return math.trunc(value)
    if isinstance(value, str):
        parsed = parse_text_cell(value)
        if isinstance(parsed, (int, float)) and not isinstance(parsed, bool):
            return _to_integer(parsed)
    raise CoercionError(f"Cannot coerce {value!r} to integer.")


def _to_real(value: Value) -> float:
    if isinstance(value, bool):
        raise CoercionError(f"Cannot coerce boolean {value!r} to real.")
    if isinstance(value, (int, float)):
        result = float(value)
        if not math.isfinite(result):
            raise CoercionError(f"Cannot store non-finite real {value!r}.")
        return result
    if isinstance(value, str):
        parsed = parse_text_cell(value)
        if isinstance(parsed, (int, float)) and not isinstance(parsed, bool):
            return float(parsed)
    raise CoercionError(f"Cannot coerce {value!r} to real.")


def _to_boolean(value: Value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in TRUE_TOKENS:
            return True
        if token in FALSE_TOKENS:
            return False
    raise CoercionError(f"Cannot coerce {value!r} to boolean.")


def _to_text(value: Value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise CoercionError(f"Cannot coerce list {value!r} to text.")


def _to_string_list(value: Value, delimiter: str) -> tuple[str, ...]:
    if isinstance(value, tuple):
        return tuple(str(item) for item in value)
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(delimiter)]
        return tuple(part for part in parts if part)
    raise CoercionError(f"Cannot coerce {value!r} to a list of text.")
