"""Local tabular file readers for ingestion.

This module loads rows from JSONL, JSON array, and CSV files.
It normalizes cells into typed values for the in-memory record source.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from core.constants import SUPPORTED_FILE_EXTENSIONS
from core.errors import CoercionError, NodsSourceError
from core.types import RecordSet
from core.values import Value, from_json_value, parse_text_cell


def read_record_file(source_path: Path | str) -> RecordSet:
    """Load a record set from a local file.

    Args:
        source_path: ``.jsonl``, ``.json`` or ``.csv`` file.

    Returns:
        Record set with inferred column types.

    Raises:
        NodsSourceError: If the file is missing, unsupported, or malformed.
    """
    file_path = Path(source_path).expanduser()
    if not file_path.is_file():
        raise NodsSourceError(
            f"Failed to read source at {file_path}: file does not exist. "
            "Provide an existing data file."
        )
    suffix = file_path.suffix.lower()
    if suffix == ".jsonl":
        rows = _read_jsonl_rows(file_path)
    elif suffix == ".json":
        rows = _read_json_array_rows(file_path)
    elif suffix == ".csv":
        rows = _read_csv_rows(file_path)
    else:
        raise NodsSourceError(
            f"Unsupported source file {file_path}. "
            f"Supported extensions: {SUPPORTED_FILE_EXTENSIONS}."
        )
    return RecordSet.from_dicts(rows)


def _read_jsonl_rows(file_path: Path) -> list[dict[str, Value]]:
    """Read one object per non-blank line.

    Raises:
        NodsSourceError: If a line is not a JSON object.
    """
    rows: list[dict[str, Value]] = []
    text = _read_text(file_path)
    for line_number, line in enumerate(text.splitlines(), 1):
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as error:
            raise NodsSourceError(
                f"Failed to parse JSONL record at {file_path}:{line_number}: "
                f"{error.msg}. Fix the JSON syntax and retry."
            ) from error
        rows.append(row_from_json_object(payload, f"{file_path}:{line_number}"))
    return rows


def _read_json_array_rows(file_path: Path) -> list[dict[str, Value]]:
    """Read a JSON array of objects.

    Raises:
        NodsSourceError: If the document is not an array of objects.
    """
    try:
        payload = json.loads(_read_text(file_path))
    except json.JSONDecodeError as error:
        raise NodsSourceError(
            f"Failed to parse JSON document {file_path}: {error.msg}. Fix the JSON syntax."
        ) from error
    if not isinstance(payload, list):
        raise NodsSourceError(
            f"Invalid JSON document {file_path}: expected an array of row objects."
        )
    return [
        row_from_json_object(item, f"{file_path}[{index}]") for index, item in enumerate(payload)
    ]


def _read_csv_rows(file_path: Path) -> list[dict[str, Value]]:
    """Read a CSV file with a header row.

    Cells equal to ``""`` or ``NA`` load as missing.
    """
    with file_path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        if reader.fieldnames is None:
            return []
        rows: list[dict[str, Value]] = []
        for row in reader:
            if None in row:
                raise NodsSourceError(
                    f"Invalid CSV row at {file_path}:{reader.line_num}: "
                    "more cells than header columns."
                )
            rows.append({key: parse_text_cell(cell or "") for key, cell in row.items()})
    return rows


def row_from_json_object(payload: Any, context: str) -> dict[str, Value]:
    """Convert one decoded JSON object into a typed row.

    Args:
        payload: Decoded JSON value.
        context: Location used in error messages.

    Returns:
        Row mapping with typed values.

    Raises:
        NodsSourceError: If payload is not a flat object.
    """
    if not isinstance(payload, dict):
        raise NodsSourceError(
            f"Invalid record at {context}: expected a JSON object, "
            f"got {type(payload).__name__}."
        )
    row: dict[str, Value] = {}
    for key, raw_value in payload.items():
        try:
            row[str(key)] = from_json_value(raw_value)
        except CoercionError as error:
            raise NodsSourceError(f"Invalid field '{key}' at {context}: {error}") from error
    return row


def _read_text(file_path: Path) -> str:
    try:
        return file_path.read_text(encoding="utf-8")
    except OSError as error:
        raise NodsSourceError(
            f"Failed to read source at {file_path}: {error}. Check file permissions."
        ) from error
