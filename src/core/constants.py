"""Core constants used across NODS modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_CREDENTIAL_FILE = Path("api_key.txt")
DEFAULT_CREDENTIAL_HEADER = "X-App-Token"
DEFAULT_FETCH_ATTEMPTS = 1
DEFAULT_LIST_DELIMITER = ","
PIPELINE_SPEC_VERSION = 1
MISSING_TEXT_TOKENS = ("", "NA")
MISSING_DISPLAY_TEXT = "NA"
LIST_DISPLAY_SEPARATOR = ";"
SUPPORTED_COLUMN_TYPES = (
    "string",
    "integer",
    "real",
    "categorical",
    "boolean",
    "string_list",
)
NUMERIC_COLUMN_TYPES = ("integer", "real")
CATEGORICAL_COLUMN_TYPES = ("categorical", "boolean")
SUPPORTED_FILE_EXTENSIONS = (".jsonl", ".json", ".csv")
HTTP_SCHEMES = ("http://", "https://")
TRUE_TOKENS = ("true", "t", "yes", "y", "1")
FALSE_TOKENS = ("false", "f", "no", "n", "0")
