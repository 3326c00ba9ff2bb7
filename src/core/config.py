"""Runtime configuration model for NODS.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import os
from pathlib import Path

from core.constants import DEFAULT_CREDENTIAL_FILE, DEFAULT_FETCH_ATTEMPTS
from core.errors import NodsConfigError


@dataclass(frozen=True)
class NodsConfig:
    """Validated runtime configuration.

    Attributes:
        credential_path: Access credential file, relative to the working tree.
        request_timeout: Optional fetch timeout in seconds. HTTP sources fail
            when neither this nor the pipeline file provides one.
        random_seed: Optional seed for seeded label selection.
        fetch_attempts: Attempts allowed for transient fetch failures.
    """

    credential_path: Path
    request_timeout: float | None
    random_seed: int | None
    fetch_attempts: int

    @classmethod
    def from_env(cls) -> "NodsConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            NodsConfigError: If environment values are invalid.
        """
        credential_value = os.getenv("NODS_CREDENTIAL_FILE", str(DEFAULT_CREDENTIAL_FILE))
        timeout_value = os.getenv("NODS_REQUEST_TIMEOUT")
        seed_value = os.getenv("NODS_RANDOM_SEED")
        attempts_value = os.getenv("NODS_FETCH_ATTEMPTS", str(DEFAULT_FETCH_ATTEMPTS))
        return cls(
            credential_path=Path(credential_value).expanduser(),
            request_timeout=_parse_timeout(timeout_value),
            random_seed=_parse_random_seed(seed_value),
            fetch_attempts=_parse_fetch_attempts(attempts_value),
        )


def _parse_timeout(raw_value: str | None) -> float | None:
    """Parse the request timeout environment value.

    Args:
        raw_value: Raw string from environment, if set.

    Returns:
        Positive timeout in seconds, or None when unset.

    Raises:
        NodsConfigError: If value is not a positive number.
    """
    if raw_value is None or not raw_value.strip():
        return None
    try:
        timeout = float(raw_value)
    except ValueError as error:
        raise NodsConfigError(
            "Invalid NODS_REQUEST_TIMEOUT value: "
            f"expected seconds as a number, got '{raw_value}'. "
            "Set NODS_REQUEST_TIMEOUT to a positive number."
        ) from error
    if not math.isfinite(timeout) or timeout <= 0:
        raise NodsConfigError(
            f"Invalid NODS_REQUEST_TIMEOUT value '{raw_value}': timeout must be positive."
        )
    return timeout


def _parse_random_seed(raw_value: str | None) -> int | None:
    """Parse the random seed environment value.

    Args:
        raw_value: Raw string from environment, if set.

    Returns:
        Parsed integer seed, or None when unset.

    Raises:
        NodsConfigError: If value cannot be parsed into int.
    """
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return int(raw_value)
    except ValueError as error:
        raise NodsConfigError(
            "Invalid NODS_RANDOM_SEED value: "
            f"expected integer, got '{raw_value}'. "
            "Set NODS_RANDOM_SEED to a numeric value."
        ) from error


def _parse_fetch_attempts(raw_value: str) -> int:
    try:
        attempts = int(raw_value)
    except ValueError as error:
        raise NodsConfigError(
            "Invalid NODS_FETCH_ATTEMPTS value: "
            f"expected integer, got '{raw_value}'. "
            "Set NODS_FETCH_ATTEMPTS to 1 or more."
        ) from error
    if attempts < 1:
        raise NodsConfigError(
            f"Invalid NODS_FETCH_ATTEMPTS value {attempts}: at least one attempt is required."
        )
    return attempts
