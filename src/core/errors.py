"""NODS exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each pipeline stage raises a specific error type for debuggability.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.types import FetchRequest, ValidationReport


class NodsError(Exception):
    """Base exception for all NODS failures."""


class NodsConfigError(NodsError):
    """Raised for invalid runtime configuration."""


class NodsDependencyError(NodsError):
    """Raised when a runtime dependency is missing."""


class NodsPipelineSpecError(NodsError):
    """Raised for invalid or unsupported pipeline file configuration."""


class NodsSchemaError(NodsError):
    """Raised when rows do not match their declared column schema."""


class NodsTransformError(NodsError):
    """Raised for transform configuration failures that abort a stage."""


class NodsSourceError(NodsError):
    """Base error for record source failures.

    Attributes:
        request: Original request, when the failure happened during a fetch.
        status_code: HTTP status code returned by the endpoint, if any.
        server_message: Raw ``message`` text from the endpoint, if any.
    """

    is_transient = False

    def __init__(
        self,
        message: str,
        request: FetchRequest | None = None,
        status_code: int | None = None,
        server_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.status_code = status_code
        self.server_message = server_message


class SourceConnectionError(NodsSourceError):
    """Raised when the endpoint is unreachable or fails server-side."""

    is_transient = True


class SourceTimeoutError(NodsSourceError):
    """Raised when the endpoint does not answer within the timeout."""

    is_transient = True


class AuthenticationError(NodsSourceError):
    """Raised for a missing or invalid access credential."""


class RequestRejectedError(NodsSourceError):
    """Raised when the endpoint reports malformed filter parameters."""


class MalformedResponseError(NodsSourceError):
    """Raised when a response body is not a JSON record array."""


class ValidationMismatchError(NodsError):
    """Raised when strict validation finds schema drift.

    Attributes:
        report: Full validation report with per-column details.
    """

    def __init__(self, message: str, report: ValidationReport) -> None:
        super().__init__(message)
        self.report = report


class DerivationError(NodsError):
    """Raised when a derivation rule cannot produce a value for one row."""


class CoercionError(DerivationError):
    """Raised when a value cannot be coerced to a column type."""


class ProjectionError(NodsError):
    """Raised when a projection requests an unknown column."""
