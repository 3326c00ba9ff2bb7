"""Record sources behind one fetch contract.

This module fetches raw tabular data from a remote query endpoint, a
local data file, or an in-memory record set. Every source returns a
typed record set and reports failures with the taxonomy in core.errors.
"""

from __future__ import annotations

import time
from typing import Any, Mapping, Protocol

import httpx

from core.constants import DEFAULT_CREDENTIAL_HEADER, HTTP_SCHEMES
from core.errors import (
    AuthenticationError,
    CoercionError,
    MalformedResponseError,
    NodsConfigError,
    NodsSourceError,
    RequestRejectedError,
    SourceConnectionError,
    SourceTimeoutError,
)
from core.logging_config import get_logger
from core.types import FetchRequest, RecordSet
from core.values import Value, coerce_value, is_missing
from ingest.input_reader import read_record_file, row_from_json_object

_LOGGER = get_logger(__name__)
_SERVER_TEXT_LIMIT = 500


class RecordSource(Protocol):
    """Anything that can fetch a record set for filter parameters."""

    @property
    def endpoint(self) -> str: ...

    def fetch(self, filter_params: Mapping[str, object] | None = None) -> RecordSet: ...


class HttpQuerySource:
    """Remote query endpoint returning a JSON array of records.

    Filter parameters travel as URL query parameters. A ``200`` with an
    empty array is a successful empty result; a ``4xx`` or an error
    object is a rejected request.
    """

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: float,
        credential: str | None = None,
        credential_header: str = DEFAULT_CREDENTIAL_HEADER,
        client: httpx.Client | None = None,
    ) -> None:
        """Create an HTTP source.

        Args:
            endpoint: Base resource URL.
            timeout_seconds: Required request timeout in seconds.
            credential: Optional access token sent in ``credential_header``.
            credential_header: Header carrying the access token.
            client: Optional preconfigured client, used as-is.

        Raises:
            NodsConfigError: If the timeout is not positive.
        """
        if timeout_seconds is None or timeout_seconds <= 0:
            raise NodsConfigError(
                f"HTTP source {endpoint} needs a positive timeout, got {timeout_seconds!r}. "
                "Pass timeout_seconds explicitly."
            )
        self._endpoint = endpoint
        self._timeout = timeout_seconds
        self._credential = credential
        self._credential_header = credential_header
        self._client = client

    @property
    def endpoint(self) -> str:
        """Base resource URL."""
        return self._endpoint

    def fetch(self, filter_params: Mapping[str, object] | None = None) -> RecordSet:
        """Issue one GET request and parse the record array.

        Args:
            filter_params: Field-name to value filters, applied server-side.

        Returns:
            Record set; possibly empty when nothing matched.

        Raises:
            SourceTimeoutError: If the endpoint did not answer in time.
            SourceConnectionError: If the endpoint is unreachable or failed.
            AuthenticationError: If the credential was refused.
            RequestRejectedError: If the filter parameters were refused.
            MalformedResponseError: If the body is not a record array.
        """
        request = FetchRequest(endpoint=self._endpoint, filter_params=dict(filter_params or {}))
        try:
            response = self._send(request)
        except httpx.TimeoutException as error:
            raise SourceTimeoutError(
                f"Request {request.describe()} timed out after {self._timeout}s. "
                "Retry later or raise the timeout.",
                request=request,
            ) from error
        except httpx.TransportError as error:
            raise SourceConnectionError(
                f"Could not reach {request.describe()}: {error}. "
                "Check the endpoint URL and your network connection.",
                request=request,
            ) from error
        return _parse_response(response, request)

    def _send(self, request: FetchRequest) -> httpx.Response:
        params = _serialize_params(request.filter_params)
        headers = self._build_headers()
        if self._client is not None:
            return self._client.get(
                self._endpoint, params=params, headers=headers, timeout=self._timeout
            )
        with httpx.Client(timeout=self._timeout) as client:
            return client.get(self._endpoint, params=params, headers=headers)

    def _build_headers(self) -> dict[str, str]:
        if not self._credential:
            return {}
        return {self._credential_header: self._credential}


class InMemorySource:
    """Pre-loaded record set behind the same contract as the endpoint.

    Filter parameters are equality filters applied at load time. An
    unknown field name is rejected exactly like the remote endpoint does.
    """

    def __init__(self, record_set: RecordSet, label: str = "in-memory") -> None:
        self._record_set = record_set
        self._label = label

    @property
    def endpoint(self) -> str:
        """Label identifying the table in logs and errors."""
        return self._label

    def fetch(self, filter_params: Mapping[str, object] | None = None) -> RecordSet:
        """Return rows equal to every filter parameter.

        Raises:
            RequestRejectedError: If a parameter names an unknown column.
        """
        request = FetchRequest(endpoint=self._label, filter_params=dict(filter_params or {}))
        unknown = [name for name in request.filter_params if not self._record_set.has_column(name)]
        if unknown:
            server_message = f"No such column: {', '.join(sorted(unknown))}"
            raise RequestRejectedError(
                _rejection_message(request, None, server_message),
                request=request,
                server_message=server_message,
            )
        rows = tuple(
            dict(row)
            for row in self._record_set.rows
            if all(
                _matches(row[name], expected, self._record_set.column_type(name))
                for name, expected in request.filter_params.items()
            )
        )
        return RecordSet(columns=self._record_set.columns, rows=rows)


class FileSource:
    """Local data file loaded fresh on every fetch."""

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def endpoint(self) -> str:
        """File path."""
        return self._path

    def fetch(self, filter_params: Mapping[str, object] | None = None) -> RecordSet:
        """Load the file and apply equality filters.

        Raises:
            NodsSourceError: If the file cannot be read.
            RequestRejectedError: If a parameter names an unknown column.
        """
        record_set = read_record_file(self._path)
        return InMemorySource(record_set, label=self._path).fetch(filter_params)


def open_source(
    endpoint: str,
    timeout_seconds: float | None = None,
    credential: str | None = None,
    credential_header: str = DEFAULT_CREDENTIAL_HEADER,
) -> RecordSource:
    """Build the source matching an endpoint descriptor.

    Args:
        endpoint: ``http(s)://`` URL or local file path.
        timeout_seconds: Timeout, required for HTTP endpoints.
        credential: Optional access token for HTTP endpoints.
        credential_header: Header carrying the access token.

    Returns:
        Record source for the descriptor.

    Raises:
        NodsConfigError: If an HTTP endpoint has no timeout.
    """
    if endpoint.startswith(HTTP_SCHEMES):
        if timeout_seconds is None:
            raise NodsConfigError(
                f"No timeout configured for {endpoint}. "
                "Set timeout_seconds in the pipeline file or NODS_REQUEST_TIMEOUT."
            )
        return HttpQuerySource(
            endpoint,
            timeout_seconds,
            credential=credential,
            credential_header=credential_header,
        )
    return FileSource(endpoint)


def fetch_records(
    source: RecordSource,
    filter_params: Mapping[str, object] | None = None,
    max_attempts: int = 1,
    backoff_seconds: float = 0.0,
) -> RecordSet:
    """Fetch from a source, retrying transient failures when asked.

    Only connection failures and timeouts are retried. Rejected requests,
    refused credentials, and malformed responses surface immediately.

    Args:
        source: Record source to read.
        filter_params: Field-name to value filters.
        max_attempts: Total attempts for transient failures.
        backoff_seconds: Linear backoff between attempts.

    Returns:
        Fetched record set.

    Raises:
        NodsSourceError: The last failure once attempts are exhausted.
    """
    if max_attempts < 1:
        raise NodsConfigError(f"max_attempts must be at least 1, got {max_attempts}.")
    params = dict(filter_params or {})
    attempt = 1
    while True:
        try:
            record_set = source.fetch(params)
            break
        except NodsSourceError as error:
            if not error.is_transient or attempt >= max_attempts:
                raise
            _LOGGER.warning(
                "fetch_retry",
                endpoint=source.endpoint,
                attempt=attempt,
                max_attempts=max_attempts,
                error=str(error),
            )
        time.sleep(backoff_seconds * attempt)
        attempt += 1
    _log_fetch_result(source.endpoint, params, record_set)
    return record_set


def _parse_response(response: httpx.Response, request: FetchRequest) -> RecordSet:
    """Map an HTTP response onto a record set or a source error."""
    status = response.status_code
    payload = _decode_json(response, request)
    server_message = _server_message(payload, response)
    if status in (401, 403):
        raise AuthenticationError(
            f"Endpoint refused the access credential for {request.describe()} "
            f"(HTTP {status}): {server_message}. Check the credential file.",
            request=request,
            status_code=status,
            server_message=server_message,
        )
    if 400 <= status < 500:
        raise RequestRejectedError(
            _rejection_message(request, status, server_message),
            request=request,
            status_code=status,
            server_message=server_message,
        )
    if status >= 500:
        raise SourceConnectionError(
            f"Endpoint failed for {request.describe()} (HTTP {status}): {server_message}.",
            request=request,
            status_code=status,
            server_message=server_message,
        )
    if not 200 <= status < 300:
        raise MalformedResponseError(
            f"Unexpected HTTP {status} for {request.describe()}.",
            request=request,
            status_code=status,
        )
    if isinstance(payload, dict) and payload.get("error"):
        raise RequestRejectedError(
            _rejection_message(request, status, server_message),
            request=request,
            status_code=status,
            server_message=server_message,
        )
    if not isinstance(payload, list):
        raise MalformedResponseError(
            f"Expected a JSON array of records from {request.describe()}, "
            f"got {type(payload).__name__}.",
            request=request,
            status_code=status,
        )
    try:
        rows = [
            row_from_json_object(item, f"{request.endpoint}[{index}]")
            for index, item in enumerate(payload)
        ]
    except NodsSourceError as error:
        raise MalformedResponseError(str(error), request=request, status_code=status) from error
    return RecordSet.from_dicts(rows)


def _decode_json(response: httpx.Response, request: FetchRequest) -> Any:
    try:
        return response.json()
    except ValueError as error:
        if response.status_code >= 400:
            return None
        raise MalformedResponseError(
            f"Response from {request.describe()} is not valid JSON.",
            request=request,
            status_code=response.status_code,
        ) from error


def _server_message(payload: Any, response: httpx.Response) -> str:
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return response.text[:_SERVER_TEXT_LIMIT].strip() or "no message"


def _rejection_message(
    request: FetchRequest,
    status: int | None,
    server_message: str,
) -> str:
    status_text = f" (HTTP {status})" if status is not None else ""
    return (
        f"Request rejected{status_text} for {request.describe()}: {server_message}. "
        "A filter field name is probably misspelled; a valid field with an "
        "unmatched value returns zero rows instead."
    )


def _serialize_params(filter_params: Mapping[str, object]) -> dict[str, str]:
    serialized: dict[str, str] = {}
    for key, value in filter_params.items():
        if isinstance(value, bool):
            serialized[key] = "true" if value else "false"
        else:
            serialized[key] = str(value)
    return serialized


def _matches(value: Value, expected: object, column_type: Any) -> bool:
    if is_missing(value):
        return False
    try:
        target = coerce_value(expected, column_type)  # type: ignore[arg-type]
    except CoercionError:
        return False
    return value == target


def _log_fetch_result(
    endpoint: str,
    filter_params: Mapping[str, object],
    record_set: RecordSet,
) -> None:
    if record_set.is_empty:
        _LOGGER.info(
            "fetch_empty_result",
            endpoint=endpoint,
            filter_params=_serialize_params(filter_params),
        )
        return
    _LOGGER.info(
        "fetch_completed",
        endpoint=endpoint,
        filter_params=_serialize_params(filter_params),
        row_count=record_set.row_count,
        column_count=len(record_set.columns),
    )
