"""Pipeline orchestration for tabular ingestion.

This module coordinates fetching, schema validation, ordered transform
stages, and summaries. Definitions are immutable values, so one
definition can run any number of times without shared state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from core.config import NodsConfig
from core.constants import DEFAULT_CREDENTIAL_HEADER
from core.credentials import load_credential
from core.errors import ValidationMismatchError
from core.logging_config import get_logger
from core.pipeline_spec import PipelineSpec, SourceSpec, load_pipeline_spec
from core.pipeline_spec_builders import build_stages
from core.types import DerivationFailure, PipelineResult, RecordSet, ValidationReport
from core.values import ColumnType
from ingest.pipeline_stages import PipelineStage
from ingest.schema_validator import apply_declared_types, validate_record_set
from ingest.source_adapter import RecordSource, fetch_records, open_source
from report.summary import summarize

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class PipelineDefinition:
    """Everything a pipeline run needs besides the source.

    Attributes:
        filter_params: Field-name to value filters passed to the source.
        expected_columns: Expected schema; empty skips validation.
        strict: Abort with ValidationMismatchError on schema drift.
        stages: Ordered filter, derive, and project stages.
        summarize: Whether to compute a summary of the final rows.
        max_attempts: Attempts allowed for transient fetch failures.
    """

    filter_params: Mapping[str, object] = field(default_factory=dict)
    expected_columns: Mapping[str, ColumnType] = field(default_factory=dict)
    strict: bool = False
    stages: tuple[PipelineStage, ...] = ()
    summarize: bool = True
    max_attempts: int = 1


class PipelineRunner:
    """Runner executing one definition against one source."""

    def __init__(self, definition: PipelineDefinition, source: RecordSource) -> None:
        self._definition = definition
        self._source = source

    def run(self) -> PipelineResult:
        """Execute the pipeline and return the final record set."""
        _LOGGER.info(
            "pipeline_started",
            endpoint=self._source.endpoint,
            stage_count=len(self._definition.stages),
        )
        fetched = fetch_records(
            self._source,
            self._definition.filter_params,
            max_attempts=self._definition.max_attempts,
        )
        if fetched.is_empty and not fetched.columns:
            # An empty remote payload carries no schema to validate or transform.
            validation = ValidationReport()
            record_set, failures = fetched, ()
        else:
            validation = self._validate(fetched)
            typed = apply_declared_types(fetched, self._definition.expected_columns, validation)
            record_set, failures = self._run_stages(typed)
        summary = summarize(record_set) if self._definition.summarize else None
        _log_pipeline_completion(self._source.endpoint, fetched, record_set, failures)
        return PipelineResult(
            record_set=record_set,
            validation=validation,
            failures=failures,
            summary=summary,
        )

    def _validate(self, record_set: RecordSet) -> ValidationReport:
        if not self._definition.expected_columns:
            return ValidationReport()
        report = validate_record_set(record_set, self._definition.expected_columns)
        if report.is_valid:
            return report
        problems = report.describe()
        _LOGGER.warning(
            "validation_failed",
            endpoint=self._source.endpoint,
            strict=self._definition.strict,
            problems=list(problems),
        )
        if self._definition.strict:
            raise ValidationMismatchError(
                f"Schema drift in {self._source.endpoint}: {'; '.join(problems)}. "
                "Update expected_columns or fix the request.",
                report,
            )
        return report

    def _run_stages(self, record_set: RecordSet) -> tuple[RecordSet, tuple[DerivationFailure, ...]]:
        current = record_set
        failures: list[DerivationFailure] = []
        for index, stage in enumerate(self._definition.stages):
            output = stage.run(current)
            failures.extend(output.failures)
            _LOGGER.info(
                "stage_completed",
                stage_index=index,
                stage=stage.label,
                input_rows=current.row_count,
                output_rows=output.record_set.row_count,
                failed_rows=len(output.failures),
            )
            current = output.record_set
        return current, tuple(failures)


def run_pipeline(definition: PipelineDefinition, source: RecordSource) -> PipelineResult:
    """Run a pipeline definition against a source.

    Args:
        definition: Pipeline definition.
        source: Record source to fetch from.

    Returns:
        Final record set, validation report, failures, and summary.

    Raises:
        NodsSourceError: If the fetch fails.
        ValidationMismatchError: If strict validation finds drift.
        ProjectionError: If a projection names an unknown column.
        NodsTransformError: If a stage is misconfigured for the data.
    """
    return PipelineRunner(definition, source).run()


def run_pipeline_file(spec_path: str, config: NodsConfig) -> PipelineResult:
    """Load a YAML pipeline file and run it.

    Args:
        spec_path: Pipeline file path.
        config: Runtime configuration supplying defaults.

    Returns:
        Pipeline result.
    """
    spec = load_pipeline_spec(spec_path)
    definition, source = build_pipeline(spec, config)
    return run_pipeline(definition, source)


def build_pipeline(
    spec: PipelineSpec,
    config: NodsConfig,
) -> tuple[PipelineDefinition, RecordSource]:
    """Resolve a parsed pipeline file into a definition and a source.

    Values in the pipeline file take precedence over the runtime config.

    Raises:
        NodsPipelineSpecError: If stages are invalid.
        NodsConfigError: If an HTTP source has no timeout.
        AuthenticationError: If a declared credential file is unusable.
    """
    seed = spec.seed if spec.seed is not None else config.random_seed
    stages = build_stages(spec.stages, seed)
    source = _open_spec_source(spec.source, config)
    definition = PipelineDefinition(
        filter_params=dict(spec.source.params),
        expected_columns=dict(spec.expected_columns),
        strict=spec.strict,
        stages=stages,
        summarize=spec.summary,
        max_attempts=spec.source.max_attempts or config.fetch_attempts,
    )
    return definition, source


def _open_spec_source(source_spec: SourceSpec, config: NodsConfig) -> RecordSource:
    timeout = (
        source_spec.timeout_seconds
        if source_spec.timeout_seconds is not None
        else config.request_timeout
    )
    return open_source(
        source_spec.endpoint,
        timeout_seconds=timeout,
        credential=_resolve_credential(source_spec, config),
        credential_header=source_spec.credential_header or DEFAULT_CREDENTIAL_HEADER,
    )


def _resolve_credential(source_spec: SourceSpec, config: NodsConfig) -> str | None:
    """Load the declared credential, or the default file when it exists."""
    if source_spec.credential_file:
        return load_credential(source_spec.credential_file)
    if config.credential_path.is_file():
        return load_credential(config.credential_path)
    return None


def _log_pipeline_completion(
    endpoint: str,
    fetched: RecordSet,
    final: RecordSet,
    failures: tuple[DerivationFailure, ...],
) -> None:
    """Log pipeline completion with contextual metadata."""
    _LOGGER.info(
        "pipeline_completed",
        endpoint=endpoint,
        fetched_rows=fetched.row_count,
        output_rows=final.row_count,
        output_columns=list(final.column_names),
        failed_rows=len(failures),
    )
