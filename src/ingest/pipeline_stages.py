"""Runtime pipeline stages.

Each stage is a total function from a record set to a new record set
plus any per-row failures. Pipelines compose stages by running them in
order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

from core.types import DerivationFailure, RecordSet
from transforms.derivations import DerivationRule, apply_derivations
from transforms.projection import project_columns
from transforms.row_filter import Predicate, filter_rows


@dataclass(frozen=True)
class StageOutput:
    """Result of running one stage."""

    record_set: RecordSet
    failures: tuple[DerivationFailure, ...] = ()


class Stage(Protocol):
    """Stage contract used by the pipeline runner."""

    @property
    def label(self) -> str: ...

    def run(self, record_set: RecordSet) -> StageOutput: ...


@dataclass(frozen=True)
class FilterStage:
    """Keep rows satisfying every predicate."""

    predicates: tuple[Predicate, ...]

    @property
    def label(self) -> str:
        return "filter"

    def run(self, record_set: RecordSet) -> StageOutput:
        return StageOutput(record_set=filter_rows(record_set, self.predicates))


@dataclass(frozen=True)
class DeriveStage:
    """Add derived columns in declared order."""

    rules: tuple[DerivationRule, ...]

    @property
    def label(self) -> str:
        return "derive"

    def run(self, record_set: RecordSet) -> StageOutput:
        derived, failures = apply_derivations(record_set, self.rules)
        return StageOutput(record_set=derived, failures=failures)


@dataclass(frozen=True)
class ProjectStage:
    """Select and reorder columns."""

    columns: tuple[str, ...]

    @property
    def label(self) -> str:
        return "project"

    def run(self, record_set: RecordSet) -> StageOutput:
        return StageOutput(record_set=project_columns(record_set, self.columns))


PipelineStage = Union[FilterStage, DeriveStage, ProjectStage]
