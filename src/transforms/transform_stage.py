"""Combined filter and derivation stage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from core.types import DerivationFailure, RecordSet
from transforms.derivations import DerivationRule, apply_derivations
from transforms.row_filter import Predicate, filter_rows


@dataclass(frozen=True)
class TransformResult:
    """Output of one transform stage.

    Attributes:
        record_set: Surviving rows with derived columns.
        failures: Rows dropped by failing derivations.
    """

    record_set: RecordSet
    failures: tuple[DerivationFailure, ...]


def apply_transforms(
    record_set: RecordSet,
    predicates: Iterable[Predicate] = (),
    derivations: Iterable[DerivationRule] = (),
) -> TransformResult:
    """Filter rows, then derive new columns on the survivors.

    Args:
        record_set: Input record set.
        predicates: Conjunctive keep/drop predicates.
        derivations: Rules applied in declared order.

    Returns:
        Transformed record set plus aggregated per-row failures.
    """
    filtered = filter_rows(record_set, predicates)
    derived, failures = apply_derivations(filtered, derivations)
    return TransformResult(record_set=derived, failures=failures)
