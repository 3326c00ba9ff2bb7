"""Builders turning parsed pipeline files into runtime stages.

This module keeps argument-shape checks for filters and derivation rules
in one place so pipeline files fail before any data is fetched.
"""

from __future__ import annotations

from typing import Mapping

from core.errors import CoercionError, NodsPipelineSpecError, NodsTransformError
from core.pipeline_spec import DeriveSpec, FilterSpec, StageSpec
from core.pipeline_spec_fields import (
    expect_mapping,
    optional_float,
    optional_int,
    optional_string,
    parse_column_type,
    raw_string,
    required_string,
)
from core.values import coerce_value, from_json_value
from ingest.pipeline_stages import DeriveStage, FilterStage, PipelineStage, ProjectStage
from transforms.derivations import (
    DerivationRule,
    coerce_rule,
    collapse_rule,
    fill_missing_rule,
    list_length_rule,
    log_rule,
    pick_label_rule,
    ratio_rule,
    regex_extract_rule,
    regex_replace_rule,
)
from transforms.row_filter import ColumnPredicate


def build_stages(stage_specs: tuple[StageSpec, ...], seed: int | None) -> tuple[PipelineStage, ...]:
    """Build runtime stages in declared order.

    Args:
        stage_specs: Parsed stage declarations.
        seed: Seed for seeded label selection, if configured.

    Returns:
        Ordered runtime stages.

    Raises:
        NodsPipelineSpecError: If a filter or rule has invalid arguments.
    """
    stages: list[PipelineStage] = []
    for stage in stage_specs:
        if stage.kind == "filter":
            stages.append(FilterStage(tuple(build_predicate(spec) for spec in stage.filters)))
        elif stage.kind == "derive":
            rules = tuple(build_rule(spec, seed) for spec in stage.derivations)
            stages.append(DeriveStage(rules))
        else:
            stages.append(ProjectStage(stage.columns))
    return tuple(stages)


def build_predicate(spec: FilterSpec) -> ColumnPredicate:
    """Build one column predicate from its declaration."""
    try:
        return ColumnPredicate(
            column=spec.column,
            operator=spec.operator,  # type: ignore[arg-type]
            value=spec.value,
        )
    except NodsTransformError as error:
        raise NodsPipelineSpecError(f"Invalid filter on '{spec.column}': {error}") from error


def build_rule(spec: DeriveSpec, seed: int | None) -> DerivationRule:
    """Build one derivation rule from its declaration.

    Raises:
        NodsPipelineSpecError: If arguments have the wrong shape or a
            seeded rule has no seed.
    """
    context = f"rule '{spec.name}'"
    args = spec.args
    try:
        return _build_rule(spec, args, context, seed)
    except NodsTransformError as error:
        raise NodsPipelineSpecError(f"Invalid {context}: {error}") from error


def _build_rule(
    spec: DeriveSpec,
    args: Mapping[str, object],
    context: str,
    seed: int | None,
) -> DerivationRule:
    if spec.rule == "coerce":
        target = parse_column_type(args.get("to"), context)
        return coerce_rule(spec.name, required_string(args, "source", context), target)
    if spec.rule == "log":
        base = optional_float(args, "base", context)
        if base is not None and (base <= 0 or base == 1):
            raise NodsPipelineSpecError(f"Invalid {context}: log base must be positive and not 1.")
        return log_rule(spec.name, required_string(args, "source", context), base)
    if spec.rule == "ratio":
        return ratio_rule(
            spec.name,
            required_string(args, "numerator", context),
            required_string(args, "denominator", context),
        )
    if spec.rule == "collapse":
        return collapse_rule(
            spec.name,
            required_string(args, "source", context),
            _parse_label_mapping(args.get("mapping"), context),
            optional_string(args, "other", context),
        )
    if spec.rule == "fill_missing":
        return _build_fill_missing(spec.name, args, context)
    if spec.rule == "regex_replace":
        return regex_replace_rule(
            spec.name,
            required_string(args, "source", context),
            raw_string(args, "pattern", context),
            raw_string(args, "replacement", context),
        )
    if spec.rule == "regex_extract":
        group = optional_int(args, "group", context)
        return regex_extract_rule(
            spec.name,
            required_string(args, "source", context),
            raw_string(args, "pattern", context),
            0 if group is None else group,
        )
    if spec.rule == "list_length":
        return list_length_rule(spec.name, required_string(args, "source", context))
    if spec.rule == "pick_label":
        if seed is None:
            raise NodsPipelineSpecError(
                f"Invalid {context}: pick_label needs a seed. "
                "Set 'seed' in the pipeline file or NODS_RANDOM_SEED."
            )
        return pick_label_rule(spec.name, required_string(args, "source", context), seed)
    raise NodsPipelineSpecError(f"Unsupported rule '{spec.rule}' in {context}.")


def _build_fill_missing(name: str, args: Mapping[str, object], context: str) -> DerivationRule:
    output_type = parse_column_type(args.get("type"), context)
    raw_value = args.get("value")
    if raw_value is None or isinstance(raw_value, dict):
        raise NodsPipelineSpecError(
            f"Invalid {context}: fill value must be text, a number, a boolean, or a list."
        )
    try:
        fill_value = coerce_value(from_json_value(raw_value), output_type)
    except CoercionError as error:
        raise NodsPipelineSpecError(f"Invalid {context}: {error}") from error
    return fill_missing_rule(name, required_string(args, "source", context), fill_value, output_type)


def _parse_label_mapping(raw_mapping: object, context: str) -> dict[str, str]:
    mapping = expect_mapping(raw_mapping, f"{context} mapping")
    labels: dict[str, str] = {}
    for key, value in mapping.items():
        if not isinstance(value, str):
            raise NodsPipelineSpecError(
                f"Invalid {context} mapping: label '{key}' must map to text."
            )
        labels[key] = value
    return labels
