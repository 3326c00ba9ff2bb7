"""Unit tests for pipeline file parsing and stage building."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import NodsPipelineSpecError
from core.pipeline_spec import DeriveSpec, load_pipeline_spec, parse_pipeline_spec
from core.pipeline_spec_builders import build_rule, build_stages
from core.values import MISSING
from ingest.pipeline_stages import DeriveStage, FilterStage, ProjectStage
from tests.fixture_paths import fixture_path


def _minimal_payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {"version": 1, "source": {"endpoint": "rows.jsonl"}}
    payload.update(overrides)
    return payload


def test_load_pipeline_spec_parses_valid_file() -> None:
    """Valid pipeline files should load source, schema and ordered stages."""
    spec = load_pipeline_spec(str(fixture_path("pipelines/valid_pipeline.yaml")))

    assert spec.source.params == {"zip_city": "Bronx"}
    assert spec.expected_columns["pilot_vehicles"] == "string_list"
    assert spec.seed == 20
    assert spec.strict is False and spec.summary is True
    assert [stage.kind for stage in spec.stages] == ["filter", "derive", "project"]
    assert [rule.name for rule in spec.stages[1].derivations] == [
        "log_weight",
        "pilot_count",
        "genre",
    ]


def test_load_pipeline_spec_rejects_unknown_stage() -> None:
    """Unknown stage kinds should fail with the supported list."""
    with pytest.raises(NodsPipelineSpecError, match="Unsupported stage 'mutate'"):
        load_pipeline_spec(str(fixture_path("pipelines/invalid_stage.yaml")))


def test_load_pipeline_spec_rejects_unknown_rule_argument() -> None:
    """Rules should reject arguments they do not understand."""
    with pytest.raises(NodsPipelineSpecError, match="offset"):
        load_pipeline_spec(str(fixture_path("pipelines/unknown_rule_argument.yaml")))


def test_load_pipeline_spec_raises_for_missing_file(tmp_path: Path) -> None:
    """Missing pipeline files should fail before parsing."""
    with pytest.raises(NodsPipelineSpecError, match="does not exist"):
        load_pipeline_spec(str(tmp_path / "absent.yaml"))


def test_load_pipeline_spec_raises_for_empty_file(tmp_path: Path) -> None:
    """Empty pipeline files should fail with guidance."""
    spec_file = tmp_path / "empty.yaml"
    spec_file.write_text("", encoding="utf-8")

    with pytest.raises(NodsPipelineSpecError, match="empty"):
        load_pipeline_spec(str(spec_file))


@pytest.mark.parametrize(
    "payload",
    [
        {"source": {"endpoint": "rows.jsonl"}},
        _minimal_payload(version=2),
        _minimal_payload(owner="me"),
        _minimal_payload(source={"endpoint": "rows.jsonl", "timeout_seconds": 0}),
        _minimal_payload(source={"endpoint": "rows.jsonl", "params": {"a": [1, 2]}}),
        _minimal_payload(expected_columns={"age": "number"}),
        _minimal_payload(stages=[{"filter": [], "project": []}]),
        _minimal_payload(stages=[{"derive": [{"name": "x", "rule": "log"}]}]),
    ],
)
def test_parse_pipeline_spec_rejects_invalid_documents(payload: dict[str, object]) -> None:
    """Malformed documents should fail with a pipeline file error."""
    with pytest.raises(NodsPipelineSpecError):
        parse_pipeline_spec(payload)


def test_build_stages_preserves_declared_order() -> None:
    """Runtime stages should follow the declaration order."""
    spec = load_pipeline_spec(str(fixture_path("pipelines/valid_pipeline.yaml")))

    stages = build_stages(spec.stages, spec.seed)

    assert [type(stage) for stage in stages] == [FilterStage, DeriveStage, ProjectStage]
    assert [rule.name for rule in stages[1].rules] == ["log_weight", "pilot_count", "genre"]


def test_build_stages_requires_seed_for_pick_label() -> None:
    """Seeded label selection without a seed should fail before fetching."""
    spec = load_pipeline_spec(str(fixture_path("pipelines/missing_seed.yaml")))

    with pytest.raises(NodsPipelineSpecError, match="seed"):
        build_stages(spec.stages, None)


def test_build_stages_wraps_invalid_filter_operator() -> None:
    """Unsupported filter operators should surface as pipeline file errors."""
    spec = parse_pipeline_spec(
        _minimal_payload(stages=[{"filter": [{"column": "a", "operator": "near", "value": 1}]}])
    )

    with pytest.raises(NodsPipelineSpecError, match="near"):
        build_stages(spec.stages, None)


@pytest.mark.parametrize(
    "spec",
    [
        DeriveSpec("l", "log", {"source": "w", "base": 1}),
        DeriveSpec("c", "coerce", {"source": "w", "to": "decimal"}),
        DeriveSpec("r", "regex_extract", {"source": "w", "pattern": "(a)", "group": 3}),
        DeriveSpec("r", "regex_extract", {"source": "w", "pattern": "(a)", "group": -1}),
        DeriveSpec("r", "regex_replace", {"source": "w", "pattern": "a", "replacement": "\\1"}),
        DeriveSpec("f", "fill_missing", {"source": "w", "value": "heavy", "type": "integer"}),
        DeriveSpec("m", "collapse", {"source": "w", "mapping": {"a": 1}}),
    ],
)
def test_build_rule_rejects_invalid_arguments(spec: DeriveSpec) -> None:
    """Rule builders should reject argument values they cannot honor."""
    with pytest.raises(NodsPipelineSpecError):
        build_rule(spec, seed=None)


def test_build_rule_coerces_fill_value_to_output_type() -> None:
    """Fill values should be stored in the declared output type."""
    rule = build_rule(
        DeriveSpec("filled", "fill_missing", {"source": "w", "value": 2.9, "type": "integer"}),
        seed=None,
    )

    assert rule.output_type == "integer"
    assert rule.derive({"w": MISSING}) == 2
    assert rule.derive({"w": 5}) == 5
