"""Integration tests for fetch-to-summary pipeline flows."""

from __future__ import annotations

import json

import httpx
import pytest

from core.errors import RequestRejectedError
from ingest.pipeline import PipelineDefinition, run_pipeline
from ingest.pipeline_stages import DeriveStage, FilterStage, ProjectStage
from ingest.source_adapter import HttpQuerySource
from tests.fixture_paths import fixture_path
from transforms.derivations import list_length_rule, pick_label_rule
from transforms.row_filter import ColumnPredicate


def _permit_server(request: httpx.Request) -> httpx.Response:
    """Serve permit rows with remote filter semantics."""
    rows = [
        json.loads(line)
        for line in fixture_path("tables/permits.jsonl").read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]
    for field_name, value in request.url.params.items():
        if field_name not in rows[0]:
            return httpx.Response(
                400,
                json={"error": True, "message": f"No such column: {field_name}"},
            )
        rows = [row for row in rows if str(row[field_name]) == value]
    return httpx.Response(200, json=rows)


def _source() -> HttpQuerySource:
    return HttpQuerySource(
        "https://data.example.org/resource/permits.json",
        timeout_seconds=5.0,
        credential="abc123",
        client=httpx.Client(transport=httpx.MockTransport(_permit_server)),
    )


def test_remote_pipeline_fetches_transforms_and_summarizes() -> None:
    """A remote fetch should flow through every stage to a summary."""
    definition = PipelineDefinition(
        filter_params={"zip_city": "Bronx"},
        expected_columns={
            "permit_id": "integer",
            "zip_city": "string",
            "weight": "real",
            "pilot_vehicles": "string_list",
            "genres": "string_list",
        },
        stages=(
            FilterStage((ColumnPredicate("weight", "greater_than", 0),)),
            DeriveStage(
                (
                    list_length_rule("pilot_count", "pilot_vehicles"),
                    pick_label_rule("genre", "genres", seed=7),
                )
            ),
            ProjectStage(("permit_id", "pilot_count", "genre")),
        ),
    )

    result = run_pipeline(definition, _source())

    assert result.validation.is_valid
    assert [row["permit_id"] for row in result.record_set.rows] == [1, 2]
    assert result.summary is not None
    assert [stats.column for stats in result.summary.numeric] == ["permit_id", "pilot_count"]
    assert [table.column for table in result.summary.categorical] == ["genre"]


def test_remote_pipeline_distinguishes_rejection_from_empty_result() -> None:
    """A misspelled field fails while an unmatched value returns zero rows."""
    empty = run_pipeline(PipelineDefinition(filter_params={"zip_city": "Brox"}), _source())

    assert empty.record_set.is_empty
    assert empty.summary is not None and empty.summary.row_count == 0
    with pytest.raises(RequestRejectedError, match="zipcity"):
        run_pipeline(PipelineDefinition(filter_params={"zipcity": "Bronx"}), _source())


def test_empty_remote_result_skips_stages() -> None:
    """A schema-less empty payload should not trip column checks in later stages."""
    definition = PipelineDefinition(
        filter_params={"zip_city": "Brox"},
        expected_columns={"permit_id": "integer"},
        strict=True,
        stages=(ProjectStage(("permit_id",)),),
    )

    result = run_pipeline(definition, _source())

    assert result.record_set.is_empty
    assert result.validation.is_valid
    assert result.failures == ()
