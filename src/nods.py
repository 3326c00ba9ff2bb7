"""Public SDK surface for NODS.

This module provides a stable import path for pipeline users.
It re-exports sources, stage functions, and typed models.
"""

from __future__ import annotations

from core.config import NodsConfig
from core.credentials import load_credential
from core.types import (
    ColumnSpec,
    FetchRequest,
    PipelineResult,
    RecordSet,
    Summary,
    ValidationReport,
)
from core.values import MISSING, coerce_value, is_missing
from ingest.pipeline import PipelineDefinition, run_pipeline, run_pipeline_file
from ingest.pipeline_stages import DeriveStage, FilterStage, ProjectStage
from ingest.schema_validator import validate_record_set
from ingest.source_adapter import (
    FileSource,
    HttpQuerySource,
    InMemorySource,
    fetch_records,
    open_source,
)
from report.summary import summarize
from transforms.derivations import DerivationRule, apply_derivations
from transforms.projection import project_columns
from transforms.row_filter import ColumnPredicate, filter_rows
from transforms.transform_stage import apply_transforms

__all__ = [
    "MISSING",
    "ColumnPredicate",
    "ColumnSpec",
    "DerivationRule",
    "DeriveStage",
    "FetchRequest",
    "FileSource",
    "FilterStage",
    "HttpQuerySource",
    "InMemorySource",
    "NodsConfig",
    "PipelineDefinition",
    "PipelineResult",
    "ProjectStage",
    "RecordSet",
    "Summary",
    "ValidationReport",
    "apply_derivations",
    "apply_transforms",
    "coerce_value",
    "fetch_records",
    "filter_rows",
    "is_missing",
    "load_credential",
    "open_source",
    "project_columns",
    "run_pipeline",
    "run_pipeline_file",
    "summarize",
    "validate_record_set",
]
