"""NODS CLI entry points.
This module exposes commands for running pipelines and inspecting sources.
It maps argparse commands onto pipeline and report calls.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from core.config import NodsConfig
from core.constants import DEFAULT_CREDENTIAL_HEADER
from core.credentials import load_credential
from core.errors import NodsConfigError, NodsError
from core.types import PipelineResult
from ingest.pipeline import run_pipeline_file
from ingest.source_adapter import fetch_records, open_source
from report.summary import summarize
from report.table_render import render_failures, render_summary, render_table


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="nods", description="NODS tabular pipeline CLI")
    parser.add_argument("--credential-file", help="Override NODS_CREDENTIAL_FILE")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_run_command(subparsers)
    _add_fetch_command(subparsers)
    _add_summarize_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the NODS CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = _build_config(args.credential_file)
        if args.command == "run":
            return _run_pipeline_command(config, args)
        if args.command == "fetch":
            return _run_fetch_command(config, args)
        if args.command == "summarize":
            return _run_summarize_command(args)
    except NodsError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_config(credential_file: str | None) -> NodsConfig:
    """Build config with optional credential-file override."""
    config = NodsConfig.from_env()
    if credential_file:
        config = replace(config, credential_path=Path(credential_file).expanduser())
    return config


def _run_pipeline_command(config: NodsConfig, args: argparse.Namespace) -> int:
    """Handle run command.

    Args:
        config: Runtime configuration.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    result = run_pipeline_file(args.pipeline_file, config)
    _print_result(result, args.max_rows)
    return 0


def _run_fetch_command(config: NodsConfig, args: argparse.Namespace) -> int:
    """Handle fetch command.

    Args:
        config: Runtime configuration.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    use_credential = args.credential_file or config.credential_path.is_file()
    credential = load_credential(config.credential_path) if use_credential else None
    source = open_source(
        args.endpoint,
        timeout_seconds=args.timeout if args.timeout is not None else config.request_timeout,
        credential=credential,
        credential_header=args.credential_header,
    )
    record_set = fetch_records(
        source,
        _parse_params(args.param),
        max_attempts=config.fetch_attempts,
    )
    if record_set.is_empty:
        print("0 rows matched the request.")
        return 0
    print(render_table(record_set, max_rows=args.max_rows))
    return 0


def _run_summarize_command(args: argparse.Namespace) -> int:
    """Handle summarize command.

    Args:
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    record_set = open_source(args.source).fetch()
    print(render_summary(summarize(record_set)))
    return 0


def _print_result(result: PipelineResult, max_rows: int | None) -> None:
    for line in result.validation.describe():
        print(f"validation: {line}")
    if result.record_set.is_empty:
        print("0 rows matched the request.")
    else:
        print(render_table(result.record_set, max_rows=max_rows))
    if result.summary is not None:
        print()
        print(render_summary(result.summary))
    if result.failures:
        print()
        print(f"{len(result.failures)} rows dropped by failed derivations:")
        print(render_failures(result.failures))


def _parse_params(raw_params: list[str] | None) -> dict[str, str]:
    """Parse repeated ``key=value`` options."""
    params: dict[str, str] = {}
    for raw_param in raw_params or []:
        key, separator, value = raw_param.partition("=")
        if not separator or not key.strip():
            raise NodsConfigError(
                f"Invalid --param '{raw_param}'. Use the form field=value."
            )
        params[key.strip()] = value
    return params


def _add_run_command(subparsers: Any) -> None:
    """Register run subcommand."""
    parser = subparsers.add_parser("run", help="Run a declarative YAML pipeline file")
    parser.add_argument("pipeline_file", help="Path to YAML pipeline file")
    parser.add_argument("--max-rows", type=int, help="Maximum table rows to print")


def _add_fetch_command(subparsers: Any) -> None:
    """Register fetch subcommand."""
    parser = subparsers.add_parser("fetch", help="Fetch rows from an endpoint or data file")
    parser.add_argument("endpoint", help="http(s) query endpoint or local data file")
    parser.add_argument(
        "--param",
        action="append",
        help="Filter parameter as field=value; repeat for several",
    )
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument(
        "--credential-header",
        default=DEFAULT_CREDENTIAL_HEADER,
        help="Header carrying the access credential",
    )
    parser.add_argument("--max-rows", type=int, help="Maximum table rows to print")


def _add_summarize_command(subparsers: Any) -> None:
    """Register summarize subcommand."""
    parser = subparsers.add_parser("summarize", help="Summarize a local data file")
    parser.add_argument("source", help="Local .jsonl, .json, or .csv file")
