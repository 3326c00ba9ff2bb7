"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_NODS_ENV_VARS = (
    "NODS_CREDENTIAL_FILE",
    "NODS_REQUEST_TIMEOUT",
    "NODS_RANDOM_SEED",
    "NODS_FETCH_ATTEMPTS",
)


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def clean_nods_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables out of config parsing."""
    for name in _NODS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root(monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run from the repository root so relative fixture endpoints resolve."""
    root = Path(__file__).resolve().parent.parent
    monkeypatch.chdir(root)
    return root
