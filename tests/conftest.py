"""Shared fixtures for the Foundry tools test suite."""

import sys
from pathlib import Path

import pytest

# Ensure project root is importable
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def project_root(tmp_path, monkeypatch):
    """Point PROJECT_ROOT at an empty temporary directory."""
    monkeypatch.setenv("PROJECT_ROOT", str(tmp_path))
    return tmp_path


@pytest.fixture
def no_private_key(monkeypatch):
    monkeypatch.delenv("FOUNDRY_PRIVATE_KEY", raising=False)
