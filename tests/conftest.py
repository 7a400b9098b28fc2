"""Shared pytest fixtures for the qcli test suite.

Provides reusable fixtures for:
- An isolated working directory (optionally marked as a repository root)
- Template engines with and without the built-in templates
- Sample configurations and configuration files
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from qcli.config import CONFIG_FILE_NAME, Config
from qcli.scaffolder import TemplateEngine


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary directory that is also the current working directory."""
    directory = tmp_path / "work"
    directory.mkdir()
    monkeypatch.chdir(directory)
    yield directory.resolve()


@pytest.fixture
def repo_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A fake repository (``.git`` marker) with cwd set two levels inside it."""
    root = tmp_path / "repo"
    (root / ".git").mkdir(parents=True)
    nested = root / "src" / "Core"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)
    yield root.resolve()


# ---------------------------------------------------------------------------
# Template engines
# ---------------------------------------------------------------------------

@pytest.fixture
def engine() -> TemplateEngine:
    """An engine with an empty registry."""
    return TemplateEngine(template_dir=None)


@pytest.fixture
def builtin_engine() -> TemplateEngine:
    """An engine seeded with the packaged built-in templates."""
    return TemplateEngine()


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_config() -> Config:
    """The documented sample configuration, plus some extension data."""
    config = Config.create_sample()
    config.extensions = {
        "docker": {"enabled": True, "registry": "ghcr.io/acme", "ports": [8080, 8443]},
        "ratio": 0.75,
        "notes": None,
    }
    return config


@pytest.fixture
def write_config():
    """Factory that writes a raw JSON-able mapping as a configuration file."""

    def _write(directory: Path, data: dict[str, Any] | str) -> Path:
        path = directory / CONFIG_FILE_NAME
        text = data if isinstance(data, str) else json.dumps(data, indent=2)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
