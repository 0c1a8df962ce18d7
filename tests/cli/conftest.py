"""Shared fixtures for CLI tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from conda_solve_groups.workspace import Workspace

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def pixi_workspace(tmp_path: Path) -> Path:
    """Create a pixi.toml workspace with one solve group and return tmp_path."""
    content = """\
[workspace]
name = "cli-test"
channels = ["conda-forge"]
platforms = ["linux-64", "osx-arm64", "win-64"]

[dependencies]
python = ">=3.10"

[feature.dev.dependencies]
pytest = ">=8.0"

[feature.prod.dependencies]
gunicorn = "*"

[environments]
dev = {features = ["dev"], solve-group = "shared"}
prod = {features = ["prod"], solve-group = "shared"}
"""
    (tmp_path / "pixi.toml").write_text(content, encoding="utf-8")
    return tmp_path


@pytest.fixture(autouse=True)
def no_plugin_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's condarc plugin settings out of CLI tests."""
    monkeypatch.setattr(Workspace, "detached_environments", property(lambda self: None))
    monkeypatch.setattr(Workspace, "max_concurrent_solves", property(lambda self: 2))
