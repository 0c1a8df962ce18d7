"""Shared test fixtures for conda-solve-groups."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from conda_solve_groups.models import (
    Channel,
    Environment,
    Feature,
    MatchSpec,
    WorkspaceConfig,
)
from conda_solve_groups.system_requirements import LibCRequirement, SystemRequirements
from conda_solve_groups.workspace import Workspace

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def sample_pixi_toml(tmp_path: Path) -> Path:
    """Create a pixi.toml with solve groups in tmp_path and return its path."""
    content = """\
[workspace]
name = "test-project"
version = "0.1.0"
channels = ["conda-forge"]
platforms = ["linux-64", "osx-arm64"]

[dependencies]
python = ">=3.10"
numpy = ">=1.24"

[system-requirements]
linux = "4.18"

[feature.test.dependencies]
pytest = ">=8.0"

[feature.docs.dependencies]
sphinx = ">=7.0"

[feature.cuda.system-requirements]
cuda = "12"
libc = { family = "glibc", version = "2.34" }

[feature.cuda.dependencies]
pytorch = "*"

[environments]
default = {solve-group = "default"}
test = {features = ["test"], solve-group = "default"}
docs = {features = ["docs"]}
gpu = {features = ["cuda"], solve-group = "gpu"}
"""
    path = tmp_path / "pixi.toml"
    path.write_text(content, encoding="utf-8")
    return path


def make_config(root: str = "/tmp/test-project") -> WorkspaceConfig:
    """Return the config of a workspace with one shared and one lone group.

    ``default`` is not grouped, ``dev`` and ``prod`` share ``shared``, and
    ``lone`` is the only member of ``single``.
    """
    return WorkspaceConfig(
        name="test-project",
        version="0.1.0",
        channels=[Channel("conda-forge")],
        platforms=["linux-64", "osx-arm64"],
        features={
            "default": Feature(
                name="default",
                conda_dependencies={"python": MatchSpec("python >=3.10")},
                system_requirements=SystemRequirements(linux="4.18"),
            ),
            "dev": Feature(
                name="dev",
                conda_dependencies={"pytest": MatchSpec("pytest >=8.0")},
                channels=[Channel("bioconda")],
                system_requirements=SystemRequirements(
                    linux="5.10", libc=LibCRequirement("2.17")
                ),
            ),
            "prod": Feature(
                name="prod",
                conda_dependencies={
                    "python": MatchSpec("python <3.13"),
                    "gunicorn": MatchSpec("gunicorn"),
                },
                system_requirements=SystemRequirements(
                    cuda="12", libc=LibCRequirement("2.34")
                ),
            ),
            "lone": Feature(
                name="lone",
                conda_dependencies={"rich": MatchSpec("rich")},
                system_requirements=SystemRequirements(macos="14.0"),
            ),
        },
        environments={
            "default": Environment(name="default"),
            "dev": Environment(name="dev", features=["dev"], solve_group="shared"),
            "prod": Environment(name="prod", features=["prod"], solve_group="shared"),
            "lone": Environment(name="lone", features=["lone"], solve_group="single"),
        },
        root=root,
        manifest_path=f"{root}/pixi.toml",
    )


@pytest.fixture
def sample_config() -> WorkspaceConfig:
    """Return a pre-built WorkspaceConfig for unit tests."""
    return make_config()


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    """A Workspace rooted in tmp_path with conda-derived values preset."""
    ws = Workspace(make_config(str(tmp_path)))
    ws._cache["platform"] = "linux-64"
    ws._cache["detached_environments"] = None
    ws._cache["max_concurrent_solves"] = 2
    ws._cache["channel_alias"] = "https://conda.anaconda.org"
    return ws
