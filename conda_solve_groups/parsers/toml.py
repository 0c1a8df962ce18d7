"""Parser for conda.toml workspace manifests and shared TOML helpers.

The ``CondaTomlParser`` handles ``conda.toml`` — the conda-native
workspace format.  Helper functions for parsing channels, dependencies,
system requirements, environments, and target overrides are shared with
``pixi_toml.py``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import tomlkit

from ..exceptions import WorkspaceParseError
from ..models import (
    Channel,
    Environment,
    Feature,
    MatchSpec,
    WorkspaceConfig,
)
from ..system_requirements import SystemRequirements
from .base import WorkspaceParser

if TYPE_CHECKING:
    from pathlib import Path
    from typing import Any


class CondaTomlParser(WorkspaceParser):
    """Parse ``conda.toml`` manifests.

    This is the conda-native format that mirrors pixi.toml structure
    but uses ``[workspace]`` exclusively (no ``[project]`` fallback).
    """

    filenames = ("conda.toml",)
    extensions = (".toml",)

    def can_handle(self, path: Path) -> bool:
        return path.name in self.filenames

    def has_workspace(self, path: Path) -> bool:
        if not path.exists():
            return False
        try:
            data = tomlkit.loads(path.read_text(encoding="utf-8"))
        except Exception:
            return False
        return "workspace" in data

    def parse(self, path: Path) -> WorkspaceConfig:
        # The format is structurally identical to pixi.toml.
        # Import inline to avoid circular dependency (pixi_toml imports toml).
        from .pixi_toml import PixiTomlParser

        try:
            config = PixiTomlParser().parse(path)
        except WorkspaceParseError:
            raise
        except Exception as exc:
            raise WorkspaceParseError(path, str(exc)) from exc
        config.manifest_path = str(path)
        return config


def _parse_channels(raw: list[Any]) -> list[Channel]:
    """Parse a channels list, handling both strings and dicts."""
    channels: list[Channel] = []
    for item in raw:
        if isinstance(item, str):
            channels.append(Channel(item))
        elif isinstance(item, dict):
            channels.append(Channel(item["channel"]))
    return channels


def _parse_conda_deps(raw: dict[str, Any]) -> dict[str, MatchSpec]:
    """Parse conda dependency specs into MatchSpec objects."""
    deps: dict[str, MatchSpec] = {}
    for name, spec in raw.items():
        if isinstance(spec, str):
            deps[name] = MatchSpec(f"{name} {spec}".strip())
        elif isinstance(spec, dict):
            version = spec.get("version", "")
            build = spec.get("build", "")
            parts = [name]
            if version:
                parts.append(version)
            if build:
                parts.append(build)
            deps[name] = MatchSpec(" ".join(parts))
        else:
            deps[name] = MatchSpec(f"{name} {spec}")
    return deps


def _parse_system_requirements(path: Path, raw: dict[str, Any]) -> SystemRequirements:
    """Parse a ``[system-requirements]`` table."""
    try:
        return SystemRequirements.from_table(raw)
    except ValueError as exc:
        raise WorkspaceParseError(path, f"system-requirements: {exc}") from exc


def _check_libc_families(path: Path, config: WorkspaceConfig) -> None:
    """Reject environments and solve groups that need two libc families.

    Unknown feature names are skipped here; they are reported when the
    environment's features are resolved.
    """
    units = [config.solve_group_members(name) for name in config.solve_group_names()]
    units += [[env] for env in config.environments.values() if env.solve_group is None]
    for members in units:
        requirements = [
            config.features[fname].system_requirements
            for env in members
            for fname in _feature_names(env)
            if fname in config.features
        ]
        try:
            SystemRequirements.merge(requirements)
        except ValueError as exc:
            group = members[0].solve_group
            label = (
                f"solve group '{group}'" if group else f"environment '{members[0].name}'"
            )
            raise WorkspaceParseError(path, f"{label}: {exc}") from exc


def _feature_names(environment: Environment) -> list[str]:
    if environment.no_default_feature:
        return list(environment.features)
    return [Feature.DEFAULT_NAME, *environment.features]


def _parse_environment(name: str, raw: Any) -> Environment:
    """Parse a single environment entry.

    Environments can be specified as:
    - A list of feature names: ``env = ["feat1", "feat2"]``
    - A dict with keys: ``env = {features = [...], solve-group = "..."}``
    """
    if isinstance(raw, list):
        return Environment(name=name, features=list(raw))
    if isinstance(raw, dict):
        return Environment(
            name=name,
            features=list(raw.get("features", [])),
            solve_group=raw.get("solve-group"),
            no_default_feature=bool(raw.get("no-default-feature", False)),
        )
    return Environment(name=name)


def _parse_target_overrides(target_data: dict[str, Any], feature: Feature) -> None:
    """Parse ``[target.<platform>]`` dep overrides into a feature."""
    for platform, tdata in target_data.items():
        conda = _parse_conda_deps(tdata.get("dependencies", {}))
        if conda:
            feature.target_conda_dependencies[platform] = conda
