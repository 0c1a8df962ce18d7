"""Parser for pixi.toml workspace manifests.

Reads ``[workspace]`` (or ``[project]`` for legacy manifests),
``[dependencies]``, ``[system-requirements]``, ``[feature.*]``,
``[environments]``, and ``[target.*]`` tables from pixi.toml.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import tomlkit

from ..exceptions import WorkspaceParseError
from ..models import (
    Environment,
    Feature,
    WorkspaceConfig,
)
from .base import WorkspaceParser
from .toml import (
    _check_libc_families,
    _parse_channels,
    _parse_conda_deps,
    _parse_environment,
    _parse_system_requirements,
    _parse_target_overrides,
)

if TYPE_CHECKING:
    from pathlib import Path
    from typing import Any


class PixiTomlParser(WorkspaceParser):
    """Parse ``pixi.toml`` workspace manifests."""

    filenames = ("pixi.toml",)
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
        return "workspace" in data or "project" in data

    def parse(self, path: Path) -> WorkspaceConfig:
        try:
            text = path.read_text(encoding="utf-8")
            data = tomlkit.loads(text).unwrap()
        except Exception as exc:
            raise WorkspaceParseError(path, str(exc)) from exc

        # workspace table (pixi v0.23+) or legacy project table
        ws = data.get("workspace", data.get("project", {}))
        if not ws:
            raise WorkspaceParseError(path, "No [workspace] or [project] table found")

        config = WorkspaceConfig(
            name=ws.get("name"),
            version=ws.get("version"),
            description=ws.get("description"),
            channels=_parse_channels(ws.get("channels", [])),
            platforms=list(ws.get("platforms", [])),
            root=str(path.parent),
            manifest_path=str(path),
            channel_priority=ws.get("channel-priority"),
        )

        config.features[Feature.DEFAULT_NAME] = self._parse_feature(
            path, Feature.DEFAULT_NAME, data
        )
        for feat_name, feat_data in data.get("feature", {}).items():
            config.features[feat_name] = self._parse_feature(path, feat_name, feat_data)

        envs_data = data.get("environments", {})
        if envs_data:
            environments: dict[str, Environment] = {}
            for env_name, env_val in envs_data.items():
                environments[env_name] = _parse_environment(env_name, env_val)
            # An implicit default environment is listed first.
            if Environment.DEFAULT_NAME not in environments:
                environments = {
                    Environment.DEFAULT_NAME: Environment(name=Environment.DEFAULT_NAME),
                    **environments,
                }
            config.environments = environments

        _check_libc_families(path, config)
        return config

    def _parse_feature(self, path: Path, name: str, data: dict[str, Any]) -> Feature:
        """Parse a feature table; the top level of the manifest is the default feature."""
        feature = Feature(name=name)
        feature.conda_dependencies = _parse_conda_deps(data.get("dependencies", {}))
        if not feature.is_default:
            feature.channels = _parse_channels(data.get("channels", []))
            feature.platforms = list(data.get("platforms", []))

        sysreq = data.get("system-requirements", {})
        if sysreq:
            feature.system_requirements = _parse_system_requirements(path, sysreq)

        _parse_target_overrides(data.get("target", {}), feature)
        return feature
