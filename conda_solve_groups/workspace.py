"""Workspace: live, read-only views over a parsed workspace manifest.

:class:`Workspace` owns the parsed :class:`~.models.WorkspaceConfig` and
hands out lightweight :class:`WorkspaceEnvironment` and :class:`SolveGroup`
handles.  Handles hold only a name and a reference to the workspace; every
accessor recomputes its answer from the manifest, so there is no cached
state to go stale.

Conda-derived values (current platform, channel alias, plugin settings)
are resolved lazily on first access and cached, which keeps conda imports
out of the plugin load path.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from .models import merge_channels, merge_conda_dependencies
from .system_requirements import SystemRequirements

if TYPE_CHECKING:
    from conda.models.channel import Channel
    from conda.models.match_spec import MatchSpec

    from .models import Environment, Feature, WorkspaceConfig


@dataclass(frozen=True)
class ChannelConfig:
    """Channel resolution settings shared by every environment of a workspace."""

    channel_alias: str
    root_dir: Path
    channel_priority: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "channel_alias": self.channel_alias,
            "root_dir": str(self.root_dir),
            "channel_priority": self.channel_priority,
        }


@dataclass(frozen=True)
class WorkspaceEnvironment:
    """A named environment of a workspace.

    Equality and hashing only consider the name; names are unique
    within a workspace.
    """

    name: str
    workspace: Workspace = field(compare=False, repr=False)

    @property
    def manifest(self) -> Environment:
        return self.workspace.config.environments[self.name]

    def dir(self) -> Path:
        """Directory holding this environment's prefix."""
        return self.workspace.env_prefix(self.name)

    def solve_group(self) -> SolveGroup | None:
        group = self.manifest.solve_group
        if group is None:
            return None
        return self.workspace.solve_group(group)

    def features(self) -> list[Feature]:
        return self.workspace.config.resolve_features(self.manifest)

    def system_requirements(self) -> SystemRequirements:
        """Most restrictive union of the requirements of all features."""
        return SystemRequirements.merge(f.system_requirements for f in self.features())

    def channels(self) -> list[Channel]:
        return merge_channels(self.workspace.config.channels, self.features())

    def conda_dependencies(self, platform: str | None = None) -> dict[str, MatchSpec]:
        return merge_conda_dependencies(self.features(), platform)

    def platforms(self) -> list[str]:
        """Platforms this environment supports.

        Feature platform restrictions are intersected; without any, the
        workspace platforms apply.
        """
        feature_platforms: set[str] | None = None
        for feat in self.features():
            if feat.platforms:
                if feature_platforms is None:
                    feature_platforms = set(feat.platforms)
                else:
                    feature_platforms &= set(feat.platforms)
        if feature_platforms is None:
            return list(self.workspace.config.platforms)
        return sorted(feature_platforms)


@dataclass(frozen=True)
class SolveGroup:
    """A set of environments that are solved together.

    Only :meth:`Workspace.solve_group` creates these, and only for names
    referenced by at least one environment.
    """

    name: str
    workspace: Workspace = field(compare=False, repr=False)

    def environments(self) -> list[WorkspaceEnvironment]:
        """Member environments in workspace declaration order."""
        return [
            WorkspaceEnvironment(env.name, self.workspace)
            for env in self.workspace.config.solve_group_members(self.name)
        ]

    def dir(self) -> Path:
        """Directory shared by the members of the group."""
        return self.workspace.solve_group_envs_dir / self.name

    def features(self) -> list[Feature]:
        """Features of all members, concatenated in member order."""
        return [feat for env in self.environments() for feat in env.features()]

    def system_requirements(self) -> SystemRequirements:
        return SystemRequirements.merge(
            env.system_requirements() for env in self.environments()
        )


class Workspace:
    """A loaded workspace.

    Properties backed by conda are resolved on first access and cached.
    Conda imports are deferred to keep plugin load time low.
    """

    def __init__(self, config: WorkspaceConfig | None = None) -> None:
        self._config = config
        self._cache: dict[str, object] = {}

    @property
    def config(self) -> WorkspaceConfig:
        """The parsed workspace configuration."""
        if self._config is None:
            from .parsers import detect_and_parse

            _, self._config = detect_and_parse()
        return self._config

    @property
    def name(self) -> str:
        return self.config.name or self.root.name

    @property
    def root(self) -> Path:
        """Workspace root directory."""
        return Path(self.config.root)

    @property
    def detached_environments(self) -> Path | None:
        """Directory for environments stored outside the workspace, if configured."""
        if "detached_environments" not in self._cache:
            from conda.base.context import context

            value = getattr(context.plugins, "detached_environments", None)
            self._cache["detached_environments"] = (
                Path(value).expanduser() if value else None
            )
        return self._cache["detached_environments"]  # type: ignore[return-value]

    @property
    def max_concurrent_solves(self) -> int:
        """Upper bound on solves running at the same time (0 means CPU count)."""
        if "max_concurrent_solves" not in self._cache:
            from conda.base.context import context

            value = getattr(context.plugins, "max_concurrent_solves", 0)
            self._cache["max_concurrent_solves"] = int(value or 0) or os.cpu_count() or 1
        return self._cache["max_concurrent_solves"]  # type: ignore[return-value]

    @property
    def envs_dir(self) -> Path:
        """Directory where the workspace's environments are stored."""
        detached = self.detached_environments
        if detached is None:
            return self.root / self.config.envs_dir
        digest = hashlib.sha256(str(self.root).encode("utf-8")).hexdigest()[:8]
        return detached / f"{self.name}-{digest}" / "envs"

    @property
    def solve_group_envs_dir(self) -> Path:
        """Directory where solve groups keep their shared state."""
        return self.envs_dir.parent / "solve-group-envs"

    @property
    def platform(self) -> str:
        """Current conda subdir (e.g. ``osx-arm64``)."""
        if "platform" not in self._cache:
            from conda.base.context import context

            self._cache["platform"] = context.subdir
        return self._cache["platform"]  # type: ignore[return-value]

    @property
    def is_platform_supported(self) -> bool:
        """Whether the current platform is in the workspace's platform list."""
        if not self.config.platforms:
            return True
        return self.platform in self.config.platforms

    def channel_config(self) -> ChannelConfig:
        if "channel_alias" not in self._cache:
            from conda.base.context import context

            self._cache["channel_alias"] = context.channel_alias.base_url
        return ChannelConfig(
            channel_alias=self._cache["channel_alias"],  # type: ignore[arg-type]
            root_dir=self.root,
            channel_priority=self.config.channel_priority,
        )

    def environments(self) -> list[WorkspaceEnvironment]:
        """All environments in declaration order."""
        return [WorkspaceEnvironment(name, self) for name in self.config.environments]

    def default_environment(self) -> WorkspaceEnvironment:
        from .models import Environment

        return WorkspaceEnvironment(Environment.DEFAULT_NAME, self)

    def environment(self, name: str) -> WorkspaceEnvironment | None:
        """Return the environment called *name*, or ``None`` if there is none."""
        if name not in self.config.environments:
            return None
        return WorkspaceEnvironment(name, self)

    def get_environment(self, name: str) -> WorkspaceEnvironment:
        """Return the environment called *name*, raising if not found."""
        self.config.get_environment(name)
        return WorkspaceEnvironment(name, self)

    def solve_groups(self) -> list[SolveGroup]:
        return [SolveGroup(name, self) for name in self.config.solve_group_names()]

    def solve_group(self, name: str) -> SolveGroup | None:
        """Return the solve group called *name*, or ``None`` if no environment uses it."""
        if not self.config.solve_group_members(name):
            return None
        return SolveGroup(name, self)

    def env_prefix(self, env_name: str) -> Path:
        """Return the prefix path for a named environment."""
        return self.envs_dir / env_name

    def env_exists(self, env_name: str) -> bool:
        """Check whether the prefix is a valid conda environment."""
        from conda.core.prefix_data import PrefixData

        prefix = self.env_prefix(env_name)
        return PrefixData(str(prefix)).is_environment()
