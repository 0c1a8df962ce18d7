"""Data models for workspace configuration.

These dataclasses represent the parsed workspace manifest in a
format-agnostic way.  Parsers convert from conda.toml / pixi.toml into
these models; the live views in :mod:`conda_solve_groups.workspace`
and :mod:`conda_solve_groups.grouped` are derived from them.

Conda dependencies use :class:`~conda.models.match_spec.MatchSpec`
directly, and channels use :class:`~conda.models.channel.Channel`,
so the workspace layer benefits from conda's own validation, URL
resolution, and spec parsing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from conda.base.constants import KNOWN_SUBDIRS
from conda.models.channel import Channel  # noqa: TC002
from conda.models.match_spec import MatchSpec  # noqa: TC002

from .exceptions import (
    EnvironmentNotFoundError,
    FeatureNotFoundError,
    PlatformError,
)
from .system_requirements import SystemRequirements

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass
class Feature:
    """A composable group of dependencies and settings.

    Features map directly to ``[feature.<name>]`` tables in a manifest.
    They can provide conda dependencies, channel overrides, platform
    restrictions, and system requirements.

    The special feature named ``"default"`` corresponds to the top-level
    workspace dependencies.
    """

    DEFAULT_NAME: ClassVar[str] = "default"

    name: str
    conda_dependencies: dict[str, MatchSpec] = field(default_factory=dict)
    channels: list[Channel] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)
    system_requirements: SystemRequirements = field(
        default_factory=SystemRequirements
    )

    # Per-platform overrides: platform -> deps
    target_conda_dependencies: dict[str, dict[str, MatchSpec]] = field(
        default_factory=dict
    )

    @property
    def is_default(self) -> bool:
        return self.name == self.DEFAULT_NAME


@dataclass
class Environment:
    """A named environment composed from one or more features.

    This maps to an ``[environments]`` entry in a manifest.  An
    environment inherits the ``default`` feature plus any additional
    features listed in *features*, unless *no_default_feature* is set.

    *solve_group* links environments so they share a single solver
    solution (ensuring package-version consistency across environments).
    """

    DEFAULT_NAME: ClassVar[str] = "default"

    name: str
    features: list[str] = field(default_factory=list)
    solve_group: str | None = None
    no_default_feature: bool = False

    @property
    def is_default(self) -> bool:
        return self.name == self.DEFAULT_NAME


@dataclass
class WorkspaceConfig:
    """Complete parsed workspace configuration.

    This is the top-level model that parsers produce.  It contains
    all channels, platforms, features, and environments defined in
    a workspace manifest.  Environments keep their declaration order,
    which is also the member order of every solve group.
    """

    name: str | None = None
    version: str | None = None
    description: str | None = None

    channels: list[Channel] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)

    # Features keyed by name; always includes "default"
    features: dict[str, Feature] = field(default_factory=dict)

    # Environments keyed by name in declaration order; always includes "default"
    environments: dict[str, Environment] = field(default_factory=dict)

    # Workspace root directory (parent of manifest file)
    root: str = ""

    # Path to the manifest file that was parsed
    manifest_path: str = ""

    # Directory for project-local environments (default: .conda/envs)
    envs_dir: str = ".conda/envs"

    channel_priority: str | None = None  # "strict" | "flexible" | "disabled"

    def __post_init__(self) -> None:
        """Ensure the default feature and environment always exist.

        Also validates that all declared platforms are recognised
        conda subdirs (e.g. ``linux-64``, ``osx-arm64``).
        """
        if Feature.DEFAULT_NAME not in self.features:
            self.features[Feature.DEFAULT_NAME] = Feature(name=Feature.DEFAULT_NAME)
        if Environment.DEFAULT_NAME not in self.environments:
            self.environments[Environment.DEFAULT_NAME] = Environment(
                name=Environment.DEFAULT_NAME
            )

        invalid = [p for p in self.platforms if p not in KNOWN_SUBDIRS]
        if invalid:
            raise PlatformError(
                ", ".join(invalid),
                sorted(KNOWN_SUBDIRS),
            )

    def get_environment(self, name: str) -> Environment:
        """Return the environment with *name*, raising if not found."""
        if name not in self.environments:
            raise EnvironmentNotFoundError(name, list(self.environments.keys()))
        return self.environments[name]

    def solve_group_members(self, group: str) -> list[Environment]:
        """Return the environments that declare *group*, in declaration order."""
        return [env for env in self.environments.values() if env.solve_group == group]

    def solve_group_names(self) -> list[str]:
        """Return solve group names in order of first reference."""
        names: dict[str, None] = {}
        for env in self.environments.values():
            if env.solve_group is not None:
                names.setdefault(env.solve_group, None)
        return list(names)

    def resolve_features(self, environment: Environment) -> list[Feature]:
        """Return the ordered list of features for *environment*.

        By default, the ``default`` feature is prepended unless the
        environment sets ``no_default_feature``.
        """
        result: list[Feature] = []
        if not environment.no_default_feature:
            result.append(self.features[Feature.DEFAULT_NAME])

        for fname in environment.features:
            if fname not in self.features:
                raise FeatureNotFoundError(fname, environment.name)
            feat = self.features[fname]
            if feat not in result:
                result.append(feat)

        return result


def merge_conda_dependencies(
    features: Iterable[Feature],
    platform: str | None = None,
) -> dict[str, MatchSpec]:
    """Merge conda dependencies across *features*.

    Later features override earlier ones.  If *platform* is given,
    target-specific dependencies are also merged in.
    """
    merged: dict[str, MatchSpec] = {}
    for feature in features:
        merged.update(feature.conda_dependencies)
        if platform and platform in feature.target_conda_dependencies:
            merged.update(feature.target_conda_dependencies[platform])
    return merged


def merge_channels(
    channels: Iterable[Channel], features: Iterable[Feature]
) -> list[Channel]:
    """Merge workspace *channels* with the channels of *features*.

    Feature-specific channels are appended after the workspace-level
    channels, preserving priority order.  Duplicates are removed.
    """
    seen: set[str] = set()
    result: list[Channel] = []
    for ch in channels:
        if ch.canonical_name not in seen:
            seen.add(ch.canonical_name)
            result.append(ch)
    for feature in features:
        for ch in feature.channels:
            if ch.canonical_name not in seen:
                seen.add(ch.canonical_name)
                result.append(ch)
    return result
