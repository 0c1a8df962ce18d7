"""Grouped environments: the unit of dependency resolution.

A :class:`GroupedEnvironment` is either a solve group with more than one
member (:class:`SolveGroupEnvironment`) or a single environment
(:class:`StandaloneEnvironment`).  A solve group with only one member is
treated as that member, so consumers never see a "group of one".

Use the constructors on :class:`GroupedEnvironment` rather than the
variant classes; they enforce the canonical form::

    unit = GroupedEnvironment.from_environment(workspace.get_environment("dev"))
    for env in unit.environments():
        ...

Two environments of the same solve group produce equal units, which is
what callers rely on to solve each group once.

:class:`GroupedEnvironmentName` mirrors the union as plain values that do
not reference the workspace, for use as dict keys and in messages.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from conda.core.prefix_data import PrefixData
from conda.models.match_spec import MatchSpec
from rich.text import Text

from .models import merge_channels
from .system_requirements import minimal_virtual_packages

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

    from conda.models.channel import Channel
    from conda.models.records import PackageRecord

    from .models import Feature
    from .system_requirements import SystemRequirements
    from .workspace import ChannelConfig, SolveGroup, Workspace, WorkspaceEnvironment

#: Console style of solve group names.
SOLVE_GROUP_STYLE = "bold cyan"

#: Console style of environment names.
ENVIRONMENT_STYLE = "bold magenta"


class GroupedEnvironmentName:
    """Name of a :class:`GroupedEnvironment`.

    ``str()`` renders the bare name for either variant; use
    ``isinstance`` to tell a solve group from an environment.
    """

    name: str
    style: ClassVar[str]

    def as_str(self) -> str:
        return self.name

    def fancy_display(self) -> Text:
        """The name styled for the console."""
        return Text(self.name, style=self.style)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class SolveGroupName(GroupedEnvironmentName):
    name: str
    style: ClassVar[str] = SOLVE_GROUP_STYLE


@dataclass(frozen=True)
class EnvironmentName(GroupedEnvironmentName):
    name: str
    style: ClassVar[str] = ENVIRONMENT_STYLE


class GroupedEnvironment(ABC):
    """Either a solve group of two or more environments or a single environment."""

    @staticmethod
    def from_solve_group(group: SolveGroup) -> GroupedEnvironment:
        members = group.environments()
        if len(members) > 1:
            return SolveGroupEnvironment(group)
        if members:
            return StandaloneEnvironment(members[0])
        raise AssertionError(f"solve group '{group.name}' has no environments")

    @staticmethod
    def from_environment(environment: WorkspaceEnvironment) -> GroupedEnvironment:
        group = environment.solve_group()
        if group is not None and len(group.environments()) > 1:
            return SolveGroupEnvironment(group)
        return StandaloneEnvironment(environment)

    @staticmethod
    def from_name(
        workspace: Workspace, name: GroupedEnvironmentName
    ) -> GroupedEnvironment | None:
        """Look *name* up in *workspace*; ``None`` if it is not defined there."""
        if isinstance(name, SolveGroupName):
            group = workspace.solve_group(name.name)
            if group is None:
                return None
            return GroupedEnvironment.from_solve_group(group)
        environment = workspace.environment(name.name)
        if environment is None:
            return None
        return GroupedEnvironment.from_environment(environment)

    @property
    @abstractmethod
    def name(self) -> GroupedEnvironmentName:
        """The solve group name or the environment name."""

    @property
    @abstractmethod
    def workspace(self) -> Workspace:
        """The workspace the unit belongs to."""

    @abstractmethod
    def environments(self) -> Iterator[WorkspaceEnvironment]:
        """Members in declaration order; a fresh iterator per call."""

    @abstractmethod
    def dir(self) -> Path:
        """Directory the unit is solved against."""

    @abstractmethod
    def system_requirements(self) -> SystemRequirements:
        """Most restrictive requirements of the members."""

    @abstractmethod
    def features(self) -> list[Feature]:
        """Features of all members, in member order."""

    def prefix(self) -> PrefixData:
        """The conda prefix located at :meth:`dir`."""
        return PrefixData(str(self.dir()))

    def virtual_packages(self, platform: str) -> list[PackageRecord]:
        """Virtual packages implied by the system requirements on *platform*."""
        return [
            package.to_record()
            for package in minimal_virtual_packages(platform, self.system_requirements())
        ]

    def channel_config(self) -> ChannelConfig:
        return self.workspace.channel_config()

    def channels(self) -> list[Channel]:
        return merge_channels(self.workspace.config.channels, self.features())

    def conda_dependencies(self, platform: str | None = None) -> tuple[MatchSpec, ...]:
        """Specs requested by the members, merged per package name.

        Specs of different members for the same package are intersected,
        so the solution satisfies every member.  Raises ``ValueError`` if
        two members request incompatible fields (e.g. different channels).
        """
        specs = [
            spec
            for env in self.environments()
            for spec in env.conda_dependencies(platform).values()
        ]
        return MatchSpec.merge(specs)


@dataclass(frozen=True)
class SolveGroupEnvironment(GroupedEnvironment):
    """A solve group with two or more member environments."""

    group: SolveGroup

    def __post_init__(self) -> None:
        if len(self.group.environments()) < 2:
            raise ValueError(
                f"solve group '{self.group.name}' has fewer than two environments; "
                "use GroupedEnvironment.from_solve_group()"
            )

    @property
    def name(self) -> SolveGroupName:
        return SolveGroupName(self.group.name)

    @property
    def workspace(self) -> Workspace:
        return self.group.workspace

    def environments(self) -> Iterator[WorkspaceEnvironment]:
        return iter(self.group.environments())

    def dir(self) -> Path:
        return self.group.dir()

    def system_requirements(self) -> SystemRequirements:
        return self.group.system_requirements()

    def features(self) -> list[Feature]:
        return self.group.features()


@dataclass(frozen=True)
class StandaloneEnvironment(GroupedEnvironment):
    """An environment that is solved on its own."""

    environment: WorkspaceEnvironment

    @property
    def name(self) -> EnvironmentName:
        return EnvironmentName(self.environment.name)

    @property
    def workspace(self) -> Workspace:
        return self.environment.workspace

    def environments(self) -> Iterator[WorkspaceEnvironment]:
        return iter((self.environment,))

    def dir(self) -> Path:
        return self.environment.dir()

    def system_requirements(self) -> SystemRequirements:
        return self.environment.system_requirements()

    def features(self) -> list[Feature]:
        return self.environment.features()


def unique_grouped_environments(
    environments: Iterable[WorkspaceEnvironment],
) -> list[GroupedEnvironment]:
    """Map *environments* to their grouped environments, dropping duplicates.

    Order follows the first occurrence of each unit.
    """
    units: dict[GroupedEnvironment, None] = {}
    for environment in environments:
        units.setdefault(GroupedEnvironment.from_environment(environment), None)
    return list(units)
