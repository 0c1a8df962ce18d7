"""Exception hierarchy for conda-solve-groups."""

from __future__ import annotations

from typing import TYPE_CHECKING

from conda.exceptions import CondaError

if TYPE_CHECKING:
    from pathlib import Path


class CondaSolveGroupsError(CondaError):
    """Base exception for all conda-solve-groups errors."""


class WorkspaceNotFoundError(CondaSolveGroupsError):
    """No workspace manifest was found in *search_dir* or its parents."""

    def __init__(self, search_dir: str | Path) -> None:
        self.search_dir = search_dir
        super().__init__(
            f"No workspace manifest found in '{search_dir}' or any parent directory.\n"
            "Create a conda.toml or pixi.toml to define a workspace."
        )


class WorkspaceParseError(CondaSolveGroupsError):
    """The workspace manifest could not be parsed."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse workspace manifest '{path}': {reason}")


class EnvironmentNotFoundError(CondaSolveGroupsError):
    """The requested environment is not defined in the workspace."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = available
        hint = ""
        if available:
            hint = f"\nAvailable environments: {', '.join(sorted(available))}"
        super().__init__(f"Environment '{name}' is not defined in the workspace.{hint}")


class FeatureNotFoundError(CondaSolveGroupsError):
    """A feature referenced by an environment does not exist."""

    def __init__(self, feature: str, environment: str) -> None:
        self.feature = feature
        self.environment = environment
        super().__init__(
            f"Feature '{feature}' referenced by environment '{environment}' "
            "is not defined in the workspace."
        )


class PlatformError(CondaSolveGroupsError):
    """Platform configuration error."""

    def __init__(self, platform: str, available: list[str]) -> None:
        self.platform = platform
        self.available = available
        super().__init__(
            f"Platform '{platform}' is not supported by this workspace.\n"
            f"Supported platforms: {', '.join(sorted(available))}"
        )


class SolveError(CondaSolveGroupsError):
    """Dependency solving failed for an environment or solve group."""

    def __init__(self, environment: str, reason: str) -> None:
        self.environment = environment
        self.reason = reason
        super().__init__(f"Failed to solve environment '{environment}': {reason}")


class SystemRequirementsError(CondaSolveGroupsError):
    """The host does not satisfy the system requirements of an environment."""

    def __init__(self, environment: str, reason: str) -> None:
        self.environment = environment
        self.reason = reason
        super().__init__(
            f"The system requirements of '{environment}' are not met "
            f"by this machine: {reason}"
        )


class LockfileNotFoundError(CondaSolveGroupsError):
    """No lockfile or lockfile entry exists for the requested environment."""

    def __init__(self, environment: str, path: str | Path) -> None:
        self.environment = environment
        self.path = path
        super().__init__(
            f"No lockfile entry found for environment '{environment}' "
            f"in {path}.\n"
            f"Run 'conda solve-groups install' to generate one."
        )


class LockfileOutdatedError(CondaSolveGroupsError):
    """The lockfile does not satisfy the manifest but updating it is not allowed."""

    def __init__(self, environment: str, missing: list[str]) -> None:
        self.environment = environment
        self.missing = missing
        super().__init__(
            f"The lockfile is out of date for environment '{environment}' "
            f"(missing: {', '.join(sorted(missing))}).\n"
            "Run 'conda solve-groups install' without '--locked' to update it."
        )
