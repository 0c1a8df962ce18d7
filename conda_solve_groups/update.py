"""Bring the lockfile and environment prefixes in line with the manifest.

:func:`update_lock_file_and_prefixes` is the single entry point used by
``install``.  It works on grouped environments: every solve group touched
by the selection is solved exactly once, however many of its members were
selected.
"""

from __future__ import annotations

import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from . import envs
from .exceptions import LockfileOutdatedError, PlatformError
from .grouped import unique_grouped_environments
from .lockfile import (
    generate_lockfile,
    install_from_lockfile,
    lockfile_exists,
    missing_locked_packages,
    read_lockfile,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

    from .grouped import GroupedEnvironment
    from .workspace import Workspace, WorkspaceEnvironment

log = logging.getLogger(__name__)


class UpdateMode(enum.Enum):
    """How thoroughly existing prefixes are checked before solving."""

    #: Skip units whose selected members are installed and locked.
    QUICK_VALIDATE = "quick-validate"
    #: Always solve, letting the solver work out what changed.
    REVALIDATE = "revalidate"


class LockFileUsage(enum.Enum):
    """What may be done with ``conda.lock``."""

    #: Solve and rewrite the lockfile.
    UPDATE = "update"
    #: Install from the lockfile, which must satisfy the manifest.
    LOCKED = "locked"
    #: Install from the lockfile as-is.
    FROZEN = "frozen"

    @classmethod
    def from_flags(cls, locked: bool = False, frozen: bool = False) -> LockFileUsage:
        if frozen:
            return cls.FROZEN
        if locked:
            return cls.LOCKED
        return cls.UPDATE


@dataclass(frozen=True)
class UpdateLockFileOptions:
    lock_file_usage: LockFileUsage = LockFileUsage.UPDATE
    #: Solve (or validate the lockfile) without touching any prefix.
    no_install: bool = False
    max_concurrent_solves: int = 1


@dataclass(frozen=True)
class ReinstallPackages:
    """Packages to reinstall after the update; nothing by default."""

    all: bool = False
    packages: frozenset[str] = frozenset()

    def __bool__(self) -> bool:
        return self.all or bool(self.packages)


def _install_locked(
    workspace: Workspace,
    selected: list[WorkspaceEnvironment],
    options: UpdateLockFileOptions,
) -> None:
    data = read_lockfile(workspace)
    platform = workspace.platform
    if options.lock_file_usage is LockFileUsage.LOCKED:
        for env in selected:
            missing = missing_locked_packages(data, env, platform)
            if missing:
                raise LockfileOutdatedError(env.name, missing)
    if options.no_install:
        return
    for env in selected:
        install_from_lockfile(workspace, env.name, data)


def _is_up_to_date(
    unit: GroupedEnvironment,
    selected: set[WorkspaceEnvironment],
    data: dict[str, Any] | None,
    platform: str,
) -> bool:
    if data is None:
        return False
    for env in unit.environments():
        if env not in selected:
            continue
        if not env.workspace.env_exists(env.name):
            return False
        if missing_locked_packages(data, env, platform):
            return False
    return True


def update_lock_file_and_prefixes(
    environments: Iterable[WorkspaceEnvironment],
    update_mode: UpdateMode,
    options: UpdateLockFileOptions,
    reinstall_packages: ReinstallPackages = ReinstallPackages(),
) -> list[GroupedEnvironment]:
    """Solve and install *environments*, then update ``conda.lock``.

    Returns the grouped environments that were processed, in the order
    their first member was selected.
    """
    selected = list(dict.fromkeys(environments))
    if not selected:
        return []

    workspace = selected[0].workspace
    platform = workspace.platform
    units = unique_grouped_environments(selected)
    log.debug(
        "Selected %d environment(s) in %d unit(s): %s",
        len(selected),
        len(units),
        ", ".join(str(unit.name) for unit in units),
    )

    if options.lock_file_usage is not LockFileUsage.UPDATE:
        _install_locked(workspace, selected, options)
        return units

    if not workspace.is_platform_supported:
        raise PlatformError(platform, workspace.config.platforms)
    for unit in units:
        envs.check_system_requirements(unit, platform)

    if reinstall_packages.all and not options.no_install:
        for env in selected:
            log.info("Removing environment '%s' for reinstallation", env.name)
            envs.remove_environment(workspace, env.name)

    to_solve = units
    if update_mode is UpdateMode.QUICK_VALIDATE:
        data = read_lockfile(workspace) if lockfile_exists(workspace) else None
        selected_set = set(selected)
        to_solve = [
            unit
            for unit in units
            if not _is_up_to_date(unit, selected_set, data, platform)
        ]
        for unit in units:
            if unit not in to_solve:
                log.info("'%s' is up to date, skipping", unit.name)

    members = set(selected)
    # Solver backends share conda's SubdirData and index caches across these
    # threads; a backend that is not thread-safe needs max_concurrent_solves=1.
    max_workers = max(1, options.max_concurrent_solves)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [
            pool.submit(envs.solve_grouped_environment, unit, platform, selected=members)
            for unit in to_solve
        ]
        solved = [future.result() for future in futures]

    if options.no_install:
        log.warning("Not installing %d solved unit(s)", len(solved))
        return units

    for transactions in solved:
        for env, txn in transactions:
            envs.execute_transaction(env, txn)

    if reinstall_packages.packages and not reinstall_packages.all:
        for env in selected:
            envs.reinstall_packages(env, reinstall_packages.packages)

    installed = [env.name for env in selected if workspace.env_exists(env.name)]
    if installed:
        generate_lockfile(workspace, env_names=installed)
    return units
