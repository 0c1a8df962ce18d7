"""Environment manager: solve, install, and remove workspace environments.

Uses conda's Solver API to install packages into project-scoped
environments under ``.conda/envs/<name>/``.  Each environment is
a standard conda prefix that can be activated with ``conda activate``.

Solving happens per :class:`~.grouped.GroupedEnvironment`.  For a solve
group, the union of every member's specs is solved once against the
group's shared directory; each member is then solved with its own specs
and everything they depend on pinned to the exact channel, version and
build from that solution, so all members agree on the packages they have
in common.

Solving and executing are separate steps: solves only read the prefix
and can run concurrently, while transactions are executed one at a time.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from conda.base.constants import UpdateModifier
from conda.base.context import context as conda_context
from conda.core.envs_manager import unregister_env
from conda.core.prefix_data import PrefixData
from conda.exceptions import UnsatisfiableError
from conda.gateways.disk.delete import rm_rf
from conda.models.match_spec import MatchSpec
from conda.models.version import VersionOrder

from .exceptions import SolveError, SystemRequirementsError
from .grouped import SolveGroupEnvironment

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable
    from typing import Any

    from conda.core.link import UnlinkLinkTransaction
    from conda.models.channel import Channel
    from conda.models.records import PackageRecord

    from .grouped import GroupedEnvironment
    from .workspace import Workspace, WorkspaceEnvironment

log = logging.getLogger(__name__)

#: Virtual packages whose host version must be at least the required one.
VERSIONED_VIRTUAL_PACKAGES = frozenset({"__linux", "__glibc", "__osx", "__cuda"})


def _solver_backend(name: str) -> Any:
    """Return the configured solver class (respects solver plugins)."""
    solver_backend = conda_context.plugin_manager.get_cached_solver_backend()
    if solver_backend is None:
        raise SolveError(name, "No solver backend found")
    return solver_backend


def host_virtual_packages() -> dict[str, PackageRecord]:
    """Virtual packages conda detects on this machine, keyed by name."""
    records = conda_context.plugin_manager.get_virtual_package_records()
    return {record.name: record for record in records}


def check_system_requirements(unit: GroupedEnvironment, platform: str) -> None:
    """Raise ``SystemRequirementsError`` if this machine cannot run *unit*.

    Only meaningful when *platform* is the host platform.
    """
    host = host_virtual_packages()
    for required in unit.virtual_packages(platform):
        found = host.get(required.name)
        if found is None:
            raise SystemRequirementsError(
                str(unit.name),
                f"{required.name} {required.version} is required but not available",
            )
        if required.name in VERSIONED_VIRTUAL_PACKAGES and VersionOrder(
            found.version
        ) < VersionOrder(required.version):
            raise SystemRequirementsError(
                str(unit.name),
                f"{required.name} {required.version} is required "
                f"but {found.version} was found",
            )


def solve_group_pins(
    unit: GroupedEnvironment, platform: str
) -> dict[str, PackageRecord]:
    """Solve all members of a solve group together.

    Returns the solution keyed by package name.  Standalone environments
    need no pins and return an empty dict.
    """
    if not isinstance(unit, SolveGroupEnvironment):
        return {}

    name = str(unit.name)
    try:
        specs = list(unit.conda_dependencies(platform))
    except ValueError as exc:
        raise SolveError(name, str(exc)) from exc
    if not specs:
        return {}

    log.info("Solving solve group '%s' (%d spec(s))", name, len(specs))
    solver = _solver_backend(name)(
        str(unit.dir()),
        unit.channels(),
        conda_context.subdirs,
        specs_to_add=specs,
    )
    try:
        records = solver.solve_final_state()
    except (UnsatisfiableError, SystemExit) as exc:
        raise SolveError(name, str(exc)) from exc

    pins = {
        record.name: record
        for record in records
        if not record.name.startswith("__")
    }
    log.debug("Solve group '%s' pins %d package(s)", name, len(pins))
    return pins


def dependency_closure(
    names: Iterable[str], pins: dict[str, PackageRecord]
) -> dict[str, PackageRecord]:
    """Records of *pins* reachable from *names* through their ``depends``."""
    closure: dict[str, PackageRecord] = {}
    pending = [name for name in names if name in pins]
    while pending:
        name = pending.pop()
        if name in closure:
            continue
        record = closure[name] = pins[name]
        for dependency in record.depends:
            dep_name = MatchSpec(dependency).name
            if dep_name in pins and dep_name not in closure:
                pending.append(dep_name)
    return closure


def _pin(record: PackageRecord, spec: MatchSpec | None = None) -> MatchSpec:
    """Exact spec for *record*: channel, version and build."""
    fields = {
        "channel": record.channel.canonical_name,
        "version": record.version,
        "build": record.build,
    }
    if spec is None:
        return MatchSpec(name=record.name, **fields)
    return MatchSpec(spec, **fields)


def solve_environment(
    env: WorkspaceEnvironment,
    platform: str,
    *,
    pins: dict[str, PackageRecord] | None = None,
    channels: list[Channel] | None = None,
) -> UnlinkLinkTransaction | None:
    """Solve *env* and return the transaction that installs it.

    Every record of *pins* reachable from the requested specs is pinned
    to its exact channel, version and build, so the environment gets the
    same packages as the solve group solution.  *channels* defaults to
    the environment's own channels.  Returns ``None`` if the environment
    requests nothing.

    Raises ``SolveError`` if dependency resolution fails.
    """
    requested = env.conda_dependencies(platform)
    if not requested:
        return None

    closure = dependency_closure(requested, pins or {})
    specs = [
        _pin(closure[name], spec) if name in closure else spec
        for name, spec in requested.items()
    ]
    specs.extend(
        _pin(record) for name, record in closure.items() if name not in requested
    )

    solver = _solver_backend(env.name)(
        str(env.dir()),
        channels if channels is not None else env.channels(),
        conda_context.subdirs,
        specs_to_add=specs,
    )
    try:
        if env.workspace.env_exists(env.name):
            return solver.solve_for_transaction(
                update_modifier=UpdateModifier.FREEZE_INSTALLED,
            )
        return solver.solve_for_transaction()
    except (UnsatisfiableError, SystemExit) as exc:
        raise SolveError(env.name, str(exc)) from exc


def solve_grouped_environment(
    unit: GroupedEnvironment,
    platform: str,
    *,
    selected: Collection[WorkspaceEnvironment],
) -> list[tuple[WorkspaceEnvironment, UnlinkLinkTransaction | None]]:
    """Solve *unit* once and return a transaction per selected member.

    Members are solved against the channels of the whole unit.
    """
    pins = solve_group_pins(unit, platform)
    channels = unit.channels()
    return [
        (env, solve_environment(env, platform, pins=pins, channels=channels))
        for env in unit.environments()
        if env in selected
    ]


def execute_transaction(
    env: WorkspaceEnvironment, txn: UnlinkLinkTransaction | None
) -> None:
    """Apply *txn* to the prefix of *env*."""
    if txn is None:
        # Nothing requested; just ensure the prefix directory exists
        env.dir().mkdir(parents=True, exist_ok=True)
        return
    if txn.nothing_to_do:
        log.info("Environment '%s' is up to date", env.name)
        return
    log.info("Installing environment '%s' into %s", env.name, env.dir())
    txn.download_and_extract()
    txn.execute()


def reinstall_packages(env: WorkspaceEnvironment, names: Iterable[str]) -> None:
    """Force reinstallation of the installed packages among *names*."""
    installed = {record.name for record in PrefixData(str(env.dir())).iter_records()}
    targets = sorted(set(names) & installed)
    if not targets:
        return

    log.info("Reinstalling %s in '%s'", ", ".join(targets), env.name)
    solver = _solver_backend(env.name)(
        str(env.dir()),
        env.channels(),
        conda_context.subdirs,
        specs_to_add=[MatchSpec(name) for name in targets],
    )
    try:
        txn = solver.solve_for_transaction(force_reinstall=True)
    except (UnsatisfiableError, SystemExit) as exc:
        raise SolveError(env.name, str(exc)) from exc
    execute_transaction(env, txn)


def remove_environment(workspace: Workspace, env_name: str) -> None:
    """Remove a workspace environment by deleting its prefix."""
    prefix = workspace.env_prefix(env_name)
    if prefix.is_dir():
        unregister_env(str(prefix))
        rm_rf(prefix)
