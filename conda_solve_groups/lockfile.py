"""Lockfile generation and consumption for reproducible environments.

Produces a single ``conda.lock`` at the workspace root.  The file
captures all environments and platforms so that installations can be
reproduced exactly without running the solver.

The format is a YAML document with three top-level keys::

    version: 1
    environments:
      <name>:
        channels: [{url: ...}, ...]
        packages:
          <platform>: [{conda: <url>}, ...]
    packages:
      - conda: <url>
        sha256: ...
        md5: ...
        depends: [...]
        ...

On the *write* side, ``generate_lockfile`` snapshots installed
environments and keeps the entries of every other environment and
platform already in the file.  On the *read* side,
``install_from_lockfile`` extracts the package list for one environment
+ platform and installs the exact URLs, bypassing the solver entirely.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from conda.common.serialize.yaml import dump as yaml_dump
from conda.common.serialize.yaml import load as yaml_load
from conda.models.environment import Environment
from conda_lockfiles.rattler_lock.v6 import _record_to_dict

from .exceptions import LockfileNotFoundError

if TYPE_CHECKING:
    from typing import Any

    from .workspace import Workspace, WorkspaceEnvironment

log = logging.getLogger(__name__)

#: Lockfile format version.
LOCKFILE_VERSION = 1

#: The canonical lockfile filename.
LOCKFILE_NAME = "conda.lock"

_PACKAGE_EXTENSIONS = (".conda", ".tar.bz2")


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def lockfile_path(workspace: Workspace) -> Path:
    """Return the path to the workspace lockfile (``<root>/conda.lock``)."""
    return workspace.root / LOCKFILE_NAME


def lockfile_exists(workspace: Workspace) -> bool:
    """Check whether a lockfile exists for the workspace."""
    return lockfile_path(workspace).is_file()


# ---------------------------------------------------------------------------
# Generating the lockfile
# ---------------------------------------------------------------------------


def _build_lockfile_dict(
    environments: dict[tuple[str, str], Environment],
    channels_by_env: dict[str, list[str]],
) -> dict[str, Any]:
    """Build the lockfile dict from a set of Environment objects.

    *environments* maps ``(env_name, platform)`` pairs to
    :class:`~conda.models.environment.Environment` objects — each
    entry represents one environment on one platform.

    *channels_by_env* maps environment names to ordered channel names.
    """
    seen_urls: set[str] = set()
    packages: list[dict[str, Any]] = []
    envs_dict: dict[str, dict[str, Any]] = {}

    for (env_name, platform), env in sorted(environments.items()):
        if env_name not in envs_dict:
            channels = channels_by_env.get(env_name, [])
            envs_dict[env_name] = {
                "channels": [{"url": ch} for ch in channels],
                "packages": {},
            }

        platform_refs: list[dict[str, str]] = []
        for pkg in sorted(env.explicit_packages, key=lambda p: p.name):
            platform_refs.append({"conda": pkg.url})
            if pkg.url not in seen_urls:
                packages.append(_record_to_dict(pkg))
                seen_urls.add(pkg.url)

        envs_dict[env_name]["packages"][platform] = platform_refs

    return {
        "version": LOCKFILE_VERSION,
        "environments": envs_dict,
        "packages": packages,
    }


def _merge_lockfile_data(
    new: dict[str, Any], old: dict[str, Any]
) -> dict[str, Any]:
    """Carry over entries from *old* that *new* does not regenerate.

    Whole environments missing from *new* are kept, as are platforms of
    regenerated environments that *new* does not cover.  Packages are
    kept only when a surviving entry still references them.
    """
    environments = new["environments"]
    for env_name, env_data in old.get("environments", {}).items():
        if env_name not in environments:
            environments[env_name] = env_data
            continue
        platforms = environments[env_name]["packages"]
        for platform, refs in env_data.get("packages", {}).items():
            platforms.setdefault(platform, refs)

    referenced = {
        ref.get("conda")
        for env_data in environments.values()
        for refs in env_data.get("packages", {}).values()
        for ref in refs
    }
    seen_urls = {pkg.get("conda") for pkg in new["packages"]}
    for pkg in old.get("packages", []):
        url = pkg.get("conda")
        if url in referenced and url not in seen_urls:
            new["packages"].append(pkg)
            seen_urls.add(url)

    new["environments"] = dict(sorted(environments.items()))
    return new


def generate_lockfile(
    workspace: Workspace,
    env_names: list[str] | None = None,
) -> Path:
    """Generate ``conda.lock`` from installed workspace environments.

    Snapshots every installed environment (or only *env_names* when
    given) for the current platform and merges the result with the
    existing lockfile, if any.

    Returns the path to the generated lockfile.
    """
    if env_names is None:
        env_names = [
            name for name in workspace.config.environments if workspace.env_exists(name)
        ]

    platform = workspace.platform
    environments: dict[tuple[str, str], Environment] = {}
    channels_by_env: dict[str, list[str]] = {}

    for name in env_names:
        prefix = workspace.env_prefix(name)
        env = Environment.from_prefix(
            prefix=str(prefix),
            name=name,
            platform=platform,
        )
        environments[(name, platform)] = env
        channels_by_env[name] = [
            ch.canonical_name for ch in workspace.get_environment(name).channels()
        ]

    data = _build_lockfile_dict(environments, channels_by_env)
    if lockfile_exists(workspace):
        data = _merge_lockfile_data(data, read_lockfile(workspace))

    path = lockfile_path(workspace)
    with path.open("w", encoding="utf-8") as fh:
        yaml_dump(data, fh)
    log.info("Wrote %s (%d environment(s))", path, len(data["environments"]))
    return path


# ---------------------------------------------------------------------------
# Reading the lockfile
# ---------------------------------------------------------------------------


def read_lockfile(workspace: Workspace) -> dict[str, Any]:
    """Parse ``conda.lock`` and return the raw dict."""
    path = lockfile_path(workspace)
    if not path.is_file():
        raise LockfileNotFoundError("(all)", path)
    with path.open() as fh:
        return yaml_load(fh) or {}


def _extract_env_packages(
    data: dict[str, Any],
    env_name: str,
    platform: str,
) -> list[tuple[str, dict[str, Any]]]:
    """Return ``(url, metadata)`` pairs for an env+platform from lockfile data.

    Raises ``LockfileNotFoundError`` if the environment or platform is
    missing.
    """
    environments = data.get("environments", {})
    if env_name not in environments:
        raise LockfileNotFoundError(env_name, Path(LOCKFILE_NAME))

    env_data = environments[env_name]
    platform_pkgs = env_data.get("packages", {}).get(platform)
    if platform_pkgs is None:
        raise LockfileNotFoundError(env_name, Path(LOCKFILE_NAME))

    lookup: dict[str, dict[str, Any]] = {}
    for pkg in data.get("packages", []):
        url = pkg.get("conda")
        if url:
            lookup[url] = pkg

    result: list[tuple[str, dict[str, Any]]] = []
    for ref in platform_pkgs:
        url = ref.get("conda", "")
        result.append((url, lookup.get(url, {})))

    return result


def _package_name(url: str) -> str:
    """Package name from a conda package URL (``<name>-<version>-<build>.conda``)."""
    filename = url.rsplit("/", 1)[-1]
    for ext in _PACKAGE_EXTENSIONS:
        if filename.endswith(ext):
            filename = filename[: -len(ext)]
            break
    return filename.rsplit("-", 2)[0]


def missing_locked_packages(
    data: dict[str, Any],
    environment: WorkspaceEnvironment,
    platform: str,
) -> list[str]:
    """Names requested by *environment* that the lockfile does not pin.

    An environment or platform absent from the lockfile counts as
    missing everything it requests.
    """
    requested = environment.conda_dependencies(platform)
    try:
        pairs = _extract_env_packages(data, environment.name, platform)
    except LockfileNotFoundError:
        return sorted(requested)
    locked = {_package_name(url) for url, _meta in pairs}
    return sorted(name for name in requested if name not in locked)


# ---------------------------------------------------------------------------
# Installing from the lockfile
# ---------------------------------------------------------------------------


def install_from_lockfile(
    workspace: Workspace,
    env_name: str,
    data: dict[str, Any] | None = None,
) -> None:
    """Install an environment from ``conda.lock``.

    Extracts the package list for *env_name* on the current platform
    (from *data* when the lockfile has already been read), downloads the
    exact packages, and installs them into the environment prefix —
    bypassing the solver entirely.

    Raises ``LockfileNotFoundError`` if the lockfile is missing or
    does not contain the requested environment/platform.
    """
    from conda.misc import (
        get_package_records_from_explicit,
        install_explicit_packages,
    )

    if data is None:
        data = read_lockfile(workspace)
    pkg_pairs = _extract_env_packages(data, env_name, workspace.platform)

    urls = [url for url, _meta in pkg_pairs]

    prefix = workspace.env_prefix(env_name)
    prefix.mkdir(parents=True, exist_ok=True)

    log.info("Installing %d locked package(s) into %s", len(urls), prefix)
    records = get_package_records_from_explicit(urls)
    install_explicit_packages(
        package_cache_records=list(records),
        prefix=str(prefix),
    )
