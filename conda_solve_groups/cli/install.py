"""``conda solve-groups install`` — create or update workspace environments."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.text import Text

from ..exceptions import EnvironmentNotFoundError
from ..grouped import EnvironmentName
from ..parsers import detect_and_parse
from ..update import (
    LockFileUsage,
    ReinstallPackages,
    UpdateLockFileOptions,
    UpdateMode,
    update_lock_file_and_prefixes,
)
from ..workspace import Workspace

if TYPE_CHECKING:
    import argparse
    from collections.abc import Sequence
    from pathlib import Path

    from ..workspace import WorkspaceEnvironment


def select_environments(
    workspace: Workspace,
    names: Sequence[str] | None,
    all_environments: bool = False,
) -> list[WorkspaceEnvironment]:
    """Pick the environments to install.

    Explicit *names* win (order and repeats kept), then every environment
    when *all_environments* is set, else the default environment.
    """
    if names:
        selected = []
        for name in names:
            env = workspace.environment(name)
            if env is None:
                raise EnvironmentNotFoundError(
                    name, list(workspace.config.environments)
                )
            selected.append(env)
        return selected
    if all_environments:
        return workspace.environments()
    return [workspace.default_environment()]


def installed_message(
    environments: Sequence[WorkspaceEnvironment], detached: Path | None = None
) -> Text:
    """The line printed once *environments* are installed."""
    names = [EnvironmentName(env.name).fancy_display() for env in environments]
    message = Text("✔ ", style="green")
    if len(names) == 1:
        message.append_text(
            Text.assemble("The ", names[0], " environment has been installed")
        )
    else:
        message.append("The following environments have been installed: ")
        message.append_text(Text(", ").join(names))
    if detached is not None:
        message.append_text(Text.assemble(" in '", (str(detached), "bold"), "'"))
    if len(names) == 1:
        message.append(".")
    return message


def execute_install(args: argparse.Namespace) -> int:
    """Install (create/update) workspace environments."""
    manifest_path = getattr(args, "file", None)
    _, config = detect_and_parse(manifest_path)
    workspace = Workspace(config)

    environments = select_environments(
        workspace,
        getattr(args, "environments", None),
        getattr(args, "all_environments", False),
    )
    options = UpdateLockFileOptions(
        lock_file_usage=LockFileUsage.from_flags(
            locked=getattr(args, "locked", False),
            frozen=getattr(args, "frozen", False),
        ),
        no_install=False,
        max_concurrent_solves=(
            getattr(args, "concurrent_solves", None) or workspace.max_concurrent_solves
        ),
    )
    update_lock_file_and_prefixes(
        environments,
        UpdateMode.REVALIDATE,
        options,
        ReinstallPackages(),
    )

    console = Console(stderr=True, soft_wrap=True, highlight=False)
    console.print(installed_message(environments, workspace.detached_environments))
    return 0
