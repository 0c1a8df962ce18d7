"""Conda plugin registration for conda-solve-groups.

This module is imported on *every* conda invocation via the entry point
system.  Only ``hookimpl`` and the plugin types are imported at module level;
everything else is lazily imported inside the hooks to keep the
overhead under 1 ms.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from conda.plugins import hookimpl
from conda.plugins.types import CondaSetting, CondaSubcommand

if TYPE_CHECKING:
    from collections.abc import Iterable


@hookimpl
def conda_subcommands() -> Iterable[CondaSubcommand]:
    from .cli import configure_parser, execute

    yield CondaSubcommand(
        name="solve-groups",
        summary="Install workspace environments, solving solve groups together.",
        action=execute,  # ty: ignore[invalid-argument-type]
        configure_parser=configure_parser,
    )


@hookimpl
def conda_settings() -> Iterable[CondaSetting]:
    """Register the ``plugins.max_concurrent_solves`` and
    ``plugins.detached_environments`` condarc settings.
    """
    from conda.common.configuration import PrimitiveParameter

    yield CondaSetting(
        name="max_concurrent_solves",
        description="Maximum number of solves run at once (0 means the CPU count).",
        parameter=PrimitiveParameter(0, element_type=int),
    )
    yield CondaSetting(
        name="detached_environments",
        description="Directory for workspace environments "
        "(empty keeps them inside the workspace).",
        parameter=PrimitiveParameter("", element_type=str),
    )
