"""Tests for conda_solve_groups.plugin."""

from __future__ import annotations

import pytest
from conda.common.configuration import PrimitiveParameter

from conda_solve_groups.plugin import conda_settings, conda_subcommands


def test_conda_subcommands_yields_solve_groups() -> None:
    items = list(conda_subcommands())
    assert len(items) == 1
    sub = items[0]
    assert sub.name == "solve-groups"
    assert sub.summary
    assert callable(sub.action)
    assert callable(sub.configure_parser)


@pytest.mark.parametrize(
    "name",
    ["max_concurrent_solves", "detached_environments"],
)
def test_conda_settings(name: str) -> None:
    items = {s.name: s for s in conda_settings()}
    assert name in items
    assert items[name].description
    assert isinstance(items[name].parameter, PrimitiveParameter)


def test_conda_settings_count() -> None:
    assert len(list(conda_settings())) == 2


def test_settings_parameter_is_imported_lazily() -> None:
    import conda_solve_groups.plugin as plugin_mod

    assert not hasattr(plugin_mod, "PrimitiveParameter")
