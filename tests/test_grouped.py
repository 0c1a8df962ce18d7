"""Tests for conda_solve_groups.grouped."""

from __future__ import annotations

from pathlib import Path

import pytest
from rich.text import Text

from conda_solve_groups.grouped import (
    ENVIRONMENT_STYLE,
    SOLVE_GROUP_STYLE,
    EnvironmentName,
    GroupedEnvironment,
    SolveGroupEnvironment,
    SolveGroupName,
    StandaloneEnvironment,
    unique_grouped_environments,
)
from conda_solve_groups.models import (
    Channel,
    Environment,
    Feature,
    MatchSpec,
    WorkspaceConfig,
)
from conda_solve_groups.system_requirements import LibCRequirement, SystemRequirements
from conda_solve_groups.workspace import SolveGroup, Workspace


def _unit(workspace: Workspace, env_name: str) -> GroupedEnvironment:
    return GroupedEnvironment.from_environment(workspace.get_environment(env_name))


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "env_name, expected_cls, expected_name",
    [
        ("default", StandaloneEnvironment, EnvironmentName("default")),
        ("dev", SolveGroupEnvironment, SolveGroupName("shared")),
        ("prod", SolveGroupEnvironment, SolveGroupName("shared")),
        ("lone", StandaloneEnvironment, EnvironmentName("lone")),
    ],
    ids=["ungrouped", "group-member-dev", "group-member-prod", "group-of-one"],
)
def test_from_environment(
    workspace: Workspace,
    env_name: str,
    expected_cls: type,
    expected_name: object,
) -> None:
    unit = _unit(workspace, env_name)
    assert type(unit) is expected_cls
    assert unit.name == expected_name


def test_members_of_a_group_collapse(workspace: Workspace) -> None:
    assert _unit(workspace, "dev") == _unit(workspace, "prod")
    assert hash(_unit(workspace, "dev")) == hash(_unit(workspace, "prod"))


def test_group_of_one_is_its_member(workspace: Workspace) -> None:
    group = workspace.solve_group("single")
    assert group is not None
    from_group = GroupedEnvironment.from_solve_group(group)
    from_env = _unit(workspace, "lone")
    assert from_group == from_env
    assert from_group == StandaloneEnvironment(workspace.get_environment("lone"))


def test_from_solve_group_with_members(workspace: Workspace) -> None:
    group = workspace.solve_group("shared")
    assert group is not None
    unit = GroupedEnvironment.from_solve_group(group)
    assert unit == SolveGroupEnvironment(group)


def test_from_solve_group_empty_asserts(workspace: Workspace) -> None:
    with pytest.raises(AssertionError, match="nothing"):
        GroupedEnvironment.from_solve_group(SolveGroup("nothing", workspace))


def test_direct_group_of_one_is_rejected(workspace: Workspace) -> None:
    group = workspace.solve_group("single")
    assert group is not None
    with pytest.raises(ValueError, match="single"):
        SolveGroupEnvironment(group)


def test_base_class_cannot_be_instantiated() -> None:
    with pytest.raises(TypeError, match="abstract"):
        GroupedEnvironment()  # type: ignore[abstract]


def test_standalone_differs_from_group_with_same_name(tmp_path: Path) -> None:
    config = WorkspaceConfig(
        root=str(tmp_path),
        environments={
            "default": Environment(name="default", solve_group="default"),
            "test": Environment(name="test", solve_group="default"),
            "solo": Environment(name="solo"),
        },
    )
    ws = Workspace(config)
    group_unit = GroupedEnvironment.from_environment(ws.get_environment("default"))
    assert isinstance(group_unit, SolveGroupEnvironment)
    assert group_unit.name == SolveGroupName("default")
    assert group_unit.name != EnvironmentName("default")
    assert group_unit != _unit(ws, "solo")


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "name, style",
    [
        (SolveGroupName("shared"), SOLVE_GROUP_STYLE),
        (EnvironmentName("dev"), ENVIRONMENT_STYLE),
    ],
    ids=["solve-group", "environment"],
)
def test_name_display(name: object, style: str) -> None:
    fancy = name.fancy_display()  # type: ignore[attr-defined]
    assert isinstance(fancy, Text)
    assert fancy.plain == name.as_str()  # type: ignore[attr-defined]
    assert fancy.style == style
    assert str(name) == name.as_str()  # type: ignore[attr-defined]


def test_names_of_different_variants_are_distinct() -> None:
    assert SolveGroupName("x") != EnvironmentName("x")
    assert len({SolveGroupName("x"), EnvironmentName("x")}) == 2


@pytest.mark.parametrize(
    "env_name",
    ["default", "dev", "prod", "lone"],
)
def test_from_name_round_trip(workspace: Workspace, env_name: str) -> None:
    unit = _unit(workspace, env_name)
    assert GroupedEnvironment.from_name(workspace, unit.name) == unit


@pytest.mark.parametrize(
    "name",
    [SolveGroupName("missing"), EnvironmentName("missing")],
    ids=["solve-group", "environment"],
)
def test_from_name_miss(workspace: Workspace, name: object) -> None:
    assert GroupedEnvironment.from_name(workspace, name) is None  # type: ignore[arg-type]


def test_from_name_group_of_one_is_canonical(workspace: Workspace) -> None:
    unit = GroupedEnvironment.from_name(workspace, SolveGroupName("single"))
    assert unit == _unit(workspace, "lone")
    assert unit is not None
    assert unit.name == EnvironmentName("lone")


# ---------------------------------------------------------------------------
# Members and directories
# ---------------------------------------------------------------------------


def test_environments_in_declaration_order(workspace: Workspace) -> None:
    unit = _unit(workspace, "prod")
    assert [env.name for env in unit.environments()] == ["dev", "prod"]


def test_environments_is_a_fresh_iterator(workspace: Workspace) -> None:
    unit = _unit(workspace, "dev")
    assert list(unit.environments()) == list(unit.environments())
    assert [env.name for env in _unit(workspace, "default").environments()] == [
        "default"
    ]


def test_dir(workspace: Workspace) -> None:
    assert _unit(workspace, "dev").dir() == (
        workspace.root / ".conda" / "solve-group-envs" / "shared"
    )
    assert _unit(workspace, "default").dir() == workspace.env_prefix("default")
    assert _unit(workspace, "lone").dir() == workspace.env_prefix("lone")


def test_prefix_points_at_dir(workspace: Workspace) -> None:
    unit = _unit(workspace, "dev")
    assert Path(unit.prefix().prefix_path) == unit.dir()


# ---------------------------------------------------------------------------
# Aggregations
# ---------------------------------------------------------------------------


def test_group_system_requirements_are_most_restrictive(workspace: Workspace) -> None:
    reqs = _unit(workspace, "dev").system_requirements()
    assert reqs == SystemRequirements(
        linux="5.10", cuda="12", libc=LibCRequirement("2.34")
    )


def test_standalone_system_requirements(workspace: Workspace) -> None:
    assert _unit(workspace, "lone").system_requirements() == SystemRequirements(
        linux="4.18", macos="14.0"
    )


def test_features_are_concatenated_in_member_order(workspace: Workspace) -> None:
    names = [feat.name for feat in _unit(workspace, "prod").features()]
    assert names == ["default", "dev", "default", "prod"]


def test_virtual_packages(workspace: Workspace) -> None:
    records = {r.name: r for r in _unit(workspace, "dev").virtual_packages("linux-64")}
    assert records["__linux"].version == "5.10"
    assert records["__glibc"].version == "2.34"
    assert records["__cuda"].version == "12"


def test_virtual_packages_standalone_osx(workspace: Workspace) -> None:
    records = {
        r.name: r for r in _unit(workspace, "lone").virtual_packages("osx-arm64")
    }
    assert records["__osx"].version == "14.0"
    assert "__linux" not in records


def test_channel_config_is_shared(workspace: Workspace) -> None:
    configs = {
        _unit(workspace, name).channel_config()
        for name in ("default", "dev", "lone")
    }
    assert len(configs) == 1
    (config,) = configs
    assert config.root_dir == workspace.root
    assert config.channel_alias == "https://conda.anaconda.org"


def test_channels_cover_all_members(workspace: Workspace) -> None:
    names = [ch.canonical_name for ch in _unit(workspace, "prod").channels()]
    assert names == ["conda-forge", "bioconda"]
    assert [ch.canonical_name for ch in _unit(workspace, "default").channels()] == [
        "conda-forge"
    ]


def test_conda_dependencies_intersect_members(workspace: Workspace) -> None:
    specs = {spec.name: spec for spec in _unit(workspace, "dev").conda_dependencies()}
    assert set(specs) == {"python", "pytest", "gunicorn"}
    assert specs["python"].version.match("3.12")
    assert not specs["python"].version.match("3.13")
    assert not specs["python"].version.match("3.9")


def test_conda_dependencies_conflicting_channels(tmp_path: Path) -> None:
    config = WorkspaceConfig(
        root=str(tmp_path),
        features={
            "a": Feature(
                name="a",
                conda_dependencies={"python": MatchSpec("conda-forge::python")},
            ),
            "b": Feature(
                name="b",
                conda_dependencies={"python": MatchSpec("bioconda::python")},
            ),
        },
        environments={
            "a": Environment(name="a", features=["a"], solve_group="g"),
            "b": Environment(name="b", features=["b"], solve_group="g"),
        },
    )
    unit = _unit(Workspace(config), "a")
    with pytest.raises(ValueError):
        unit.conda_dependencies()


def test_conda_dependencies_target_overrides(tmp_path: Path) -> None:
    config = WorkspaceConfig(
        root=str(tmp_path),
        channels=[Channel("conda-forge")],
        features={
            "default": Feature(
                name="default",
                conda_dependencies={"python": MatchSpec("python")},
                target_conda_dependencies={"win-64": {"pywin32": MatchSpec("pywin32")}},
            ),
        },
    )
    unit = _unit(Workspace(config), "default")
    assert {s.name for s in unit.conda_dependencies("win-64")} == {"python", "pywin32"}
    assert {s.name for s in unit.conda_dependencies("linux-64")} == {"python"}


# ---------------------------------------------------------------------------
# Selection scenario
# ---------------------------------------------------------------------------


def test_unique_grouped_environments(workspace: Workspace) -> None:
    units = unique_grouped_environments(workspace.environments())
    assert [unit.name for unit in units] == [
        EnvironmentName("default"),
        SolveGroupName("shared"),
        EnvironmentName("lone"),
    ]


def test_unique_grouped_environments_keeps_first_occurrence(
    workspace: Workspace,
) -> None:
    envs = [workspace.get_environment(n) for n in ("prod", "default", "dev", "prod")]
    units = unique_grouped_environments(envs)
    assert [str(unit.name) for unit in units] == ["shared", "default"]


def test_unique_grouped_environments_empty() -> None:
    assert unique_grouped_environments([]) == []
