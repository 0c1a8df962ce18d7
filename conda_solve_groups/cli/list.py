"""``conda solve-groups list`` — list environments and their resolution units."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from ..grouped import GroupedEnvironment, SolveGroupName
from ..parsers import detect_and_parse
from ..workspace import Workspace

if TYPE_CHECKING:
    import argparse


def execute_list(args: argparse.Namespace) -> int:
    """List environments defined in the workspace."""
    manifest_path = getattr(args, "file", None)
    _, config = detect_and_parse(manifest_path)
    workspace = Workspace(config)

    installed_only = getattr(args, "installed", False)
    json_output = getattr(args, "json", False)

    rows: list[dict[str, str | bool | list[str]]] = []
    for env in workspace.environments():
        installed = workspace.env_exists(env.name)
        if installed_only and not installed:
            continue
        unit = GroupedEnvironment.from_environment(env)
        rows.append(
            {
                "name": env.name,
                "features": env.manifest.features,
                "solve_group": env.manifest.solve_group or "",
                "solved_with": str(unit.name),
                "grouped": isinstance(unit.name, SolveGroupName),
                "installed": installed,
            }
        )

    if json_output:
        print(json.dumps(rows, indent=2))
    else:
        if not rows:
            print("No environments found.")
            return 0

        # Header
        print(f"{'Name':<20} {'Features':<30} {'Solved With':<20} {'Installed'}")
        print("-" * 80)
        for row in rows:
            feats = ", ".join(row["features"]) if row["features"] else "(default)"  # type: ignore[arg-type]
            solved_with = row["solved_with"]
            if row["grouped"]:
                solved_with = f"{solved_with} (group)"
            status = "yes" if row["installed"] else "no"
            print(f"{row['name']:<20} {feats:<30} {solved_with:<20} {status}")

    return 0
