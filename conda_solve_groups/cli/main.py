"""CLI for ``conda solve-groups`` -- argparse configuration and dispatch."""

from __future__ import annotations

import argparse
from pathlib import Path

from conda.cli.helpers import (
    add_output_and_prompt_options,
    add_parser_help,
)


def generate_parser() -> argparse.ArgumentParser:
    """Build and return the standalone parser."""
    parser = argparse.ArgumentParser(
        prog="conda solve-groups",
        description="Install workspace environments, solving solve groups together.",
        add_help=False,
    )
    configure_parser(parser)
    return parser


def configure_parser(parser: argparse.ArgumentParser) -> None:
    """Set up ``conda solve-groups`` CLI with subcommands."""
    add_parser_help(parser)

    parser.add_argument(
        "--file",
        "-f",
        type=Path,
        default=None,
        help="Path to a specific workspace manifest instead of auto-detection.",
    )

    sub = parser.add_subparsers(dest="subcmd")

    install_parser = sub.add_parser(
        "install",
        help="Install (create/update) workspace environments.",
        add_help=False,
    )
    add_parser_help(install_parser)
    add_output_and_prompt_options(install_parser)
    selection = install_parser.add_mutually_exclusive_group()
    selection.add_argument(
        "-e",
        "--environment",
        action="append",
        default=None,
        dest="environments",
        help="Environment to install (repeatable, default: the default environment).",
    )
    selection.add_argument(
        "-a",
        "--all",
        action="store_true",
        default=False,
        dest="all_environments",
        help="Install every environment of the workspace.",
    )
    lock_usage = install_parser.add_mutually_exclusive_group()
    lock_usage.add_argument(
        "--locked",
        action="store_true",
        default=False,
        help="Install from conda.lock, failing if it does not match the manifest.",
    )
    lock_usage.add_argument(
        "--frozen",
        action="store_true",
        default=False,
        help="Install from conda.lock as-is without checking the manifest.",
    )
    install_parser.add_argument(
        "--concurrent-solves",
        type=int,
        default=None,
        metavar="N",
        dest="concurrent_solves",
        help="Maximum number of solves to run at once "
        "(default: the max_concurrent_solves setting, else the CPU count).",
    )

    list_parser = sub.add_parser(
        "list",
        help="List environments and the units they are solved in.",
        add_help=False,
    )
    add_parser_help(list_parser)
    add_output_and_prompt_options(list_parser)
    list_parser.add_argument(
        "--installed",
        action="store_true",
        default=False,
        help="Only show environments that are currently installed.",
    )


def execute(args: argparse.Namespace) -> int:
    """Main entry point dispatched by the conda plugin system."""
    subcmd = args.subcmd

    if subcmd == "install":
        from .install import execute_install

        return execute_install(args)
    elif subcmd == "list":
        from .list import execute_list

        return execute_list(args)
    else:
        generate_parser().print_help()
        return 0
