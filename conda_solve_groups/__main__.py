"""Standalone CLI entry point for ``csg`` (short for ``conda solve-groups``).

This module allows running conda-solve-groups without going through the
conda plugin dispatch::

    csg install
    csg install -e dev -e prod
    csg install --all --locked
    csg list

It reuses the same parser and execute logic as ``conda solve-groups``.
"""

from __future__ import annotations


def main(args: list[str] | None = None) -> None:
    """Entry point for the ``csg`` console script."""
    from .cli.main import execute, generate_parser

    parser = generate_parser()
    parser.prog = "csg"

    parsed = parser.parse_args(args)
    raise SystemExit(execute(parsed))


if __name__ == "__main__":
    main()
