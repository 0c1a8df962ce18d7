"""conda-solve-groups: Solve-group aware installs of workspace environments."""

from __future__ import annotations

try:
    from ._version import __version__
except ImportError:  # pragma: no cover
    __version__ = "0.0.0.dev0"
