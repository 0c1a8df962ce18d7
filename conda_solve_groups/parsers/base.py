"""Abstract base class for workspace manifest parsers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path
    from typing import ClassVar

    from ..models import WorkspaceConfig


class WorkspaceParser(ABC):
    """Interface implemented by the ``conda.toml`` and ``pixi.toml`` parsers.

    *filenames* lists the exact manifest names a parser reads; the
    registry in ``parsers/__init__.py`` walks them in priority order.
    """

    filenames: ClassVar[tuple[str, ...]] = ()
    extensions: ClassVar[tuple[str, ...]] = ()

    @abstractmethod
    def can_handle(self, path: Path) -> bool:
        """Return True if this parser can read *path*."""

    @abstractmethod
    def parse(self, path: Path) -> WorkspaceConfig:
        """Parse *path* and return a ``WorkspaceConfig``."""

    @abstractmethod
    def has_workspace(self, path: Path) -> bool:
        """Return True if *path* contains a workspace table."""
