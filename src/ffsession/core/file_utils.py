"""Filesystem collaborator used to validate session output artifacts.

Sessions never touch the filesystem directly when verifying results; they
go through a FileSystem implementation so tests can inject fakes.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol


class FileSystem(Protocol):
    """Minimal filesystem interface for artifact checks."""

    def exists(self, path: Path) -> bool:
        """Return True if path exists."""
        ...

    def size(self, path: Path) -> int:
        """Return size of path in bytes (0 if it does not exist)."""
        ...

    def listdir(self, path: Path) -> list[Path]:
        """Return the entries of directory path, sorted by name."""
        ...

    def makedirs(self, path: Path) -> None:
        """Create directory path and any missing parents."""
        ...


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def size(self, path: Path) -> int:
        try:
            return Path(path).stat().st_size
        except FileNotFoundError:
            return 0

    def listdir(self, path: Path) -> list[Path]:
        directory = Path(path)
        return sorted(directory / name for name in os.listdir(directory))

    def makedirs(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)


def count_non_empty(filesystem: FileSystem, paths: list[Path]) -> int:
    """Count how many of paths exist with a non-zero size."""
    return sum(1 for p in paths if filesystem.exists(p) and filesystem.size(p) > 0)
