"""Core utilities package.

This package contains small utilities with no third-party dependencies:
helper subprocess invocation and the filesystem collaborator.
"""

from ffsession.core.file_utils import FileSystem, LocalFileSystem, count_non_empty
from ffsession.core.subprocess_utils import run_command

__all__ = [
    "FileSystem",
    "LocalFileSystem",
    "count_non_empty",
    "run_command",
]
