"""Directory scanning utilities for sync operations."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..models import DriveEntry

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """Represents a local file with metadata."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes"""

    mtime_ms: int
    """Last modification time (milliseconds since the epoch)"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            LocalFile instance
        """
        stat = file_path.stat()
        # Use as_posix() to ensure forward slashes on all platforms
        relative_path = file_path.relative_to(base_path).as_posix()

        return cls(
            path=file_path,
            relative_path=relative_path,
            size=stat.st_size,
            mtime_ms=stat.st_mtime_ns // 1_000_000,
        )


@dataclass
class RemoteFile:
    """Represents a remote file with metadata."""

    entry: DriveEntry
    """Remote file entry from API"""

    relative_path: str
    """Relative path below the sync folder"""

    @property
    def id(self) -> str:
        """Remote file ID."""
        return self.entry.id

    @property
    def size(self) -> int:
        """File size in bytes."""
        return self.entry.size

    @property
    def mtime_ms(self) -> int:
        """Last modification time (milliseconds since the epoch).

        Entries without a parseable timestamp count as infinitely old.
        """
        modified = self.entry.modified_ms
        return modified if modified is not None else 0


class DirectoryScanner:
    """Scans local directories and remote listings into path-keyed maps.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> files = scanner.scan_local(Path("/home/user/notes"))
        >>> sorted(files)
        ['daily/2025-01-01.md', 'index.md']
    """

    def __init__(self, exclude_dot_files: bool = True):
        """Initialize directory scanner.

        Args:
            exclude_dot_files: Whether to skip files and folders starting with
                a dot, at any depth
        """
        self.exclude_dot_files = exclude_dot_files

    def should_ignore(self, path: Path) -> bool:
        """Check if a path should be skipped."""
        return self.exclude_dot_files and path.name.startswith(".")

    def scan_local(
        self, directory: Path, base_path: Optional[Path] = None
    ) -> dict[str, LocalFile]:
        """Recursively scan a local directory.

        Entries are visited in sorted order and symlinks are skipped. Read
        errors are not caught: a directory that cannot be listed fails the
        whole scan.

        Args:
            directory: Directory to scan
            base_path: Base path for calculating relative paths (defaults to directory)

        Returns:
            Dictionary mapping relative path to LocalFile

        Raises:
            OSError: If the directory or one of its subdirectories cannot be read
        """
        if base_path is None:
            base_path = directory

        files: dict[str, LocalFile] = {}

        for item in sorted(directory.iterdir()):
            if self.should_ignore(item):
                continue

            # Links are not followed, so a link cycle cannot recurse
            if item.is_symlink():
                logger.debug(f"Skipping symlink {item}")
                continue

            if item.is_dir():
                files.update(self.scan_local(item, base_path))
            elif item.is_file():
                local_file = LocalFile.from_path(item, base_path)
                files[local_file.relative_path] = local_file

        if directory == base_path:
            logger.debug(f"Scanned {directory}: {len(files)} file(s)")
        return files

    def scan_remote(
        self, entries_with_paths: list[tuple[DriveEntry, str]]
    ) -> dict[str, RemoteFile]:
        """Process remote file entries into RemoteFile objects.

        Folders and hidden paths are dropped. When several entries share a
        relative path the first one wins.

        Args:
            entries_with_paths: List of (DriveEntry, relative_path) tuples

        Returns:
            Dictionary mapping relative path to RemoteFile
        """
        remote_files: dict[str, RemoteFile] = {}

        for entry, rel_path in entries_with_paths:
            if entry.is_folder:
                continue
            # Hidden paths are skipped on both sides
            if self.exclude_dot_files and any(
                part.startswith(".") for part in rel_path.split("/")
            ):
                continue
            if rel_path in remote_files:
                logger.debug(
                    f"Duplicate remote path {rel_path} (id={entry.id}), keeping "
                    f"id={remote_files[rel_path].id}"
                )
                continue
            remote_files[rel_path] = RemoteFile(entry=entry, relative_path=rel_path)

        return remote_files
