"""File comparison logic for sync operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..utils import DEFAULT_TOLERANCE_MS
from .scanner import LocalFile, RemoteFile


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    UPLOAD = "upload"
    """Upload local file to remote"""

    DOWNLOAD = "download"
    """Download remote file to local"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    local_file: Optional[LocalFile]
    """Local file (if exists)"""

    remote_file: Optional[RemoteFile]
    """Remote file (if exists)"""

    relative_path: str
    """Relative path of the file"""

    @property
    def existing_remote_id(self) -> Optional[str]:
        """ID of the remote object this decision touches, if there is one.

        For uploads this distinguishes an update (set) from a create (None).
        """
        return self.remote_file.id if self.remote_file else None


class FileComparator:
    """Compares local and remote files to determine sync actions.

    Each side is evaluated independently against the same snapshot: a
    local file is uploaded when it has no remote counterpart or is newer
    than it by more than the tolerance, and a remote file is downloaded
    under the mirrored rule. Timestamps within the tolerance (ties
    included) are in sync.
    """

    def __init__(self, tolerance_ms: int = DEFAULT_TOLERANCE_MS):
        """Initialize file comparator.

        Args:
            tolerance_ms: Timestamp difference (milliseconds) below which
                two files are considered in sync
        """
        if tolerance_ms < 0:
            raise ValueError("tolerance_ms must not be negative")
        self.tolerance_ms = tolerance_ms

    def compare_files(
        self,
        local_files: dict[str, LocalFile],
        remote_files: dict[str, RemoteFile],
    ) -> list[SyncDecision]:
        """Compare local and remote files and determine sync actions.

        Args:
            local_files: Dictionary mapping relative_path to LocalFile
            remote_files: Dictionary mapping relative_path to RemoteFile

        Returns:
            Uploads in local path order, followed by downloads in remote
            path order
        """
        decisions: list[SyncDecision] = []

        for path in sorted(local_files):
            decision = self._compare_local(
                path, local_files[path], remote_files.get(path)
            )
            if decision:
                decisions.append(decision)

        for path in sorted(remote_files):
            decision = self._compare_remote(
                path, remote_files[path], local_files.get(path)
            )
            if decision:
                decisions.append(decision)

        return decisions

    def _compare_local(
        self, path: str, local_file: LocalFile, remote_file: Optional[RemoteFile]
    ) -> Optional[SyncDecision]:
        """Decide whether a local file needs uploading."""
        if remote_file is None:
            reason = "New local file"
        elif local_file.mtime_ms > remote_file.mtime_ms + self.tolerance_ms:
            reason = "Local file is newer"
        else:
            return None

        return SyncDecision(
            action=SyncAction.UPLOAD,
            reason=reason,
            local_file=local_file,
            remote_file=remote_file,
            relative_path=path,
        )

    def _compare_remote(
        self, path: str, remote_file: RemoteFile, local_file: Optional[LocalFile]
    ) -> Optional[SyncDecision]:
        """Decide whether a remote file needs downloading."""
        if local_file is None:
            reason = "New remote file"
        elif remote_file.mtime_ms > local_file.mtime_ms + self.tolerance_ms:
            reason = "Remote file is newer"
        else:
            return None

        return SyncDecision(
            action=SyncAction.DOWNLOAD,
            reason=reason,
            local_file=local_file,
            remote_file=remote_file,
            relative_path=path,
        )
