"""Upload and download operations used by the sync engine."""

import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Callable, Optional

from ..exceptions import DriveFileNotFoundError
from ..protocols import RemoteStoreClient
from ..utils import DEFAULT_STREAM_CHUNK_SIZE, detect_mime_type, ms_to_ns
from .resolver import FolderResolver
from .scanner import LocalFile, RemoteFile

logger = logging.getLogger(__name__)


def iter_file_chunks(
    file_path: Path,
    chunk_size: int = DEFAULT_STREAM_CHUNK_SIZE,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    total_size: int = 0,
) -> Iterator[bytes]:
    """Read a file lazily in chunks.

    Args:
        file_path: File to read
        chunk_size: Size of each chunk
        progress_callback: Optional function(bytes_read, total_bytes)
        total_size: Total size reported to the progress callback

    Yields:
        Byte chunks of the file
    """
    bytes_read = 0
    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            bytes_read += len(chunk)
            if progress_callback:
                progress_callback(bytes_read, total_size)
            yield chunk


class SyncOperations:
    """Executes single upload and download actions."""

    def __init__(self, client: RemoteStoreClient):
        """Initialize sync operations.

        Args:
            client: Remote store client
        """
        self.client = client

    def upload_file(
        self,
        local_file: LocalFile,
        root_folder_id: str,
        resolver: FolderResolver,
        existing_remote_id: Optional[str] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> str:
        """Upload a local file, creating or updating the remote object.

        Missing parent folders are created first. The remote modification
        time is set to the local file's current modification time.

        Args:
            local_file: Local file to upload
            root_folder_id: ID of the remote sync root
            resolver: Folder resolver of the current run
            existing_remote_id: ID of the remote object to update, or None
                to create a new one
            progress_callback: Optional function(bytes_uploaded, total_bytes)

        Returns:
            ID of the remote file
        """
        path = local_file.path
        if not path.is_file():
            raise DriveFileNotFoundError(str(path))

        parent_id = resolver.ensure_folder_chain(
            root_folder_id, local_file.relative_path
        )

        # Re-stat: the file may have changed since the scan
        stat = path.stat()
        mtime_ms = stat.st_mtime_ns // 1_000_000
        content = iter_file_chunks(
            path, progress_callback=progress_callback, total_size=stat.st_size
        )
        mime_type = detect_mime_type(path)

        if existing_remote_id:
            logger.debug(
                f"Updating {local_file.relative_path} (id={existing_remote_id})"
            )
            return self.client.update_file(
                existing_remote_id,
                modified_time_ms=mtime_ms,
                content=content,
                size=stat.st_size,
                mime_type=mime_type,
            )

        logger.debug(f"Creating {local_file.relative_path} in folder {parent_id}")
        return self.client.create_file(
            parent_id,
            path.name,
            modified_time_ms=mtime_ms,
            content=content,
            size=stat.st_size,
            mime_type=mime_type,
        )

    def download_file(
        self,
        remote_file: RemoteFile,
        local_path: Path,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Path:
        """Download a remote file to local storage.

        Content is streamed into a hidden temporary file next to the target,
        which gets the remote modification time and then replaces the
        target. A failed transfer leaves any existing local file untouched.

        Args:
            remote_file: Remote file to download
            local_path: Local path where file should be saved
            progress_callback: Optional function(bytes_downloaded, total_bytes)

        Returns:
            Path where file was saved
        """
        local_path.parent.mkdir(parents=True, exist_ok=True)

        bytes_downloaded = 0
        with tempfile.NamedTemporaryFile(
            dir=local_path.parent, prefix=f".{local_path.name}.", delete=False
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
        try:
            with open(tmp_path, "wb") as f:
                for chunk in self.client.iter_file_content(remote_file.id):
                    f.write(chunk)
                    bytes_downloaded += len(chunk)
                    if progress_callback:
                        progress_callback(bytes_downloaded, remote_file.size)

            mtime_ns = ms_to_ns(remote_file.mtime_ms)
            if local_path.exists():
                shutil.copymode(local_path, tmp_path)
            os.utime(tmp_path, ns=(mtime_ns, mtime_ns))
            os.replace(tmp_path, local_path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug(
            f"Downloaded {remote_file.relative_path} ({bytes_downloaded} bytes)"
        )
        return local_path
