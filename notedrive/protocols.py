"""Protocols for the remote store consumed by the sync engine."""

from collections.abc import Iterable, Iterator
from typing import Optional, Protocol

from .models import DriveEntry, DriveFileList


class RemoteStoreClient(Protocol):
    """Remote store operations the sync engine relies on.

    ``DriveClient`` implements this against Google Drive. Any object with
    these methods (for instance an in-memory fake) can be synced against.
    """

    def list_children(
        self,
        folder_id: str,
        page_size: int = ...,
        page_token: Optional[str] = None,
    ) -> DriveFileList: ...

    def find_folders(self, name: str, parent_id: str = ...) -> list[DriveEntry]: ...

    def create_folder(self, name: str, parent_id: Optional[str] = None) -> str: ...

    def create_file(
        self,
        parent_id: str,
        name: str,
        modified_time_ms: int,
        content: Iterable[bytes],
        size: Optional[int] = None,
        mime_type: str = ...,
    ) -> str: ...

    def update_file(
        self,
        file_id: str,
        modified_time_ms: int,
        content: Iterable[bytes],
        size: Optional[int] = None,
        mime_type: str = ...,
    ) -> str: ...

    def iter_file_content(
        self, file_id: str, chunk_size: int = ...
    ) -> Iterator[bytes]: ...
