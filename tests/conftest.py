"""Shared fixtures: an in-memory Drive and helpers for local trees."""

import os
import threading
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Optional

import pytest

from notedrive.exceptions import DriveAPIError, DriveNotFoundError
from notedrive.models import DriveEntry, DriveFileList
from notedrive.utils import FOLDER_MIME_TYPE, format_rfc3339_ms


class InMemoryDrive:
    """Remote store fake keeping folders and files in dictionaries.

    Calls are recorded so tests can assert on what the engine did. Names in
    ``fail_upload_names`` / ``fail_download_names`` make the corresponding
    transfer raise ``DriveAPIError``.
    """

    def __init__(self, page_size_limit: int = 1000):
        self.page_size_limit = page_size_limit
        self.items: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.fail_upload_names: set[str] = set()
        self.fail_download_names: set[str] = set()
        self.fail_listing = False
        self.fail_find = False
        self._next_id = 0
        self._lock = threading.Lock()

    # Helpers for arranging remote state

    def _new_id(self) -> str:
        self._next_id += 1
        return f"id{self._next_id}"

    def add_folder(self, name: str, parent_id: str = "root") -> str:
        with self._lock:
            folder_id = self._new_id()
            self.items[folder_id] = {
                "name": name,
                "mime_type": FOLDER_MIME_TYPE,
                "parent": parent_id,
                "content": b"",
                "modified_ms": 0,
                "trashed": False,
            }
            return folder_id

    def add_file(
        self,
        name: str,
        parent_id: str,
        content: bytes,
        modified_ms: int,
        trashed: bool = False,
    ) -> str:
        with self._lock:
            file_id = self._new_id()
            self.items[file_id] = {
                "name": name,
                "mime_type": "text/markdown",
                "parent": parent_id,
                "content": content,
                "modified_ms": modified_ms,
                "trashed": trashed,
            }
            return file_id

    def add_path(
        self, root_id: str, relative_path: str, content: bytes, modified_ms: int
    ) -> str:
        """Add a file below root_id, creating intermediate folders."""
        *folders, name = relative_path.split("/")
        parent_id = root_id
        for folder in folders:
            existing = self.folders_named(folder, parent_id)
            parent_id = existing[0] if existing else self.add_folder(folder, parent_id)
        return self.add_file(name, parent_id, content, modified_ms)

    def folders_named(self, name: str, parent_id: str) -> list[str]:
        return [
            item_id
            for item_id, item in self.items.items()
            if item["name"] == name
            and item["parent"] == parent_id
            and item["mime_type"] == FOLDER_MIME_TYPE
            and not item["trashed"]
        ]

    def files_by_path(self, root_id: str) -> dict[str, dict]:
        """Return every non-trashed file below root_id keyed by relative path."""
        result: dict[str, dict] = {}

        def walk(folder_id: str, prefix: str) -> None:
            for item in self.items.values():
                if item["parent"] != folder_id or item["trashed"]:
                    continue
                path = f"{prefix}/{item['name']}" if prefix else item["name"]
                if item["mime_type"] == FOLDER_MIME_TYPE:
                    walk(self._id_of(item), path)
                else:
                    result[path] = item

        walk(root_id, "")
        return result

    def _id_of(self, item: dict) -> str:
        for item_id, candidate in self.items.items():
            if candidate is item:
                return item_id
        raise KeyError("item not stored")

    def calls_named(self, method: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == method]

    def _entry(self, item_id: str) -> DriveEntry:
        item = self.items[item_id]
        return DriveEntry(
            id=item_id,
            name=item["name"],
            mime_type=item["mime_type"],
            modified_time=format_rfc3339_ms(item["modified_ms"]),
            size=len(item["content"]),
            parents=[item["parent"]],
            trashed=item["trashed"],
        )

    # RemoteStoreClient

    def list_children(
        self,
        folder_id: str,
        page_size: int = 1000,
        page_token: Optional[str] = None,
    ) -> DriveFileList:
        with self._lock:
            self.calls.append(("list_children", folder_id, page_token))
            if self.fail_listing:
                raise DriveAPIError("listing failed")
            children = sorted(
                (
                    item_id
                    for item_id, item in self.items.items()
                    if item["parent"] == folder_id and not item["trashed"]
                ),
                key=lambda item_id: self.items[item_id]["name"],
            )
            start = int(page_token) if page_token else 0
            size = min(page_size, self.page_size_limit)
            page = children[start : start + size]
            next_token = str(start + size) if start + size < len(children) else None
            return DriveFileList(
                entries=[self._entry(item_id) for item_id in page],
                next_page_token=next_token,
            )

    def find_folders(self, name: str, parent_id: str = "root") -> list[DriveEntry]:
        with self._lock:
            self.calls.append(("find_folders", name, parent_id))
            if self.fail_find:
                raise DriveAPIError("lookup failed")
            return [
                self._entry(item_id) for item_id in self.folders_named(name, parent_id)
            ]

    def create_folder(self, name: str, parent_id: Optional[str] = None) -> str:
        self.calls.append(("create_folder", name, parent_id))
        return self.add_folder(name, parent_id or "root")

    def create_file(
        self,
        parent_id: str,
        name: str,
        modified_time_ms: int,
        content: Iterable[bytes],
        size: Optional[int] = None,
        mime_type: str = "application/octet-stream",
    ) -> str:
        self.calls.append(("create_file", parent_id, name))
        if name in self.fail_upload_names:
            raise DriveAPIError(f"upload of {name} rejected")
        data = b"".join(content)
        return self.add_file(name, parent_id, data, modified_time_ms)

    def update_file(
        self,
        file_id: str,
        modified_time_ms: int,
        content: Iterable[bytes],
        size: Optional[int] = None,
        mime_type: str = "application/octet-stream",
    ) -> str:
        self.calls.append(("update_file", file_id))
        item = self.items.get(file_id)
        if item is None:
            raise DriveNotFoundError("Resource not found")
        if item["name"] in self.fail_upload_names:
            raise DriveAPIError(f"upload of {item['name']} rejected")
        data = b"".join(content)
        with self._lock:
            item["content"] = data
            item["modified_ms"] = modified_time_ms
        return file_id

    def iter_file_content(self, file_id: str, chunk_size: int = 4) -> Iterator[bytes]:
        self.calls.append(("iter_file_content", file_id))
        item = self.items.get(file_id)
        if item is None:
            raise DriveNotFoundError(f"File not found: {file_id}")
        if item["name"] in self.fail_download_names:
            raise DriveAPIError(f"download of {item['name']} failed")
        content = item["content"]
        for start in range(0, len(content), chunk_size):
            yield content[start : start + chunk_size]


def write_local(root: Path, relative_path: str, content: bytes, mtime_ms: int) -> Path:
    """Create a local file with an exact modification time."""
    path = root.joinpath(*relative_path.split("/"))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    mtime_ns = mtime_ms * 1_000_000
    os.utime(path, ns=(mtime_ns, mtime_ns))
    return path


def local_mtime_ms(path: Path) -> int:
    return path.stat().st_mtime_ns // 1_000_000


# Fixed timestamp (2025-01-15T10:30:00Z) used across tests
T1 = 1_736_937_000_000


@pytest.fixture
def drive():
    """Provide an empty in-memory Drive."""
    return InMemoryDrive()


@pytest.fixture
def notes_dir(tmp_path):
    """Provide an empty local notes directory."""
    path = tmp_path / "notes_root"
    path.mkdir()
    return path
