"""Manager for fetching Drive folder contents with automatic pagination."""

import logging
from typing import Optional

from .models import DriveEntry
from .protocols import RemoteStoreClient
from .utils import DEFAULT_PAGE_SIZE

logger = logging.getLogger(__name__)


class FileEntriesManager:
    """Fetches folder listings page by page and walks folder trees.

    Listing errors are not swallowed: a failed page fails the whole call,
    so callers never see a partial tree.
    """

    def __init__(self, client: RemoteStoreClient, page_size: int = DEFAULT_PAGE_SIZE):
        """Initialize the file entries manager.

        Args:
            client: Remote store client
            page_size: Number of entries requested per page (max 1000)
        """
        self.client = client
        self.page_size = page_size

    def get_all_in_folder(self, folder_id: str) -> list[DriveEntry]:
        """Get all non-trashed entries in a folder, following page tokens.

        Args:
            folder_id: Folder ID to list

        Returns:
            List of all entries in the folder
        """
        all_entries: list[DriveEntry] = []
        page_token: Optional[str] = None

        while True:
            page = self.client.list_children(
                folder_id, page_size=self.page_size, page_token=page_token
            )
            all_entries.extend(e for e in page.entries if not e.trashed)

            if not page.next_page_token:
                break
            page_token = page.next_page_token

        return all_entries

    def get_all_recursive(
        self,
        folder_id: str,
        path_prefix: str = "",
        visited: Optional[set[str]] = None,
    ) -> list[tuple[DriveEntry, str]]:
        """Recursively get all files in a folder and its subfolders.

        Args:
            folder_id: Folder ID to start from
            path_prefix: Relative path the folder represents ("" for the root)
            visited: Set of visited folder IDs (for cycle detection)

        Returns:
            List of (DriveEntry, relative_path) tuples for files only
        """
        if visited is None:
            visited = set()

        # Drive allows a folder to appear under several parents
        if folder_id in visited:
            return []
        visited.add(folder_id)

        result_entries: list[tuple[DriveEntry, str]] = []

        for entry in self.get_all_in_folder(folder_id):
            if "/" in entry.name:
                # Would be indistinguishable from a nested path
                logger.warning(
                    "Skipping remote entry with '/' in its name: "
                    f"{entry.name!r} (id={entry.id})"
                )
                continue

            entry_path = f"{path_prefix}/{entry.name}" if path_prefix else entry.name

            if entry.is_folder:
                result_entries.extend(
                    self.get_all_recursive(
                        folder_id=entry.id,
                        path_prefix=entry_path,
                        visited=visited,
                    )
                )
            else:
                result_entries.append((entry, entry_path))

        logger.debug(
            f"Listed folder {folder_id} ('{path_prefix or '/'}'): "
            f"{len(result_entries)} file(s) including subfolders"
        )
        return result_entries

    def find_folder_by_name(
        self, folder_name: str, parent_id: str
    ) -> Optional[DriveEntry]:
        """Find a non-trashed folder by exact name under a parent.

        Args:
            folder_name: Folder name to search for
            parent_id: Parent folder ID ("root" for the Drive root)

        Returns:
            The first matching folder, or None
        """
        folders = [
            f
            for f in self.client.find_folders(folder_name, parent_id=parent_id)
            if f.is_folder and f.name == folder_name and not f.trashed
        ]
        logger.debug(
            f"find_folder_by_name: '{folder_name}' in {parent_id} -> "
            f"{len(folders)} match(es)"
        )
        return folders[0] if folders else None
