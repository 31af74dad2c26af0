"""Find-or-create resolution of remote folders."""

import logging
import threading
from typing import Optional

from ..api import ROOT_FOLDER_ID
from ..file_entries_manager import FileEntriesManager
from ..protocols import RemoteStoreClient
from ..utils import split_relative_path

logger = logging.getLogger(__name__)


class FolderResolver:
    """Resolves remote folder IDs, creating missing folders on demand.

    A resolver belongs to a single sync run. It caches the sync root ID
    and every (parent_id, name) lookup it performs; nothing survives the
    run. All lookups go through one lock, so parallel uploads in the same
    run never create the same folder twice.
    """

    def __init__(
        self,
        client: RemoteStoreClient,
        manager: Optional[FileEntriesManager] = None,
    ):
        """Initialize folder resolver.

        Args:
            client: Remote store client
            manager: File entries manager (created from client if omitted)
        """
        self.client = client
        self.manager = manager or FileEntriesManager(client)
        self.root_id: Optional[str] = None
        self._folder_ids: dict[tuple[str, str], str] = {}
        self._lock = threading.RLock()

    def resolve_root(self, name: str, create: bool = True) -> Optional[str]:
        """Find the sync folder under the Drive root, creating it if needed.

        Args:
            name: Name of the sync folder
            create: Whether to create the folder when it does not exist

        Returns:
            Folder ID, or None if it does not exist and create is False
        """
        with self._lock:
            if self.root_id is not None:
                return self.root_id

            folder_id = self._find(ROOT_FOLDER_ID, name)
            if folder_id is None:
                if not create:
                    return None
                folder_id = self._create(ROOT_FOLDER_ID, name)
            self.root_id = folder_id
            return folder_id

    def resolve_or_create(self, parent_id: str, name: str) -> str:
        """Find a folder by name under a parent, creating it if needed.

        Args:
            parent_id: ID of the parent folder
            name: Folder name

        Returns:
            Folder ID
        """
        with self._lock:
            folder_id = self._find(parent_id, name)
            if folder_id is None:
                folder_id = self._create(parent_id, name)
            return folder_id

    def ensure_folder_chain(self, root_id: str, relative_path: str) -> str:
        """Materialize the folders of a file path below the sync root.

        Args:
            root_id: ID of the sync root folder
            relative_path: Forward-slash path of the file (e.g. "a/b/c.md")

        Returns:
            ID of the folder the file belongs in
        """
        folders, _ = split_relative_path(relative_path)
        parent_id = root_id
        for segment in folders:
            parent_id = self.resolve_or_create(parent_id, segment)
        return parent_id

    def _find(self, parent_id: str, name: str) -> Optional[str]:
        cached = self._folder_ids.get((parent_id, name))
        if cached is not None:
            return cached

        folder = self.manager.find_folder_by_name(name, parent_id=parent_id)
        if folder is None:
            return None
        self._folder_ids[(parent_id, name)] = folder.id
        return folder.id

    def _create(self, parent_id: str, name: str) -> str:
        folder_id = self.client.create_folder(name, parent_id=parent_id)
        logger.info(f"Created remote folder '{name}' (id={folder_id})")
        self._folder_ids[(parent_id, name)] = folder_id
        return folder_id
