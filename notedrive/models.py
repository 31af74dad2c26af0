"""Data models for Google Drive API responses."""

from dataclasses import dataclass, field
from typing import Any, Optional

from .utils import FOLDER_MIME_TYPE, parse_rfc3339_ms

# Fields requested for every file resource
FILE_FIELDS = "id, name, mimeType, modifiedTime, size, parents, trashed"


@dataclass
class DriveEntry:
    """A file or folder resource returned by the Drive API."""

    id: str
    name: str
    mime_type: str
    modified_time: Optional[str] = None
    size: int = 0
    parents: list[str] = field(default_factory=list)
    trashed: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DriveEntry":
        """Create a DriveEntry from an API file resource.

        Args:
            data: File resource dictionary (camelCase keys)

        Returns:
            DriveEntry instance
        """
        size = data.get("size")
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            mime_type=data.get("mimeType", ""),
            modified_time=data.get("modifiedTime"),
            # Drive reports int64 values as strings
            size=int(size) if size is not None else 0,
            parents=list(data.get("parents", [])),
            trashed=bool(data.get("trashed", False)),
        )

    @property
    def is_folder(self) -> bool:
        """Whether this entry is a folder."""
        return self.mime_type == FOLDER_MIME_TYPE

    @property
    def modified_ms(self) -> Optional[int]:
        """Modification time in epoch milliseconds."""
        return parse_rfc3339_ms(self.modified_time)


@dataclass
class DriveFileList:
    """One page of a files.list response."""

    entries: list[DriveEntry]
    next_page_token: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "DriveFileList":
        """Parse a files.list response body."""
        files = data.get("files", [])
        return cls(
            entries=[DriveEntry.from_dict(f) for f in files],
            next_page_token=data.get("nextPageToken") or None,
        )


@dataclass
class DriveUser:
    """The authenticated user, as reported by the about endpoint."""

    display_name: str
    email: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "DriveUser":
        user = data.get("user", {})
        return cls(
            display_name=user.get("displayName", ""),
            email=user.get("emailAddress"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"display_name": self.display_name, "email": self.email}
