"""Tests for API response models."""

from notedrive.models import DriveEntry, DriveFileList, DriveUser
from notedrive.utils import FOLDER_MIME_TYPE


class TestDriveEntry:
    def test_from_dict(self):
        entry = DriveEntry.from_dict(
            {
                "id": "abc",
                "name": "note.md",
                "mimeType": "text/markdown",
                "modifiedTime": "2025-01-15T10:30:00.123Z",
                "size": "42",
                "parents": ["p1"],
            }
        )

        assert entry.id == "abc"
        assert entry.size == 42
        assert entry.parents == ["p1"]
        assert entry.trashed is False
        assert entry.is_folder is False
        assert entry.modified_ms == 1_736_937_000_123

    def test_folder_without_size(self):
        entry = DriveEntry.from_dict(
            {"id": "f", "name": "dir", "mimeType": FOLDER_MIME_TYPE}
        )
        assert entry.is_folder is True
        assert entry.size == 0
        assert entry.modified_ms is None


class TestDriveFileList:
    def test_from_api_response(self):
        result = DriveFileList.from_api_response(
            {
                "files": [{"id": "1", "name": "a"}, {"id": "2", "name": "b"}],
                "nextPageToken": "tok",
            }
        )
        assert [e.id for e in result.entries] == ["1", "2"]
        assert result.next_page_token == "tok"

    def test_last_page(self):
        result = DriveFileList.from_api_response({"files": []})
        assert result.entries == []
        assert result.next_page_token is None


class TestDriveUser:
    def test_from_api_response(self):
        user = DriveUser.from_api_response(
            {"user": {"displayName": "Ada", "emailAddress": "ada@example.com"}}
        )
        assert user.to_dict() == {"display_name": "Ada", "email": "ada@example.com"}
