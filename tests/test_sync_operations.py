"""Tests for single upload and download operations."""

from unittest.mock import Mock

import pytest
from conftest import T1, local_mtime_ms, write_local

from notedrive.exceptions import DriveAPIError, DriveFileNotFoundError
from notedrive.models import DriveEntry
from notedrive.sync.operations import SyncOperations, iter_file_chunks
from notedrive.sync.resolver import FolderResolver
from notedrive.sync.scanner import LocalFile, RemoteFile
from notedrive.utils import format_rfc3339_ms


class TestIterFileChunks:
    def test_chunks_and_progress(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"abcdefghij")
        progress = Mock()

        chunks = list(
            iter_file_chunks(
                path, chunk_size=4, progress_callback=progress, total_size=10
            )
        )

        assert chunks == [b"abcd", b"efgh", b"ij"]
        assert [c.args for c in progress.call_args_list] == [(4, 10), (8, 10), (10, 10)]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty"
        path.write_bytes(b"")
        assert list(iter_file_chunks(path)) == []


class TestUploadFile:
    def test_create_new_file(self, drive, notes_dir):
        root_id = drive.add_folder("Hypernote")
        path = write_local(notes_dir, "a/note.md", b"# note", T1)
        local = LocalFile.from_path(path, notes_dir)

        file_id = SyncOperations(drive).upload_file(
            local, root_id, FolderResolver(drive)
        )

        item = drive.items[file_id]
        assert item["name"] == "note.md"
        assert item["content"] == b"# note"
        assert item["modified_ms"] == T1
        assert drive.items[item["parent"]]["name"] == "a"

    def test_update_existing_file(self, drive, notes_dir):
        root_id = drive.add_folder("Hypernote")
        existing = drive.add_file("note.md", root_id, b"old", T1 - 10_000)
        path = write_local(notes_dir, "note.md", b"new", T1)
        local = LocalFile.from_path(path, notes_dir)

        file_id = SyncOperations(drive).upload_file(
            local, root_id, FolderResolver(drive), existing_remote_id=existing
        )

        assert file_id == existing
        assert drive.items[existing]["content"] == b"new"
        assert drive.items[existing]["modified_ms"] == T1
        assert drive.calls_named("create_file") == []

    def test_uses_current_mtime_not_scanned(self, drive, notes_dir):
        root_id = drive.add_folder("Hypernote")
        path = write_local(notes_dir, "note.md", b"v1", T1)
        local = LocalFile.from_path(path, notes_dir)
        write_local(notes_dir, "note.md", b"v2", T1 + 60_000)

        file_id = SyncOperations(drive).upload_file(
            local, root_id, FolderResolver(drive)
        )

        assert drive.items[file_id]["content"] == b"v2"
        assert drive.items[file_id]["modified_ms"] == T1 + 60_000

    def test_missing_local_file(self, drive, notes_dir):
        local = LocalFile(
            path=notes_dir / "gone.md", relative_path="gone.md", size=0, mtime_ms=T1
        )

        with pytest.raises(DriveFileNotFoundError, match="gone.md"):
            SyncOperations(drive).upload_file(local, "root-id", FolderResolver(drive))
        assert drive.calls == []

    def test_content_is_streamed_with_mime_type(self, notes_dir):
        client = Mock()
        client.create_file.return_value = "new-id"
        resolver = Mock()
        resolver.ensure_folder_chain.return_value = "parent-id"
        path = write_local(notes_dir, "note.md", b"body", T1)
        local = LocalFile.from_path(path, notes_dir)

        SyncOperations(client).upload_file(local, "root-id", resolver)

        resolver.ensure_folder_chain.assert_called_once_with("root-id", "note.md")
        args, kwargs = client.create_file.call_args
        assert args == ("parent-id", "note.md")
        assert kwargs["modified_time_ms"] == T1
        assert kwargs["size"] == 4
        assert kwargs["mime_type"] == "text/markdown"
        assert not isinstance(kwargs["content"], (bytes, list))


class TestDownloadFile:
    def _remote(self, file_id: str, size: int, mtime_ms: int) -> RemoteFile:
        entry = DriveEntry(
            id=file_id,
            name="note.md",
            mime_type="text/markdown",
            modified_time=format_rfc3339_ms(mtime_ms),
            size=size,
        )
        return RemoteFile(entry=entry, relative_path="deep/dir/note.md")

    def test_download_writes_content_and_mtime(self, drive, notes_dir):
        file_id = drive.add_file("note.md", "root", b"remote body", T1 + 321)
        target = notes_dir / "deep" / "dir" / "note.md"
        progress = Mock()

        result = SyncOperations(drive).download_file(
            self._remote(file_id, 11, T1 + 321), target, progress_callback=progress
        )

        assert result == target
        assert target.read_bytes() == b"remote body"
        assert local_mtime_ms(target) == T1 + 321
        assert progress.call_args_list[-1].args == (11, 11)

    def test_download_overwrites_existing(self, drive, notes_dir):
        file_id = drive.add_file("note.md", "root", b"short", T1)
        target = write_local(notes_dir, "note.md", b"much longer local content", 0)

        SyncOperations(drive).download_file(self._remote(file_id, 5, T1), target)

        assert target.read_bytes() == b"short"

    def test_download_error_propagates(self, notes_dir):
        client = Mock()
        client.iter_file_content.side_effect = DriveAPIError("gone")

        with pytest.raises(DriveAPIError, match="gone"):
            SyncOperations(client).download_file(
                self._remote("x", 1, T1), notes_dir / "note.md"
            )

    def test_failure_mid_stream_keeps_existing_file(self, notes_dir):
        def broken_stream(file_id):
            yield b"partial"
            raise DriveAPIError("connection reset")

        client = Mock()
        client.iter_file_content.side_effect = broken_stream
        target = write_local(notes_dir, "deep/dir/note.md", b"local body", T1)

        with pytest.raises(DriveAPIError, match="connection reset"):
            SyncOperations(client).download_file(
                self._remote("x", 20, T1 + 5000), target
            )

        assert target.read_bytes() == b"local body"
        assert local_mtime_ms(target) == T1
        assert [p.name for p in target.parent.iterdir()] == ["note.md"]

    def test_failure_without_existing_file_leaves_nothing(self, notes_dir):
        client = Mock()
        client.iter_file_content.side_effect = DriveAPIError("gone")
        target = notes_dir / "new.md"

        with pytest.raises(DriveAPIError):
            SyncOperations(client).download_file(self._remote("x", 1, T1), target)

        assert list(notes_dir.iterdir()) == []

    def test_download_keeps_file_mode(self, drive, notes_dir):
        file_id = drive.add_file("note.md", "root", b"remote", T1)
        target = write_local(notes_dir, "note.md", b"local", 0)
        target.chmod(0o640)

        SyncOperations(drive).download_file(self._remote(file_id, 6, T1), target)

        assert target.stat().st_mode & 0o777 == 0o640
