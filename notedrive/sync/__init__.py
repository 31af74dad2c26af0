"""Sync engine for notedrive - timestamp based two-way sync."""

from .comparator import FileComparator, SyncAction, SyncDecision
from .engine import SyncEngine, SyncPhase, SyncRun
from .operations import SyncOperations
from .report import SyncReport
from .resolver import FolderResolver
from .scanner import DirectoryScanner, LocalFile, RemoteFile

__all__ = [
    "SyncEngine",
    "SyncPhase",
    "SyncRun",
    "SyncReport",
    "SyncOperations",
    "FolderResolver",
    "DirectoryScanner",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "LocalFile",
    "RemoteFile",
]
