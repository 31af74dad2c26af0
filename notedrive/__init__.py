"""notedrive - two-way sync of a local notes folder with Google Drive."""

from .api import DriveClient
from .exceptions import (
    DriveAPIError,
    DriveAuthenticationError,
    DriveConfigError,
    DriveDownloadError,
    DriveFileNotFoundError,
    DriveInvalidResponseError,
    DriveNetworkError,
    DriveNotFoundError,
    DrivePermissionError,
    DriveRateLimitError,
    DriveUploadError,
    SyncConfigError,
    SyncError,
    SyncResolutionError,
    SyncScanError,
)
from .utils import format_rfc3339_ms, parse_rfc3339_ms

__all__ = [
    "DriveClient",
    "DriveAPIError",
    "DriveAuthenticationError",
    "DriveConfigError",
    "DriveDownloadError",
    "DriveFileNotFoundError",
    "DriveInvalidResponseError",
    "DriveNetworkError",
    "DriveNotFoundError",
    "DrivePermissionError",
    "DriveRateLimitError",
    "DriveUploadError",
    "SyncConfigError",
    "SyncError",
    "SyncResolutionError",
    "SyncScanError",
    "format_rfc3339_ms",
    "parse_rfc3339_ms",
]
