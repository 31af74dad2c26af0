"""Exceptions raised by the Drive client and the sync engine."""


class DriveAPIError(Exception):
    """Base exception for Google Drive API errors."""


class DriveConfigError(DriveAPIError):
    """Raised when the client is not configured (no access token)."""


class DriveAuthenticationError(DriveAPIError):
    """Raised when the access token is invalid or expired."""


class DrivePermissionError(DriveAPIError):
    """Raised when the token lacks access to a resource."""


class DriveNotFoundError(DriveAPIError):
    """Raised when a remote resource does not exist."""


class DriveRateLimitError(DriveAPIError):
    """Raised when the API rate limit is exceeded."""


class DriveNetworkError(DriveAPIError):
    """Raised when a request fails at the transport level."""


class DriveInvalidResponseError(DriveAPIError):
    """Raised when the API returns something that is not valid JSON."""


class DriveUploadError(DriveAPIError):
    """Raised when an upload fails."""


class DriveDownloadError(DriveAPIError):
    """Raised when a download fails."""


class DriveFileNotFoundError(DriveAPIError):
    """Raised when a local file to upload does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Local file not found: {path}")


class SyncError(Exception):
    """Base exception for a sync run that failed as a whole."""


class SyncConfigError(SyncError):
    """Raised when the engine has no usable client or local root."""


class SyncResolutionError(SyncError):
    """Raised when the remote sync folder cannot be found or created."""


class SyncScanError(SyncError):
    """Raised when the local or remote tree cannot be enumerated."""
