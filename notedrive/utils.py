"""Utility functions for notedrive."""

import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

# =============================================================================
# Constants
# =============================================================================

# Default name of the sync folder created under the Drive root
DEFAULT_SYNC_FOLDER_NAME: str = "Hypernote"

# Timestamps closer than this are considered equal when reconciling
DEFAULT_TOLERANCE_MS: int = 1000

# Maximum page size accepted by the Drive files.list endpoint
DEFAULT_PAGE_SIZE: int = 1000

# Chunk size for streamed reads/writes (64 KB)
DEFAULT_STREAM_CHUNK_SIZE: int = 64 * 1024

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

FOLDER_MIME_TYPE: str = "application/vnd.google-apps.folder"


# =============================================================================
# Timestamp utilities
# =============================================================================


def parse_rfc3339_ms(timestamp_str: Optional[str]) -> Optional[int]:
    """Parse an RFC 3339 timestamp from the Drive API to epoch milliseconds.

    Args:
        timestamp_str: Timestamp string (e.g., "2025-01-15T10:30:00.123Z")

    Returns:
        Milliseconds since the epoch, or None if parsing fails

    Examples:
        >>> parse_rfc3339_ms("1970-01-01T00:00:01.500Z")
        1500
        >>> parse_rfc3339_ms("not a date") is None
        True
    """
    if not timestamp_str:
        return None

    try:
        if timestamp_str.endswith("Z"):
            timestamp_str = timestamp_str[:-1] + "+00:00"
        dt = datetime.fromisoformat(timestamp_str)
    except (ValueError, AttributeError):
        return None

    # Naive timestamps from the API are UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    delta = dt - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def format_rfc3339_ms(timestamp_ms: int) -> str:
    """Format epoch milliseconds as an RFC 3339 UTC timestamp.

    Examples:
        >>> format_rfc3339_ms(1500)
        '1970-01-01T00:00:01.500Z'
    """
    seconds, millis = divmod(timestamp_ms, 1000)
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{millis:03d}Z"


def ms_to_ns(timestamp_ms: int) -> int:
    """Convert epoch milliseconds to nanoseconds (for os.utime)."""
    return timestamp_ms * 1_000_000


# =============================================================================
# Query and path utilities
# =============================================================================


def escape_query_value(value: str) -> str:
    """Escape a value for use inside a quoted Drive query string.

    Examples:
        >>> escape_query_value("Tom's notes")
        "Tom\\\\'s notes"
    """
    return value.replace("\\", "\\\\").replace("'", "\\'")


def split_relative_path(relative_path: str) -> tuple[list[str], str]:
    """Split a forward-slash relative path into folder segments and file name.

    Examples:
        >>> split_relative_path("a/b/c.md")
        (['a', 'b'], 'c.md')
        >>> split_relative_path("c.md")
        ([], 'c.md')
    """
    parts = [part for part in relative_path.split("/") if part]
    if not parts:
        raise ValueError(f"Invalid relative path: {relative_path!r}")
    return parts[:-1], parts[-1]


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def detect_mime_type(file_path: Union[str, Path]) -> str:
    """Detect the MIME type of a file.

    Markdown is recognised by extension. Otherwise python-magic inspects the
    content when it is available, and the file name is used as a fallback.

    Args:
        file_path: Path to the file

    Returns:
        MIME type string (defaults to 'application/octet-stream')

    Examples:
        >>> detect_mime_type("note.md")
        'text/markdown'
    """
    name = str(file_path)
    if name.lower().endswith((".md", ".markdown")):
        # Not registered in every mimetypes database, and magic sees text/plain
        return "text/markdown"

    mime_type = None

    try:
        import magic  # type: ignore

        try:
            mime_type = magic.from_file(name, mime=True)
        except (OSError, magic.MagicException):
            mime_type = None
    except ImportError:
        # libmagic is not installed
        pass

    if not mime_type:
        mime_type, _ = mimetypes.guess_type(name)

    return mime_type or "application/octet-stream"
