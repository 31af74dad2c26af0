"""API client for Google Drive (v3 REST API)."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Iterable, Iterator
from typing import Any

import httpx

from .config import config
from .exceptions import (
    DriveAPIError,
    DriveAuthenticationError,
    DriveConfigError,
    DriveDownloadError,
    DriveInvalidResponseError,
    DriveNetworkError,
    DriveNotFoundError,
    DrivePermissionError,
    DriveRateLimitError,
    DriveUploadError,
)
from .models import FILE_FIELDS, DriveEntry, DriveFileList
from .utils import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_PAGE_SIZE,
    DEFAULT_RETRY_DELAY,
    DEFAULT_STREAM_CHUNK_SIZE,
    FOLDER_MIME_TYPE,
    escape_query_value,
    format_rfc3339_ms,
)

logger = logging.getLogger(__name__)

ROOT_FOLDER_ID = "root"


class DriveClient:
    """Client for the Google Drive API.

    Implements the remote store operations the sync engine needs: paginated
    listing, folder lookup and creation, streamed uploads and downloads.
    """

    def __init__(
        self,
        access_token: str | None = None,
        api_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize Drive API client.

        Args:
            access_token: OAuth access token (uses config if not provided)
            api_url: Optional API base URL (uses config if not provided)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (used by tests)
        """
        self.access_token = access_token or config.access_token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport

        if not self.access_token:
            raise DriveConfigError(
                "Access token not configured. Run 'notedrive init' or set "
                "NOTEDRIVE_ACCESS_TOKEN."
            )

        self._client: httpx.Client | None = None

    def __enter__(self) -> DriveClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        # Transient failures
        if isinstance(exception, (DriveNetworkError, DriveRateLimitError)):
            return True

        if isinstance(exception, httpx.HTTPStatusError):
            return 500 <= exception.response.status_code < 600

        return False

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # +/- 25% jitter
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _extract_error_message(self, response: httpx.Response) -> str | None:
        """Pull the human-readable message out of a Drive error body."""
        try:
            if not response.content:
                return None
            error_data = response.json()
        except (ValueError, httpx.ResponseNotRead):
            return None

        if not isinstance(error_data, dict):
            return None
        error = error_data.get("error")
        if isinstance(error, dict):
            return error.get("message")
        if isinstance(error, str):
            return error_data.get("error_description") or error
        return error_data.get("message")

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[Exception, bool]:
        """Handle HTTP errors and determine if retry should occur.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code

        if status_code == 401:
            raise DriveAuthenticationError(
                "Invalid or expired access token"
            ) from e
        elif status_code == 403:
            message = self._extract_error_message(e.response) or ""
            # Drive reports per-user quota exhaustion as 403
            if "rate limit" in message.lower():
                error = DriveRateLimitError(f"Rate limit exceeded: {message}")
                return (error, attempt < self.max_retries)
            raise DrivePermissionError(
                "Access forbidden - check your permissions"
            ) from e
        elif status_code == 404:
            raise DriveNotFoundError("Resource not found") from e
        elif status_code == 429:
            error = DriveRateLimitError("Rate limit exceeded - please try again later")
            return (error, attempt < self.max_retries)
        else:
            error_msg = f"API request failed with status {status_code}"
            message = self._extract_error_message(e.response)
            if message:
                error_msg = f"{error_msg}: {message}"

            error = DriveAPIError(error_msg)
            should_retry = 500 <= status_code < 600 and attempt < self.max_retries
            return (error, should_retry)

    def _send(
        self, method: str, url: str, retry: bool = True, **kwargs: Any
    ) -> httpx.Response:
        """Send a request with retry logic.

        Args:
            method: HTTP method
            url: Absolute URL
            retry: Whether transient failures may be retried. Requests with
                a streamed body must not be retried.
            **kwargs: Additional arguments passed to httpx

        Returns:
            The successful response

        Raises:
            DriveAPIError: If the request fails after all retries
        """
        last_exception: Exception | None = None
        client = self._get_client()
        attempts = self.max_retries + 1 if retry else 1

        for attempt in range(attempts):
            try:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                last_exception = error

                if should_retry and retry:
                    delay = self._calculate_retry_delay(attempt)
                    # Honour Retry-After on rate limits
                    if isinstance(error, DriveRateLimitError):
                        retry_after = e.response.headers.get("Retry-After")
                        if retry_after and retry_after.isdigit():
                            delay = float(retry_after)
                    logger.debug(
                        f"{method} {url} failed ({error}), "
                        f"retrying in {delay:.1f}s (attempt {attempt + 1})"
                    )
                    time.sleep(delay)
                    continue
                raise error from e
            except httpx.RequestError as e:
                error = DriveNetworkError(f"Network error: {e}")
                last_exception = error
                if retry and self._should_retry(error, attempt):
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug(f"Network error on {method} {url}, retrying: {e}")
                    time.sleep(delay)
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise DriveAPIError("Request failed after all retry attempts")

    def _parse_json(self, response: httpx.Response) -> Any:
        """Parse a JSON response body ({} when empty)."""
        if not response.content:
            return {}

        content_type = response.headers.get("Content-Type", "")
        if "application/json" not in content_type:
            raise DriveInvalidResponseError(f"Unexpected response type: {content_type}")

        try:
            return response.json()
        except ValueError as e:
            raise DriveInvalidResponseError("Invalid JSON response from server") from e

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path (e.g. "/drive/v3/files")
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        response = self._send(method, url, **kwargs)
        return self._parse_json(response)

    # =========================
    # Account
    # =========================

    def get_about(self) -> Any:
        """Get information about the authenticated user.

        Returns:
            Response with a 'user' key
        """
        return self._request(
            "GET",
            "/drive/v3/about",
            params={"fields": "user(displayName, emailAddress)"},
        )

    # =========================
    # Listing
    # =========================

    def list_files(
        self,
        query: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_token: str | None = None,
        order_by: str | None = None,
    ) -> Any:
        """Run a files.list query.

        Args:
            query: Drive search query (the ``q`` parameter)
            page_size: Entries per page (1-1000)
            page_token: Token of the page to fetch (None for the first page)
            order_by: Optional sort order (e.g. "name")

        Returns:
            Raw response with 'files' and optionally 'nextPageToken'
        """
        params: dict[str, Any] = {
            "q": query,
            "pageSize": page_size,
            "fields": f"nextPageToken, files({FILE_FIELDS})",
            "spaces": "drive",
        }
        if page_token:
            params["pageToken"] = page_token
        if order_by:
            params["orderBy"] = order_by

        return self._request("GET", "/drive/v3/files", params=params)

    def list_children(
        self,
        folder_id: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_token: str | None = None,
    ) -> DriveFileList:
        """List one page of non-trashed children of a folder.

        Args:
            folder_id: ID of the folder to list
            page_size: Entries per page (1-1000)
            page_token: Token of the page to fetch

        Returns:
            DriveFileList with the entries and the next page token
        """
        query = f"'{escape_query_value(folder_id)}' in parents and trashed = false"
        result = self.list_files(
            query, page_size=page_size, page_token=page_token, order_by="name"
        )
        return DriveFileList.from_api_response(result)

    def find_folders(
        self, name: str, parent_id: str = ROOT_FOLDER_ID
    ) -> list[DriveEntry]:
        """Find non-trashed folders with an exact name under a parent.

        Args:
            name: Folder name
            parent_id: ID of the parent folder ("root" for the Drive root)

        Returns:
            Matching folders, oldest first
        """
        query = (
            f"'{escape_query_value(parent_id)}' in parents and "
            f"name = '{escape_query_value(name)}' and "
            f"mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
        )
        result = self.list_files(query, page_size=10, order_by="createdTime")
        return DriveFileList.from_api_response(result).entries

    # =========================
    # Folder Operations
    # =========================

    def create_folder(self, name: str, parent_id: str | None = None) -> str:
        """Create a new folder.

        Args:
            name: Name of the new folder
            parent_id: ID of parent folder (None for the Drive root)

        Returns:
            ID of the created folder
        """
        metadata: dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id is not None:
            metadata["parents"] = [parent_id]

        result = self._request(
            "POST", "/drive/v3/files", params={"fields": "id"}, json=metadata
        )
        folder_id = result.get("id")
        if not folder_id:
            raise DriveInvalidResponseError(f"Folder creation returned no id: {result}")
        logger.debug(f"Created folder '{name}' (id={folder_id}, parent={parent_id})")
        return str(folder_id)

    # =========================
    # Upload Operations
    # =========================

    def _start_upload_session(
        self,
        method: str,
        endpoint: str,
        metadata: dict[str, Any],
        mime_type: str,
        size: int | None,
    ) -> str:
        """Open a resumable upload session.

        Returns:
            Session URI to which the content is sent
        """
        headers = {"X-Upload-Content-Type": mime_type}
        if size is not None:
            headers["X-Upload-Content-Length"] = str(size)

        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        response = self._send(
            method,
            url,
            params={"uploadType": "resumable", "fields": "id"},
            json=metadata,
            headers=headers,
        )
        session_url = response.headers.get("Location")
        if not session_url:
            raise DriveUploadError("Upload session response had no Location header")
        return session_url

    def _send_content(
        self,
        session_url: str,
        content: Iterable[bytes],
        size: int | None,
        mime_type: str,
    ) -> str:
        """Stream content into an upload session.

        Returns:
            ID of the uploaded file
        """
        headers = {"Content-Type": mime_type}
        if size is not None:
            headers["Content-Length"] = str(size)

        # The body is a one-shot stream, so this request cannot be retried
        try:
            response = self._send(
                "PUT", session_url, retry=False, content=content, headers=headers
            )
        except (DriveNetworkError, DriveRateLimitError) as e:
            raise DriveUploadError(f"Upload failed: {e}") from e
        result = self._parse_json(response)
        file_id = result.get("id")
        if not file_id:
            raise DriveUploadError(f"Upload response missing file id: {result}")
        return str(file_id)

    def create_file(
        self,
        parent_id: str,
        name: str,
        modified_time_ms: int,
        content: Iterable[bytes],
        size: int | None = None,
        mime_type: str = "application/octet-stream",
    ) -> str:
        """Create a new file with streamed content.

        Args:
            parent_id: ID of the folder to create the file in
            name: File name
            modified_time_ms: Modification time to record (epoch millis)
            content: Iterable of byte chunks
            size: Total size in bytes, if known
            mime_type: MIME type of the content

        Returns:
            ID of the created file
        """
        metadata = {
            "name": name,
            "parents": [parent_id],
            "mimeType": mime_type,
            "modifiedTime": format_rfc3339_ms(modified_time_ms),
        }
        session_url = self._start_upload_session(
            "POST", "/upload/drive/v3/files", metadata, mime_type, size
        )
        return self._send_content(session_url, content, size, mime_type)

    def update_file(
        self,
        file_id: str,
        modified_time_ms: int,
        content: Iterable[bytes],
        size: int | None = None,
        mime_type: str = "application/octet-stream",
    ) -> str:
        """Replace the content of an existing file in place.

        Args:
            file_id: ID of the file to update
            modified_time_ms: Modification time to record (epoch millis)
            content: Iterable of byte chunks
            size: Total size in bytes, if known
            mime_type: MIME type of the content

        Returns:
            ID of the updated file
        """
        metadata = {"modifiedTime": format_rfc3339_ms(modified_time_ms)}
        session_url = self._start_upload_session(
            "PATCH", f"/upload/drive/v3/files/{file_id}", metadata, mime_type, size
        )
        return self._send_content(session_url, content, size, mime_type)

    # =========================
    # Download Operations
    # =========================

    def iter_file_content(
        self, file_id: str, chunk_size: int = DEFAULT_STREAM_CHUNK_SIZE
    ) -> Iterator[bytes]:
        """Stream the content of a file.

        Args:
            file_id: ID of the file to download
            chunk_size: Size of the yielded chunks

        Yields:
            Byte chunks of the file content

        Raises:
            DriveNotFoundError: If the file does not exist
            DriveDownloadError: If the download fails
            DriveNetworkError: On transport errors
        """
        url = f"{self.api_url}/drive/v3/files/{file_id}"
        client = self._get_client()

        try:
            with client.stream("GET", url, params={"alt": "media"}) as response:
                response.raise_for_status()
                for chunk in response.iter_bytes(chunk_size=chunk_size):
                    if chunk:
                        yield chunk
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise DriveNotFoundError(f"File not found: {file_id}") from e
            raise DriveDownloadError(f"Download failed: {e}") from e
        except httpx.RequestError as e:
            raise DriveNetworkError(f"Network error during download: {e}") from e
