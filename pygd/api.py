"""API client for the remote drive (Drive v2 REST API)."""

from __future__ import annotations

import json
import mimetypes
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

import httpx

from .config import config
from .exceptions import (
    GdAPIError,
    GdAuthenticationError,
    GdConfigError,
    GdDownloadError,
    GdInvalidResponseError,
    GdNetworkError,
    GdNotFoundError,
    GdPermissionError,
    GdRateLimitError,
    GdUploadError,
)
from .utils import CHUNK_SIZE, DRIVE_FOLDER_MIME_TYPE, format_remote_timestamp

ROOT_FOLDER_ID = "root"

# Permission id the API assigns to "anyone" (public) permissions
PUBLIC_PERMISSION_ID = "anyone"


class DriveClient:
    """Client for interacting with the drive API."""

    def __init__(
        self,
        access_token: str | None = None,
        api_url: str | None = None,
        timeout: float = 30.0,
    ):
        """Initialize drive API client.

        Args:
            access_token: OAuth access token (falls back to GD_ACCESS_TOKEN)
            api_url: Optional API base URL (uses config if not provided)
            timeout: Request timeout in seconds (default: 30.0)
        """
        self.access_token = access_token or config.env_access_token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.timeout = timeout

        if not self.access_token:
            raise GdConfigError(
                "Access token not configured. Run 'gd init' or set "
                "GD_ACCESS_TOKEN environment variable."
            )

        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> DriveClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _error_for_status(self, e: httpx.HTTPStatusError) -> GdAPIError:
        """Translate an HTTP error into the matching GdAPIError."""
        status_code = e.response.status_code

        if status_code == 401:
            return GdAuthenticationError("Invalid or expired access token")
        elif status_code == 403:
            return GdPermissionError("Access forbidden - check your permissions")
        elif status_code == 404:
            return GdNotFoundError("Resource not found")
        elif status_code == 429:
            return GdRateLimitError("Rate limit exceeded - please try again later")

        error_msg = f"API request failed with status {status_code}"
        # Drive errors look like {"error": {"code": ..., "message": ...}}
        try:
            if e.response.content:
                error_data = e.response.json()
                if isinstance(error_data, dict):
                    error = error_data.get("error")
                    if isinstance(error, dict):
                        msg = error.get("message")
                    else:
                        msg = error or error_data.get("message")
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except ValueError:
            pass
        return GdAPIError(error_msg)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data ({} for empty bodies)

        Raises:
            GdAPIError: If the request fails
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        client = self._get_client()

        try:
            response = client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._error_for_status(e) from e
        except httpx.RequestError as e:
            raise GdNetworkError(f"Network error: {e}") from e

        if not response.content:
            return {}

        content_type = response.headers.get("Content-Type", "")
        if "application/json" not in content_type:
            raise GdInvalidResponseError(f"Unexpected response type: {content_type}")
        try:
            return response.json()
        except ValueError as e:
            raise GdInvalidResponseError("Invalid JSON response from server") from e

    # =========================
    # Listing
    # =========================

    def list_files(
        self,
        query: str | None = None,
        page_token: str | None = None,
        max_results: int | None = None,
    ) -> Any:
        """List files matching a search query.

        Args:
            query: Drive search query (e.g. "'root' in parents")
            page_token: Token of the page to fetch
            max_results: Number of entries per page

        Returns:
            FileList resource with 'items' and optional 'nextPageToken'
        """
        params: dict[str, Any] = {"maxResults": max_results or config.page_size}
        if query:
            params["q"] = query
        if page_token:
            params["pageToken"] = page_token
        return self._request("GET", "/drive/v2/files", params=params)

    def get_file(self, file_id: str) -> Any:
        """Get a single file resource by ID."""
        return self._request("GET", f"/drive/v2/files/{file_id}")

    # =========================
    # Download
    # =========================

    def download_file(
        self,
        url: str,
        output_path: Path,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> Path:
        """Stream remote content from a download (or export) URL to disk.

        Args:
            url: downloadUrl or one of the exportLinks of a file
            output_path: Where to save the content
            progress_callback: Optional callback function(bytes_done, total_bytes)

        Returns:
            Path where the file was saved

        Raises:
            GdDownloadError: If the download or the write fails
        """
        client = self._get_client()

        try:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                total_size = int(response.headers.get("Content-Length", 0))
                bytes_downloaded = 0

                with open(output_path, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            bytes_downloaded += len(chunk)
                            if progress_callback:
                                progress_callback(bytes_downloaded, total_size)
                return output_path

        except httpx.HTTPStatusError as e:
            raise GdDownloadError(f"Download failed: {e}") from e
        except httpx.RequestError as e:
            raise GdNetworkError(f"Network error during download: {e}") from e
        except OSError as e:
            raise GdDownloadError(f"Failed to write file: {e}") from e

    # Export links are plain download URLs with a different content type
    export_file = download_file

    # =========================
    # Upload
    # =========================

    def _multipart_body(
        self, metadata: dict[str, Any], content: bytes, mime_type: str
    ) -> tuple[bytes, str]:
        boundary = f"gd-{uuid.uuid4().hex}"
        parts = [
            f"--{boundary}\r\n".encode(),
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            json.dumps(metadata).encode("utf-8"),
            f"\r\n--{boundary}\r\n".encode(),
            f"Content-Type: {mime_type}\r\n\r\n".encode(),
            content,
            f"\r\n--{boundary}--".encode(),
        ]
        return b"".join(parts), f"multipart/related; boundary={boundary}"

    def upload_file(
        self,
        file_path: Path,
        title: str | None = None,
        parent_id: str = ROOT_FOLDER_ID,
        file_id: str | None = None,
        modified_date: datetime | None = None,
    ) -> Any:
        """Create or overwrite a remote file with local content.

        Args:
            file_path: Local file to upload
            title: Remote title (defaults to the local name)
            parent_id: Folder to create the file in (ignored for updates)
            file_id: Existing remote file to overwrite; None creates a new one
            modified_date: Modification time to record remotely

        Returns:
            The created/updated file resource

        Raises:
            GdUploadError: If the local file cannot be read
        """
        try:
            content = file_path.read_bytes()
        except OSError as e:
            raise GdUploadError(f"Cannot read {file_path}: {e}") from e

        mime_type = mimetypes.guess_type(file_path.name)[0] or (
            "application/octet-stream"
        )
        metadata: dict[str, Any] = {
            "title": title or file_path.name,
            "mimeType": mime_type,
        }
        params: dict[str, Any] = {"uploadType": "multipart"}
        if modified_date is not None:
            metadata["modifiedDate"] = format_remote_timestamp(modified_date)
            params["setModifiedDate"] = "true"

        if file_id is None:
            metadata["parents"] = [{"id": parent_id}]
            method, endpoint = "POST", "/upload/drive/v2/files"
        else:
            method, endpoint = "PUT", f"/upload/drive/v2/files/{file_id}"

        body, content_type = self._multipart_body(metadata, content, mime_type)
        return self._request(
            method,
            endpoint,
            params=params,
            content=body,
            headers={"Content-Type": content_type},
        )

    def create_folder(self, title: str, parent_id: str = ROOT_FOLDER_ID) -> Any:
        """Create a folder.

        Returns:
            The created folder resource
        """
        data = {
            "title": title,
            "mimeType": DRIVE_FOLDER_MIME_TYPE,
            "parents": [{"id": parent_id}],
        }
        return self._request("POST", "/drive/v2/files", json=data)

    # =========================
    # Trash and deletion
    # =========================

    def trash(self, file_id: str) -> Any:
        """Move a file or folder to the trash."""
        return self._request("POST", f"/drive/v2/files/{file_id}/trash")

    def untrash(self, file_id: str) -> Any:
        """Restore a file or folder from the trash."""
        return self._request("POST", f"/drive/v2/files/{file_id}/untrash")

    def delete(self, file_id: str) -> Any:
        """Permanently delete a file or folder, skipping the trash."""
        return self._request("DELETE", f"/drive/v2/files/{file_id}")

    def empty_trash(self) -> Any:
        """Permanently delete everything in the trash."""
        return self._request("DELETE", "/drive/v2/files/trash")

    # =========================
    # Account
    # =========================

    def about(self) -> Any:
        """Get account information (quota, features, upload limits)."""
        return self._request("GET", "/drive/v2/about")

    # =========================
    # Sharing
    # =========================

    def insert_permission(
        self, file_id: str, role: str = "reader", perm_type: str = "anyone"
    ) -> Any:
        """Grant a permission on a file (default: public read access)."""
        data = {"role": role, "type": perm_type, "value": ""}
        return self._request(
            "POST", f"/drive/v2/files/{file_id}/permissions", json=data
        )

    def delete_permission(
        self, file_id: str, permission_id: str = PUBLIC_PERMISSION_ID
    ) -> Any:
        """Revoke a permission on a file (default: public read access)."""
        return self._request(
            "DELETE", f"/drive/v2/files/{file_id}/permissions/{permission_id}"
        )
