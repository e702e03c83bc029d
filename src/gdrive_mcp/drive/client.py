"""Async Google Drive v3 client for the read-only MCP surface.

The client is constructed once at startup with the operator's credentials and
shared by every connection. It never refreshes tokens: an expired access
token surfaces as an ``httpx.HTTPStatusError`` (401) on the next call, and the
operator re-runs ``gdrive-mcp auth``.

Remote failures are never retried or rewritten; callers see the httpx error.
"""

import base64
import logging
from typing import Any

import httpx
from google.oauth2.credentials import Credentials

from gdrive_mcp.drive.models import (
    DEFAULT_MIME_TYPE,
    FileContent,
    FileResource,
    ResourcePage,
    SearchMatch,
    SearchResult,
    file_id_from_uri,
)

logger = logging.getLogger(__name__)

DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"

PAGE_SIZE = 10
LIST_FIELDS = "nextPageToken, files(id, name, mimeType)"
SEARCH_FIELDS = "files(id, name, mimeType, modifiedTime, size)"

GOOGLE_APPS_MIME_PREFIX = "application/vnd.google-apps"

# Export targets for Google-native documents, which have no raw bytes
EXPORT_MIME_TYPES = {
    "application/vnd.google-apps.document": "text/markdown",
    "application/vnd.google-apps.spreadsheet": "text/csv",
    "application/vnd.google-apps.presentation": "text/plain",
    "application/vnd.google-apps.drawing": "image/png",
}
DEFAULT_EXPORT_MIME_TYPE = "text/plain"


def is_google_native(mime_type: str) -> bool:
    """True for Docs/Sheets/Slides/Drawings and other google-apps types."""
    return mime_type.startswith(GOOGLE_APPS_MIME_PREFIX)


def export_mime_type(mime_type: str) -> str:
    """Pick the export format for a Google-native MIME type."""
    return EXPORT_MIME_TYPES.get(mime_type, DEFAULT_EXPORT_MIME_TYPE)


def is_text_mime_type(mime_type: str) -> bool:
    """True when a payload of this type is returned as text rather than blob."""
    return mime_type.startswith("text/") or mime_type == "application/json"


def escape_query(query: str) -> str:
    """Escape a raw search string for a single-quoted Drive query literal.

    Backslashes are doubled first so the quote escapes added afterwards are
    not themselves re-escaped.
    """
    return query.replace("\\", "\\\\").replace("'", "\\'")


def build_search_query(query: str) -> str:
    """Build the full-text Drive query for a raw search string."""
    return f"fullText contains '{escape_query(query)}'"


class DriveClient:
    """Read-only Google Drive client.

    Attributes:
        credentials: google-auth credentials whose access token authorizes
            every request.

    Example:
        ```python
        client = DriveClient(record.to_credentials())
        page = await client.list_files()
        content = await client.read_file(page.resources[0].uri)
        await client.close()
        ```
    """

    def __init__(
        self,
        credentials: Credentials,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Drive client.

        Args:
            credentials: Credentials holding the access token.
            http_client: Pre-built HTTP client. When omitted, a pooled HTTP/2
                client is created on first use and owned by this instance.
        """
        self.credentials = credentials
        self._http_client = http_client
        self._owns_http_client = http_client is None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create shared HTTP client with connection pooling.

        Returns:
            Shared httpx.AsyncClient instance.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make an authenticated GET request against the Drive API.

        Args:
            path: Path below DRIVE_API_BASE (e.g. "/files").
            params: Optional query parameters.

        Returns:
            Raw httpx.Response object.

        Raises:
            httpx.HTTPStatusError: If Drive answers with an error status.
        """
        client = await self._get_http_client()

        response = await client.get(
            f"{DRIVE_API_BASE}{path}",
            params=params,
            headers={"Authorization": f"Bearer {self.credentials.token}"},
        )
        response.raise_for_status()
        return response

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        response = await self._request(path, params=params)
        result: dict[str, Any] = response.json()
        return result

    async def list_files(self, cursor: str | None = None) -> ResourcePage:
        """List one page of files.

        Args:
            cursor: nextPageToken from a previous page, passed through verbatim.

        Returns:
            ResourcePage with up to PAGE_SIZE resources and the next cursor,
            which is None on the last page.
        """
        params: dict[str, Any] = {"pageSize": PAGE_SIZE, "fields": LIST_FIELDS}
        if cursor:
            params["pageToken"] = cursor

        data = await self._get_json("/files", params=params)

        return ResourcePage(
            resources=[FileResource.from_drive_file(item) for item in data.get("files", [])],
            next_cursor=data.get("nextPageToken"),
        )

    async def read_file(self, uri: str) -> FileContent:
        """Read a file's content.

        Google-native documents are exported (see EXPORT_MIME_TYPES); other
        files are downloaded as-is. Text and JSON payloads come back as text,
        everything else as base64.

        Args:
            uri: gdrive:///<id> resource URI.

        Returns:
            FileContent with exactly one of text or blob populated.

        Raises:
            ValueError: If the URI is not a gdrive:/// URI.
        """
        file_id = file_id_from_uri(uri)

        metadata = await self._get_json(f"/files/{file_id}", params={"fields": "mimeType"})
        source_mime_type = metadata.get("mimeType") or DEFAULT_MIME_TYPE

        if is_google_native(source_mime_type):
            mime_type = export_mime_type(source_mime_type)
            logger.debug("Exporting %s (%s) as %s", file_id, source_mime_type, mime_type)
            response = await self._request(
                f"/files/{file_id}/export", params={"mimeType": mime_type}
            )
        else:
            mime_type = source_mime_type
            response = await self._request(f"/files/{file_id}", params={"alt": "media"})

        payload = response.content
        if is_text_mime_type(mime_type):
            return FileContent(
                uri=uri,
                mime_type=mime_type,
                text=payload.decode("utf-8", errors="replace"),
            )

        return FileContent(
            uri=uri,
            mime_type=mime_type,
            blob=base64.b64encode(payload).decode("ascii"),
        )

    async def search(self, query: str) -> SearchResult:
        """Full-text search across the user's Drive.

        Args:
            query: Raw user query; quotes and backslashes are escaped.

        Returns:
            SearchResult with up to PAGE_SIZE matches in backend order.
        """
        params = {
            "q": build_search_query(query),
            "pageSize": PAGE_SIZE,
            "fields": SEARCH_FIELDS,
        }

        data = await self._get_json("/files", params=params)

        matches = [SearchMatch.from_drive_file(item) for item in data.get("files", [])]
        return SearchResult(matches=matches, count=len(matches))
