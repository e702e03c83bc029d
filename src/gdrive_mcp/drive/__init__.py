"""Google Drive access layer.

Translates list/read/search requests into Drive v3 REST calls and normalizes
the responses (resource URIs, export formats, text-vs-blob payloads).
"""

from gdrive_mcp.drive.client import (
    DriveClient,
    build_search_query,
    escape_query,
    export_mime_type,
)
from gdrive_mcp.drive.models import (
    FileContent,
    FileResource,
    ResourcePage,
    SearchMatch,
    SearchResult,
    file_id_from_uri,
    file_uri,
)

__all__ = [
    "DriveClient",
    "FileContent",
    "FileResource",
    "ResourcePage",
    "SearchMatch",
    "SearchResult",
    "build_search_query",
    "escape_query",
    "export_mime_type",
    "file_id_from_uri",
    "file_uri",
]
