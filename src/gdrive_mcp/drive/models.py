"""Data models for Drive listing, reading and search results."""

from typing import Any

from pydantic import BaseModel, Field, model_validator

RESOURCE_URI_PREFIX = "gdrive:///"
DEFAULT_MIME_TYPE = "application/octet-stream"
UNKNOWN_NAME = "Unknown"
UNKNOWN_MIME_TYPE = "Unknown type"


def file_uri(file_id: str) -> str:
    """Build the resource URI for a native Drive file ID."""
    return f"{RESOURCE_URI_PREFIX}{file_id}"


def file_id_from_uri(uri: str) -> str:
    """Recover the native Drive file ID from a resource URI.

    Raises:
        ValueError: If the URI does not use the gdrive:/// scheme or has no ID.
    """
    if not uri.startswith(RESOURCE_URI_PREFIX):
        raise ValueError(f"Invalid resource URI: {uri!r} (expected {RESOURCE_URI_PREFIX}<id>)")

    file_id = uri[len(RESOURCE_URI_PREFIX) :]
    if not file_id:
        raise ValueError(f"Invalid resource URI: {uri!r} has no file ID")
    return file_id


class FileResource(BaseModel):
    """A Drive file exposed as an MCP resource.

    Attributes:
        uri: gdrive:///<id> handle.
        name: File name, "Unknown" when Drive omits it.
        mime_type: MIME type, application/octet-stream when Drive omits it.
    """

    uri: str
    name: str
    mime_type: str

    @classmethod
    def from_drive_file(cls, item: dict[str, Any]) -> "FileResource":
        """Map a Drive files.list item to a resource."""
        return cls(
            uri=file_uri(item["id"]),
            name=item.get("name") or UNKNOWN_NAME,
            mime_type=item.get("mimeType") or DEFAULT_MIME_TYPE,
        )


class ResourcePage(BaseModel):
    """One page of resources plus the cursor for the next page."""

    resources: list[FileResource] = Field(default_factory=list)
    next_cursor: str | None = None


class FileContent(BaseModel):
    """File payload, carried either as text or as base64 blob (never both).

    Attributes:
        uri: Resource URI that was read.
        mime_type: MIME type of the payload.
        text: Decoded text for text/* and JSON payloads.
        blob: Base64-encoded bytes for everything else.
    """

    uri: str
    mime_type: str
    text: str | None = None
    blob: str | None = None

    @model_validator(mode="after")
    def _exactly_one_payload(self) -> "FileContent":
        if (self.text is None) == (self.blob is None):
            raise ValueError("FileContent requires exactly one of text or blob")
        return self


class SearchMatch(BaseModel):
    """Name and type of a file matched by a full-text search."""

    name: str
    mime_type: str

    @classmethod
    def from_drive_file(cls, item: dict[str, Any]) -> "SearchMatch":
        return cls(
            name=item.get("name") or UNKNOWN_NAME,
            mime_type=item.get("mimeType") or UNKNOWN_MIME_TYPE,
        )


class SearchResult(BaseModel):
    """Search matches in backend order plus their count."""

    matches: list[SearchMatch] = Field(default_factory=list)
    count: int = 0
