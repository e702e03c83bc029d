"""Shared pytest fixtures for gdrive-mcp tests.

This module provides reusable fixtures for credential handling, token
storage, and a Drive API fake built on httpx.MockTransport.
"""

import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from gdrive_mcp.auth.models import CredentialRecord

# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture
def credentials_path(tmp_path: Path) -> Path:
    """Location of the credentials file inside a temporary directory."""
    return tmp_path / "gdrive" / "credentials.json"


@pytest.fixture
def serve_env(credentials_path: Path) -> dict[str, str]:
    """Complete environment for starting the server."""
    return {
        "GDRIVE_ACCESS_TOKEN": "test_access_token_abc123",
        "GDRIVE_REFRESH_TOKEN": "test_refresh_token_xyz789",
        "GDRIVE_CLIENT_ID": "test-client-id.apps.googleusercontent.com",
        "GDRIVE_CLIENT_SECRET": "test_client_secret",  # pragma: allowlist secret
        "GDRIVE_CREDENTIALS_PATH": str(credentials_path),
    }


# =============================================================================
# Credential Fixtures
# =============================================================================


@pytest.fixture
def credential_record() -> CredentialRecord:
    """Create a credential record expiring in one hour."""
    return CredentialRecord(
        access_token="test_access_token_abc123",
        refresh_token="test_refresh_token_xyz789",
        client_id="test-client-id.apps.googleusercontent.com",
        client_secret="test_client_secret",  # pragma: allowlist secret
    )


@pytest.fixture
def expired_record() -> CredentialRecord:
    """Create a credential record that expired an hour ago."""
    return CredentialRecord(
        access_token="expired_access_token",
        refresh_token="test_refresh_token",
        client_id="test-client-id",
        client_secret="test_client_secret",  # pragma: allowlist secret
        expiry=datetime.now(timezone.utc) - timedelta(hours=1),
    )


# =============================================================================
# Token Storage Fixtures
# =============================================================================


@pytest.fixture
def token_storage(credentials_path: Path):
    """Create a TokenStorage instance with temporary storage."""
    from gdrive_mcp.auth.token_storage import TokenStorage

    return TokenStorage(token_path=credentials_path)


@pytest.fixture
def oauth_manager(token_storage):
    """Create an OAuthManager with temporary storage."""
    from gdrive_mcp.auth.oauth_manager import OAuthManager

    return OAuthManager(storage=token_storage)


@pytest.fixture
def mock_google_credentials() -> MagicMock:
    """Create a mock Google OAuth2 Credentials object."""
    mock_creds = MagicMock()
    mock_creds.token = "mock_access_token"
    mock_creds.refresh_token = "mock_refresh_token"
    mock_creds.to_json.return_value = json.dumps(
        {
            "token": "mock_access_token",
            "refresh_token": "mock_refresh_token",
            "client_id": "test-client-id",
            "client_secret": "test_client_secret",  # pragma: allowlist secret
        }
    )
    return mock_creds


# =============================================================================
# Drive API Fake
# =============================================================================

DRIVE_FILES = {
    "doc1": {
        "id": "doc1",
        "name": "Meeting notes",
        "mimeType": "application/vnd.google-apps.document",
    },
    "sheet1": {
        "id": "sheet1",
        "name": "Q1 budget.xlsx",
        "mimeType": "application/vnd.google-apps.spreadsheet",
    },
    "txt1": {"id": "txt1", "name": "budget-notes.txt", "mimeType": "text/plain"},
    "png1": {"id": "png1", "name": "logo.png", "mimeType": "image/png"},
    "draw1": {
        "id": "draw1",
        "name": "Org chart",
        "mimeType": "application/vnd.google-apps.drawing",
    },
}

FILE_BODIES = {
    "doc1": b"# Meeting notes\n\n- ship it",
    "sheet1": b"quarter,amount\nQ1,100",
    "txt1": b"remember the budget",
    "png1": b"\x89PNG\r\n\x1a\n",
    "draw1": b"\x89PNG\r\n\x1a\n\x00chart",
}


class FakeDrive:
    """Minimal Drive v3 backend for httpx.MockTransport.

    Serves two pages of listings (cursor "page-2"), metadata, media and
    export downloads, and full-text search over DRIVE_FILES. Every request
    is recorded in ``requests``.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.search_results = [DRIVE_FILES["sheet1"], DRIVE_FILES["txt1"]]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/drive/v3")
        params = request.url.params

        if path == "/files":
            if "q" in params:
                return httpx.Response(200, json={"files": self.search_results})
            if params.get("pageToken") == "page-2":
                return httpx.Response(200, json={"files": [DRIVE_FILES["png1"]]})
            first_page = [DRIVE_FILES["doc1"], DRIVE_FILES["sheet1"], DRIVE_FILES["txt1"]]
            return httpx.Response(200, json={"files": first_page, "nextPageToken": "page-2"})

        parts = path.strip("/").split("/")
        file_id = parts[1] if len(parts) > 1 else ""
        if file_id not in DRIVE_FILES:
            return httpx.Response(404, json={"error": {"code": 404, "message": "File not found"}})

        if len(parts) == 3 and parts[2] == "export":
            return httpx.Response(200, content=FILE_BODIES[file_id])
        if params.get("alt") == "media":
            return httpx.Response(200, content=FILE_BODIES[file_id])
        return httpx.Response(200, json={"mimeType": DRIVE_FILES[file_id]["mimeType"]})


@pytest.fixture
def fake_drive() -> FakeDrive:
    """Drive backend double recording every request."""
    return FakeDrive()


@pytest.fixture
def make_drive_client(credential_record: CredentialRecord) -> Callable:
    """Factory building a DriveClient over an arbitrary MockTransport handler."""
    from gdrive_mcp.drive.client import DriveClient

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> DriveClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return DriveClient(credential_record.to_credentials(), http_client=http_client)

    return _make


@pytest.fixture
def drive_client(make_drive_client: Callable, fake_drive: FakeDrive):
    """DriveClient wired to the fake Drive backend."""
    return make_drive_client(fake_drive)


@pytest.fixture
def gdrive_server(drive_client):
    """GDriveServer wired to the fake Drive backend."""
    from gdrive_mcp.server.gdrive_server import GDriveServer

    return GDriveServer(drive_client)


# =============================================================================
# CLI Test Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
