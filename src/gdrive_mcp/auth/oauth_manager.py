"""Interactive OAuth manager for Google Drive read-only access.

This module runs the browser consent flow that produces the access and
refresh tokens the server expects in its environment. It is only used by the
``gdrive-mcp auth`` command; the serving process never starts a flow.

Environment Variables:
    GDRIVE_CLIENT_ID: Google OAuth client ID (required)
    GDRIVE_CLIENT_SECRET: Google OAuth client secret (required)
    GDRIVE_CREDENTIALS_PATH: Where the resulting tokens are written (required)
    GDRIVE_OAUTH_REDIRECT_URI: Redirect URI (default: http://localhost:8789/callback)
"""

import asyncio
import json
import logging
import os
import secrets
import webbrowser
from collections.abc import Mapping
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from gdrive_mcp.auth.models import (
    DRIVE_READONLY_SCOPE,
    GOOGLE_TOKEN_URI,
    AuthFlowError,
    MissingConfigError,
)
from gdrive_mcp.auth.token_storage import TokenStorage, find_missing
from gdrive_mcp.config import ENV_CLIENT_ID, ENV_CLIENT_SECRET, ENV_CREDENTIALS_PATH

logger = logging.getLogger(__name__)

DRIVE_SCOPES = [DRIVE_READONLY_SCOPE]

# OAuth configuration defaults
DEFAULT_OAUTH_HOST = "localhost"
DEFAULT_OAUTH_PORT = 8789
DEFAULT_REDIRECT_URI = "http://localhost:8789/callback"
CALLBACK_TIMEOUT_SECONDS = 300
CALLBACK_PAGE = "<html><body><h1>{title}</h1><p>{detail}</p></body></html>"

# Written next to the credentials file for the duration of the flow
TEMP_CLIENT_CONFIG_NAME = "temp-oauth.json"

REQUIRED_AUTH_VARIABLES = (ENV_CLIENT_ID, ENV_CLIENT_SECRET, ENV_CREDENTIALS_PATH)


class OAuthManager:
    """OAuth consent flow for Google Drive.

    Attributes:
        storage: Token storage the resulting credentials are written to.

    Example:
        ```python
        manager = OAuthManager.from_env()
        credentials = await manager.authenticate(
            client_id="your-client-id",
            client_secret="your-client-secret",  # pragma: allowlist secret
        )
        print(credentials.refresh_token)
        ```
    """

    def __init__(self, storage: TokenStorage, redirect_uri: str | None = None) -> None:
        """Initialize OAuth manager.

        Args:
            storage: Token storage for the credentials file.
            redirect_uri: OAuth redirect URI. Falls back to
                GDRIVE_OAUTH_REDIRECT_URI, then DEFAULT_REDIRECT_URI.
        """
        self.storage = storage
        self.redirect_uri = redirect_uri or os.environ.get(
            "GDRIVE_OAUTH_REDIRECT_URI", DEFAULT_REDIRECT_URI
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "OAuthManager":
        """Create a manager writing to GDRIVE_CREDENTIALS_PATH.

        Raises:
            MissingConfigError: If client ID, client secret or credentials
                path is not configured.
        """
        env = os.environ if environ is None else environ
        missing = find_missing(env, REQUIRED_AUTH_VARIABLES)
        if missing:
            raise MissingConfigError(missing)

        return cls(
            storage=TokenStorage(env[ENV_CREDENTIALS_PATH]),
            redirect_uri=env.get("GDRIVE_OAUTH_REDIRECT_URI"),
        )

    @property
    def token_path(self) -> Path:
        """Path the credentials are written to."""
        return self.storage.token_path

    @property
    def client_config_path(self) -> Path:
        """Temporary OAuth client descriptor, a sibling of the credentials file."""
        return self.storage.credentials_dir / TEMP_CLIENT_CONFIG_NAME

    def _write_client_config(self, client_id: str, client_secret: str) -> Path:
        """Write the temporary client descriptor consumed by the flow."""
        client_config = {
            "web": {
                "client_id": client_id,
                "client_secret": client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }

        path = self.client_config_path
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(client_config, f, indent=2)
        path.chmod(0o600)
        return path

    async def authenticate(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        scopes: list[str] | None = None,
    ) -> Credentials:
        """Perform the OAuth2 consent flow and store the resulting tokens.

        The temporary client descriptor is removed whether the flow succeeds
        or fails.

        Args:
            client_id: Google OAuth client ID.
            client_secret: Google OAuth client secret.
            scopes: OAuth scopes to request. Uses DRIVE_SCOPES if not specified.

        Returns:
            Credentials carrying the new access and refresh tokens.

        Raises:
            MissingConfigError: If client ID or secret is empty.
            AuthFlowError: If consent is denied or the code exchange fails.
        """
        if scopes is None:
            scopes = DRIVE_SCOPES

        missing = [
            name
            for name, value in ((ENV_CLIENT_ID, client_id), (ENV_CLIENT_SECRET, client_secret))
            if not value
        ]
        if missing:
            raise MissingConfigError(missing)

        config_path = self._write_client_config(client_id, client_secret)
        try:
            # Run OAuth flow in executor (it's blocking)
            loop = asyncio.get_running_loop()
            credentials = await loop.run_in_executor(
                None, self._run_oauth_flow, config_path, scopes, self.redirect_uri
            )
            self.storage.save(credentials)
            logger.info("Credentials saved to %s", self.token_path)
            return credentials
        finally:
            config_path.unlink(missing_ok=True)

    def _run_oauth_flow(
        self, client_config_path: Path, scopes: list[str], redirect_uri: str
    ) -> Credentials:
        """Run the OAuth flow (blocking operation).

        Opens the browser for authorization and starts a local server to
        receive the single callback request.

        Args:
            client_config_path: Path to the client descriptor (web type).
            scopes: List of OAuth scopes.
            redirect_uri: Full redirect URI including path.

        Returns:
            Google OAuth2 credentials.

        Raises:
            AuthFlowError: If no code arrives or the token exchange fails.
        """
        flow = Flow.from_client_secrets_file(
            str(client_config_path),
            scopes=scopes,
            redirect_uri=redirect_uri,
        )

        # Generate state for CSRF protection
        state = secrets.token_urlsafe(32)

        auth_url, _ = flow.authorization_url(
            access_type="offline",
            prompt="consent",
            state=state,
        )

        parsed = urlparse(redirect_uri)
        host = parsed.hostname or DEFAULT_OAUTH_HOST
        port = parsed.port or DEFAULT_OAUTH_PORT
        callback_path = parsed.path or "/callback"

        outcome: dict[str, str] = {}

        class DriveConsentCallback(BaseHTTPRequestHandler):
            """Receives the single redirect from Google's consent screen."""

            def log_message(self, format: str, *args) -> None:
                """Keep the terminal quiet."""

            def _page(self, status: int, title: str, detail: str) -> None:
                self.send_response(status)
                self.send_header("Content-type", "text/html")
                self.end_headers()
                self.wfile.write(CALLBACK_PAGE.format(title=title, detail=detail).encode())

            def do_GET(self) -> None:
                target = urlparse(self.path)
                if target.path != callback_path:
                    self._page(404, "Not Found", "Unexpected callback path.")
                    return

                params = {key: values[0] for key, values in parse_qs(target.query).items()}

                if "error" in params:
                    outcome["error"] = params["error"]
                    self._page(400, "Authentication Failed", "Close this window and retry.")
                elif params.get("state") != state:
                    outcome["error"] = "state mismatch"
                    self._page(400, "Authentication Failed", "Invalid state parameter.")
                elif "code" in params:
                    outcome["code"] = params["code"]
                    self._page(200, "Drive access granted", "Return to the terminal.")
                else:
                    self._page(400, "Authentication Failed", "No authorization code received.")

        server = HTTPServer((host, port), DriveConsentCallback)
        server.timeout = CALLBACK_TIMEOUT_SECONDS

        print("Opening browser for Google authorization...")
        print(f"If browser doesn't open, visit: {auth_url}")
        webbrowser.open(auth_url)

        # Wait for single callback request
        try:
            server.handle_request()
        finally:
            server.server_close()

        if "error" in outcome:
            raise AuthFlowError(f"OAuth authentication failed: {outcome['error']}")

        if "code" not in outcome:
            raise AuthFlowError("No authorization code received from Google")

        try:
            flow.fetch_token(code=outcome["code"])
        except Exception as err:
            raise AuthFlowError(f"Token exchange failed: {err}") from err

        return flow.credentials
