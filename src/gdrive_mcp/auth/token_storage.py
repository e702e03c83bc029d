"""Credential file storage for gdrive-mcp.

Tokens are written as google-auth "authorized user" JSON, so the file can be
loaded back with ``Credentials.from_authorized_user_file``.

Storage Location: $GDRIVE_CREDENTIALS_PATH (required, no default)

The serving process writes this file once at startup from environment
variables; the ``auth`` command overwrites it after a fresh consent flow.
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from google.oauth2.credentials import Credentials

from gdrive_mcp.auth.models import (
    DRIVE_READONLY_SCOPE,
    CredentialRecord,
    MissingConfigError,
    TokenStatus,
)
from gdrive_mcp.config import (
    ENV_ACCESS_TOKEN,
    ENV_CLIENT_ID,
    ENV_CLIENT_SECRET,
    ENV_CREDENTIALS_PATH,
    ENV_REFRESH_TOKEN,
)

logger = logging.getLogger(__name__)

# Checked (and reported) in this order
REQUIRED_SERVE_VARIABLES = (
    ENV_ACCESS_TOKEN,
    ENV_REFRESH_TOKEN,
    ENV_CLIENT_ID,
    ENV_CLIENT_SECRET,
    ENV_CREDENTIALS_PATH,
)


def find_missing(environ: Mapping[str, str], names: tuple[str, ...]) -> list[str]:
    """Return the names from ``names`` that are unset or empty in ``environ``."""
    return [name for name in names if not environ.get(name)]


class TokenStorage:
    """JSON file storage for a single set of Drive credentials.

    Attributes:
        token_path: Path to the credentials JSON file.

    Example:
        ```python
        storage = TokenStorage(Path("~/.gdrive/credentials.json").expanduser())
        storage.save(record.to_credentials())

        if storage.get_status() == TokenStatus.VALID:
            credentials = storage.load()
        ```
    """

    def __init__(self, token_path: Path | str) -> None:
        """Initialize token storage.

        Args:
            token_path: Location of the credentials file. The directory is
                created lazily on first save.
        """
        self.token_path = Path(token_path)

    @property
    def credentials_dir(self) -> Path:
        """Directory holding the credentials file."""
        return self.token_path.parent

    def _ensure_credentials_dir(self) -> None:
        """Create credentials directory (and parents) with secure permissions."""
        if not self.credentials_dir.exists():
            self.credentials_dir.mkdir(parents=True, mode=0o700)

    def save(self, credentials: Credentials) -> None:
        """Write credentials to disk with owner-only permissions.

        Args:
            credentials: google-auth credentials to persist.
        """
        self._ensure_credentials_dir()

        with open(self.token_path, "w") as f:
            f.write(credentials.to_json())

        # Set file permissions to owner read/write only (600)
        self.token_path.chmod(0o600)

    def load(self) -> Credentials | None:
        """Load credentials from disk.

        Returns:
            Credentials if the file exists and parses, None otherwise.
        """
        if not self.token_path.exists():
            return None

        try:
            return Credentials.from_authorized_user_file(
                str(self.token_path), scopes=[DRIVE_READONLY_SCOPE]
            )
        except (OSError, ValueError, json.JSONDecodeError):
            return None

    def get_status(self) -> TokenStatus:
        """Get the status of the stored credentials.

        Returns:
            TokenStatus indicating the file's current state.
        """
        if not self.token_path.exists():
            return TokenStatus.MISSING

        credentials = self.load()
        if credentials is None:
            return TokenStatus.INVALID

        if credentials.expired:
            return TokenStatus.EXPIRED

        return TokenStatus.VALID


def materialize_from_config(environ: Mapping[str, str] | None = None) -> CredentialRecord:
    """Build the credential record from the environment and write it to disk.

    The expiry is set one hour ahead as an estimate; token validity is only
    discovered on the first Drive request.

    Args:
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        The in-memory credential record.

    Raises:
        MissingConfigError: If any of the five required variables is absent.
        OSError: If the credentials file cannot be written.
    """
    env = os.environ if environ is None else environ

    missing = find_missing(env, REQUIRED_SERVE_VARIABLES)
    if missing:
        raise MissingConfigError(missing)

    record = CredentialRecord(
        access_token=env[ENV_ACCESS_TOKEN],
        refresh_token=env[ENV_REFRESH_TOKEN],
        client_id=env[ENV_CLIENT_ID],
        client_secret=env[ENV_CLIENT_SECRET],
    )

    storage = TokenStorage(env[ENV_CREDENTIALS_PATH])
    storage.save(record.to_credentials())
    logger.info("Credentials successfully written to %s", storage.token_path)

    return record
