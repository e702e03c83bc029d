"""OAuth credentials for gdrive-mcp.

Quick Start:
    ```python
    from gdrive_mcp.auth import materialize_from_config

    # Serving: read tokens from the environment and write the credentials file
    record = materialize_from_config()
    credentials = record.to_credentials()
    ```

New tokens come from the interactive flow (``gdrive-mcp auth``), which uses
``OAuthManager``.
"""

from gdrive_mcp.auth.models import (
    DRIVE_READONLY_SCOPE,
    AuthFlowError,
    CredentialRecord,
    MissingConfigError,
    TokenStatus,
)
from gdrive_mcp.auth.oauth_manager import DRIVE_SCOPES, OAuthManager
from gdrive_mcp.auth.token_storage import TokenStorage, materialize_from_config

__all__ = [
    "OAuthManager",
    "TokenStorage",
    "CredentialRecord",
    "TokenStatus",
    "MissingConfigError",
    "AuthFlowError",
    "materialize_from_config",
    "DRIVE_READONLY_SCOPE",
    "DRIVE_SCOPES",
]
