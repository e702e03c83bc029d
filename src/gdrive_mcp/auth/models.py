"""Credential models and auth errors for gdrive-mcp."""

from datetime import datetime, timedelta, timezone
from enum import Enum

from google.oauth2.credentials import Credentials
from pydantic import BaseModel, Field

DRIVE_READONLY_SCOPE = "https://www.googleapis.com/auth/drive.readonly"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"  # nosec B105 - public endpoint

# Advisory lifetime written into materialized credentials; the issuer's real
# expiry is only discovered when a Drive call fails.
DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


class MissingConfigError(Exception):
    """Raised when required environment variables are absent.

    Attributes:
        missing: Names of every absent variable, in check order.
    """

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            "Missing required environment variables: " + ", ".join(self.missing)
        )


class AuthFlowError(Exception):
    """Raised when the interactive OAuth flow does not yield tokens."""


class TokenStatus(str, Enum):
    """State of the credentials file on disk."""

    VALID = "valid"
    EXPIRED = "expired"
    MISSING = "missing"
    INVALID = "invalid"


def _default_expiry() -> datetime:
    return datetime.now(timezone.utc) + DEFAULT_TOKEN_LIFETIME


class CredentialRecord(BaseModel):
    """OAuth2 token material used to authenticate Drive requests.

    The record is immutable; re-authentication produces a new record.

    Attributes:
        access_token: Bearer token sent with every Drive request.
        refresh_token: Long-lived token kept for the operator's re-auth flow.
        client_id: OAuth client ID that issued the tokens.
        client_secret: OAuth client secret that issued the tokens.
        scope: Granted OAuth scope.
        token_type: Token type, always Bearer for Google.
        expiry: Estimated expiry (timezone-aware, not authoritative).
    """

    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)
    client_secret: str = Field(..., min_length=1)
    scope: str = Field(default=DRIVE_READONLY_SCOPE)
    token_type: str = Field(default="Bearer")
    expiry: datetime = Field(default_factory=_default_expiry)

    model_config = {"frozen": True}

    def to_credentials(self) -> Credentials:
        """Convert to google-auth Credentials.

        google-auth compares expiry against naive UTC timestamps, so the
        timezone is stripped after normalising to UTC.
        """
        expiry = self.expiry
        if expiry.tzinfo is not None:
            expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)

        return Credentials(  # nosec B106 - token_uri is public Google OAuth endpoint
            token=self.access_token,
            refresh_token=self.refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=[self.scope],
            expiry=expiry,
        )
