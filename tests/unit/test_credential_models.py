"""Unit tests for credential models and auth errors."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from gdrive_mcp.auth.models import (
    DRIVE_READONLY_SCOPE,
    GOOGLE_TOKEN_URI,
    CredentialRecord,
    MissingConfigError,
    TokenStatus,
)


@pytest.mark.unit
class TestCredentialRecord:
    """Tests for CredentialRecord model."""

    def test_should_default_to_readonly_bearer_token(
        self, credential_record: CredentialRecord
    ) -> None:
        """Verify scope and token type defaults."""
        assert credential_record.scope == DRIVE_READONLY_SCOPE
        assert credential_record.token_type == "Bearer"

    def test_should_estimate_expiry_one_hour_ahead(
        self, credential_record: CredentialRecord
    ) -> None:
        """Verify default expiry is roughly one hour from now and timezone-aware."""
        remaining = credential_record.expiry - datetime.now(timezone.utc)

        assert credential_record.expiry.tzinfo is not None
        assert timedelta(minutes=55) < remaining <= timedelta(hours=1)

    def test_should_reject_empty_access_token(self) -> None:
        """Verify empty token fields fail validation."""
        with pytest.raises(ValidationError):
            CredentialRecord(
                access_token="",
                refresh_token="refresh",
                client_id="id",
                client_secret="secret",  # pragma: allowlist secret
            )

    def test_should_be_immutable(self, credential_record: CredentialRecord) -> None:
        """Verify records cannot be modified after creation."""
        with pytest.raises(ValidationError):
            credential_record.access_token = "other"  # type: ignore[misc]

    def test_should_convert_to_google_credentials(
        self, credential_record: CredentialRecord
    ) -> None:
        """Verify conversion carries tokens, client and scope."""
        credentials = credential_record.to_credentials()

        assert credentials.token == credential_record.access_token
        assert credentials.refresh_token == credential_record.refresh_token
        assert credentials.client_id == credential_record.client_id
        assert credentials.client_secret == credential_record.client_secret
        assert credentials.token_uri == GOOGLE_TOKEN_URI
        assert credentials.scopes == [DRIVE_READONLY_SCOPE]

    def test_should_convert_expiry_to_naive_utc(self) -> None:
        """Verify aware expiries are normalised to naive UTC for google-auth."""
        expiry = datetime(2030, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        record = CredentialRecord(
            access_token="access",
            refresh_token="refresh",
            client_id="id",
            client_secret="secret",  # pragma: allowlist secret
            expiry=expiry,
        )

        credentials = record.to_credentials()

        assert credentials.expiry == datetime(2030, 1, 1, 10, 0)
        assert credentials.expiry.tzinfo is None

    def test_should_report_expired_credentials(self, expired_record: CredentialRecord) -> None:
        """Verify a past expiry is visible through google-auth."""
        assert expired_record.to_credentials().expired is True


@pytest.mark.unit
class TestMissingConfigError:
    """Tests for MissingConfigError."""

    def test_should_list_every_missing_variable(self) -> None:
        """Verify the error carries and names all missing variables."""
        error = MissingConfigError(["GDRIVE_ACCESS_TOKEN", "GDRIVE_CLIENT_ID"])

        assert error.missing == ["GDRIVE_ACCESS_TOKEN", "GDRIVE_CLIENT_ID"]
        assert str(error) == (
            "Missing required environment variables: GDRIVE_ACCESS_TOKEN, GDRIVE_CLIENT_ID"
        )


@pytest.mark.unit
class TestTokenStatus:
    """Tests for TokenStatus enum."""

    def test_should_compare_equal_to_string_values(self) -> None:
        """Verify str enum values."""
        assert TokenStatus.VALID == "valid"
        assert TokenStatus.MISSING.value == "missing"
