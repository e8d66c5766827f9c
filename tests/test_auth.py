"""
Unit tests for the authentication module.

Tests the GoogleAuth class with mocked Google OAuth flows and credentials.
"""

import json
import stat
from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError

from gcontact_alpine.auth.google_auth import (
    CLIENT_SECRET_FILE_NAME,
    SCOPES,
    TOKEN_CACHE_FILE_NAME,
    AuthenticationError,
    GoogleAuth,
)


@pytest.fixture
def auth(tmp_path):
    return GoogleAuth(config_dir=tmp_path)


def valid_creds():
    creds = MagicMock()
    creds.valid = True
    creds.to_json.return_value = json.dumps({"token": "t", "refresh_token": "r"})
    return creds


class TestGoogleAuthInitialization:
    """Tests for GoogleAuth initialization."""

    def test_paths_under_config_dir(self, tmp_path):
        """Test secret and token paths default to the config directory."""
        auth = GoogleAuth(config_dir=tmp_path)
        assert auth.config_dir == tmp_path.resolve()
        assert auth.client_secret_path == tmp_path.resolve() / CLIENT_SECRET_FILE_NAME
        assert auth.token_path == tmp_path.resolve() / TOKEN_CACHE_FILE_NAME

    def test_explicit_paths(self, tmp_path):
        """Test explicit secret and token paths are used."""
        auth = GoogleAuth(
            config_dir=tmp_path,
            client_secret_path=tmp_path / "s.json",
            token_path=tmp_path / "t.json",
        )
        assert auth.client_secret_path == tmp_path / "s.json"
        assert auth.token_path == tmp_path / "t.json"

    def test_scopes(self):
        """Test the contacts scope is requested."""
        assert "https://www.googleapis.com/auth/contacts" in SCOPES


class TestGetCredentials:
    """Tests for get_credentials."""

    def test_no_token(self, auth):
        """Test no token file means no credentials."""
        assert auth.get_credentials() is None
        assert not auth.is_authenticated()

    @patch("gcontact_alpine.auth.google_auth.Credentials")
    def test_valid_token(self, mock_credentials, auth):
        """Test a valid cached token is returned."""
        auth.token_path.write_text("{}")
        creds = valid_creds()
        mock_credentials.from_authorized_user_file.return_value = creds

        assert auth.get_credentials() is creds
        mock_credentials.from_authorized_user_file.assert_called_once_with(
            str(auth.token_path), SCOPES
        )

    @patch("gcontact_alpine.auth.google_auth.Credentials")
    def test_invalid_token_file(self, mock_credentials, auth):
        """Test a corrupt token file is treated as missing."""
        auth.token_path.write_text("not json")
        mock_credentials.from_authorized_user_file.side_effect = ValueError("bad")
        assert auth.get_credentials() is None

    @patch("gcontact_alpine.auth.google_auth.Request")
    @patch("gcontact_alpine.auth.google_auth.Credentials")
    def test_expired_token_refreshed(self, mock_credentials, mock_request, auth):
        """Test an expired token with a refresh token is refreshed and saved."""
        auth.token_path.write_text(json.dumps({"email": "me@example.com"}))
        creds = valid_creds()
        creds.valid = False
        creds.expired = True
        mock_credentials.from_authorized_user_file.return_value = creds

        assert auth.get_credentials() is creds
        creds.refresh.assert_called_once()
        assert json.loads(auth.token_path.read_text())["email"] == "me@example.com"

    @patch("gcontact_alpine.auth.google_auth.Request")
    @patch("gcontact_alpine.auth.google_auth.Credentials")
    def test_refresh_failure(self, mock_credentials, mock_request, auth):
        """Test a failed refresh gives no credentials."""
        auth.token_path.write_text("{}")
        creds = valid_creds()
        creds.valid = False
        creds.expired = True
        creds.refresh.side_effect = RefreshError("revoked")
        mock_credentials.from_authorized_user_file.return_value = creds

        assert auth.get_credentials() is None


class TestAuthenticate:
    """Tests for authenticate."""

    def test_missing_client_secret(self, auth):
        """Test a missing client secret raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="client secret"):
            auth.authenticate()

    @patch("gcontact_alpine.auth.google_auth.InstalledAppFlow")
    def test_oauth_flow(self, mock_flow_cls, auth):
        """Test the OAuth flow runs and the token is cached privately."""
        auth.client_secret_path.write_text("{}")
        creds = valid_creds()
        mock_flow_cls.from_client_secrets_file.return_value.run_local_server.return_value = (
            creds
        )

        with patch.object(auth, "_fetch_user_email", return_value="me@example.com"):
            assert auth.authenticate() is creds

        assert auth.get_account_email() == "me@example.com"
        assert stat.S_IMODE(auth.token_path.stat().st_mode) == 0o600

    @patch("gcontact_alpine.auth.google_auth.InstalledAppFlow")
    def test_flow_failure(self, mock_flow_cls, auth):
        """Test flow errors become AuthenticationError."""
        auth.client_secret_path.write_text("{}")
        mock_flow_cls.from_client_secrets_file.side_effect = ValueError("bad secret")

        with pytest.raises(AuthenticationError, match="bad secret"):
            auth.authenticate()

    def test_existing_credentials_reused(self, auth):
        """Test valid cached credentials skip the flow."""
        creds = valid_creds()
        with patch.object(auth, "get_credentials", return_value=creds):
            assert auth.authenticate() is creds

    @patch("gcontact_alpine.auth.google_auth.InstalledAppFlow")
    def test_force_reauth(self, mock_flow_cls, auth):
        """Test force_reauth ignores cached credentials."""
        auth.client_secret_path.write_text("{}")
        new_creds = valid_creds()
        mock_flow_cls.from_client_secrets_file.return_value.run_local_server.return_value = (
            new_creds
        )

        with patch.object(auth, "get_credentials", return_value=valid_creds()), patch.object(
            auth, "_fetch_user_email", return_value=None
        ):
            assert auth.authenticate(force_reauth=True) is new_creds


class TestCredentialManagement:
    """Tests for clearing credentials and status."""

    def test_clear_credentials(self, auth):
        """Test the token file is removed."""
        auth.token_path.write_text("{}")
        assert auth.clear_credentials() is True
        assert not auth.token_path.exists()
        assert auth.clear_credentials() is False

    def test_account_email_unreadable(self, auth):
        """Test a corrupt token gives no email."""
        auth.token_path.write_text("{not json")
        assert auth.get_account_email() is None

    def test_auth_status(self, auth):
        """Test the status dictionary."""
        auth.client_secret_path.write_text("{}")
        status = auth.get_auth_status()

        assert status["authenticated"] is False
        assert status["client_secret_exists"] is True
        assert status["token_exists"] is False
        assert status["config_dir"] == str(auth.config_dir)


class TestFetchUserEmail:
    """Tests for the account email lookup."""

    @patch("gcontact_alpine.auth.google_auth.AuthorizedSession")
    def test_email_returned(self, mock_session_cls, auth):
        """Test the email comes from the userinfo endpoint."""
        response = mock_session_cls.return_value.get.return_value
        response.json.return_value = {"email": "me@example.com"}

        assert auth._fetch_user_email(MagicMock()) == "me@example.com"
        url = mock_session_cls.return_value.get.call_args.args[0]
        assert url.endswith("/userinfo")

    @patch("gcontact_alpine.auth.google_auth.AuthorizedSession")
    def test_network_failure(self, mock_session_cls, auth):
        """Test a failed lookup gives no email instead of failing sign-in."""
        from requests import ConnectionError as RequestsConnectionError

        mock_session_cls.return_value.get.side_effect = RequestsConnectionError("offline")

        assert auth._fetch_user_email(MagicMock()) is None
