"""
Google sign-in for the contacts export.

Provides:
- The installed-app OAuth consent flow from a Cloud Console client secret
- A token cache in the configuration directory, readable only by the user
- Silent refresh of an expired token
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from google.auth.exceptions import GoogleAuthError, RefreshError
from google.auth.transport.requests import AuthorizedSession, Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from requests import RequestException

from gcontact_alpine.utils.paths import resolve_config_dir

SCOPES = [
    "https://www.googleapis.com/auth/contacts",
    "https://www.googleapis.com/auth/userinfo.email",
    # Google adds openid to the grant whenever userinfo.email is requested
    "openid",
]

USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

CLIENT_SECRET_FILE_NAME = "client_secret.json"
TOKEN_CACHE_FILE_NAME = "token_cache.json"

DEFAULT_AUTH_TIMEOUT = 10

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when the consent flow fails."""

    pass


class GoogleAuth:
    """
    Credentials for the signed-in Google account.

    Attributes:
        config_dir: Directory holding the client secret and token cache
        client_secret_path: OAuth client secret from Google Cloud Console
        token_path: Cached user token, with the account email alongside

    Usage:
        auth = GoogleAuth(config_dir=settings.config_dir)
        creds = auth.get_credentials()     # None unless already signed in
        creds = auth.authenticate()        # opens the browser when needed
    """

    def __init__(
        self,
        config_dir: Path | None = None,
        client_secret_path: Path | None = None,
        token_path: Path | None = None,
        auth_timeout: int = DEFAULT_AUTH_TIMEOUT,
    ):
        self.config_dir = resolve_config_dir(config_dir)
        self.client_secret_path = Path(client_secret_path or self.config_dir / CLIENT_SECRET_FILE_NAME)
        self.token_path = Path(token_path or self.config_dir / TOKEN_CACHE_FILE_NAME)
        self.auth_timeout = auth_timeout

    def _read_token_data(self) -> dict[str, Any] | None:
        try:
            data = json.loads(self.token_path.read_text())
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    def _write_token(self, creds: Credentials, email: str | None) -> None:
        """Store creds (and the account email) with mode 0600."""
        self.token_path.parent.mkdir(parents=True, mode=0o700, exist_ok=True)

        data = json.loads(creds.to_json())
        if email:
            data["email"] = email

        fd = os.open(self.token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(data, f)
        # O_CREAT mode does not apply to an existing file
        self.token_path.chmod(0o600)
        logger.debug(f"Token cached at {self.token_path}")

    def _load_cached(self) -> Credentials | None:
        if not self.token_path.exists():
            logger.debug(f"No cached token at {self.token_path}")
            return None

        try:
            return Credentials.from_authorized_user_file(str(self.token_path), SCOPES)
        except ValueError as e:
            # JSONDecodeError is a ValueError too
            logger.warning(f"Ignoring unreadable token cache {self.token_path}: {e}")
            return None

    def _fetch_user_email(self, creds: Credentials) -> str | None:
        """Ask Google which account the new token belongs to."""
        try:
            response = AuthorizedSession(creds).get(USERINFO_URL, timeout=self.auth_timeout)
            response.raise_for_status()
            return response.json().get("email")
        except (RequestException, GoogleAuthError, ValueError) as e:
            logger.debug(f"Could not look up account email: {e}")
            return None

    def get_credentials(self) -> Credentials | None:
        """
        Cached credentials, refreshed if expired, without user interaction.

        Returns:
            Valid credentials, or None when a consent flow is needed
        """
        creds = self._load_cached()
        if creds is None or creds.valid:
            return creds

        if not (creds.expired and creds.refresh_token):
            return None

        try:
            creds.refresh(Request())
        except RefreshError as e:
            logger.warning(f"Token refresh failed: {e}")
            return None

        logger.debug("Refreshed cached token")
        self._write_token(creds, self.get_account_email())
        return creds

    def authenticate(self, force_reauth: bool = False) -> Credentials:
        """
        Valid credentials, running the browser consent flow when needed.

        Args:
            force_reauth: Run the flow even if a usable token is cached

        Returns:
            Valid credentials

        Raises:
            FileNotFoundError: If the client secret file is missing
            AuthenticationError: If the consent flow fails
        """
        if not force_reauth:
            cached = self.get_credentials()
            if cached is not None:
                logger.info("Using cached Google credentials")
                return cached

        if not self.client_secret_path.exists():
            raise FileNotFoundError(
                f"OAuth client secret file not found: {self.client_secret_path}\n"
                "Download the OAuth client credentials (Desktop app) from "
                "Google Cloud Console and save them to this location."
            )

        logger.info("Starting OAuth consent flow")
        try:
            flow = InstalledAppFlow.from_client_secrets_file(str(self.client_secret_path), SCOPES)
            creds: Credentials = flow.run_local_server(port=0)
            self._write_token(creds, self._fetch_user_email(creds))
        except Exception as e:
            logger.error(f"OAuth flow failed: {e}")
            raise AuthenticationError(f"Failed to authenticate: {e}") from e

        logger.info("Signed in to Google")
        return creds

    def is_authenticated(self) -> bool:
        return self.get_credentials() is not None

    def clear_credentials(self) -> bool:
        """
        Delete the token cache.

        Returns:
            False if there was nothing to delete
        """
        try:
            self.token_path.unlink()
        except FileNotFoundError:
            return False

        logger.info(f"Removed cached token {self.token_path}")
        return True

    def get_account_email(self) -> str | None:
        """Email stored next to the cached token, if any."""
        data = self._read_token_data()
        return data.get("email") if data else None

    def get_auth_status(self) -> dict[str, object]:
        """
        Sign-in state for the status command.

        Returns:
            Dictionary with keys authenticated, email, token_path,
            token_exists, client_secret_path, client_secret_exists and
            config_dir
        """
        return {
            "authenticated": self.is_authenticated(),
            "email": self.get_account_email(),
            "token_path": str(self.token_path),
            "token_exists": self.token_path.exists(),
            "client_secret_path": str(self.client_secret_path),
            "client_secret_exists": self.client_secret_path.exists(),
            "config_dir": str(self.config_dir),
        }
