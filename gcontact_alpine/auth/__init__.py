"""OAuth2 authentication for Google Contacts."""

from gcontact_alpine.auth.google_auth import SCOPES, AuthenticationError, GoogleAuth

__all__ = ["SCOPES", "AuthenticationError", "GoogleAuth"]
