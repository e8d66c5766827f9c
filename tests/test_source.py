"""Tests for the Google Contacts source adapter."""

from unittest.mock import MagicMock, patch

import pytest

from gcontact_alpine.api.people_api import (
    MalformedResponseError,
    PeopleAPIError,
    RateLimitError,
)
from gcontact_alpine.auth.google_auth import AuthenticationError
from gcontact_alpine.errors import AuthError, FetchError, RemoteDataError, RemoteUpdateError
from gcontact_alpine.sync.contact import Contact
from gcontact_alpine.sync.source import GoogleContactSource


@pytest.fixture
def api():
    return MagicMock()


@pytest.fixture
def source(api):
    return GoogleContactSource(MagicMock(), api=api)


class TestFetchContacts:
    """Tests for fetch_contacts."""

    def test_returns_collection(self, source, api):
        """Test listed contacts become a collection."""
        api.list_contacts.return_value = [
            Contact("Alice", resource_name="people/a"),
            Contact("Bob", resource_name="people/b"),
        ]
        assert len(source.fetch_contacts()) == 2

    def test_drops_invalid_and_duplicates(self, source, api):
        """Test empty contacts and repeated identifiers are dropped."""
        api.list_contacts.return_value = [
            Contact("Alice", resource_name="people/a"),
            Contact("", resource_name="people/empty"),
            Contact("Alice again", resource_name="people/a"),
        ]
        collection = source.fetch_contacts()
        assert [c.display_name for c in collection] == ["Alice"]

    def test_malformed_response(self, source, api):
        """Test malformed data maps to RemoteDataError."""
        api.list_contacts.side_effect = MalformedResponseError("not a list")
        with pytest.raises(RemoteDataError):
            source.fetch_contacts()

    def test_api_failure(self, source, api):
        """Test API failures map to FetchError."""
        api.list_contacts.side_effect = RateLimitError("quota")
        with pytest.raises(FetchError) as exc_info:
            source.fetch_contacts()
        assert exc_info.value.exit_code == 4

    def test_authentication_failure(self):
        """Test authentication failures map to AuthError."""
        auth = MagicMock()
        auth.authenticate.side_effect = AuthenticationError("denied")
        with pytest.raises(AuthError):
            GoogleContactSource(auth).fetch_contacts()

    def test_missing_client_secret(self):
        """Test a missing client secret is an authentication failure."""
        auth = MagicMock()
        auth.authenticate.side_effect = FileNotFoundError("client_secret.json")
        with pytest.raises(AuthError):
            GoogleContactSource(auth).fetch_contacts()

    @patch("gcontact_alpine.sync.source.PeopleAPI")
    def test_api_built_once_with_options(self, mock_api_cls):
        """Test the API client gets the credentials and retry options."""
        auth = MagicMock()
        mock_api_cls.return_value.list_contacts.return_value = []
        source = GoogleContactSource(auth, page_size=200, max_retries=2)

        source.fetch_contacts()
        source.fetch_contacts()

        mock_api_cls.assert_called_once_with(
            auth.authenticate.return_value, page_size=200, max_retries=2
        )


class TestPush:
    """Tests for push_update and push_create."""

    def test_push_update(self, source, api):
        """Test updates go through the API."""
        contact = Contact("Alice", resource_name="people/a", etag="e")
        api.update_contact.return_value = contact
        assert source.push_update(contact) is contact
        api.update_contact.assert_called_once_with(contact)

    def test_push_update_failure(self, source, api):
        """Test rejected updates map to RemoteUpdateError."""
        api.update_contact.side_effect = PeopleAPIError("409")
        with pytest.raises(RemoteUpdateError) as exc_info:
            source.push_update(Contact("Alice", resource_name="people/a"))
        assert exc_info.value.exit_code == 13
        assert "Alice" in exc_info.value.detail

    def test_push_update_without_identifier(self, source, api):
        """Test an update without identifier is a push failure."""
        api.update_contact.side_effect = ValueError("resource_name is required")
        with pytest.raises(RemoteUpdateError):
            source.push_update(Contact("Alice"))

    def test_push_create_failure(self, source, api):
        """Test rejected creations map to RemoteUpdateError."""
        api.create_contact.side_effect = PeopleAPIError("400")
        with pytest.raises(RemoteUpdateError):
            source.push_create(Contact("Carol"))
