"""
Unit tests for the People API module.

Tests the PeopleAPI class for contact operations with mocked Google API responses.
"""

from unittest.mock import MagicMock, patch

import pytest
from googleapiclient.errors import HttpError

from gcontact_alpine.api.people_api import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_PAGE_SIZE,
    PERSON_FIELDS,
    UPDATE_PERSON_FIELDS,
    MalformedResponseError,
    PeopleAPI,
    PeopleAPIError,
    RateLimitError,
)
from gcontact_alpine.sync.contact import Contact


def http_error(status, content=b"error"):
    mock_resp = MagicMock()
    mock_resp.status = status
    return HttpError(mock_resp, content)


@pytest.fixture
def api():
    """PeopleAPI with a mocked service."""
    api = PeopleAPI(MagicMock(), initial_retry_delay=0.0)
    api._service = MagicMock()
    return api


class TestPeopleAPIInitialization:
    """Tests for PeopleAPI initialization."""

    def test_init_with_credentials(self):
        """Test initialization with credentials."""
        mock_creds = MagicMock()
        api = PeopleAPI(mock_creds)

        assert api.credentials == mock_creds
        assert api.page_size == DEFAULT_PAGE_SIZE
        assert api._service is None

    def test_page_size_clamped(self):
        """Test page size is kept between 1 and 1000."""
        assert PeopleAPI(MagicMock(), page_size=2000).page_size == 1000
        assert PeopleAPI(MagicMock(), page_size=0).page_size == 1
        assert PeopleAPI(MagicMock(), page_size=50).page_size == 50

    def test_fields(self):
        """Test the requested fields cover what the address book stores."""
        for name in ("names", "nicknames", "emailAddresses", "biographies"):
            assert name in PERSON_FIELDS
            assert name in UPDATE_PERSON_FIELDS
        assert "phoneNumbers" not in UPDATE_PERSON_FIELDS


class TestPeopleAPIService:
    """Tests for the service property."""

    @patch("gcontact_alpine.api.people_api.build")
    def test_service_creates_on_first_access(self, mock_build):
        """Test that service is created once, on first access."""
        mock_creds = MagicMock()
        api = PeopleAPI(mock_creds)

        assert api.service is mock_build.return_value
        assert api.service is mock_build.return_value
        mock_build.assert_called_once_with(
            "people", "v1", credentials=mock_creds, cache_discovery=False
        )

    @patch("gcontact_alpine.api.people_api.build", side_effect=Exception("boom"))
    def test_service_creation_failure(self, mock_build):
        """Test build failures become PeopleAPIError."""
        with pytest.raises(PeopleAPIError, match="Failed to create API service"):
            PeopleAPI(MagicMock()).service


class TestRetryWithBackoff:
    """Tests for _retry_with_backoff."""

    @patch("time.sleep")
    def test_rate_limit_retries_with_backoff(self, mock_sleep, api):
        """Test that rate limit errors trigger retries."""
        calls = [0]

        def operation():
            calls[0] += 1
            if calls[0] < 3:
                raise http_error(429)
            return {"result": "success"}

        assert api._retry_with_backoff(operation, "op") == {"result": "success"}
        assert calls[0] == 3
        assert mock_sleep.call_count == 2

    @patch("time.sleep")
    def test_rate_limit_exhausted(self, mock_sleep, api):
        """Test that exhausted retries on rate limit raise RateLimitError."""

        def operation():
            raise http_error(429)

        with pytest.raises(RateLimitError, match="Rate limit exceeded"):
            api._retry_with_backoff(operation, "op")

        assert mock_sleep.call_count == DEFAULT_MAX_RETRIES - 1

    @patch("time.sleep")
    def test_server_error_retries(self, mock_sleep, api):
        """Test that 5xx server errors trigger retries."""
        calls = [0]

        def operation():
            calls[0] += 1
            if calls[0] == 1:
                raise http_error(503)
            return "ok"

        assert api._retry_with_backoff(operation, "op") == "ok"
        assert mock_sleep.call_count == 1

    @patch("time.sleep")
    def test_client_error_not_retried(self, mock_sleep, api):
        """Test 4xx errors other than rate limits fail immediately."""

        def operation():
            raise http_error(400, b"Bad request")

        with pytest.raises(PeopleAPIError, match="op failed"):
            api._retry_with_backoff(operation, "op")

        mock_sleep.assert_not_called()


class TestListContacts:
    """Tests for list_contacts."""

    def test_single_page(self, api):
        """Test contacts of one page are converted."""
        api._service.people().connections().list().execute.return_value = {
            "connections": [
                {"resourceName": "people/1", "names": [{"displayName": "John Doe"}]},
                {"resourceName": "people/2", "emailAddresses": [{"value": "a@b.c"}]},
            ]
        }

        contacts = api.list_contacts()

        assert [c.resource_name for c in contacts] == ["people/1", "people/2"]
        assert contacts[0].display_name == "John Doe"

    def test_pagination(self, api):
        """Test every page is requested."""
        api._service.people().connections().list().execute.side_effect = [
            {
                "connections": [{"resourceName": "people/1", "names": [{"displayName": "A"}]}],
                "nextPageToken": "page-2",
            },
            {"connections": [{"resourceName": "people/2", "names": [{"displayName": "B"}]}]},
        ]

        contacts = api.list_contacts()

        assert [c.display_name for c in contacts] == ["A", "B"]
        list_call = api._service.people().connections().list
        assert list_call.call_args.kwargs["pageToken"] == "page-2"
        assert list_call.call_args.kwargs["resourceName"] == "people/me"

    def test_empty_account(self, api):
        """Test an account without contacts returns an empty list."""
        api._service.people().connections().list().execute.return_value = {}
        assert api.list_contacts() == []

    def test_non_object_page(self, api):
        """Test a page that is not an object is malformed."""
        api._service.people().connections().list().execute.return_value = ["x"]
        with pytest.raises(MalformedResponseError):
            api.list_contacts()

    def test_connections_not_a_list(self, api):
        """Test a connections value that is not a list is malformed."""
        api._service.people().connections().list().execute.return_value = {
            "connections": "oops"
        }
        with pytest.raises(MalformedResponseError):
            api.list_contacts()

    def test_non_object_connection(self, api):
        """Test a connection that is not an object is malformed."""
        api._service.people().connections().list().execute.return_value = {
            "connections": [42]
        }
        with pytest.raises(MalformedResponseError):
            api.list_contacts()

    def test_unconvertible_person_skipped(self, api):
        """Test a person with broken fields is skipped, not fatal."""
        api._service.people().connections().list().execute.return_value = {
            "connections": [
                {"resourceName": "people/bad", "names": ["not-a-dict"]},
                {"resourceName": "people/ok", "names": [{"displayName": "Ok"}]},
            ]
        }
        assert [c.resource_name for c in api.list_contacts()] == ["people/ok"]

    @patch("time.sleep")
    def test_http_failure(self, mock_sleep, api):
        """Test HTTP failures raise PeopleAPIError."""
        api._service.people().connections().list().execute.side_effect = http_error(401)
        with pytest.raises(PeopleAPIError):
            api.list_contacts()


class TestCreateContact:
    """Tests for create_contact."""

    def test_create(self, api):
        """Test the created contact carries the new identifier."""
        api._service.people().createContact().execute.return_value = {
            "resourceName": "people/new",
            "etag": "e1",
            "names": [{"displayName": "Carol White"}],
        }

        created = api.create_contact(Contact("Carol White", emails=["c@x"]))

        assert created.resource_name == "people/new"
        body = api._service.people().createContact.call_args.kwargs["body"]
        assert body["emailAddresses"] == [{"value": "c@x"}]


class TestUpdateContact:
    """Tests for update_contact."""

    def test_update(self, api):
        """Test the update sends the etag and the writable fields."""
        api._service.people().updateContact().execute.return_value = {
            "resourceName": "people/1",
            "etag": "e2",
            "names": [{"displayName": "John Doe"}],
        }
        contact = Contact("John Doe", resource_name="people/1", etag="e1")

        updated = api.update_contact(contact)

        assert updated.etag == "e2"
        kwargs = api._service.people().updateContact.call_args.kwargs
        assert kwargs["resourceName"] == "people/1"
        assert kwargs["body"]["etag"] == "e1"
        assert kwargs["updatePersonFields"] == UPDATE_PERSON_FIELDS

    def test_update_requires_resource_name(self, api):
        """Test contacts without identifier cannot be updated."""
        with pytest.raises(ValueError, match="resource_name"):
            api.update_contact(Contact("John"))

    def test_update_conflict(self, api):
        """Test a 409 reports a concurrent modification."""
        api._service.people().updateContact().execute.side_effect = http_error(409)
        with pytest.raises(PeopleAPIError, match="modified by another client"):
            api.update_contact(Contact("John", resource_name="people/1", etag="e"))

    def test_update_not_found(self, api):
        """Test a 404 reports a missing contact."""
        api._service.people().updateContact().execute.side_effect = http_error(404)
        with pytest.raises(PeopleAPIError, match="Contact not found"):
            api.update_contact(Contact("John", resource_name="people/1", etag="e"))
