"""
Google Contacts as a contact source.

Wraps authentication and the People API client behind one small contract
used by the sync engine, and translates their failures into the error
kinds reported to the user.
"""

import logging
from typing import Optional

from gcontact_alpine.api.people_api import (
    DEFAULT_PAGE_SIZE,
    MalformedResponseError,
    PeopleAPI,
    PeopleAPIError,
)
from gcontact_alpine.auth.google_auth import AuthenticationError, GoogleAuth
from gcontact_alpine.errors import AuthError, FetchError, RemoteDataError, RemoteUpdateError
from gcontact_alpine.sync.collection import ContactCollection
from gcontact_alpine.sync.contact import Contact

logger = logging.getLogger(__name__)


class GoogleContactSource:
    """
    Fetches the user's Google Contacts and pushes address book edits back.

    Attributes:
        auth: Authentication manager providing credentials
        page_size: Contacts requested per page
        api_options: Extra keyword arguments for PeopleAPI (retry settings)

    Usage:
        source = GoogleContactSource(GoogleAuth(config_dir))
        remote = source.fetch_contacts()
    """

    def __init__(
        self,
        auth: GoogleAuth,
        page_size: int = DEFAULT_PAGE_SIZE,
        api: Optional[PeopleAPI] = None,
        **api_options: float,
    ):
        self.auth = auth
        self.page_size = page_size
        self.api_options = api_options
        self._api = api

    def _get_api(self) -> PeopleAPI:
        """
        Create the API client on first use.

        Raises:
            AuthError: If credentials cannot be obtained
        """
        if self._api is None:
            try:
                credentials = self.auth.authenticate()
            except (AuthenticationError, FileNotFoundError) as e:
                raise AuthError(str(e)) from e
            self._api = PeopleAPI(
                credentials, page_size=self.page_size, **self.api_options
            )
        return self._api

    def fetch_contacts(self) -> ContactCollection:
        """
        Fetch every contact of the signed-in user.

        Contacts with neither a name nor an email address are dropped, as
        are duplicate identifiers; neither fails the fetch.

        Returns:
            ContactCollection of the remote contacts

        Raises:
            AuthError: If authentication fails
            RemoteDataError: If the API returns malformed data
            FetchError: If listing the contacts fails
        """
        api = self._get_api()

        try:
            contacts = api.list_contacts()
        except MalformedResponseError as e:
            raise RemoteDataError(str(e)) from e
        except PeopleAPIError as e:
            raise FetchError(str(e)) from e

        collection = ContactCollection(contacts)
        if collection.rejected:
            logger.info(
                f"Dropped {len(collection.rejected)} remote contacts without "
                f"name and email or with a duplicate identifier"
            )

        logger.info(f"Fetched {len(collection)} contacts from Google")
        return collection

    def push_update(self, contact: Contact) -> Contact:
        """
        Overwrite a Google contact with the address book version.

        Raises:
            AuthError: If authentication fails
            RemoteUpdateError: If the update is rejected
        """
        api = self._get_api()
        try:
            return api.update_contact(contact)
        except (PeopleAPIError, ValueError) as e:
            raise RemoteUpdateError(f"{contact.display_name}: {e}") from e

    def push_create(self, contact: Contact) -> Contact:
        """
        Create a Google contact from an address book entry.

        Raises:
            AuthError: If authentication fails
            RemoteUpdateError: If the creation is rejected
        """
        api = self._get_api()
        try:
            return api.create_contact(contact)
        except PeopleAPIError as e:
            raise RemoteUpdateError(f"{contact.display_name}: {e}") from e

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return f"GoogleContactSource(token_path={str(self.auth.token_path)!r})"
