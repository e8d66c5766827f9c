"""
Thin client for the parts of the Google People API the export uses.

Provides:
- Paged listing of the signed-in user's connections as Contact objects
- createContact / updateContact for pushing address book edits back
- Retry with exponential backoff on throttling and 5xx responses
"""

import logging
import time
from collections.abc import Callable, Iterator
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from gcontact_alpine.sync.contact import Contact

# Read mask for connections.list and the person returned by writes
PERSON_FIELDS = ",".join(
    [
        "names",
        "nicknames",
        "emailAddresses",
        "phoneNumbers",
        "organizations",
        "biographies",
        "metadata",
    ]
)

# Only what an address book entry can carry is written back
UPDATE_PERSON_FIELDS = "names,nicknames,emailAddresses,biographies"

MAX_PAGE_SIZE = 1000
DEFAULT_PAGE_SIZE = MAX_PAGE_SIZE

DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_RETRY_DELAY = 1.0
DEFAULT_MAX_RETRY_DELAY = 60.0

# Quota errors come back as 403 as well as 429
THROTTLE_STATUSES = frozenset({403, 429})

logger = logging.getLogger(__name__)


class PeopleAPIError(Exception):
    """Raised when a People API call fails."""

    pass


class RateLimitError(PeopleAPIError):
    """Raised when the API keeps throttling after every retry."""

    pass


class MalformedResponseError(PeopleAPIError):
    """Raised when a listing page is not shaped like a connections response."""

    pass


def _http_status(error: BaseException | None) -> int | None:
    if isinstance(error, HttpError):
        return error.resp.status
    return None


class PeopleAPI:
    """
    People API client bound to one set of credentials.

    The discovery service is built lazily on first use.

    Usage:
        api = PeopleAPI(credentials, page_size=500)
        for contact in api.list_contacts():
            ...
        api.update_contact(edited)
    """

    def __init__(
        self,
        credentials: Credentials,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY,
        max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY,
    ):
        """
        Args:
            credentials: OAuth2 credentials carrying the contacts scope
            page_size: Connections per listing page, clamped to 1..1000
            max_retries: Attempts per call, including the first
            initial_retry_delay: First backoff sleep in seconds
            max_retry_delay: Upper bound for a single backoff sleep
        """
        self.credentials = credentials
        self.page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
        self.max_retries = max(max_retries, 1)
        self.initial_retry_delay = initial_retry_delay
        self.max_retry_delay = max_retry_delay
        self._service = None

    @property
    def service(self) -> Any:
        """
        The people/v1 discovery service.

        Raises:
            PeopleAPIError: If the service cannot be built
        """
        if self._service is not None:
            return self._service

        try:
            self._service = build(
                "people", "v1", credentials=self.credentials, cache_discovery=False
            )
        except Exception as e:
            logger.error(f"Could not build People API service: {e}")
            raise PeopleAPIError(f"Failed to create API service: {e}") from e

        logger.debug("People API service ready")
        return self._service

    def _backoff_delays(self) -> Iterator[float]:
        delay = self.initial_retry_delay
        while True:
            yield delay
            delay = min(delay * 2, self.max_retry_delay)

    def _retry_with_backoff(self, operation: Callable[[], Any], operation_name: str) -> Any:
        """
        Run operation, retrying throttled and server-side failures.

        Other HTTP errors fail on the first attempt.

        Args:
            operation: Zero-argument callable issuing the request
            operation_name: Label used in log lines and error messages

        Returns:
            Whatever operation returns

        Raises:
            RateLimitError: If still throttled on the last attempt
            PeopleAPIError: For any other HTTP failure
        """
        delays = self._backoff_delays()

        for attempt in range(1, self.max_retries + 1):
            try:
                return operation()
            except HttpError as e:
                status = e.resp.status
                last_attempt = attempt == self.max_retries
                throttled = status in THROTTLE_STATUSES

                if throttled and last_attempt:
                    raise RateLimitError(
                        f"Rate limit exceeded for {operation_name} "
                        f"after {self.max_retries} retries"
                    ) from e
                if not (throttled or status >= 500) or last_attempt:
                    logger.error(f"{operation_name} failed ({status}): {e}")
                    raise PeopleAPIError(f"{operation_name} failed: {e}") from e

                delay = next(delays)
                logger.warning(
                    f"{operation_name} got {status}, attempt {attempt}/"
                    f"{self.max_retries}; sleeping {delay:.1f}s"
                )
                time.sleep(delay)

        raise PeopleAPIError(f"{operation_name} failed after all retries")

    def _pages(self) -> Iterator[tuple[int, dict[str, Any]]]:
        """Yield (page number, response) for every connections page."""
        request: dict[str, Any] = {
            "resourceName": "people/me",
            "personFields": PERSON_FIELDS,
            "pageSize": self.page_size,
        }
        number = 0

        while True:
            number += 1
            kwargs = dict(request)
            response = self._retry_with_backoff(
                lambda: self.service.people().connections().list(**kwargs).execute(),
                f"list_contacts(page {number})",
            )
            if not isinstance(response, dict):
                raise MalformedResponseError(
                    f"Page {number} is a {type(response).__name__}, not an object"
                )
            yield number, response

            token = response.get("nextPageToken")
            if not token:
                return
            request["pageToken"] = token

    @staticmethod
    def _contacts_on_page(number: int, response: dict[str, Any]) -> Iterator[Contact]:
        people = response.get("connections", [])
        if not isinstance(people, list):
            raise MalformedResponseError(f"Page {number} 'connections' is not a list")

        for person in people:
            if not isinstance(person, dict):
                raise MalformedResponseError(f"Page {number} holds a non-object connection")
            try:
                yield Contact.from_api_response(person)
            except (AttributeError, TypeError, IndexError) as e:
                # One odd record should not lose the whole export
                logger.warning(f"Skipping person {person.get('resourceName')}: {e}")

    def list_contacts(self) -> list[Contact]:
        """
        Fetch every connection of the signed-in user.

        Returns:
            Contacts in the order the API returned them

        Raises:
            PeopleAPIError: If a page request fails
            RateLimitError: If throttling outlasts the retries
            MalformedResponseError: If a page has an unexpected shape
        """
        contacts: list[Contact] = []
        for number, response in self._pages():
            contacts.extend(self._contacts_on_page(number, response))

        logger.info(f"Fetched {len(contacts)} contacts from Google")
        return contacts

    def create_contact(self, contact: Contact) -> Contact:
        """Create contact on Google and return it with its new resource name."""
        body = contact.to_api_format()
        response = self._retry_with_backoff(
            lambda: self.service.people()
            .createContact(body=body, personFields=PERSON_FIELDS)
            .execute(),
            "create_contact",
        )

        created = Contact.from_api_response(response)
        logger.info(f"Created {created.resource_name} for {contact.display_name}")
        return created

    def update_contact(
        self,
        contact: Contact,
        resource_name: str | None = None,
        etag: str | None = None,
    ) -> Contact:
        """
        Overwrite the writable fields of an existing Google contact.

        Args:
            contact: Entry carrying the new values
            resource_name: Target person, defaulting to contact.resource_name
            etag: Version the edit is based on, defaulting to contact.etag

        Returns:
            The contact as stored by Google, with its new etag

        Raises:
            ValueError: If there is no resource name to update
            PeopleAPIError: If the update fails, including a stale etag
        """
        target = resource_name or contact.resource_name
        if not target:
            raise ValueError("resource_name is required for update")

        body = contact.to_api_format()
        body["etag"] = etag or contact.etag

        try:
            response = self._retry_with_backoff(
                lambda: self.service.people()
                .updateContact(
                    resourceName=target,
                    body=body,
                    updatePersonFields=UPDATE_PERSON_FIELDS,
                    personFields=PERSON_FIELDS,
                )
                .execute(),
                f"update_contact({target})",
            )
        except PeopleAPIError as e:
            status = _http_status(e.__cause__)
            if status == 409:
                raise PeopleAPIError(
                    f"Contact {target} was modified by another client. "
                    f"Run sync again to refresh."
                ) from e
            if status == 404:
                raise PeopleAPIError(f"Contact not found: {target}") from e
            raise

        logger.info(f"Updated {target}")
        return Contact.from_api_response(response)
