"""
Contact collection for one side of a sync (Google or the address book).
"""

import logging
from collections import Counter
from collections.abc import Iterable, Iterator
from typing import Optional

from gcontact_alpine.sync.contact import Contact

logger = logging.getLogger(__name__)


def canonical_sort_key(contact: Contact) -> tuple[str, ...]:
    """
    Sort key for the deterministic address book order.

    Depends only on stored content, so a collection read back from the
    file sorts the same way as the one that was written.
    """
    return (
        contact.display_name.casefold(),
        contact.display_name,
        contact.nickname,
        "\x00".join(contact.emails),
        contact.notes,
        contact.fcc,
    )


class ContactCollection:
    """
    Unordered set of valid contacts with unique identifiers.

    Invalid contacts (no name and no email) are never admitted, and a
    second contact with an identifier already present is rejected.

    Usage:
        collection = ContactCollection(contacts)
        collection.add(Contact(display_name="John Doe"))

        for contact in collection.sorted():
            ...
    """

    def __init__(self, contacts: Optional[Iterable[Contact]] = None):
        self._contacts: list[Contact] = []
        self._by_resource: dict[str, Contact] = {}
        self.rejected: list[Contact] = []
        if contacts is not None:
            self.extend(contacts)

    def add(self, contact: Contact) -> bool:
        """
        Add a contact.

        Returns:
            True if the contact was added, False if it was rejected as
            invalid or as a duplicate identifier
        """
        if not contact.is_valid():
            logger.debug(f"Rejected invalid contact: {contact!r}")
            self.rejected.append(contact)
            return False

        if contact.resource_name:
            if contact.resource_name in self._by_resource:
                logger.warning(f"Duplicate contact identifier: {contact.resource_name}")
                self.rejected.append(contact)
                return False
            self._by_resource[contact.resource_name] = contact

        self._contacts.append(contact)
        return True

    def extend(self, contacts: Iterable[Contact]) -> int:
        """Add several contacts, returning how many were accepted."""
        return sum(1 for contact in contacts if self.add(contact))

    def get(self, resource_name: str) -> Optional[Contact]:
        """Look up a contact by its identifier."""
        return self._by_resource.get(resource_name)

    def sorted(self) -> list[Contact]:
        """Return the contacts in canonical order."""
        return sorted(self._contacts, key=canonical_sort_key)

    def __iter__(self) -> Iterator[Contact]:
        return iter(self._contacts)

    def __len__(self) -> int:
        return len(self._contacts)

    def __contains__(self, contact: object) -> bool:
        return contact in self._contacts

    def __eq__(self, other: object) -> bool:
        """Collections are equal when they hold the same contact contents."""
        if not isinstance(other, ContactCollection):
            return NotImplemented
        mine = Counter(c.content_hash() for c in self._contacts)
        theirs = Counter(c.content_hash() for c in other._contacts)
        return mine == theirs

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return f"ContactCollection({len(self._contacts)} contacts)"
