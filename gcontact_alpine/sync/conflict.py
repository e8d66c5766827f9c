"""
Conflict resolution for Google Contacts / address book synchronization.

Provides the conflict record produced by the reconciler and the rules for
turning a user's choice into the contact that is written to the address
book (and, optionally, pushed back to Google).
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from gcontact_alpine.sync.contact import Contact


class Resolution(Enum):
    """Which version of a conflicting contact to keep."""

    PREFER_REMOTE = "remote"
    PREFER_LOCAL = "local"

    @classmethod
    def from_choice(cls, choice: str) -> Optional["Resolution"]:
        """
        Map a prompt answer or option value to a resolution.

        Accepts ``g``/``google``/``remote`` and ``a``/``addressbook``/``local``
        (case-insensitive). Anything else gives None, which means cancel.
        """
        answer = choice.strip().lower()
        if answer in ("g", "google", "remote"):
            return cls.PREFER_REMOTE
        if answer in ("a", "addressbook", "local"):
            return cls.PREFER_LOCAL
        return None


@dataclass
class Conflict:
    """
    A matched pair of contacts whose contents disagree.

    Attributes:
        remote: Version from Google Contacts
        local: Version from the address book
    """

    remote: Contact
    local: Contact

    @property
    def label(self) -> str:
        """Short name used when presenting the conflict."""
        return self.local.display_name or self.remote.display_name or (
            (self.local.emails or self.remote.emails or ["?"])[0]
        )


@dataclass
class ConflictResult:
    """
    Outcome of resolving one conflict.

    Attributes:
        contact: Contact to store in the address book
        resolution: Choice that produced it
        needs_remote_update: True if Google holds outdated data
    """

    contact: Contact
    resolution: Resolution
    needs_remote_update: bool = False


class ConflictResolver:
    """
    Applies a resolution to a conflict.

    Usage:
        resolver = ConflictResolver()
        result = resolver.resolve(conflict, Resolution.PREFER_REMOTE)
        merged.add(result.contact)
    """

    def resolve(self, conflict: Conflict, resolution: Resolution) -> ConflictResult:
        """
        Build the contact that results from a resolution.

        Preferring Google takes the remote content but keeps the local fcc
        folder, and the local nickname when Google has none. Preferring the
        address book keeps the local content and carries the remote
        identifier so the change can be pushed back.

        Args:
            conflict: Conflict to resolve
            resolution: Which version to keep

        Returns:
            ConflictResult with the contact to store
        """
        remote = conflict.remote
        local = conflict.local

        if resolution == Resolution.PREFER_REMOTE:
            contact = replace(
                remote,
                fcc=local.fcc,
                nickname=remote.nickname or local.nickname,
            )
            return ConflictResult(contact=contact, resolution=resolution)

        contact = replace(
            local,
            resource_name=remote.resource_name,
            etag=remote.etag,
            phones=list(remote.phones),
        )
        return ConflictResult(
            contact=contact,
            resolution=resolution,
            needs_remote_update=True,
        )

    def resolve_all(
        self, conflicts: list[Conflict], resolution: Resolution
    ) -> list[ConflictResult]:
        """Resolve every conflict the same way."""
        return [self.resolve(conflict, resolution) for conflict in conflicts]

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return "ConflictResolver()"
