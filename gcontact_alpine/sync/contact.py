"""
The Contact record shared by the Google side and the address book side.

Provides:
- Conversion from and to People API person resources
- Name and email keys used to pair entries that carry no resource name
- Field comparison deciding whether two versions conflict
"""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from gcontact_alpine.utils.normalization import normalize_email, normalize_string


def _first_value(person: dict[str, Any], field_name: str, key: str = "value") -> str:
    entries = person.get(field_name) or []
    return entries[0].get(key, "") if entries else ""


def _all_values(person: dict[str, Any], field_name: str) -> list[str]:
    return [entry["value"] for entry in person.get(field_name) or [] if entry.get("value")]


def _update_time(person: dict[str, Any]) -> Optional[datetime]:
    """Update time of the primary source, None when absent or unparsable."""
    sources = (person.get("metadata") or {}).get("sources") or []
    stamp = sources[0].get("updateTime") if sources else None
    if not stamp:
        return None
    try:
        # fromisoformat rejects a trailing Z before Python 3.11
        return datetime.fromisoformat(stamp.replace("Z", "+00:00"))
    except (ValueError, TypeError, AttributeError):
        return None


@dataclass
class Contact:
    """
    One person, as read from Google or from an address book entry.

    Attributes:
        display_name: Full display name of the contact
        emails: Ordered list of email addresses
        phones: Ordered list of phone numbers (not stored in the address book)
        nickname: Alpine nickname (empty when unknown)
        fcc: Alpine fcc folder (local only)
        notes: Contact notes (Google biography, Alpine comment)
        resource_name: Google person id such as "people/c12345", if known
        etag: Version tag Google requires on updates
        last_modified: Google update time; None for local entries
    """

    display_name: str
    emails: list[str] = field(default_factory=list)
    phones: list[str] = field(default_factory=list)
    nickname: str = ""
    fcc: str = ""
    notes: str = ""
    resource_name: Optional[str] = None
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None

    @classmethod
    def from_api_response(cls, person: dict[str, Any]) -> "Contact":
        """
        Build a Contact from a People API person resource.

        The display name falls back to given and family name, then to the
        first organization, so company-only contacts still get a name.
        Only the first nickname and biography are kept.

        Raises:
            AttributeError: If a repeated field holds non-object entries
        """
        name = (person.get("names") or [{}])[0]
        display_name = name.get("displayName") or " ".join(
            part for part in (name.get("givenName"), name.get("familyName")) if part
        )
        if not display_name:
            display_name = _first_value(person, "organizations", "name")

        return cls(
            display_name=display_name.strip(),
            emails=_all_values(person, "emailAddresses"),
            phones=_all_values(person, "phoneNumbers"),
            nickname=_first_value(person, "nicknames"),
            notes=_first_value(person, "biographies"),
            resource_name=person.get("resourceName") or None,
            etag=person.get("etag") or None,
            last_modified=_update_time(person),
        )

    def to_api_format(self) -> dict[str, Any]:
        """
        Person body for createContact or updateContact.

        resourceName and etag are left out; fcc has no Google field. An
        Alpine "Last, First" name is split on the comma, anything else on
        whitespace.
        """
        person: dict[str, Any] = {}

        if self.display_name.strip():
            family, comma, given = self.display_name.partition(",")
            if comma and family.strip() and given.strip():
                # Alpine style "Last, First"
                name_entry = {"givenName": given.strip(), "familyName": family.strip()}
            else:
                words = self.display_name.split()
                name_entry = {"givenName": words[0]}
                if len(words) >= 2:
                    name_entry["familyName"] = words[-1]
                if len(words) > 2:
                    name_entry["middleName"] = " ".join(words[1:-1])
            person["names"] = [name_entry]

        if self.nickname:
            person["nicknames"] = [{"value": self.nickname}]

        if self.emails:
            person["emailAddresses"] = [{"value": e} for e in self.emails]

        if self.phones:
            person["phoneNumbers"] = [{"value": p} for p in self.phones]

        if self.notes:
            person["biographies"] = [{"value": self.notes, "contentType": "TEXT_PLAIN"}]

        return person

    def name_key(self) -> str:
        """
        Normalized display name, the fallback key for pairing entries.

        Word order is ignored so "Doe, John" and "John Doe" share a key.
        """
        return normalize_string(self.display_name, sort_words=True)

    def email_keys(self) -> list[str]:
        """Normalized email addresses, in contact order."""
        return [normalize_email(e) for e in self.emails if normalize_email(e)]

    def content_hash(self) -> str:
        """
        SHA-256 over the fields an address book entry stores.

        Identity (resource_name, etag), phones and last_modified do not
        take part.
        """
        content = "\n".join(
            [
                f"nickname:{self.nickname}",
                f"display_name:{self.display_name}",
                f"emails:{','.join(self.emails)}",
                f"fcc:{self.fcc}",
                f"notes:{self.notes}",
            ]
        )
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    def differs_from(self, other: "Contact") -> bool:
        """
        Check whether two versions of the same person disagree.

        Display name, emails and notes are compared exactly; the normalized
        keys only decide which entries are paired. Nicknames are compared
        only when both sides have one, so a nickname generated for the
        address book does not count as a change. fcc is local only and
        ignored.
        """
        if (self.display_name, self.emails, self.notes) != (
            other.display_name,
            other.emails,
            other.notes,
        ):
            return True
        return bool(self.nickname and other.nickname and self.nickname != other.nickname)

    def is_valid(self) -> bool:
        """An entry needs a name or an email address to be written."""
        return bool(self.display_name.strip() or self.emails)

    def __eq__(self, other: object) -> bool:
        # Content equality; the same person from both sides compares equal
        if not isinstance(other, Contact):
            return NotImplemented
        return self.content_hash() == other.content_hash()

    def __hash__(self) -> int:
        return hash(self.content_hash())

    def __repr__(self) -> str:
        return (
            f"Contact({self.display_name!r}, nickname={self.nickname!r}, "
            f"emails={self.emails!r}, resource_name={self.resource_name!r})"
        )
