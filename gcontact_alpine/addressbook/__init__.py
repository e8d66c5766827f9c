"""Alpine address book format and file access."""

from gcontact_alpine.addressbook.codec import (
    ParseReport,
    assign_nicknames,
    parse,
    parse_report,
    serialize,
)
from gcontact_alpine.addressbook.store import AddressBookFile

__all__ = [
    "AddressBookFile",
    "ParseReport",
    "assign_nicknames",
    "parse",
    "parse_report",
    "serialize",
]
