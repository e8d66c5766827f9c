"""
Codec for the Alpine address book file (~/.addressbook).

Each entry is one line of up to five tab-separated fields::

    nickname <TAB> fullname <TAB> address <TAB> fcc <TAB> comment

The address is a single address or a list written as ``(a@x, b@y)``.
Alpine folds long entries onto continuation lines that start with three
spaces. Deleted entries are kept by Alpine as ``#DELETED-...`` tombstones.
Fields may hold RFC 2047 encoded words (``=?UTF-8?B?...?=``).

Parsing and serialization are pure; file access lives in
:mod:`gcontact_alpine.addressbook.store`.
"""

from __future__ import annotations

import base64
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from email.errors import HeaderParseError
from email.header import decode_header, make_header

from gcontact_alpine.errors import ParseError
from gcontact_alpine.i18n.messages import MessageId
from gcontact_alpine.sync.collection import ContactCollection, canonical_sort_key
from gcontact_alpine.sync.contact import Contact

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "\t"
CONTINUATION_PREFIX = "   "
DELETED_PREFIX = "#DELETED"
MAX_FIELDS = 5
ENCODING = "utf-8"

# Characters that cannot appear verbatim inside a field
_UNSAFE_FIELD_RE = re.compile(r"[\t\r\n]|=\?")


@dataclass
class SkippedRecord:
    """A record dropped during parsing, with its starting line number."""

    line: int
    text: str
    reason: str


@dataclass
class ParseReport:
    """Result of parsing an address book: the contacts and what was skipped."""

    contacts: ContactCollection
    skipped: list[SkippedRecord] = field(default_factory=list)
    tombstones: int = 0


def decode_field(value: str) -> str:
    """
    Decode a field that holds RFC 2047 encoded words.

    Fields without encoded words are returned unchanged.

    Raises:
        ValueError: If an encoded word cannot be decoded
    """
    stripped = value.strip()
    if not (stripped.startswith("=?") and stripped.endswith("?=")):
        return value

    try:
        return str(make_header(decode_header(stripped)))
    except (HeaderParseError, LookupError, UnicodeDecodeError) as e:
        raise ValueError(f"undecodable encoded word {stripped!r}: {e}") from e


def encode_field(value: str) -> str:
    """
    Encode a field for writing.

    Values containing a tab, CR, LF or ``=?``, or starting with whitespace
    (a leading nickname would read back as a continuation line), are written
    as a UTF-8 base64 encoded word.
    """
    if not (_UNSAFE_FIELD_RE.search(value) or value[:1].isspace()):
        return value

    payload = base64.b64encode(value.encode(ENCODING)).decode("ascii")
    return f"=?UTF-8?B?{payload}?="


def parse_address(value: str) -> list[str]:
    """Split an address field into its addresses."""
    value = value.strip()
    if value.startswith("(") and value.endswith(")"):
        items = value[1:-1].split(",")
    else:
        items = [value]
    return [item.strip() for item in items if item.strip()]


def format_address(emails: list[str]) -> str:
    """Format addresses as a single address or an Alpine address list."""
    if not emails:
        return ""
    if len(emails) == 1:
        return emails[0]
    return "(" + ", ".join(emails) + ")"


@dataclass
class _Chunk:
    """Raw lines of one record, its continuations and any blank lines after it."""

    line: int
    lines: list[str]
    record: str | None = None


def _split_chunks(text: str) -> list[_Chunk]:
    """
    Group lines by record, keeping the raw text.

    Continuation lines are joined onto the record; blank lines stay with the
    record before them. Leading blank lines form a chunk without a record.
    """
    chunks: list[_Chunk] = []

    for lineno, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line[:-1] if raw_line.endswith("\r") else raw_line

        if line.startswith(CONTINUATION_PREFIX):
            if not chunks or chunks[-1].record is None:
                raise ParseError(
                    f"line {lineno}: continuation line without a preceding record"
                )
            chunks[-1].lines.append(raw_line)
            chunks[-1].record += line[len(CONTINUATION_PREFIX) :]
            continue

        if not line.strip():
            if not chunks:
                chunks.append(_Chunk(lineno, []))
            chunks[-1].lines.append(raw_line)
            continue

        chunks.append(_Chunk(lineno, [raw_line], line))

    return chunks


def _split_records(text: str) -> list[tuple[int, str]]:
    """Join continuation lines, returning (first line number, record) pairs."""
    return [(c.line, c.record) for c in _split_chunks(text) if c.record is not None]


def _record_to_contact(record: str) -> Contact:
    """
    Convert one logical record into a Contact.

    Raises:
        ValueError: If the record is malformed
    """
    fields = record.split(FIELD_SEPARATOR)
    if len(fields) > MAX_FIELDS:
        raise ValueError(f"record has {len(fields)} fields (max {MAX_FIELDS})")

    fields += [""] * (MAX_FIELDS - len(fields))
    nickname, fullname, address, fcc, comment = (decode_field(f) for f in fields)

    return Contact(
        display_name=fullname,
        emails=parse_address(address),
        nickname=nickname,
        fcc=fcc,
        notes=comment,
    )


def parse_report(data: bytes) -> ParseReport:
    """
    Parse address book bytes, reporting skipped records.

    Malformed records (too many fields, undecodable encoded words, entries
    with neither name nor address) are skipped and logged.

    Args:
        data: Raw file content

    Returns:
        ParseReport with the parsed contacts and the skipped records

    Raises:
        ParseError: If the data is not a UTF-8 line-record stream
    """
    if b"\x00" in data:
        raise ParseError("address book contains NUL bytes")

    try:
        text = data.decode(ENCODING)
    except UnicodeDecodeError as e:
        raise ParseError(f"address book is not valid UTF-8: {e}") from e

    text = text.removeprefix("\ufeff")

    report = ParseReport(contacts=ContactCollection())

    for lineno, record in _split_records(text):
        if record.startswith(DELETED_PREFIX):
            report.tombstones += 1
            continue

        try:
            contact = _record_to_contact(record)
        except ValueError as e:
            report.skipped.append(SkippedRecord(lineno, record, str(e)))
            logger.warning(f"{MessageId.FIELD_ERROR.value}: line {lineno}: {e}")
            continue

        if not report.contacts.add(contact):
            reason = "record has neither name nor address"
            report.skipped.append(SkippedRecord(lineno, record, reason))
            logger.warning(f"{MessageId.FIELD_ERROR.value}: line {lineno}: {reason}")

    logger.debug(
        f"Parsed {len(report.contacts)} address book entries "
        f"({len(report.skipped)} skipped, {report.tombstones} deleted)"
    )
    return report


def parse(data: bytes) -> ContactCollection:
    """
    Parse address book bytes into a contact collection.

    Raises:
        ParseError: If the data is not a UTF-8 line-record stream
    """
    return parse_report(data).contacts


def _contact_to_record(contact: Contact) -> str:
    fields = [
        encode_field(contact.nickname),
        encode_field(contact.display_name),
        encode_field(format_address(contact.emails)),
        encode_field(contact.fcc),
        encode_field(contact.notes),
    ]

    # Empty fcc and comment fields are omitted
    while len(fields) > 3 and not fields[-1]:
        fields.pop()

    return FIELD_SEPARATOR.join(fields)


def serialize(collection: ContactCollection, original: bytes | None = None) -> bytes:
    """
    Serialize a collection to address book bytes.

    Without ``original``, contacts are written in canonical order, one record
    per line, so an unchanged collection always serializes to identical bytes.

    With ``original`` (the file the collection was read from), records whose
    contact is still in the collection keep their text and position, as do
    tombstones, blank lines and records that could not be parsed. A changed
    contact takes the place of the record with the same nickname; other new
    contacts are appended in canonical order. Unmodified data therefore comes
    back byte for byte.

    Raises:
        ParseError: If ``original`` is not a UTF-8 line-record stream
    """
    if original is None:
        lines = [_contact_to_record(contact) for contact in collection.sorted()]
        if not lines:
            return b""
        return ("\n".join(lines) + "\n").encode(ENCODING)

    try:
        text = original.decode(ENCODING)
    except UnicodeDecodeError as e:
        raise ParseError(f"address book is not valid UTF-8: {e}") from e

    bom = "\ufeff" if text.startswith("\ufeff") else ""
    text = text.removeprefix(bom)
    ends_with_newline = text.endswith("\n")
    chunks = _split_chunks(text.removesuffix("\n")) if text else []

    pending: dict[str, list[Contact]] = {}
    for contact in collection.sorted():
        pending.setdefault(contact.content_hash(), []).append(contact)

    # Pass 1: keep every record whose contact is unchanged
    dropped: dict[int, str] = {}
    for index, chunk in enumerate(chunks):
        if chunk.record is None or chunk.record.startswith(DELETED_PREFIX):
            continue
        try:
            contact = _record_to_contact(chunk.record)
        except ValueError:
            continue
        if not contact.is_valid():
            continue
        if pending.get(contact.content_hash()):
            pending[contact.content_hash()].pop(0)
        else:
            dropped[index] = contact.nickname.casefold()

    leftovers = [c for contacts in pending.values() for c in contacts]
    leftovers.sort(key=canonical_sort_key)

    # Pass 2: a changed contact replaces the record with its nickname
    lines: list[str] = []
    for index, chunk in enumerate(chunks):
        if index not in dropped:
            lines.extend(chunk.lines)
            continue
        nickname = dropped[index]
        match = next(
            (c for c in leftovers if nickname and c.nickname.casefold() == nickname),
            None,
        )
        if match is not None:
            leftovers.remove(match)
            lines.append(_contact_to_record(match))
            lines.extend(line for line in chunk.lines[1:] if not line.strip())

    lines.extend(_contact_to_record(contact) for contact in leftovers)

    if not lines:
        return b""
    body = "\n".join(lines)
    if ends_with_newline or leftovers:
        body += "\n"
    return (bom + body).encode(ENCODING)


def nickname_base(contact: Contact) -> str:
    """
    Pick the base nickname for a contact.

    Uses the last word of the display name, else the local part of the
    first email address.
    """
    words = contact.display_name.split()
    if words:
        base = words[-1]
    elif contact.emails:
        base = contact.emails[0].split("@")[0]
    else:
        base = ""

    base = re.sub(r"[\s,()]", "", base)
    return base or "Unknown"


def assign_nicknames(
    collection: ContactCollection,
    only: Callable[[Contact], bool] | None = None,
) -> ContactCollection:
    """
    Give every contact without a nickname a unique one.

    Existing nicknames are kept. Generated nicknames are de-duplicated
    case-insensitively with a two-digit counter (Doe, Doe01, Doe02).

    Args:
        collection: Contacts to name
        only: Restrict naming to the contacts this returns True for

    Returns:
        New collection; contacts of the input are not modified
    """
    taken = {c.nickname.casefold() for c in collection if c.nickname}
    result = ContactCollection()

    for contact in collection.sorted():
        if contact.nickname or (only is not None and not only(contact)):
            result.add(contact)
            continue

        base = nickname_base(contact)
        nickname = base
        counter = 0
        while nickname.casefold() in taken:
            counter += 1
            nickname = f"{base}{counter:02d}"

        taken.add(nickname.casefold())
        result.add(replace(contact, nickname=nickname))

    return result
