"""
Error kinds surfaced to the command line.

Each error kind maps to exactly one message id and one exit code, so the
CLI can print a localized message and scripts can rely on the exit status.
"""

from __future__ import annotations

from gcontact_alpine.i18n.messages import MessageId

EXIT_OK = 0
EXIT_CANCELLED = 1
EXIT_NO_OPTION = 2


class SyncError(Exception):
    """
    Base class for failures that end a run.

    Attributes:
        message_id: Message id of the localized text for this kind
        exit_code: Process exit status for this kind
        detail: Technical detail appended to the localized text
    """

    message_id: MessageId = MessageId.UPDATE_ERROR
    exit_code: int = 12

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail


class AuthError(SyncError):
    """Raised when the OAuth credential exchange fails."""

    message_id = MessageId.AUTH_ERROR
    exit_code = 3


class FetchError(SyncError):
    """Raised when listing the remote contacts fails."""

    message_id = MessageId.FAIL_CONTACT
    exit_code = 4


class RemoteDataError(FetchError):
    """Raised when the remote API returns malformed contact data."""

    message_id = MessageId.FAIL_GOOGLE_CONTACTS
    exit_code = 5


class AddressBookReadError(SyncError):
    """Raised when the local address book cannot be read."""

    message_id = MessageId.FAIL_ADDRESSBOOK
    exit_code = 6


class ParseError(AddressBookReadError):
    """Raised when the address book bytes are not a line-record stream."""


class InitError(SyncError):
    """Raised when the address book output file cannot be created."""

    message_id = MessageId.INIT_ERROR
    exit_code = 7


class WriteError(SyncError):
    """Raised when writing address book records fails."""

    message_id = MessageId.WRITE_ERROR
    exit_code = 8


class FlushError(SyncError):
    """Raised when flushing or renaming the written address book fails."""

    message_id = MessageId.FLUSH_ERROR
    exit_code = 9


class HomeNotFoundError(SyncError):
    """Raised when the user's home directory cannot be determined."""

    message_id = MessageId.HOME_NOTFOUND
    exit_code = 10


class InputError(SyncError):
    """Raised when an interactive answer cannot be read."""

    message_id = MessageId.INPUT_ERROR
    exit_code = 11


class ReconcileError(SyncError):
    """Raised when the remote and local collections cannot be reconciled."""

    message_id = MessageId.UPDATE_ERROR
    exit_code = 12


class RemoteUpdateError(SyncError):
    """Raised when pushing local changes back to Google fails."""

    message_id = MessageId.UPDATE_FAIL_GOOGLE_CONTACTS
    exit_code = 13


__all__ = [
    "EXIT_OK",
    "EXIT_CANCELLED",
    "EXIT_NO_OPTION",
    "SyncError",
    "AuthError",
    "FetchError",
    "RemoteDataError",
    "AddressBookReadError",
    "ParseError",
    "InitError",
    "WriteError",
    "FlushError",
    "HomeNotFoundError",
    "InputError",
    "ReconcileError",
    "RemoteUpdateError",
]
