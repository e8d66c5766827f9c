"""
Sync orchestrator for Google Contacts and the Alpine address book.

Sequences the two run modes as explicit state machines:

- init: fetch Google Contacts and write a fresh address book, asking before
  an existing file is replaced
- sync: fetch, read the address book, reconcile, ask how to resolve
  conflicts, optionally push address book edits back to Google, then
  rewrite the address book if anything changed

Every run ends in DONE, CANCELLED or FAILED and is reported as a
SyncOutcome carrying a message id, so the caller decides how to present it.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol

from gcontact_alpine.addressbook.codec import assign_nicknames, parse_report, serialize
from gcontact_alpine.addressbook.store import AddressBookFile
from gcontact_alpine.backup.manager import BackupManager
from gcontact_alpine.errors import (
    EXIT_CANCELLED,
    EXIT_OK,
    AddressBookReadError,
    SyncError,
)
from gcontact_alpine.i18n.messages import MessageId
from gcontact_alpine.sync.collection import ContactCollection
from gcontact_alpine.sync.conflict import Conflict, ConflictResult, Resolution
from gcontact_alpine.sync.contact import Contact
from gcontact_alpine.sync.reconciler import Reconciler, ReconcileResult

logger = logging.getLogger(__name__)

CONFLICT_MODE_PER_CONTACT = "per_contact"
CONFLICT_MODE_GLOBAL = "global"


class SyncState(Enum):
    """States of an init or sync run."""

    START = "start"
    CHECK_EXISTING = "check_existing"
    PROMPT_OVERWRITE = "prompt_overwrite"
    FETCH_REMOTE = "fetch_remote"
    READ_LOCAL = "read_local"
    RECONCILE = "reconcile"
    PROMPT_CONFLICT_RESOLUTION = "prompt_conflict_resolution"
    APPLY_RESOLUTION = "apply_resolution"
    PUSH_REMOTE = "push_remote"
    SERIALIZE = "serialize"
    WRITE = "write"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ContactSource(Protocol):
    """Where remote contacts come from and where local edits are pushed."""

    def fetch_contacts(self) -> ContactCollection: ...

    def push_update(self, contact: Contact) -> Contact: ...

    def push_create(self, contact: Contact) -> Contact: ...


class DecisionProvider(Protocol):
    """
    Answers the questions a run asks the user.

    Returning False or None cancels the run. Implementations raise
    InputError when the answer cannot be read.
    """

    def confirm_overwrite(self, path: Path) -> bool: ...

    def choose_resolution(self, conflict: Conflict) -> Optional[Resolution]: ...

    def choose_global_resolution(
        self, conflicts: list[Conflict]
    ) -> Optional[Resolution]: ...


@dataclass
class SyncStats:
    """
    Statistics from a run.

    Tracks counts of everything fetched, matched, resolved and written.
    """

    remote_contacts: int = 0
    local_contacts: int = 0
    skipped_records: int = 0
    added: int = 0
    preserved: int = 0
    unchanged: int = 0
    conflicts: int = 0
    resolved_remote: int = 0
    resolved_local: int = 0
    pushed_updates: int = 0
    pushed_creates: int = 0
    written_contacts: int = 0
    file_changed: bool = False
    backup_path: Optional[Path] = None


@dataclass
class SyncOutcome:
    """
    Terminal result of a run.

    Attributes:
        state: DONE, CANCELLED or FAILED
        message_id: Message describing the outcome
        detail: Technical detail for failures
        exit_code: Process exit status for the outcome
        stats: Run statistics
        history: Every state the run passed through, in order
        notices: Informational messages raised along the way
    """

    state: SyncState
    message_id: MessageId
    detail: str = ""
    exit_code: int = EXIT_OK
    stats: SyncStats = field(default_factory=SyncStats)
    history: list[SyncState] = field(default_factory=list)
    notices: list[MessageId] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state == SyncState.DONE

    @property
    def cancelled(self) -> bool:
        return self.state == SyncState.CANCELLED

    def summary(self) -> str:
        """
        Generate a human-readable summary of the run.

        Returns:
            Formatted string summary of the statistics
        """
        s = self.stats
        lines = [
            "Sync Summary:",
            f"  Google Contacts: {s.remote_contacts} contacts",
            f"  Address book: {s.local_contacts} contacts",
        ]
        if s.skipped_records:
            lines.append(f"  Skipped (malformed): {s.skipped_records}")
        lines.extend(
            [
                "",
                f"  Added from Google: {s.added}",
                f"  Kept (address book only): {s.preserved}",
                f"  Unchanged: {s.unchanged}",
            ]
        )
        if s.conflicts:
            lines.append(
                f"  Conflicts resolved: {s.conflicts} "
                f"(Google: {s.resolved_remote}, address book: {s.resolved_local})"
            )
        if s.pushed_updates or s.pushed_creates:
            lines.append(
                f"  Pushed to Google: {s.pushed_updates} updated, "
                f"{s.pushed_creates} created"
            )
        lines.append(
            f"  Address book: {s.written_contacts} contacts, "
            f"{'rewritten' if s.file_changed else 'unchanged'}"
        )
        return "\n".join(lines)


class _Cancelled(Exception):
    """Internal signal: the user declined a decision point."""


class SyncOrchestrator:
    """
    Runs init and sync against one contact source and one address book.

    Usage:
        orchestrator = SyncOrchestrator(
            source=GoogleContactSource(auth),
            addressbook=AddressBookFile(Path.home() / ".addressbook"),
            decisions=ClickDecisionProvider(catalog),
        )

        outcome = orchestrator.run_sync()
        if not outcome.succeeded:
            sys.exit(outcome.exit_code)
    """

    def __init__(
        self,
        source: ContactSource,
        addressbook: AddressBookFile,
        decisions: DecisionProvider,
        conflict_mode: str = CONFLICT_MODE_PER_CONTACT,
        default_resolution: Optional[Resolution] = None,
        push_local_changes: bool = False,
        backup_manager: Optional[BackupManager] = None,
        reconciler: Optional[Reconciler] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            source: Remote contact source
            addressbook: Address book file to read and write
            decisions: Answers overwrite and conflict questions
            conflict_mode: "per_contact" asks once per conflict, "global" once
            default_resolution: Applied to every conflict without asking
            push_local_changes: Push address book edits back to Google
            backup_manager: Backs up the address book before it is rewritten
            reconciler: Reconciler to use (default Reconciler())
        """
        if conflict_mode not in (CONFLICT_MODE_PER_CONTACT, CONFLICT_MODE_GLOBAL):
            raise ValueError(f"Unknown conflict mode: {conflict_mode}")

        self.source = source
        self.addressbook = addressbook
        self.decisions = decisions
        self.conflict_mode = conflict_mode
        self.default_resolution = default_resolution
        self.push_local_changes = push_local_changes
        self.backup_manager = backup_manager
        self.reconciler = reconciler or Reconciler()

        self.state = SyncState.START
        self._history: list[SyncState] = []
        self._notices: list[MessageId] = []
        self._stats = SyncStats()

    # -- state bookkeeping -------------------------------------------------

    def _begin(self) -> None:
        self._history = []
        self._notices = []
        self._stats = SyncStats()
        self._transition(SyncState.START)

    def _transition(self, state: SyncState) -> None:
        logger.debug(f"State: {self.state.value} -> {state.value}")
        self.state = state
        self._history.append(state)

    def _outcome(
        self,
        message_id: MessageId,
        detail: str = "",
        exit_code: int = EXIT_OK,
    ) -> SyncOutcome:
        return SyncOutcome(
            state=self.state,
            message_id=message_id,
            detail=detail,
            exit_code=exit_code,
            stats=self._stats,
            history=list(self._history),
            notices=list(self._notices),
        )

    def _finish(self, message_id: MessageId) -> SyncOutcome:
        self._transition(SyncState.DONE)
        logger.info(f"Run finished: {message_id.value}")
        return self._outcome(message_id)

    def _cancel(self) -> SyncOutcome:
        self._transition(SyncState.CANCELLED)
        logger.info("Run cancelled by user")
        return self._outcome(MessageId.OP_CANCEL, exit_code=EXIT_CANCELLED)

    def _fail(self, error: SyncError) -> SyncOutcome:
        failed_in = self.state
        self._transition(SyncState.FAILED)
        logger.error(
            f"Run failed in {failed_in.value}: {error.message_id.value}: {error.detail}"
        )
        return self._outcome(error.message_id, error.detail, error.exit_code)

    # -- runs --------------------------------------------------------------

    def run_init(self) -> SyncOutcome:
        """
        Populate the address book from Google Contacts.

        An existing address book is only replaced after the user confirms;
        declining leaves it untouched.

        Returns:
            SyncOutcome ending in DONE, CANCELLED or FAILED
        """
        self._begin()
        try:
            self._transition(SyncState.CHECK_EXISTING)
            replacing = self.addressbook.exists()
            if replacing:
                self._transition(SyncState.PROMPT_OVERWRITE)
                if not self.decisions.confirm_overwrite(self.addressbook.path):
                    raise _Cancelled()

            self._transition(SyncState.FETCH_REMOTE)
            remote = self.source.fetch_contacts()
            self._stats.remote_contacts = len(remote)

            self._transition(SyncState.SERIALIZE)
            final = assign_nicknames(remote)
            data = serialize(final)
            self._stats.added = len(final)
            self._stats.written_contacts = len(final)

            self._transition(SyncState.WRITE)
            if replacing:
                self._backup_existing()
            self.addressbook.write(data)
            self._stats.file_changed = True

        except _Cancelled:
            return self._cancel()
        except SyncError as e:
            return self._fail(e)

        return self._finish(MessageId.EXPORT_COMPLETE)

    def run_sync(self, dry_run: bool = False) -> SyncOutcome:
        """
        Reconcile Google Contacts with the address book.

        Args:
            dry_run: Compute the result without pushing or writing anything

        Returns:
            SyncOutcome ending in DONE, CANCELLED or FAILED
        """
        self._begin()
        try:
            self._transition(SyncState.FETCH_REMOTE)
            remote = self.source.fetch_contacts()
            self._stats.remote_contacts = len(remote)

            self._transition(SyncState.READ_LOCAL)
            original = self.addressbook.read()
            report = parse_report(original)
            local = report.contacts
            self._stats.local_contacts = len(local)
            self._stats.skipped_records = len(report.skipped)
            if report.skipped:
                self._notices.append(MessageId.FIELD_ERROR)

            self._transition(SyncState.RECONCILE)
            result = self.reconciler.reconcile(remote, local)
            self._record_reconcile(result)

            resolutions: list[Resolution] = []
            if result.conflicts:
                self._transition(SyncState.PROMPT_CONFLICT_RESOLUTION)
                resolutions = self._decide(result.conflicts)

            self._transition(SyncState.APPLY_RESOLUTION)
            merged, conflict_results = self.reconciler.apply_resolutions(
                result, resolutions
            )
            self._record_resolutions(conflict_results)
            fresh = {id(c) for c in result.added} | {
                id(r.contact)
                for r in conflict_results
                if r.resolution == Resolution.PREFER_REMOTE
            }
            # Address book entries keep an empty nickname as written
            final = assign_nicknames(merged, only=lambda c: id(c) in fresh)

            if dry_run:
                self._transition(SyncState.SERIALIZE)
                self._stats.written_contacts = len(final)
                self._stats.file_changed = serialize(final, original) != original
                return self._finish(MessageId.DRY_RUN_DONE)

            if self.push_local_changes:
                self._transition(SyncState.PUSH_REMOTE)
                self._push(conflict_results, result.preserved)

            self._transition(SyncState.SERIALIZE)
            data = serialize(final, original)
            self._stats.written_contacts = len(final)

            if data != original:
                self._transition(SyncState.WRITE)
                self._backup_existing(original)
                self.addressbook.write(data)
                self._stats.file_changed = True
            else:
                logger.info("Address book is already up to date")

        except _Cancelled:
            return self._cancel()
        except SyncError as e:
            return self._fail(e)

        return self._finish(MessageId.UPDATE_DONE)

    # -- steps -------------------------------------------------------------

    def _decide(self, conflicts: list[Conflict]) -> list[Resolution]:
        """
        Get one resolution per conflict.

        Raises:
            _Cancelled: If the user cancels at any prompt
        """
        if self.default_resolution is not None:
            logger.info(
                f"Resolving {len(conflicts)} conflicts with "
                f"{self.default_resolution.value}"
            )
            return [self.default_resolution] * len(conflicts)

        if self.conflict_mode == CONFLICT_MODE_GLOBAL:
            resolution = self.decisions.choose_global_resolution(conflicts)
            if resolution is None:
                raise _Cancelled()
            return [resolution] * len(conflicts)

        resolutions = []
        for conflict in conflicts:
            resolution = self.decisions.choose_resolution(conflict)
            if resolution is None:
                raise _Cancelled()
            resolutions.append(resolution)
        return resolutions

    def _push(
        self, conflict_results: list[ConflictResult], local_only: list[Contact]
    ) -> None:
        """
        Push address book edits to Google.

        Raises:
            RemoteUpdateError: If any push fails
        """
        for conflict_result in conflict_results:
            if conflict_result.needs_remote_update:
                self.source.push_update(conflict_result.contact)
                self._stats.pushed_updates += 1

        for contact in local_only:
            self.source.push_create(contact)
            self._stats.pushed_creates += 1

        if self._stats.pushed_updates or self._stats.pushed_creates:
            self._notices.append(MessageId.UPDATE_SUCCESS_GOOGLE_CONTACTS)
        logger.info(
            f"Pushed {self._stats.pushed_updates} updates and "
            f"{self._stats.pushed_creates} new contacts to Google"
        )

    def _backup_existing(self, data: Optional[bytes] = None) -> None:
        """Back up the current address book; failures are only logged."""
        if self.backup_manager is None:
            return

        if data is None:
            try:
                data = self.addressbook.read()
            except AddressBookReadError as e:
                logger.warning(f"Skipping backup, address book unreadable: {e.detail}")
                return

        self._stats.backup_path = self.backup_manager.create_backup(data)

    def _record_reconcile(self, result: ReconcileResult) -> None:
        self._stats.added = len(result.added)
        self._stats.preserved = len(result.preserved)
        self._stats.unchanged = len(result.unchanged)
        self._stats.conflicts = len(result.conflicts)

    def _record_resolutions(self, conflict_results: list[ConflictResult]) -> None:
        for conflict_result in conflict_results:
            if conflict_result.resolution == Resolution.PREFER_REMOTE:
                self._stats.resolved_remote += 1
            else:
                self._stats.resolved_local += 1

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return (
            f"SyncOrchestrator(addressbook={str(self.addressbook.path)!r}, "
            f"state={self.state.value})"
        )
