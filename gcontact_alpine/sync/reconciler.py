"""
Reconciliation of the Google Contacts and address book collections.

Address book entries carry no Google identifier, so local contacts are
matched to remote ones in passes of decreasing confidence:

1. identifier (resource name), when the local contact has one
2. normalized display name together with a shared email address
3. normalized display name alone
4. a shared email address alone

Address books written one record per email address (``Doe01``, ``Doe02``
for one person with two addresses) are folded first: records with the same
name, comment and fcc whose distinct addresses all belong to one Google
contact are compared with it as a single entry.

Each remote contact is claimed by at most one local entry. Passes walk
both sides in canonical order so the outcome does not depend on the order
the contacts were read in.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from typing import Optional

from gcontact_alpine.errors import ReconcileError
from gcontact_alpine.sync.collection import ContactCollection, canonical_sort_key
from gcontact_alpine.sync.conflict import (
    Conflict,
    ConflictResolver,
    ConflictResult,
    Resolution,
)
from gcontact_alpine.sync.contact import Contact
from gcontact_alpine.utils.normalization import normalize_email

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """
    Result of reconciling a remote and a local collection.

    Attributes:
        merged: Every contact of the outcome; conflicting entries hold the
            local version until the conflict is resolved
        conflicts: Matched pairs whose contents disagree
        added: Remote-only contacts
        preserved: Local-only contacts
        unchanged: Matched contacts with identical content
        folded: Address book records combined into one entry, keyed by the
            id() of that entry
    """

    merged: ContactCollection
    conflicts: list[Conflict] = field(default_factory=list)
    added: list[Contact] = field(default_factory=list)
    preserved: list[Contact] = field(default_factory=list)
    unchanged: list[Contact] = field(default_factory=list)
    folded: dict[int, list[Contact]] = field(default_factory=dict)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def summary(self) -> dict[str, int]:
        """Counts per category, for logging and display."""
        return {
            "added": len(self.added),
            "preserved": len(self.preserved),
            "unchanged": len(self.unchanged),
            "conflicts": len(self.conflicts),
        }


class Reconciler:
    """
    Computes the merged collection and the conflicts needing a decision.

    Usage:
        reconciler = Reconciler()
        result = reconciler.reconcile(remote, local)

        if result.has_conflicts:
            resolutions = [ask_user(c) for c in result.conflicts]
            merged, results = reconciler.apply_resolutions(result, resolutions)
    """

    def __init__(self, resolver: Optional[ConflictResolver] = None):
        self.resolver = resolver or ConflictResolver()

    def reconcile(
        self, remote: ContactCollection, local: ContactCollection
    ) -> ReconcileResult:
        """
        Reconcile the two collections.

        Args:
            remote: Snapshot from Google Contacts
            local: Snapshot from the address book

        Returns:
            ReconcileResult with the merged collection and the conflicts
        """
        remote_sorted = remote.sorted()
        result = ReconcileResult(merged=ContactCollection())

        pairs: dict[int, Contact] = {}
        folded_members: set[int] = set()
        entries: list[Contact] = []
        for entry, members, partner in self._fold_split_records(remote_sorted, local.sorted()):
            result.folded[id(entry)] = members
            folded_members.update(id(m) for m in members)
            pairs[id(entry)] = partner
            entries.append(entry)

        entries.extend(c for c in local if id(c) not in folded_members)
        entries.sort(key=canonical_sort_key)

        pairs = self._match(remote_sorted, entries, pairs)
        matched_remote = {id(r) for r in pairs.values()}

        for contact in entries:
            partner = pairs.get(id(contact))
            if partner is None:
                result.preserved.append(contact)
                self._add(result.merged, contact)
            elif contact.differs_from(partner):
                result.conflicts.append(Conflict(remote=partner, local=contact))
                self._add(result.merged, contact)
            else:
                kept = replace(
                    contact,
                    resource_name=partner.resource_name,
                    etag=partner.etag,
                    phones=list(partner.phones),
                    last_modified=partner.last_modified,
                )
                result.unchanged.append(kept)
                # Folded records are written back as they were
                for written in result.folded.get(id(contact), [kept]):
                    self._add(result.merged, written)

        for contact in remote_sorted:
            if id(contact) not in matched_remote:
                result.added.append(contact)
                self._add(result.merged, contact)

        logger.info(f"Reconciled collections: {result.summary()}")
        return result

    def apply_resolutions(
        self, result: ReconcileResult, resolutions: Sequence[Resolution]
    ) -> tuple[ContactCollection, list[ConflictResult]]:
        """
        Replace each pending local version with its resolved contact.

        Folded records kept by a local resolution stay separate records.

        Args:
            result: Result of reconcile()
            resolutions: One resolution per conflict, in conflict order

        Returns:
            Tuple of (final collection, per-conflict results)

        Raises:
            ReconcileError: If the number of resolutions does not match
        """
        if len(resolutions) != len(result.conflicts):
            raise ReconcileError(
                f"{len(resolutions)} resolutions for {len(result.conflicts)} conflicts"
            )

        conflict_results = [
            self.resolver.resolve(conflict, resolution)
            for conflict, resolution in zip(result.conflicts, resolutions)
        ]
        replacements: dict[int, list[Contact]] = {}
        for conflict, conflict_result in zip(result.conflicts, conflict_results):
            members = result.folded.get(id(conflict.local))
            if members and conflict_result.resolution == Resolution.PREFER_LOCAL:
                replacements[id(conflict.local)] = members
            else:
                replacements[id(conflict.local)] = [conflict_result.contact]

        final = ContactCollection()
        for contact in result.merged:
            for written in replacements.get(id(contact), [contact]):
                self._add(final, written)

        return final, conflict_results

    def apply(
        self,
        result: ReconcileResult,
        decide: Callable[[Conflict], Optional[Resolution]],
    ) -> Optional[tuple[ContactCollection, list[ConflictResult]]]:
        """
        Resolve conflicts one at a time with a decision callback.

        Returns:
            Same as apply_resolutions(), or None if the callback returned
            None for any conflict (the caller cancels the run)
        """
        resolutions = []
        for conflict in result.conflicts:
            resolution = decide(conflict)
            if resolution is None:
                logger.info(f"Conflict resolution cancelled at {conflict.label!r}")
                return None
            resolutions.append(resolution)
        return self.apply_resolutions(result, resolutions)

    @staticmethod
    def _fold_split_records(
        remote: list[Contact], local: list[Contact]
    ) -> list[tuple[Contact, list[Contact], Contact]]:
        """
        Find address book records that split one Google contact by address.

        A group needs at least two records without an identifier that share
        display name, comment and fcc, hold disjoint addresses, and whose
        addresses all belong to the same remote contact.

        Returns:
            (combined entry, records, remote contact) per group; the combined
            entry lists the addresses in the remote contact's order
        """
        groups: list[tuple[Contact, list[Contact], Contact]] = []
        used: set[int] = set()

        for partner in remote:
            order = {key: i for i, key in enumerate(dict.fromkeys(partner.email_keys()))}
            if len(order) < 2:
                continue

            members: list[Contact] = []
            seen: set[str] = set()
            for contact in local:
                keys = set(contact.email_keys())
                if (
                    id(contact) in used
                    or contact.resource_name
                    or not keys
                    or contact.name_key() != partner.name_key()
                    or not keys <= order.keys()
                    or keys & seen
                ):
                    continue
                if members and (contact.display_name, contact.notes, contact.fcc) != (
                    members[0].display_name,
                    members[0].notes,
                    members[0].fcc,
                ):
                    continue
                members.append(contact)
                seen |= keys

            if len(members) < 2:
                continue

            emails = [e for m in members for e in m.emails if normalize_email(e)]
            emails.sort(key=lambda e: order[normalize_email(e)])
            entry = replace(members[0], emails=emails)

            used.update(id(m) for m in members)
            groups.append((entry, members, partner))
            logger.debug(
                f"Folded {len(members)} records of {entry.display_name!r} "
                f"into one entry"
            )

        return groups

    def _match(
        self,
        remote: list[Contact],
        local: list[Contact],
        pairs: Optional[dict[int, Contact]] = None,
    ) -> dict[int, Contact]:
        """Pair local contacts (by object id) with remote contacts, extending pairs."""
        pairs = dict(pairs or {})
        claimed = {id(partner) for partner in pairs.values()}

        def claim(local_contact: Contact, candidates: list[Contact]) -> bool:
            for candidate in candidates:
                if id(candidate) not in claimed:
                    claimed.add(id(candidate))
                    pairs[id(local_contact)] = candidate
                    return True
            return False

        by_resource = {c.resource_name: c for c in remote if c.resource_name}
        by_name: dict[str, list[Contact]] = {}
        by_email: dict[str, list[Contact]] = {}
        for contact in remote:
            if contact.name_key():
                by_name.setdefault(contact.name_key(), []).append(contact)
            for email in dict.fromkeys(contact.email_keys()):
                by_email.setdefault(email, []).append(contact)

        # Pass 1: identifier
        for contact in local:
            if contact.resource_name and contact.resource_name in by_resource:
                claim(contact, [by_resource[contact.resource_name]])

        # Pass 2: name and a shared email
        for contact in local:
            if id(contact) in pairs or not contact.name_key():
                continue
            emails = set(contact.email_keys())
            candidates = [
                c
                for c in by_name.get(contact.name_key(), [])
                if emails.intersection(c.email_keys())
            ]
            claim(contact, candidates)

        # Pass 3: name
        for contact in local:
            if id(contact) in pairs or not contact.name_key():
                continue
            claim(contact, by_name.get(contact.name_key(), []))

        # Pass 4: email
        for contact in local:
            if id(contact) in pairs:
                continue
            for email in contact.email_keys():
                if claim(contact, by_email.get(email, [])):
                    break

        logger.debug(f"Matched {len(pairs)} of {len(local)} address book entries")
        return pairs

    @staticmethod
    def _add(collection: ContactCollection, contact: Contact) -> None:
        if not collection.add(contact):
            raise ReconcileError(f"could not add {contact!r} to the merged collection")


def reconcile(remote: ContactCollection, local: ContactCollection) -> ReconcileResult:
    """Reconcile two collections with the default resolver."""
    return Reconciler().reconcile(remote, local)
