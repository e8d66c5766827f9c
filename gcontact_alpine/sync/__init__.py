"""Contact model and reconciliation of Google Contacts with the address book."""

from gcontact_alpine.sync.collection import ContactCollection
from gcontact_alpine.sync.conflict import Conflict, ConflictResolver, Resolution
from gcontact_alpine.sync.contact import Contact
from gcontact_alpine.sync.reconciler import ReconcileResult, Reconciler, reconcile

__all__ = [
    "Conflict",
    "ConflictResolver",
    "Contact",
    "ContactCollection",
    "ReconcileResult",
    "Reconciler",
    "Resolution",
    "reconcile",
]
