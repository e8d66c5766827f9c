"""CLI output formatting functions.

This module contains functions for displaying conflicts, run summaries and
status details on the command line.
"""

from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from gcontact_alpine.sync.conflict import Conflict
    from gcontact_alpine.sync.contact import Contact
    from gcontact_alpine.sync.engine import SyncOutcome

REMOTE_LABEL = "Google Contacts"
LOCAL_LABEL = ".addressbook"

# Show at most this many conflicts in a global prompt
MAX_LISTED_CONFLICTS = 20


def format_contact(contact: "Contact") -> str:
    """
    Render a contact on one line.

    Args:
        contact: Contact to render

    Returns:
        "nickname / name / emails / notes" with empty parts left out
    """
    parts = [
        contact.nickname,
        contact.display_name,
        ", ".join(contact.emails),
        contact.notes.replace("\n", " "),
    ]
    return " / ".join(part for part in parts if part)


def format_conflict(conflict: "Conflict") -> list[str]:
    """
    Render both versions of a conflicting contact, labels aligned.

    Returns:
        Two lines, the Google version first
    """
    width = max(len(REMOTE_LABEL), len(LOCAL_LABEL))
    return [
        f"{REMOTE_LABEL:<{width}}: {format_contact(conflict.remote)}",
        f"{LOCAL_LABEL:<{width}}: {format_contact(conflict.local)}",
    ]


def show_conflict(conflict: "Conflict", header: str) -> None:
    """Print a single conflict under a header."""
    click.echo()
    click.echo(click.style(header, fg="yellow"))
    for line in format_conflict(conflict):
        click.echo(f"  {line}")


def show_conflicts(conflicts: list["Conflict"], header: str) -> None:
    """Print a batch of conflicts, truncated after MAX_LISTED_CONFLICTS."""
    click.echo()
    click.echo(click.style(f"{header} ({len(conflicts)})", fg="yellow"))
    for conflict in conflicts[:MAX_LISTED_CONFLICTS]:
        click.echo()
        for line in format_conflict(conflict):
            click.echo(f"  {line}")
    if len(conflicts) > MAX_LISTED_CONFLICTS:
        remaining = len(conflicts) - MAX_LISTED_CONFLICTS
        click.echo(f"\n  ... and {remaining} more")


def show_summary(outcome: "SyncOutcome") -> None:
    """Print the statistics of a finished run."""
    click.echo()
    click.echo(outcome.summary())
    if outcome.stats.backup_path:
        click.echo(f"  Backup: {outcome.stats.backup_path}")
