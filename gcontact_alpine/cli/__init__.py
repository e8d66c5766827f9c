"""CLI package for gcontact_alpine."""

from gcontact_alpine.cli.formatters import format_conflict, format_contact
from gcontact_alpine.cli.main import build_orchestrator, cli, report_outcome
from gcontact_alpine.cli.prompts import ClickDecisionProvider

__all__ = [
    "ClickDecisionProvider",
    "build_orchestrator",
    "cli",
    "format_conflict",
    "format_contact",
    "report_outcome",
]
