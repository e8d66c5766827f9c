"""
Entry point for running gcontact_alpine as a module.

Usage:
    python -m gcontact_alpine --help
    python -m gcontact_alpine init
    python -m gcontact_alpine sync --dry-run
"""

from gcontact_alpine.cli import cli

if __name__ == "__main__":
    cli()
