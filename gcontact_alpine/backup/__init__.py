"""
Backup and restore functionality for the address book.

This module keeps timestamped copies of the address book taken before a
sync rewrites it, with restore capabilities for recovery.
"""

from gcontact_alpine.backup.manager import BackupManager

__all__ = ["BackupManager"]
