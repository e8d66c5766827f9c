"""
Timestamped copies of ~/.addressbook, taken before every rewrite.

Backups are plain byte copies named addressbook_YYYYMMDD_HHMMSS.bak, so
restoring one is just writing it back.
"""

from __future__ import annotations

import contextlib
import logging
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


class BackupManager:
    """
    Backup directory for the address book.

    Attributes:
        backup_dir: Directory path where backups are stored
        retention_count: Maximum number of backups to retain (0 = unlimited)

    Usage:
        bm = BackupManager(Path("~/.gcontact-alpine/backups"), retention_count=10)

        # Back up the current file content
        backup_file = bm.create_backup(data)

        # Newest first
        backups = bm.list_backups()

        # Content of a backup, for restoring
        data = bm.load_backup(backups[0])
    """

    BACKUP_PREFIX = "addressbook_"
    BACKUP_SUFFIX = ".bak"

    def __init__(self, backup_dir: Path, retention_count: int = 10):
        self.backup_dir = Path(backup_dir).expanduser()
        self.retention_count = retention_count

    def _next_backup_path(self, timestamp: datetime) -> Path:
        stem = f"{self.BACKUP_PREFIX}{timestamp.strftime('%Y%m%d_%H%M%S')}"
        path = self.backup_dir / f"{stem}{self.BACKUP_SUFFIX}"
        counter = 0
        while path.exists():
            counter += 1
            path = self.backup_dir / f"{stem}_{counter}{self.BACKUP_SUFFIX}"
        return path

    def create_backup(self, data: bytes, timestamp: datetime | None = None) -> Path | None:
        """
        Write a timestamped copy of the address book.

        Creates a file named addressbook_YYYYMMDD_HHMMSS.bak holding the
        exact bytes given.

        Args:
            data: Current address book content
            timestamp: Time to name the backup after (defaults to now)

        Returns:
            Path to created backup file, or None if backup failed
        """
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            backup_path = self._next_backup_path(timestamp or datetime.now())
            backup_path.write_bytes(data)
            backup_path.chmod(0o600)
        except OSError as e:
            # Backup failure shouldn't block the sync
            logger.warning(f"Could not back up the address book: {e}")
            return None

        logger.info(f"Backed up address book to {backup_path}")
        self.apply_retention()
        return backup_path

    def list_backups(self) -> list[Path]:
        """
        Backup files, newest first.
        """
        if not self.backup_dir.is_dir():
            return []

        backup_files = list(
            self.backup_dir.glob(f"{self.BACKUP_PREFIX}*{self.BACKUP_SUFFIX}")
        )

        # Names embed the timestamp, so name order is time order
        backup_files.sort(key=lambda p: p.name, reverse=True)

        return backup_files

    def load_backup(self, backup_file: Path) -> bytes | None:
        """
        Read a backup file.

        Args:
            backup_file: Path to the backup file to load

        Returns:
            The backed-up address book bytes, or None if the file cannot be read
        """
        try:
            return Path(backup_file).read_bytes()
        except OSError as e:
            logger.warning(f"Could not read backup {backup_file}: {e}")
            return None

    def apply_retention(self) -> None:
        """
        Delete all but the newest retention_count backups (0 keeps all).
        """
        if self.retention_count == 0:
            return

        for backup in self.list_backups()[self.retention_count :]:
            with contextlib.suppress(OSError):
                backup.unlink()
                logger.debug(f"Removed old backup {backup}")

    def __repr__(self) -> str:
        return (
            f"BackupManager(backup_dir={str(self.backup_dir)!r}, "
            f"retention_count={self.retention_count})"
        )
