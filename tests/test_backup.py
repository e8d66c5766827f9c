"""
Unit tests for the backup module.

Tests the BackupManager class for creating, listing, loading, and pruning
address book backups.
"""

import stat
from datetime import datetime
from unittest.mock import patch

from gcontact_alpine.backup.manager import BackupManager

DATA = b"jdoe\tJohn Doe\tjohn@example.com\n"


class TestBackupManagerInitialization:
    """Tests for BackupManager initialization."""

    def test_defaults(self, tmp_path):
        """Test creating BackupManager with a simple path."""
        bm = BackupManager(tmp_path / "backups")
        assert bm.backup_dir == tmp_path / "backups"
        assert bm.retention_count == 10

    def test_directory_created_lazily(self, tmp_path):
        """Test the directory is not created until a backup is written."""
        BackupManager(tmp_path / "backups")
        assert not (tmp_path / "backups").exists()


class TestCreateBackup:
    """Tests for create_backup."""

    def test_writes_exact_bytes(self, tmp_path):
        """Test the backup holds the given content."""
        bm = BackupManager(tmp_path / "backups")
        path = bm.create_backup(DATA, timestamp=datetime(2024, 1, 15, 10, 30, 0))

        assert path.name == "addressbook_20240115_103000.bak"
        assert path.read_bytes() == DATA

    def test_private_permissions(self, tmp_path):
        """Test backups are readable by the owner only."""
        path = BackupManager(tmp_path).create_backup(DATA)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_same_second_backups_do_not_collide(self, tmp_path):
        """Test a second backup in the same second gets a counter."""
        bm = BackupManager(tmp_path)
        stamp = datetime(2024, 1, 15, 10, 30, 0)
        first = bm.create_backup(b"one", timestamp=stamp)
        second = bm.create_backup(b"two", timestamp=stamp)

        assert first != second
        assert second.name == "addressbook_20240115_103000_1.bak"
        assert first.read_bytes() == b"one"

    def test_failure_returns_none(self, tmp_path):
        """Test a failed backup is reported as None, not raised."""
        bm = BackupManager(tmp_path)
        with patch("pathlib.Path.write_bytes", side_effect=OSError("read-only")):
            assert bm.create_backup(DATA) is None


class TestListAndLoad:
    """Tests for list_backups and load_backup."""

    def test_newest_first(self, tmp_path):
        """Test backups are listed newest first."""
        bm = BackupManager(tmp_path, retention_count=0)
        for day in (1, 3, 2):
            bm.create_backup(DATA, timestamp=datetime(2024, 1, day))

        names = [p.name for p in bm.list_backups()]
        assert names == [
            "addressbook_20240103_000000.bak",
            "addressbook_20240102_000000.bak",
            "addressbook_20240101_000000.bak",
        ]

    def test_ignores_other_files(self, tmp_path):
        """Test unrelated files are not listed."""
        (tmp_path / "notes.txt").write_text("x")
        assert BackupManager(tmp_path).list_backups() == []

    def test_missing_directory(self, tmp_path):
        """Test a missing directory lists nothing."""
        assert BackupManager(tmp_path / "missing").list_backups() == []

    def test_load(self, tmp_path):
        """Test loading returns the stored bytes."""
        bm = BackupManager(tmp_path)
        path = bm.create_backup(DATA)
        assert bm.load_backup(path) == DATA

    def test_load_missing(self, tmp_path):
        """Test loading a missing backup returns None."""
        assert BackupManager(tmp_path).load_backup(tmp_path / "nope.bak") is None


class TestRetention:
    """Tests for the retention policy."""

    def test_keeps_newest(self, tmp_path):
        """Test only retention_count backups remain."""
        bm = BackupManager(tmp_path, retention_count=2)
        for day in range(1, 6):
            bm.create_backup(DATA, timestamp=datetime(2024, 1, day))

        names = [p.name for p in bm.list_backups()]
        assert names == [
            "addressbook_20240105_000000.bak",
            "addressbook_20240104_000000.bak",
        ]

    def test_zero_keeps_all(self, tmp_path):
        """Test retention_count=0 disables pruning."""
        bm = BackupManager(tmp_path, retention_count=0)
        for day in range(1, 13):
            bm.create_backup(DATA, timestamp=datetime(2024, 1, day))
        assert len(bm.list_backups()) == 12
