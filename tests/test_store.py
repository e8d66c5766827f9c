"""
Tests for atomic address book file access.

A failed write must leave the original file byte-identical and no
temporary file behind.
"""

import os
import stat
from unittest.mock import patch

import pytest

from gcontact_alpine.addressbook.store import TEMP_PREFIX, AddressBookFile
from gcontact_alpine.errors import (
    AddressBookReadError,
    FlushError,
    InitError,
    WriteError,
)

ORIGINAL = b"old\tOld Entry\told@example.com\n"
NEW = b"new\tNew Entry\tnew@example.com\n"


@pytest.fixture
def book(tmp_path):
    """Address book file with existing content."""
    path = tmp_path / ".addressbook"
    path.write_bytes(ORIGINAL)
    return AddressBookFile(path)


def leftover_temp_files(directory):
    return [p for p in directory.iterdir() if p.name.startswith(TEMP_PREFIX)]


class TestRead:
    """Tests for reading."""

    def test_read(self, book):
        """Test the whole file is returned."""
        assert book.read() == ORIGINAL

    def test_read_missing(self, tmp_path):
        """Test a missing file raises AddressBookReadError."""
        with pytest.raises(AddressBookReadError):
            AddressBookFile(tmp_path / "missing").read()

    def test_exists(self, book, tmp_path):
        """Test exists reflects the file system."""
        assert book.exists()
        assert not AddressBookFile(tmp_path / "missing").exists()


class TestWrite:
    """Tests for atomic writing."""

    def test_write_new_file(self, tmp_path):
        """Test a new file is created."""
        target = AddressBookFile(tmp_path / ".addressbook")
        target.write(NEW)
        assert target.read() == NEW
        assert leftover_temp_files(tmp_path) == []

    def test_replace_existing(self, book, tmp_path):
        """Test an existing file is replaced."""
        book.write(NEW)
        assert book.read() == NEW
        assert leftover_temp_files(tmp_path) == []

    def test_keeps_permissions(self, book):
        """Test the replacement gets the old file's mode."""
        os.chmod(book.path, 0o600)
        book.write(NEW)
        assert stat.S_IMODE(book.path.stat().st_mode) == 0o600

    def test_missing_directory(self, tmp_path):
        """Test an uncreatable output raises InitError."""
        target = AddressBookFile(tmp_path / "missing" / ".addressbook")
        with pytest.raises(InitError):
            target.write(NEW)

    def test_rename_failure_keeps_original(self, book, tmp_path):
        """Test a failed rename leaves the original and no temp file."""
        with patch(
            "gcontact_alpine.addressbook.store.os.replace",
            side_effect=OSError("disk full"),
        ):
            with pytest.raises(FlushError):
                book.write(NEW)

        assert book.read() == ORIGINAL
        assert leftover_temp_files(tmp_path) == []

    def test_fsync_failure_keeps_original(self, book, tmp_path):
        """Test a failed flush leaves the original and no temp file."""
        with patch(
            "gcontact_alpine.addressbook.store.os.fsync",
            side_effect=OSError("I/O error"),
        ):
            with pytest.raises(FlushError):
                book.write(NEW)

        assert book.read() == ORIGINAL
        assert leftover_temp_files(tmp_path) == []

    def test_write_failure_keeps_original(self, book, tmp_path):
        """Test a failed write leaves the original and no temp file."""
        with patch.object(
            AddressBookFile,
            "_write_and_sync",
            side_effect=WriteError("no space left on device"),
        ):
            with pytest.raises(WriteError):
                book.write(NEW)

        assert book.read() == ORIGINAL
        assert leftover_temp_files(tmp_path) == []
