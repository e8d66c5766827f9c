"""
Atomic file access for the Alpine address book.

The file is always read in full before anything is changed, and written by
creating a temporary file in the same directory and renaming it over the
target. A failed write never leaves a partial address book or a stray
temporary file behind.
"""

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Union

from gcontact_alpine.errors import AddressBookReadError, FlushError, InitError, WriteError

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".addressbook."
TEMP_SUFFIX = ".tmp"


class AddressBookFile:
    """
    The on-disk address book.

    Attributes:
        path: Location of the address book file

    Usage:
        book = AddressBookFile(Path.home() / ".addressbook")
        if book.exists():
            data = book.read()
        book.write(new_data)
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        """Check whether the address book file exists."""
        return self.path.is_file()

    def read(self) -> bytes:
        """
        Read the whole address book.

        Raises:
            AddressBookReadError: If the file cannot be read
        """
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise AddressBookReadError(f"{self.path}: {e}") from e

        logger.debug(f"Read {len(data)} bytes from {self.path}")
        return data

    def write(self, data: bytes) -> None:
        """
        Replace the address book atomically.

        Raises:
            InitError: If the temporary output file cannot be created
            WriteError: If writing the records fails
            FlushError: If flushing, closing or renaming the output fails
        """
        directory = self.path.parent
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=str(directory)
            )
        except OSError as e:
            raise InitError(f"{directory}: {e}") from e

        tmp_path = Path(tmp_name)
        committed = False
        try:
            try:
                with os.fdopen(fd, "wb") as f:
                    self._write_and_sync(f, data)
            except OSError as e:
                raise FlushError(f"{tmp_path}: {e}") from e

            self._copy_mode(tmp_path)

            try:
                os.replace(tmp_path, self.path)
            except OSError as e:
                raise FlushError(f"{self.path}: {e}") from e
            committed = True
        finally:
            if not committed:
                tmp_path.unlink(missing_ok=True)

        logger.info(f"Wrote {len(data)} bytes to {self.path}")

    @staticmethod
    def _write_and_sync(f, data: bytes) -> None:
        try:
            f.write(data)
        except OSError as e:
            raise WriteError(str(e)) from e

        try:
            f.flush()
            os.fsync(f.fileno())
        except OSError as e:
            raise FlushError(str(e)) from e

    def _copy_mode(self, tmp_path: Path) -> None:
        """Give the new file the permissions of the file it replaces."""
        try:
            mode = stat.S_IMODE(self.path.stat().st_mode)
        except FileNotFoundError:
            return
        except OSError as e:
            logger.debug(f"Could not stat {self.path}: {e}")
            return

        try:
            os.chmod(tmp_path, mode)
        except OSError as e:
            logger.debug(f"Could not set permissions on {tmp_path}: {e}")

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return f"AddressBookFile({str(self.path)!r})"
