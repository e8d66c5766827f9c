"""
Where the address book and the per-user configuration directory live.
"""

from __future__ import annotations

import os
from pathlib import Path

# Name of the per-user configuration directory (under $HOME)
CONFIG_DIR_NAME = ".gcontact-alpine"

# Name of the Alpine address book file (under $HOME)
ADDRESSBOOK_FILE_NAME = ".addressbook"

# Environment variable for overriding config directory
CONFIG_DIR_ENV_VAR = "GCONTACT_ALPINE_CONFIG_DIR"


def home_dir() -> Path:
    """
    Return the current user's home directory.

    Raises:
        RuntimeError: If the home directory cannot be determined
    """
    try:
        return Path.home()
    except KeyError as e:
        # pwd lookup failure on some platforms surfaces as KeyError
        raise RuntimeError(f"Could not determine home directory: {e}") from e


def resolve_config_dir(
    config_dir: Path | str | None = None, home: Path | None = None
) -> Path:
    """
    Absolute configuration directory.

    An explicit config_dir wins, then $GCONTACT_ALPINE_CONFIG_DIR, then
    ~/.gcontact-alpine under home (looked up when None).

    Raises:
        RuntimeError: If the default is needed and the home directory is unknown
    """
    if config_dir is not None:
        return Path(config_dir).expanduser().resolve()

    env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    base = home if home is not None else home_dir()
    return (base / CONFIG_DIR_NAME).expanduser().resolve()


def default_addressbook_path(home: Path | None = None) -> Path:
    """Return the default Alpine address book location (~/.addressbook)."""
    base = home if home is not None else home_dir()
    return base / ADDRESSBOOK_FILE_NAME
