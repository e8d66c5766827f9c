"""
The commented config.yaml template written by the init-config command.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def generate_default_config() -> str:
    """Template listing every option, all commented out."""
    return """# gcontact-alpine configuration
# =============================
#
# Default options for gcontact-alpine. Command line options always
# override these values.
#
# Save as ~/.gcontact-alpine/config.yaml and uncomment what you need.

# General Options
# ---------------

# Enable verbose output with detailed logging
# Default: false
# verbose: true

# Message language (en-US, ja-JP). Defaults to $LANG.
# locale: ja-JP

# Alpine address book location
# Default: ~/.addressbook
# addressbook_path: ~/.addressbook


# Sync Behavior
# -------------

# How conflicts are presented when a contact differs between Google
# Contacts and the address book:
#   - per_contact: ask for every conflicting contact
#   - global: ask once and apply the answer to every conflict
# Default: per_contact
# conflict_mode: per_contact

# Resolve conflicts without asking:
#   - remote: keep the Google Contacts version
#   - local: keep the address book version
# Default: unset (ask)
# default_resolution: remote

# Push address book changes back to Google Contacts: conflicts resolved in
# favour of the address book update Google, and entries that only exist in
# the address book are created there.
# Default: false
# push_local_changes: false


# API Options
# -----------

# Contacts requested per page (1-1000)
# api_page_size: 1000

# Retry attempts and backoff (seconds) for rate limits and server errors
# api_max_retries: 5
# api_initial_retry_delay: 1.0
# api_max_retry_delay: 60.0

# Timeout in seconds for authentication requests
# auth_timeout: 10


# Logging
# -------

# Directory for daily log files
# Default: ~/.gcontact-alpine/logs
# log_dir: ~/.gcontact-alpine/logs

# Number of log files to keep
# log_retention_count: 10


# Backups
# -------

# Copy the address book before a sync rewrites it
# backup_enabled: true
# backup_dir: ~/.gcontact-alpine/backups
# backup_retention_count: 10
"""


def save_config_file(
    config_path: Path, overwrite: bool = False
) -> tuple[bool, str | None]:
    """
    Write the template to config_path with mode 0600.

    Args:
        config_path: Destination file
        overwrite: Replace an existing file

    Returns:
        (True, None) on success, otherwise (False, message)
    """
    try:
        config_path = config_path.expanduser().resolve()

        if config_path.exists() and not overwrite:
            return (
                False,
                f"Configuration file already exists: {config_path}\n"
                "Use --force to overwrite.",
            )

        config_path.parent.mkdir(parents=True, mode=0o700, exist_ok=True)
        config_path.write_text(generate_default_config(), encoding="utf-8")
        config_path.chmod(0o600)

        logger.info(f"Created configuration file: {config_path}")
        return (True, None)

    except OSError as e:
        error_msg = f"Failed to create configuration file: {e}"
        logger.error(error_msg)
        return (False, error_msg)
