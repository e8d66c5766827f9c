"""
Resolved runtime settings.

Merges the configuration file with command line overrides and resolves
every path the program touches, so lower layers never consult the
environment or the home directory themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from gcontact_alpine.api.people_api import (
    DEFAULT_INITIAL_RETRY_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_PAGE_SIZE,
)
from gcontact_alpine.auth.google_auth import (
    CLIENT_SECRET_FILE_NAME,
    DEFAULT_AUTH_TIMEOUT,
    TOKEN_CACHE_FILE_NAME,
)
from gcontact_alpine.errors import HomeNotFoundError
from gcontact_alpine.sync.conflict import Resolution
from gcontact_alpine.sync.engine import CONFLICT_MODE_PER_CONTACT
from gcontact_alpine.utils.paths import (
    ADDRESSBOOK_FILE_NAME,
    home_dir,
    resolve_config_dir,
)


@dataclass
class Settings:
    """
    Effective settings for one run.

    Attributes:
        home: User's home directory
        config_dir: Directory holding config, secrets, logs and backups
        addressbook_path: Alpine address book file
        client_secret_path: OAuth client secret file
        token_path: Cached OAuth token
        locale: Message catalog locale, None to use $LANG
        conflict_mode: "per_contact" or "global"
        default_resolution: Resolution applied without prompting, if any
        push_local_changes: Push address book edits back to Google
        log_dir: Directory for log files
        backup_dir: Directory for address book backups
    """

    home: Path
    config_dir: Path
    addressbook_path: Path
    client_secret_path: Path
    token_path: Path
    locale: Optional[str] = None
    verbose: bool = False
    conflict_mode: str = CONFLICT_MODE_PER_CONTACT
    default_resolution: Optional[Resolution] = None
    push_local_changes: bool = False
    api_page_size: int = DEFAULT_PAGE_SIZE
    api_max_retries: int = DEFAULT_MAX_RETRIES
    api_initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY
    api_max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY
    auth_timeout: int = DEFAULT_AUTH_TIMEOUT
    log_dir: Optional[Path] = None
    log_retention_count: int = 10
    backup_enabled: bool = True
    backup_dir: Optional[Path] = None
    backup_retention_count: int = 10

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        home: Path | None = None,
        config_dir: Path | None = None,
        **overrides: Any,
    ) -> "Settings":
        """
        Build settings from a validated configuration dictionary.

        Args:
            config: Values from the configuration file
            home: Home directory; looked up when None
            config_dir: Configuration directory; resolved when None
            **overrides: Command line values; None means "not given"

        Returns:
            Settings instance

        Raises:
            HomeNotFoundError: If the home directory cannot be determined
        """
        if home is None:
            try:
                home = home_dir()
            except RuntimeError as e:
                raise HomeNotFoundError(str(e)) from e

        merged = dict(config)
        merged.update({k: v for k, v in overrides.items() if v is not None})

        resolved_config_dir = resolve_config_dir(config_dir, home=home)

        def path_option(key: str, default: Path) -> Path:
            value = merged.get(key)
            return Path(value).expanduser() if value else default

        resolution = merged.get("default_resolution")
        if isinstance(resolution, str):
            resolution = Resolution(resolution)

        return cls(
            home=home,
            config_dir=resolved_config_dir,
            addressbook_path=path_option(
                "addressbook_path", home / ADDRESSBOOK_FILE_NAME
            ),
            client_secret_path=resolved_config_dir / CLIENT_SECRET_FILE_NAME,
            token_path=resolved_config_dir / TOKEN_CACHE_FILE_NAME,
            locale=merged.get("locale"),
            verbose=bool(merged.get("verbose", False)),
            conflict_mode=merged.get("conflict_mode", CONFLICT_MODE_PER_CONTACT),
            default_resolution=resolution,
            push_local_changes=bool(merged.get("push_local_changes", False)),
            api_page_size=merged.get("api_page_size", DEFAULT_PAGE_SIZE),
            api_max_retries=merged.get("api_max_retries", DEFAULT_MAX_RETRIES),
            api_initial_retry_delay=merged.get(
                "api_initial_retry_delay", DEFAULT_INITIAL_RETRY_DELAY
            ),
            api_max_retry_delay=merged.get(
                "api_max_retry_delay", DEFAULT_MAX_RETRY_DELAY
            ),
            auth_timeout=merged.get("auth_timeout", DEFAULT_AUTH_TIMEOUT),
            log_dir=path_option("log_dir", resolved_config_dir / "logs"),
            log_retention_count=merged.get("log_retention_count", 10),
            backup_enabled=bool(merged.get("backup_enabled", True)),
            backup_dir=path_option("backup_dir", resolved_config_dir / "backups"),
            backup_retention_count=merged.get("backup_retention_count", 10),
        )

    def api_options(self) -> dict[str, float]:
        """Retry settings passed to the People API client."""
        return {
            "max_retries": self.api_max_retries,
            "initial_retry_delay": self.api_initial_retry_delay,
            "max_retry_delay": self.api_max_retry_delay,
        }
