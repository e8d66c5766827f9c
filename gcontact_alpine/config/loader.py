"""
Reading and checking the YAML configuration file.

Every option can also be given on the command line; the file only supplies
defaults, so a missing or empty file is an empty configuration.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, NamedTuple, Optional

import yaml

from gcontact_alpine.utils.paths import resolve_config_dir

DEFAULT_CONFIG_FILE = "config.yaml"

CONFLICT_MODES = ("per_contact", "global")
RESOLUTIONS = ("remote", "local")

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or is invalid."""

    pass


# A check returns an error message, or None when the value is acceptable
Check = Callable[[Any], Optional[str]]


class Option(NamedTuple):
    types: tuple[type, ...]
    check: Optional[Check] = None


def _one_of(choices: tuple[str, ...]) -> Check:
    def check(value: Any) -> Optional[str]:
        if value in choices:
            return None
        return f"'{value}' is not valid. Must be one of: {', '.join(choices)}"

    return check


def _at_least_one(value: Any) -> Optional[str]:
    return None if value >= 1 else f"must be >= 1, got {value}"


def _page_size(value: Any) -> Optional[str]:
    if value > 1000:
        return f"must be <= 1000, got {value}"
    return _at_least_one(value)


def _positive(value: Any) -> Optional[str]:
    return None if value > 0 else f"must be > 0, got {value}"


NUMBER = (int, float)

OPTIONS: dict[str, Option] = {
    "verbose": Option((bool,)),
    "locale": Option((str,)),
    "addressbook_path": Option((str,)),
    "conflict_mode": Option((str,), _one_of(CONFLICT_MODES)),
    "default_resolution": Option((str,), _one_of(RESOLUTIONS)),
    "push_local_changes": Option((bool,)),
    "api_page_size": Option((int,), _page_size),
    "api_max_retries": Option((int,), _at_least_one),
    "api_initial_retry_delay": Option(NUMBER, _positive),
    "api_max_retry_delay": Option(NUMBER, _positive),
    "auth_timeout": Option((int,), _at_least_one),
    "log_dir": Option((str,)),
    "log_retention_count": Option((int,), _at_least_one),
    "backup_enabled": Option((bool,)),
    "backup_dir": Option((str,)),
    "backup_retention_count": Option((int,), _at_least_one),
}

# Accepted keys and their YAML types
VALID_KEYS: dict[str, tuple[type, ...]] = {key: opt.types for key, opt in OPTIONS.items()}


def _type_matches(value: Any, types: tuple[type, ...]) -> bool:
    # YAML booleans are ints to isinstance; only bool options take them
    if isinstance(value, bool):
        return bool in types
    return isinstance(value, types)


class ConfigLoader:
    """
    Loads config.yaml from the configuration directory.

    Usage:
        loader = ConfigLoader(config_dir=settings_dir)
        config = loader.load_and_validate()
    """

    def __init__(self, config_dir: Path | None = None, config_file: str = DEFAULT_CONFIG_FILE):
        self.config_dir = resolve_config_dir(config_dir)
        self.config_file = config_file

    @property
    def config_path(self) -> Path:
        return self.config_dir / self.config_file

    def load(self) -> dict[str, Any]:
        """Load config.yaml from the configuration directory."""
        return self.load_from_file(self.config_path)

    def load_from_file(self, path: Path | str) -> dict[str, Any]:
        """
        Load a configuration file.

        Args:
            path: YAML file to read

        Returns:
            The file's mapping, or {} when the file is missing or empty

        Raises:
            ConfigError: If the file cannot be read, is not valid YAML, or
                does not hold a mapping
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"No configuration file at {path}")
            return {}

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}") from e

        try:
            config = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration file: {e}") from e

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration file must contain a YAML dictionary, "
                f"got {type(config).__name__}"
            )

        logger.debug(f"Loaded {len(config)} options from {path}")
        return config

    def validate(self, config: dict[str, Any]) -> None:
        """
        Check option types and values. Unknown keys only log a warning.

        Raises:
            ConfigError: On the first invalid option
        """
        if not isinstance(config, dict):
            raise ConfigError(f"Configuration must be a dictionary, got {type(config).__name__}")

        for key, value in config.items():
            option = OPTIONS.get(key)
            if option is None:
                logger.warning(f"Ignoring unknown configuration key: {key}")
                continue

            if not _type_matches(value, option.types):
                expected = " or ".join(t.__name__ for t in option.types)
                raise ConfigError(
                    f"Invalid type for '{key}': expected {expected}, got {type(value).__name__}"
                )

            problem = option.check(value) if option.check else None
            if problem:
                raise ConfigError(f"Invalid {key}: {problem}")

    def load_and_validate(self) -> dict[str, Any]:
        """
        Load config.yaml and validate it.

        Raises:
            ConfigError: If the file is unreadable or invalid
        """
        config = self.load()
        self.validate(config)
        return config
