"""
User-facing message catalog.

Every user-visible outcome is identified by a stable message id. The text
for an id is looked up in a per-locale YAML catalog shipped in
``gcontact_alpine/i18n/locales``, so presentation can be swapped by locale
without touching the sync core.

Usage::

    from gcontact_alpine.i18n.messages import MessageCatalog, MessageId

    catalog = MessageCatalog.load("ja-JP")
    catalog.get(MessageId.EXPORT_COMPLETE)

    # Locale from $LANG (ja_JP.UTF-8 -> ja-JP, C -> en-US)
    catalog = MessageCatalog.load(get_locale_from_env())
"""

from __future__ import annotations

import logging
import os
from enum import Enum, unique
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en-US"

LOCALES_DIR = Path(__file__).resolve().parent / "locales"


@unique
class MessageId(str, Enum):
    """Stable identifiers for every user-facing message."""

    EXPORT_COMPLETE = "export-complete"
    FLUSH_ERROR = "flush-error"
    WRITE_ERROR = "write-error"
    INIT_ERROR = "init-error"
    OP_CANCEL = "op-cancel"
    OVERWRITE_OR_NOT = "overwrite-or-not"
    HOME_NOTFOUND = "home-notfound"
    FAIL_CONTACT = "fail-contact"
    FIELD_ERROR = "field-error"
    AUTH_ERROR = "auth-error"
    # Catalog key keeps its historical spelling
    INPUT_ERROR = "input-eror"
    NO_OPTION = "no-option"
    FAIL_GOOGLE_CONTACTS = "fail-google-contacts"
    FAIL_ADDRESSBOOK = "fail-addressbook"
    UPDATE_MODE = "update-mode"
    UPDATE_DONE = "update-done"
    UPDATE_ERROR = "update-error"
    UPDATE_SUCCESS_GOOGLE_CONTACTS = "update-success-google-contacts"
    UPDATE_FAIL_GOOGLE_CONTACTS = "update-fail-google-contacts"
    SELECT_SOURCE = "select-source"
    DRY_RUN_DONE = "dry-run-done"
    AUTH_ALREADY = "auth-already"
    AUTH_SECRET_MISSING = "auth-secret-missing"
    AUTH_SETUP = "auth-setup"
    AUTH_SUCCESS = "auth-success"
    AUTH_SUCCESS_ACCOUNT = "auth-success-account"
    AUTH_CLEAR_CONFIRM = "auth-clear-confirm"
    AUTH_CLEARED = "auth-cleared"
    AUTH_NOT_STORED = "auth-not-stored"
    RESTORE_NO_BACKUPS = "restore-no-backups"
    RESTORE_UNREADABLE = "restore-unreadable"
    RESTORE_CONFIRM = "restore-confirm"
    RESTORE_DONE = "restore-done"


def get_locale_from_env(environ: dict[str, str] | None = None) -> str:
    """
    Derive a locale code from the LANG environment variable.

    ``ja_JP.UTF-8`` becomes ``ja-JP``. An unset, empty or ``C`` value, or one
    that does not look like ``language-REGION``, gives the default locale.
    """
    env = os.environ if environ is None else environ
    lang = env.get("LANG", "")
    if not lang or lang in ("C", "POSIX"):
        return DEFAULT_LOCALE

    code = lang.split(".")[0].split("@")[0].replace("_", "-")
    if is_valid_locale_format(code):
        return code
    return DEFAULT_LOCALE


def is_valid_locale_format(code: str) -> bool:
    """Check that a locale code has two alphanumeric parts (e.g. en-US)."""
    parts = code.split("-")
    return len(parts) == 2 and all(part and part.isalnum() for part in parts)


def available_locales() -> list[str]:
    """List the locales that have a catalog file."""
    return sorted(p.stem for p in LOCALES_DIR.glob("*.yaml"))


def _read_catalog(path: Path) -> dict[str, str]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Message catalog must be a YAML dictionary: {path}")

    return {str(key): str(value) for key, value in data.items()}


class MessageCatalog:
    """
    Message lookup for one locale with fallback to the default locale.

    Attributes:
        locale: Locale the catalog was requested for
        messages: Messages of the requested locale
        fallback: Messages of the default locale
    """

    def __init__(
        self,
        locale: str,
        messages: dict[str, str],
        fallback: dict[str, str] | None = None,
    ):
        self.locale = locale
        self.messages = messages
        self.fallback = fallback if fallback is not None else {}

    @classmethod
    def load(
        cls, locale: str | None = None, locales_dir: Path = LOCALES_DIR
    ) -> "MessageCatalog":
        """
        Load the catalog for a locale.

        Unknown locales fall back to the default locale. A language-only match
        (``ja-XX`` -> ``ja-JP``) is tried before giving up.

        Args:
            locale: Locale code such as ``en-US``. Defaults to the environment.
            locales_dir: Directory holding ``<locale>.yaml`` files

        Returns:
            MessageCatalog instance
        """
        requested = locale or get_locale_from_env()
        fallback = _read_catalog(locales_dir / f"{DEFAULT_LOCALE}.yaml")

        path = locales_dir / f"{requested}.yaml"
        if not path.exists():
            language = requested.split("-")[0].lower()
            candidates = sorted(locales_dir.glob(f"{language}-*.yaml"))
            path = candidates[0] if candidates else locales_dir / f"{DEFAULT_LOCALE}.yaml"
            logger.debug(f"No catalog for {requested}, using {path.stem}")

        try:
            messages = _read_catalog(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning(f"Could not load message catalog {path}: {e}")
            messages = fallback

        return cls(requested, messages, fallback)

    def get(self, message_id: MessageId | str, **kwargs: Any) -> str:
        """
        Return the localized text for a message id.

        Args:
            message_id: Message identifier
            **kwargs: Values substituted into ``{placeholders}``

        Returns:
            Localized text, the default-locale text when the locale lacks the
            id, or the id itself when no catalog knows it
        """
        key = message_id.value if isinstance(message_id, MessageId) else message_id
        text = self.messages.get(key) or self.fallback.get(key)
        if text is None:
            logger.debug(f"Missing message id: {key}")
            return key

        if kwargs:
            try:
                return text.format(**kwargs)
            except (KeyError, IndexError, ValueError):
                logger.debug(f"Could not format message {key} with {kwargs}")
        return text

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return f"MessageCatalog(locale={self.locale!r}, messages={len(self.messages)})"
