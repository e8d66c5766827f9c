"""
gcontact_alpine.i18n - Localized user-facing messages.
"""

from gcontact_alpine.i18n.messages import (
    DEFAULT_LOCALE,
    MessageCatalog,
    MessageId,
    get_locale_from_env,
)

__all__ = ["DEFAULT_LOCALE", "MessageCatalog", "MessageId", "get_locale_from_env"]
