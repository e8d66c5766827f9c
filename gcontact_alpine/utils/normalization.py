"""
Keys for pairing address book entries with Google contacts.

Entries that lost their resource name are matched by name and email, so
both sides must reduce to the same key despite case, accents, punctuation
and "Last, First" ordering.
"""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")
_PUNCTUATION = re.compile(r"[^\w\s]|_")
_PUNCTUATION_KEEP_EMAIL = re.compile(r"[^\w@.\s]|_")

# Latin letters and their extensions; accents are folded only on these
_LATIN_LIMIT = 0x0250


def _fold_latin_accents(value: str) -> str:
    """
    Drop accents from Latin letters.

    Combining marks on other scripts stay: the Japanese voiced mark turns
    カ into ガ, a different sound, not an accent.
    """
    out: list[str] = []
    base = ""
    for char in unicodedata.normalize("NFKD", value):
        if unicodedata.combining(char):
            if base and ord(base) < _LATIN_LIMIT:
                continue
        else:
            base = char
        out.append(char)
    return unicodedata.normalize("NFC", "".join(out))


def normalize_string(
    value: str,
    sort_words: bool = False,
    allow_email_chars: bool = False,
    remove_spaces: bool = True,
    strip_punctuation: bool = True,
) -> str:
    """
    Reduce a name to a comparison key.

    Args:
        value: Text to normalize
        sort_words: Sort the words so "Doe, John" and "John Doe" match;
            sorted words are always separated by one space
        allow_email_chars: Keep "@" and "." when stripping punctuation
        remove_spaces: Drop spaces instead of collapsing them to one
        strip_punctuation: Remove everything but letters, digits and spaces

    Returns:
        Case-folded key; "" for empty input
    """
    if not value:
        return ""

    key = _fold_latin_accents(value).casefold()

    if strip_punctuation:
        pattern = _PUNCTUATION_KEEP_EMAIL if allow_email_chars else _PUNCTUATION
        key = pattern.sub("", key)

    words = _WHITESPACE.split(key.strip())
    if sort_words:
        return " ".join(sorted(words))
    return ("" if remove_spaces else " ").join(words)


def normalize_email(value: str) -> str:
    """Trimmed, case-folded address."""
    return value.strip().casefold() if value else ""
