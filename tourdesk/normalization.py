"""Name normalization and search keyword indexing for vi/en catalog names.

Two names that differ only in case or Vietnamese diacritics share one
comparison key, which is what the uniqueness checks compare.
"""
from __future__ import annotations

import unicodedata
from typing import Iterable

# Letters that carry no combining mark under NFD and must be folded by hand
_FOLD_TABLE = str.maketrans({"đ": "d", "Đ": "D"})


def remove_diacritics(text: str) -> str:
    """Strip Vietnamese (and other Latin) diacritical marks.

    Args:
        text: Input text, any Unicode normalization form

    Returns:
        Text with combining marks removed and đ/Đ folded to d/D
    """
    text = unicodedata.normalize("NFD", text)
    text = "".join(c for c in text if unicodedata.category(c) != "Mn")
    return unicodedata.normalize("NFC", text).translate(_FOLD_TABLE)


def normalize(name: str) -> str:
    """Canonical comparison key: lowercase, trimmed, without diacritics.

    >>> normalize("  Đà Nẵng ")
    'da nang'
    """
    return remove_diacritics(name.lower().strip())


def generate_keywords(name: str) -> set[str]:
    """Build the search tokens for a display name.

    Tokens:
    1. The whole normalized name with whitespace removed
    2. Every word longer than one character
    3. The initials of all words, when there is more than one word
    """
    normalized = normalize(name)
    words = normalized.split()
    keywords: set[str] = set()

    full = "".join(words)
    if full:
        keywords.add(full)

    keywords.update(word for word in words if len(word) > 1)

    if len(words) > 1:
        keywords.add("".join(word[0] for word in words))

    return keywords


def keyword_list(name: str) -> list[str]:
    """Keywords as a sorted list, the shape persisted by both backends."""
    return sorted(generate_keywords(name))


def matches_search(name: str, keywords: Iterable[str], search: str | None) -> bool:
    """Check whether a record matches a free-text search.

    A blank search matches everything. Otherwise the normalized query must be
    a substring of one of the stored keywords or of the normalized name.
    """
    if not search or not search.strip():
        return True
    needle = normalize(search)
    if needle in normalize(name):
        return True
    return any(needle in keyword for keyword in keywords)
