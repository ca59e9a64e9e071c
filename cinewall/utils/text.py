"""
Text helpers: subject keys and URL slugs.
"""

import re

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\-]+")
_DASHES = re.compile(r"-{2,}")


def subject_key(name: str, case_insensitive: bool = True) -> str:
    """
    Identity key used to group scans and to look a subject up.

    Case-insensitive keys also collapse inner whitespace; the
    case-sensitive form is the exact trimmed name.
    """
    if not case_insensitive:
        return (name or "").strip()
    return _WHITESPACE.sub(" ", (name or "").strip()).casefold()


def slugify(text: str) -> str:
    """'The Dark Knight' -> 'the-dark-knight'."""
    slug = str(text).lower().strip()
    slug = _WHITESPACE.sub("-", slug)
    slug = _NON_WORD.sub("", slug)
    return _DASHES.sub("-", slug)


def unslugify(slug: str) -> str:
    """Rough inverse of slugify: 'the-dark-knight' -> 'The Dark Knight'."""
    return " ".join(word[:1].upper() + word[1:] for word in slug.split("-") if word)
