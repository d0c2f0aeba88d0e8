from __future__ import annotations

import time
from collections.abc import Callable

from slugify import slugify as _slugify

"""Slug generation.

``slugify`` derives a URL-safe identifier; ``unique_slug`` checks a caller
supplied ``exists`` predicate and appends ``-1``, ``-2``, ... until the
candidate is unused. The predicate decides the uniqueness scope (catalog,
taxonomy, subcategories of one parent).
"""

__all__ = [
    "base_slug",
    "slugify",
    "timestamp_token",
    "unique_slug",
]

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def slugify(text: str | None) -> str:
    """Lowercase, transliterate to ASCII (python-slugify), strip special characters.

    >>> slugify("  Global EV Market (2024–2030) ")
    'global-ev-market-2024-2030'
    """
    if not text:
        return ""
    return _slugify(str(text), lowercase=True, replacements=[["&", " and "]])


def timestamp_token(now: float | None = None) -> str:
    """Base-36 millisecond timestamp, used when a title yields an empty slug."""
    ms = int((time.time() if now is None else now) * 1000)
    if ms <= 0:
        return "0"
    digits = []
    while ms:
        ms, rem = divmod(ms, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def unique_slug(
    title: str | None,
    desired_slug: str | None = None,
    exists: Callable[[str], bool] | None = None,
) -> str:
    """Return a slug for ``title`` (or ``desired_slug``) that ``exists`` rejects.

    Args:
        title: Source text when no explicit slug is supplied
        desired_slug: Explicit slug column value; cleaned the same way
        exists: Predicate reporting whether a candidate is already taken

    Returns:
        ``base``, or ``base-N`` for the smallest N >= 1 not taken
    """
    base = slugify(desired_slug) or slugify(title) or timestamp_token()
    if exists is None:
        return base
    candidate = base
    suffix = 0
    while exists(candidate):
        suffix += 1
        candidate = f"{base}-{suffix}"
    return candidate


def base_slug(title: str | None, desired_slug: str | None = None) -> str:
    """The un-suffixed slug a row asks for ("" when nothing usable)."""
    return slugify(desired_slug) or slugify(title)
