"""Slug generation utilities for element titles.

Examples:
    >>> generate_slug("Layer Cakes")
    'layer-cakes'

    >>> generate_slug("Crème Brûlée")
    'creme-brulee'
"""

import re
import unicodedata
from typing import Callable


def generate_slug(name: str) -> str:
    """
    Generate URL-friendly slug from a title.

    Accented characters are transliterated to ASCII, everything else that is
    not a letter, digit, space or hyphen is dropped.

    Args:
        name: Display name to slugify

    Returns:
        Lowercase slug with hyphens (e.g., "All-Purpose Flour" -> "all-purpose-flour")
    """
    if not name:
        return ""

    normalized = unicodedata.normalize("NFKD", name)
    slug = normalized.encode("ascii", "ignore").decode("ascii")
    slug = slug.strip().lower()
    # Remove special characters except spaces and hyphens
    slug = re.sub(r"[^\w\s-]", "", slug)
    # Replace spaces and underscores with hyphens
    slug = re.sub(r"[\s_]+", "-", slug)
    # Collapse multiple hyphens
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def make_unique(base: str, is_taken: Callable[[str], bool]) -> str:
    """
    Append a numeric suffix to ``base`` until ``is_taken`` returns False.

    Args:
        base: Candidate value
        is_taken: Predicate telling whether a candidate is already used

    Returns:
        ``base`` itself, or ``base-2``, ``base-3``, ...
    """
    candidate = base
    counter = 1

    while is_taken(candidate):
        counter += 1
        candidate = f"{base}-{counter}"

    return candidate
