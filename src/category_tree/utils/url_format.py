"""URL format rendering.

A URL format is a string with ``{token}`` placeholders, for example
``"categories/{slug}"`` or ``"{parent.uri}/{slug}"``. Tokens are looked up in a
flat dict of values; dotted tokens such as ``parent.uri`` are plain keys.
"""

import re
from typing import Any, Dict, Optional

_TOKEN = re.compile(r"\{\s*([a-zA-Z_][a-zA-Z0-9_.]*)\s*\}")


def render_url_format(url_format: Optional[str], values: Dict[str, Any]) -> Optional[str]:
    """
    Render a URL format into a URI.

    Unknown or None-valued tokens render as an empty string. Duplicate and
    surrounding slashes left behind by empty tokens are collapsed.

    Args:
        url_format: Format string, or None when the element has no URL
        values: Token values

    Returns:
        The rendered URI, or None if url_format is empty

    Example:
        >>> render_url_format("{parent.uri}/{slug}", {"parent.uri": "a/b", "slug": "c"})
        'a/b/c'
    """
    if not url_format:
        return None

    def _replace(match: "re.Match[str]") -> str:
        value = values.get(match.group(1))
        return "" if value is None else str(value)

    uri = _TOKEN.sub(_replace, url_format)
    uri = re.sub(r"/{2,}", "/", uri).strip("/")
    return uri or None


def format_tokens(url_format: Optional[str]) -> set:
    """Return the set of token names used in a URL format."""
    if not url_format:
        return set()
    return set(_TOKEN.findall(url_format))
