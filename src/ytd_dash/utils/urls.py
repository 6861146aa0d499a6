"""Query-string helpers for stream URLs."""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def set_query_param(url: str, name: str, value: str) -> str:
    """Set *name* to *value* in the query of *url*.

    The first existing occurrence is replaced in place and any further
    occurrences are dropped; a missing parameter is appended.
    """
    parts = urlsplit(url)
    pairs = parse_qsl(parts.query, keep_blank_values=True)

    updated: list[tuple[str, str]] = []
    replaced = False
    for key, current in pairs:
        if key != name:
            updated.append((key, current))
        elif not replaced:
            updated.append((key, value))
            replaced = True
    if not replaced:
        updated.append((name, value))

    return urlunsplit(parts._replace(query=urlencode(updated)))


def remove_first(text: str, fragment: str) -> str:
    """Remove the first occurrence of *fragment* from *text*, if present."""
    return text.replace(fragment, "", 1)


def query_param(url: str, name: str) -> str | None:
    """Return the decoded value of the first *name* parameter of *url*."""
    for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if key == name:
            return value
    return None


def parse_xtags(value: str) -> dict[str, str]:
    """Split an ``xtags`` value such as ``acont=dubbed:lang=de`` into pairs.

    Items without ``=`` are ignored.
    """
    tags: dict[str, str] = {}
    for item in value.split(":"):
        key, sep, tag_value = item.partition("=")
        if sep and key:
            tags[key] = tag_value
    return tags
