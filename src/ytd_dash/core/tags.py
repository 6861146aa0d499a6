"""Tag and attribute normalization for MPD elements.

Elements are declared with lowercase, hyphenated names (``segment-base``)
and rendered in the CamelCase spelling of the DASH schema
(``SegmentBase``).  Attribute values are rendered as text; ``None`` means
"absent" and the attribute is omitted entirely.
"""

from __future__ import annotations

from collections.abc import Mapping

AttributeValue = str | int | float | bool | None
"""Scalar attribute value; ``None`` is the absent sentinel."""

RESERVED_PROPS: frozenset[str] = frozenset({"children", "node_value"})
"""Property names that carry child content and are never attributes."""

_SPECIAL_TAGS: dict[str, str] = {
    "mpd": "MPD",
    "base-url": "BaseURL",
}


def normalize_tag(name: str) -> str:
    """Map ``segment-template`` to ``SegmentTemplate``.

    ``mpd`` and ``base-url`` do not follow the general rule and are
    special-cased.
    """
    special = _SPECIAL_TAGS.get(name)
    if special is not None:
        return special
    return "".join(section[:1].upper() + section[1:] for section in name.split("-"))


def format_value(value: str | int | float | bool) -> str:
    """Render a scalar attribute value in its canonical text form.

    Booleans become ``true``/``false``; numbers with no fractional part
    drop the trailing ``.0`` so that ``214.0`` seconds renders as ``214``.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def emitted_attributes(attributes: Mapping[str, AttributeValue]) -> dict[str, str]:
    """Return the attributes that participate in output, in insertion order."""
    return {
        name: format_value(value)
        for name, value in attributes.items()
        if name not in RESERVED_PROPS and value is not None
    }
