"""Declarative tree model used to assemble MPD documents.

Trees are made of three node kinds:

* :class:`Element` — a tag with ordered attributes and children.
* :class:`Text` — literal character data.
* :class:`Pending` — a subtree that depends on an asynchronous result
  (for example an OTF segment probe).

:func:`create_element` builds nodes from either a tag name or a
*component*: an ordinary function that receives the attributes plus a
``children`` keyword and returns a node, a list of nodes, or an
awaitable of either.  Components let composite structures ("all audio
representations of one track") be written as plain functions.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Union

from ytd_dash.core.tags import AttributeValue, normalize_tag


# ---------------------------------------------------------------------------
# Node variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Text:
    """Literal text content."""

    value: str


@dataclass(frozen=True, slots=True)
class Element:
    """An element with a normalized tag name.

    ``attributes`` is copied into a read-only mapping on construction.
    """

    tag: str
    attributes: Mapping[str, AttributeValue] = field(default_factory=dict)
    children: tuple[Child, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))


@dataclass(frozen=True, slots=True)
class Pending:
    """A subtree whose content is produced by an awaitable.

    A coroutine can only be awaited once, so a tree holding one renders
    a single time.
    """

    awaitable: Awaitable[Any]


Node = Union[Element, Text]
Child = Union[Element, Text, Pending, list["Child"]]

Component = Callable[..., Any]


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

def _normalize_child(child: Any) -> Child | None:
    """Wrap a raw child value into a node, or drop it (``None``)."""
    if child is None or isinstance(child, bool):
        return None
    if isinstance(child, (Element, Text, Pending)):
        return child
    if isinstance(child, (str, int, float)):
        return Text(str(child))
    if inspect.isawaitable(child):
        return Pending(child)
    if isinstance(child, (list, tuple)):
        return [c for c in (_normalize_child(item) for item in child) if c is not None]
    raise TypeError(f"Unsupported child of type {type(child).__name__!r}")


def normalize_children(children: tuple[Any, ...]) -> list[Child]:
    """Flatten *children* one level deep and wrap scalars into :class:`Text`."""
    result: list[Child] = []
    for child in children:
        if isinstance(child, (list, tuple)):
            items: tuple[Any, ...] | list[Any] = child
        else:
            items = (child,)
        for item in items:
            normalized = _normalize_child(item)
            if normalized is not None:
                result.append(normalized)
    return result


def create_element(
    tag_or_component: str | Component,
    attributes: Mapping[str, Any] | None = None,
    *children: Any,
) -> Any:
    """Build a node from a tag name or call a component.

    With a tag name, returns an :class:`Element`.  With a component,
    returns whatever the component produces; a coroutine result is
    wrapped in :class:`Pending` so it can sit anywhere in a child list.
    """
    normalized = normalize_children(children)

    if callable(tag_or_component):
        props = dict(attributes or {})
        props["children"] = normalized
        produced = tag_or_component(**props)
        if inspect.isawaitable(produced):
            return Pending(produced)
        return produced

    return Element(
        tag=normalize_tag(tag_or_component),
        attributes=attributes or {},
        children=tuple(normalized),
    )


def Fragment(children: list[Child] | None = None, **_: Any) -> list[Child]:  # noqa: N802
    """Group siblings without introducing a wrapping element."""
    return list(children or [])
