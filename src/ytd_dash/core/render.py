"""Resolve declarative trees and serialize them to XML with lxml.

Resolution awaits every :class:`~ytd_dash.core.dom.Pending` slot of a
node concurrently, at any nesting depth, and rebuilds the child list in
declaration order.  Document order therefore never depends on which
probe or decipher call finishes first.

Guarantees
----------
* All-or-nothing: if one child fails, its in-flight siblings are
  cancelled and awaited before the error propagates.
* Deterministic output: attributes keep insertion order and the same
  resolved tree always serializes to the same text.
* Single use: a tree holding coroutine slots resolves once.  Resolving
  it again raises :class:`~ytd_dash.exceptions.RenderError`; build a
  fresh tree instead.  The resolved copy has no pending content and can
  be passed to :func:`to_xml` any number of times.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Iterable
from typing import Any, TypeVar

from lxml import etree

from ytd_dash.core.dom import Child, Element, Node, Pending, Text
from ytd_dash.core.tags import emitted_attributes
from ytd_dash.exceptions import RenderError

T = TypeVar("T")

_XMLNS = "xmlns"
_XMLNS_PREFIX = "xmlns:"


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

async def gather_in_order(awaitables: Iterable[Awaitable[T]]) -> list[T]:
    """Run *awaitables* concurrently and return results in input order.

    On failure (or cancellation) every task still running is cancelled
    and drained before the exception is re-raised.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    if not tasks:
        return []
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def _await_pending(pending: Pending) -> Any:
    awaitable = pending.awaitable
    if (
        inspect.iscoroutine(awaitable)
        and inspect.getcoroutinestate(awaitable) == inspect.CORO_CLOSED
    ):
        raise RenderError(
            "A pending subtree was already resolved; build a new tree to render again.",
        )
    return await awaitable


async def _resolve_slot(child: Any) -> list[Node]:
    """Resolve one child slot into a flat list of concrete nodes."""
    if isinstance(child, Pending):
        return await _resolve_slot(await _await_pending(child))
    if isinstance(child, (list, tuple)):
        parts = await gather_in_order(_resolve_slot(item) for item in child)
        return [node for part in parts for node in part]
    if child is None:
        return []
    if isinstance(child, str):
        return [Text(child)]
    return [await resolve(child)]


async def resolve(node: Element | Text | Pending) -> Node:
    """Return a concrete copy of *node* with no pending content left.

    Attributes of the returned element are already filtered and
    rendered to text (see :func:`~ytd_dash.core.tags.emitted_attributes`).
    """
    if isinstance(node, Pending):
        produced = await _await_pending(node)
        if isinstance(produced, (list, tuple)):
            raise RenderError("The document root must be a single element.")
        return await resolve(produced)

    if isinstance(node, Text):
        return Text(node.value)

    if not isinstance(node, Element):
        raise RenderError(f"Cannot resolve node of type {type(node).__name__!r}.")

    children: list[Child] = list(node.children)
    resolved = await _resolve_slot(children)
    return Element(
        tag=node.tag,
        attributes=emitted_attributes(node.attributes),
        children=tuple(resolved),
    )


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def _qualify(name: str, nsmap: dict[str | None, str]) -> str:
    """Turn ``prefix:local`` into lxml's ``{uri}local`` notation."""
    if ":" not in name:
        return name
    prefix, local = name.split(":", 1)
    uri = nsmap.get(prefix)
    if uri is None:
        raise RenderError(f"Undeclared namespace prefix {prefix!r} in attribute {name!r}.")
    return f"{{{uri}}}{local}"


def _build(node: Element, parent: Any, default_ns: str | None) -> Any:
    nsmap: dict[str | None, str] = {}
    attributes: dict[str, str] = {}
    for name, value in node.attributes.items():
        if name == _XMLNS:
            nsmap[None] = str(value)
        elif name.startswith(_XMLNS_PREFIX):
            nsmap[name[len(_XMLNS_PREFIX):]] = str(value)
        else:
            attributes[name] = str(value)

    namespace = nsmap.get(None, default_ns)
    tag = f"{{{namespace}}}{node.tag}" if namespace else node.tag

    if parent is None:
        element = etree.Element(tag, nsmap=nsmap or None)
    else:
        element = etree.SubElement(parent, tag, nsmap=nsmap or None)

    for name, value in attributes.items():
        element.set(_qualify(name, element.nsmap), value)

    last_child: Any = None
    for child in node.children:
        if isinstance(child, Text):
            if last_child is None:
                element.text = (element.text or "") + child.value
            else:
                last_child.tail = (last_child.tail or "") + child.value
        elif isinstance(child, Element):
            last_child = _build(child, element, namespace)
        else:
            raise RenderError("Cannot serialize an unresolved tree.")

    return element


def to_xml(node: Node) -> str:
    """Render an already resolved tree to an XML document string."""
    if not isinstance(node, Element):
        raise RenderError("The document root must be an element.")
    try:
        root = _build(node, None, None)
        data: bytes = etree.tostring(
            root,
            xml_declaration=True,
            encoding="utf-8",
        )
    except (ValueError, TypeError, etree.LxmlError) as exc:
        raise RenderError(f"Failed to serialize manifest: {exc}") from exc
    return data.decode("utf-8")


async def serialize(node: Element | Pending) -> str:
    """Resolve *node* and render it to an XML document string."""
    resolved = await resolve(node)
    return to_xml(resolved)
