"""Tests for tree resolution and XML serialization (core/render.py).

Asynchronous code is driven with ``asyncio.run`` — no event-loop
plugin is required.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from lxml import etree

from ytd_dash.core.dom import Element, Pending, Text, create_element as h
from ytd_dash.core.render import gather_in_order, resolve, serialize, to_xml
from ytd_dash.exceptions import RenderError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _delayed(node: Any, delay: float, log: list[str] | None = None, name: str = "") -> Any:
    await asyncio.sleep(delay)
    if log is not None:
        log.append(name)
    return node


def _tags(node: Element) -> list[str]:
    return [child.tag for child in node.children if isinstance(child, Element)]


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------

class TestResolve:
    def test_text_is_verbatim(self) -> None:
        assert asyncio.run(resolve(Text("a&b"))) == Text("a&b")

    def test_absent_attributes_dropped(self) -> None:
        node = h("representation", {"id": "137", "frameRate": None, "width": 1920})
        resolved = asyncio.run(resolve(node))
        assert resolved.attributes == {"id": "137", "width": "1920"}

    def test_pending_children_keep_declaration_order(self) -> None:
        completion: list[str] = []

        async def _build() -> Element:
            return h(
                "period",
                None,
                Pending(_delayed(h("first", None), 0.05, completion, "first")),
                h("second", None),
                Pending(_delayed(h("third", None), 0.0, completion, "third")),
            )

        resolved = asyncio.run(_resolve_built(_build))
        assert _tags(resolved) == ["First", "Second", "Third"]
        assert completion == ["third", "first"]

    def test_nested_lists_and_pending_lists_are_flattened(self) -> None:
        async def _build() -> Element:
            return h(
                "segment-timeline",
                None,
                [[h("a", None), Pending(_delayed([h("b", None), [h("c", None)]], 0.01))]],
                h("d", None),
            )

        resolved = asyncio.run(_resolve_built(_build))
        assert _tags(resolved) == ["A", "B", "C", "D"]

    def test_pending_children_run_concurrently(self) -> None:
        running = 0
        peak = 0

        async def _tracked() -> Element:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return h("s", None)

        async def _build() -> Element:
            return h("segment-timeline", None, [Pending(_tracked()) for _ in range(5)])

        asyncio.run(_resolve_built(_build))
        assert peak == 5

    def test_pending_root(self) -> None:
        async def _build() -> Any:
            return Pending(_delayed(h("mpd", None), 0.0))

        resolved = asyncio.run(_resolve_built(_build))
        assert resolved.tag == "MPD"

    def test_pending_root_list_rejected(self) -> None:
        async def _build() -> Any:
            return Pending(_delayed([h("a", None)], 0.0))

        with pytest.raises(RenderError):
            asyncio.run(_resolve_built(_build))

    def test_failure_cancels_in_flight_siblings(self) -> None:
        cancelled: list[bool] = []

        async def _slow() -> Element:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise
            return h("s", None)

        async def _boom() -> Element:
            await asyncio.sleep(0.01)
            raise RenderError("probe failed")

        async def _build() -> Element:
            return h("period", None, Pending(_slow()), Pending(_boom()))

        with pytest.raises(RenderError, match="probe failed"):
            asyncio.run(_resolve_built(_build))
        assert cancelled == [True]

    def test_tree_with_coroutines_renders_once(self) -> None:
        async def _twice() -> str:
            tree = h("period", None, Pending(_delayed(h("s", None), 0.0)))
            first = await serialize(tree)
            with pytest.raises(RenderError, match="already resolved"):
                await serialize(tree)
            return first

        assert "<S/>" in asyncio.run(_twice())

    def test_resolved_copy_renders_repeatedly(self) -> None:
        async def _build() -> Element:
            return h("period", None, Pending(_delayed(h("s", None), 0.0)))

        resolved = asyncio.run(_resolve_built(_build))
        assert to_xml(resolved) == to_xml(resolved)


async def _resolve_built(builder: Any) -> Any:
    """Build inside the running loop so pending coroutines belong to it."""
    return await resolve(await builder())


# ---------------------------------------------------------------------------
# gather_in_order
# ---------------------------------------------------------------------------

class TestGatherInOrder:
    def test_empty(self) -> None:
        assert asyncio.run(gather_in_order([])) == []

    def test_results_follow_input_order(self) -> None:
        async def _run() -> list[int]:
            return await gather_in_order(
                [_delayed(1, 0.03), _delayed(2, 0.0), _delayed(3, 0.01)],
            )

        assert asyncio.run(_run()) == [1, 2, 3]


# ---------------------------------------------------------------------------
# serialize / to_xml
# ---------------------------------------------------------------------------

class TestSerialize:
    def test_declaration_and_single_root(self) -> None:
        xml = asyncio.run(serialize(h("mpd", {"type": "static"}, h("period", None))))
        assert xml.startswith("<?xml version='1.0' encoding='")
        root = etree.fromstring(xml.encode("utf-8"))
        assert root.tag == "MPD"
        assert [child.tag for child in root] == ["Period"]

    def test_namespaces_and_prefixed_attributes(self) -> None:
        node = h(
            "mpd",
            {
                "xmlns": "urn:mpeg:dash:schema:mpd:2011",
                "type": "static",
                "xmlns:xsi": "http://www.w3.org/2001/XMLSchema-instance",
                "xsi:schemaLocation": "urn:mpeg:dash:schema:mpd:2011 DASH-MPD.xsd",
            },
            h("period", None),
        )
        xml = asyncio.run(serialize(node))
        root = etree.fromstring(xml.encode("utf-8"))
        assert root.tag == "{urn:mpeg:dash:schema:mpd:2011}MPD"
        assert root[0].tag == "{urn:mpeg:dash:schema:mpd:2011}Period"
        assert root.get(
            "{http://www.w3.org/2001/XMLSchema-instance}schemaLocation"
        ) == "urn:mpeg:dash:schema:mpd:2011 DASH-MPD.xsd"
        assert 'xmlns="urn:mpeg:dash:schema:mpd:2011"' in xml
        assert "<Period/>" in xml

    def test_undeclared_prefix_raises(self) -> None:
        with pytest.raises(RenderError, match="xsi"):
            asyncio.run(serialize(h("mpd", {"xsi:schemaLocation": "x"})))

    def test_attribute_order_is_insertion_order(self) -> None:
        xml = asyncio.run(serialize(h("s", {"t": 1, "d": 2, "r": 3})))
        assert '<S t="1" d="2" r="3"/>' in xml

    def test_absent_attribute_not_rendered(self) -> None:
        xml = asyncio.run(serialize(h("representation", {"id": "1", "frameRate": None})))
        assert "frameRate" not in xml
        assert "None" not in xml

    def test_text_is_escaped(self) -> None:
        xml = asyncio.run(serialize(h("base-url", None, "https://x/v?a=1&b=2")))
        assert "<BaseURL>https://x/v?a=1&amp;b=2</BaseURL>" in xml

    def test_mixed_text_uses_tail(self) -> None:
        xml = to_xml(
            Element(
                tag="Label",
                children=(Text("a"), Element(tag="B"), Text("c")),
            )
        )
        assert "<Label>a<B/>c</Label>" in xml

    def test_deterministic(self) -> None:
        def _tree() -> Element:
            return h("mpd", {"a": 1}, h("period", None, [h("s", {"d": i}) for i in range(3)]))

        first = asyncio.run(serialize(_tree()))
        second = asyncio.run(serialize(_tree()))
        assert first == second

    def test_text_root_rejected(self) -> None:
        with pytest.raises(RenderError):
            to_xml(Text("x"))
