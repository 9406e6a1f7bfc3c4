"""Tests for kestrel.templating.markup: decoded trees to static HTML."""

import logging

from kestrel.flight.nodes import (
    FRAGMENT,
    SUSPENSE,
    ClientReference,
    Element,
    MissingModule,
    RenderError,
    h,
)
from kestrel.templating.markup import extract_html_parts, head_elements, render_markup


class TestElements:
    def test_text_escaped(self) -> None:
        assert render_markup(h("p", None, "<b> & co")) == "<p>&lt;b&gt; &amp; co</p>"

    def test_attributes_escaped(self) -> None:
        assert render_markup(h("a", {"title": 'say "hi"'})) == '<a title="say &quot;hi&quot;"></a>'

    def test_void_elements(self) -> None:
        assert render_markup(h("img", {"src": "/x.png", "alt": ""})) == '<img src="/x.png" alt="">'

    def test_boolean_attributes(self) -> None:
        assert render_markup(h("input", {"disabled": True, "checked": False})) == "<input disabled>"

    def test_dropped_props(self) -> None:
        el = h("button", {"onClick": print, "on_hover": None, "ref": "r", "className": "btn"}, "Go")
        assert render_markup(el) == '<button class="btn">Go</button>'

    def test_on_prefix_is_not_an_event(self) -> None:
        assert render_markup(h("div", {"one": "1"})) == '<div one="1"></div>'

    def test_style_dict(self) -> None:
        el = h("div", {"style": {"fontSize": "12px", "margin_top": 0, "color": None}})
        assert render_markup(el) == '<div style="font-size:12px;margin-top:0"></div>'

    def test_class_list(self) -> None:
        assert render_markup(h("div", {"class": ["a", "", "b"]})) == '<div class="a b"></div>'

    def test_numbers(self) -> None:
        assert render_markup(h("span", None, 3, 1.5)) == "<span>31.5</span>"

    def test_symbols_render_children(self) -> None:
        tree = h("div", None, Element(SUSPENSE, {"fallback": h("i")}, ("ready",)), Element(FRAGMENT, {}, ("x",)))
        assert render_markup(tree) == "<div>readyx</div>"


class TestMarkers:
    def test_render_error(self) -> None:
        html = render_markup(RenderError("bad <thing>", "ValueError"))
        assert html == '<div class="kestrel-error" role="alert" data-digest="ValueError">bad &lt;thing&gt;</div>'

    def test_missing_module(self) -> None:
        html = render_markup(MissingModule("./c.py", "C", {}, ("inner",)))
        assert html == '<div class="kestrel-missing-module" data-module="./c.py#C">inner</div>'


class TestClientReferences:
    def test_placeholder_without_component(self) -> None:
        html = render_markup(ClientReference("./c.py", "C", {"id": "w"}, ("x",)))
        assert html == '<div id="w" data-client-module="./c.py#C">x</div>'

    def test_link_placeholder(self) -> None:
        html = render_markup(ClientReference("./link.py", "Link", {"href": "/about"}, ("About",)))
        assert html == '<a href="/about" data-client-module="./link.py#Link">About</a>'

    def test_sync_component_prerendered(self) -> None:
        def Counter(start, children=()):
            return h("button", {"data-start": start}, children)

        ref = ClientReference("./c.py", "Counter", {"start": 2}, ("+",), component=Counter)
        assert render_markup(ref) == '<button data-start="2">+</button>'

    def test_async_component_placeholder(self) -> None:
        async def Feed():
            return h("ul")

        ref = ClientReference("./feed.py", "Feed", component=Feed)
        assert render_markup(ref) == '<div data-client-module="./feed.py#Feed"></div>'

    def test_failing_component_placeholder(self, caplog) -> None:
        def Broken():
            raise RuntimeError("browser only")

        ref = ClientReference("./b.py", "Broken", component=Broken)
        with caplog.at_level(logging.WARNING, logger="kestrel.render"):
            html = render_markup(ref)
        assert html == '<div data-client-module="./b.py#Broken"></div>'
        assert "failed to pre-render" in caplog.text


class TestHtmlParts:
    def test_splits_html_root(self) -> None:
        tree = h("html", None, h("head", None, h("title", None, "T")), h("body", None, "content"))
        parts = extract_html_parts(tree)
        assert parts.body == ("content",)
        assert parts.head == (h("title", None, "T"),)

    def test_non_html_root_is_body(self) -> None:
        tree = h("main")
        assert extract_html_parts(tree).body == (tree,)
        assert extract_html_parts(tree).head == ()

    def test_head_elements_filtered(self) -> None:
        head = (h("title", None, "T"), h("div"), "text", h("meta", {"name": "x"}))
        assert [el.type for el in head_elements(head)] == ["title", "meta"]
