"""Static HTML for decoded trees.

Produces the server-rendered markup embedded in the HTML document. The
client takes over from the chunk stream, so the markup only has to be
correct and inert:

- text and attribute values are escaped
- void elements have no closing tag
- ``True`` attributes render bare, ``False``/``None``/callables are dropped
- suspense and fragment elements render their children
- a client reference renders its resolved component when that returns
  synchronously, otherwise a placeholder element
"""

from __future__ import annotations

import html
import inspect
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from kestrel.flight.nodes import (
    ClientReference,
    Element,
    MissingModule,
    RenderError,
    Symbol,
)

logger = logging.getLogger("kestrel.render")

VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

# Props that never become attributes
_NON_ATTRIBUTES = frozenset({"children", "key", "ref", "fallback"})

_ATTRIBUTE_ALIASES = {"className": "class", "class_": "class", "htmlFor": "for", "for_": "for"}

_HEAD_TAGS = frozenset({"style", "link", "meta", "title", "script"})

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
_EVENT_RE = re.compile(r"^on[A-Z_]")


@dataclass(frozen=True, slots=True)
class HTMLParts:
    """The ``<head>`` and ``<body>`` children of an ``<html>`` root.

    When the tree is not an ``<html>`` element, ``head`` is empty and
    ``body`` holds the whole tree.
    """

    head: tuple[Any, ...]
    body: tuple[Any, ...]


def extract_html_parts(tree: Any) -> HTMLParts:
    """Split a layout's ``<html>`` root into head and body children."""
    if not (isinstance(tree, Element) and tree.type == "html"):
        return HTMLParts(head=(), body=(tree,))
    head: tuple[Any, ...] = ()
    body: tuple[Any, ...] = ()
    for child in tree.children:
        if isinstance(child, Element) and child.type == "head":
            head = child.children
        elif isinstance(child, Element) and child.type == "body":
            body = child.children
    return HTMLParts(head=head, body=body)


def head_elements(head: Iterable[Any]) -> list[Element]:
    """Head children worth hoisting into the document (styles, meta, ...)."""
    return [
        child
        for child in head
        if isinstance(child, Element) and isinstance(child.type, str) and child.type in _HEAD_TAGS
    ]


def render_markup(node: Any) -> str:
    """Render *node* as an HTML string."""
    parts: list[str] = []
    _render(node, parts)
    return "".join(parts)


def _render(node: Any, out: list[str]) -> None:
    if node is None or isinstance(node, bool):
        return
    if isinstance(node, str):
        out.append(html.escape(node, quote=False))
    elif isinstance(node, (int, float)):
        out.append(str(node))
    elif isinstance(node, (list, tuple)):
        for child in node:
            _render(child, out)
    elif isinstance(node, Element):
        _render_element(node, out)
    elif isinstance(node, ClientReference):
        _render_client(node, out)
    elif isinstance(node, MissingModule):
        out.append(
            f'<div class="kestrel-missing-module" data-module="{_attr(node.module_id)}#{_attr(node.name)}">'
        )
        _render(node.children, out)
        out.append("</div>")
    elif isinstance(node, RenderError):
        digest = f' data-digest="{_attr(node.digest)}"' if node.digest else ""
        out.append(f'<div class="kestrel-error" role="alert"{digest}>{html.escape(node.message)}</div>')
    else:
        msg = f"Cannot render {type(node).__name__} as HTML"
        raise TypeError(msg)


def _render_element(element: Element, out: list[str]) -> None:
    tag = element.type
    if isinstance(tag, Symbol):
        _render(element.children, out)
        return
    if not isinstance(tag, str):
        msg = f"Unrendered component {tag!r} in tree"
        raise TypeError(msg)
    out.append(f"<{tag}{_attributes(element.props)}>")
    if tag in VOID_ELEMENTS:
        return
    _render(element.children, out)
    out.append(f"</{tag}>")


def _render_client(ref: ClientReference, out: list[str]) -> None:
    rendered = _call_client(ref)
    if rendered is not None:
        _render(rendered, out)
        return
    tag = "a" if "href" in ref.props else "div"
    marker = f' data-client-module="{_attr(ref.module_id)}#{_attr(ref.name)}"'
    out.append(f"<{tag}{_attributes(ref.props)}{marker}>")
    _render(ref.children, out)
    out.append(f"</{tag}>")


def _call_client(ref: ClientReference) -> Any:
    """Pre-render a resolved client component, or ``None`` for a placeholder."""
    component = ref.component
    if component is None or not callable(component):
        return None
    kwargs = dict(ref.props)
    if ref.children:
        kwargs["children"] = ref.children
    try:
        result = component(**kwargs)
    except Exception:
        logger.warning("Client component %s#%s failed to pre-render", ref.module_id, ref.name, exc_info=True)
        return None
    if inspect.isawaitable(result):
        # Asynchronous components render on the client only
        if inspect.iscoroutine(result):
            result.close()
        return None
    return result


def _attributes(props: dict[str, Any]) -> str:
    parts: list[str] = []
    for name, value in props.items():
        if name in _NON_ATTRIBUTES or _EVENT_RE.match(name):
            continue
        if value is None or value is False or callable(value):
            continue
        if isinstance(value, (Element, ClientReference, MissingModule, RenderError)):
            continue
        attr = _ATTRIBUTE_ALIASES.get(name, name)
        if value is True:
            parts.append(f" {attr}")
        elif attr == "style" and isinstance(value, dict):
            parts.append(f' style="{_attr(_style(value))}"')
        elif isinstance(value, (list, tuple)) and attr == "class":
            parts.append(f' class="{_attr(" ".join(str(v) for v in value if v))}"')
        else:
            parts.append(f' {attr}="{_attr(value)}"')
    return "".join(parts)


def _style(declarations: dict[str, Any]) -> str:
    return ";".join(
        f"{_CAMEL_RE.sub('-', name).lower().replace('_', '-')}:{value}"
        for name, value in declarations.items()
        if value is not None
    )


def _attr(value: Any) -> str:
    return html.escape(str(value), quote=True)
