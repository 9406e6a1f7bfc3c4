"""Route rendering.

Turns a route chain into a fully materialized UI tree:

1. the page is called with the params it declares
2. a ``loading`` file wraps the page in a suspense boundary
3. layouts wrap the result from the innermost outwards
4. server components are called and their results resolved recursively
5. client components become :class:`ClientReference` nodes and are never run

Every awaitable is awaited before the tree is returned, so the result can
be encoded in one pass. Exceptions from user code propagate; the server
turns them into error boundaries.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from kestrel._internal.invoke import call_with_injection, invoke
from kestrel._internal.modules import load_module
from kestrel.errors import ComponentError
from kestrel.flight.nodes import (
    SUSPENSE,
    ClientComponent,
    ClientReference,
    Element,
    RenderError,
    Symbol,
    flatten_children,
)
from kestrel.rendering.registry import ClientRegistry, module_id_for
from kestrel.routing.params import ParamValue, params_to_json
from kestrel.routing.types import FileRef, RouteNode

logger = logging.getLogger("kestrel.render")

SearchParams = Mapping[str, str | list[str]]


@dataclass(frozen=True, slots=True)
class RenderResult:
    """A rendered tree and the client modules it references.

    Attributes:
        tree: Fully materialized tree, ready for the encoder.
        client_modules: One descriptor per module id, in first-use order.
    """

    tree: Any
    client_modules: tuple[ClientComponent, ...]


class TreeRenderer:
    """Render route chains against a :class:`ClientRegistry`.

    Each ``render_*`` call is an independent pass; a renderer may be
    shared between concurrent requests.
    """

    __slots__ = ("registry",)

    def __init__(self, registry: ClientRegistry) -> None:
        self.registry = registry

    async def render_route(
        self,
        nodes: Sequence[RouteNode],
        params: Mapping[str, ParamValue],
        *,
        search_params: SearchParams | None = None,
    ) -> RenderResult:
        """Render the page at the end of *nodes* inside its layouts.

        Raises:
            ComponentError: If the target node has no page or the page
                module has no callable ``default``.
        """
        target = nodes[-1]
        if target.page is None:
            msg = f"Route {target.path} has no page"
            raise ComponentError(msg)
        logger.debug("Rendering %s (%d levels)", target.path, len(nodes))

        render = _RenderPass(self.registry)
        tree = await render.route_file(
            target.page,
            {"params": dict(params), "search_params": dict(search_params or {})},
        )
        if target.loading is not None:
            fallback = await render.route_file(target.loading, {"params": dict(params)})
            tree = Element(SUSPENSE, {"fallback": fallback}, (tree,))
        tree = await render.wrap_layouts(nodes, params, tree)
        return render.result(tree)

    async def render_not_found(self, tree: RouteNode) -> RenderResult | None:
        """Render the root ``not-found`` file inside the root layout.

        Returns ``None`` when the app has no ``not-found`` file.
        """
        if tree.not_found is None:
            return None
        render = _RenderPass(self.registry)
        body = await render.route_file(tree.not_found, {"params": {}})
        body = await render.wrap_layouts((tree,), {}, body)
        return render.result(body)

    async def render_error_boundary(
        self,
        nodes: Sequence[RouteNode],
        params: Mapping[str, ParamValue],
        exc: BaseException,
    ) -> RenderResult | None:
        """Render the error boundary nearest to the failed route.

        The nearest ``error`` file on the chain is rendered inside the
        layouts from the root down to its own level. Without one the
        root ``global-error`` file is rendered on its own, replacing the
        root layout. The boundary component receives the failure as an
        ``error`` :class:`RenderError`.

        Returns ``None`` when neither file exists.
        """
        error = RenderError.from_exception(exc)
        render = _RenderPass(self.registry)
        available = {"error": error, "params": dict(params)}

        for depth in range(len(nodes) - 1, -1, -1):
            boundary = nodes[depth].error
            if boundary is not None:
                body = await render.route_file(boundary, available)
                body = await render.wrap_layouts(nodes[: depth + 1], params, body)
                return render.result(body)

        root = nodes[0] if nodes else None
        if root is not None and root.global_error is not None:
            return render.result(await render.route_file(root.global_error, available))
        return None


async def render_route(
    nodes: Sequence[RouteNode],
    params: Mapping[str, ParamValue],
    registry: ClientRegistry,
    *,
    search_params: SearchParams | None = None,
) -> RenderResult:
    """Render a route chain with a one-off :class:`TreeRenderer`."""
    return await TreeRenderer(registry).render_route(nodes, params, search_params=search_params)


async def render_not_found(tree: RouteNode, registry: ClientRegistry) -> RenderResult | None:
    return await TreeRenderer(registry).render_not_found(tree)


async def render_error_boundary(
    nodes: Sequence[RouteNode],
    params: Mapping[str, ParamValue],
    registry: ClientRegistry,
    exc: BaseException,
) -> RenderResult | None:
    return await TreeRenderer(registry).render_error_boundary(nodes, params, exc)


# ---------------------------------------------------------------------------
# Render pass
# ---------------------------------------------------------------------------


class _RenderPass:
    """Mutable state of one render: the client modules seen so far."""

    __slots__ = ("_modules", "registry")

    def __init__(self, registry: ClientRegistry) -> None:
        self.registry = registry
        self._modules: dict[str, ClientComponent] = {}

    def result(self, tree: Any) -> RenderResult:
        return RenderResult(tree=tree, client_modules=tuple(self._modules.values()))

    def use(self, descriptor: ClientComponent) -> None:
        self._modules.setdefault(descriptor.module_id, descriptor)

    async def wrap_layouts(
        self,
        nodes: Sequence[RouteNode],
        params: Mapping[str, ParamValue],
        tree: Any,
    ) -> Any:
        for node in reversed(nodes):
            if node.layout is not None:
                tree = await self.route_file(node.layout, {"children": tree, "params": dict(params)})
        return tree

    async def route_file(self, ref: FileRef, available: dict[str, Any]) -> Any:
        """Render a special route file with the keywords it declares."""
        if ref.is_client:
            return self._client_route_file(ref, available)
        module = load_module(ref.absolute_path)
        component = getattr(module, "default", None)
        if component is None or not callable(component):
            msg = f"{ref.file} must define a callable 'default'"
            raise ComponentError(msg)
        return await self.resolve(await call_with_injection(component, available))

    def _client_route_file(self, ref: FileRef, available: dict[str, Any]) -> ClientReference:
        descriptor = ClientComponent(module_id_for(ref.absolute_path, self.registry.project_root))
        self.use(descriptor)
        props: dict[str, Any] = {}
        if "params" in available:
            props["params"] = params_to_json(available["params"])
        if available.get("search_params"):
            props["searchParams"] = dict(available["search_params"])
        if "error" in available:
            props["error"] = available["error"]
        children = (available["children"],) if "children" in available else ()
        return ClientReference(descriptor.module_id, descriptor.name, props, children)

    # -- Tree resolution --

    async def resolve(self, value: Any) -> Any:
        """Materialize *value*: await it and render any components inside."""
        while inspect.isawaitable(value):
            value = await value
        if isinstance(value, Element):
            return await self._element(value)
        if isinstance(value, ClientReference):
            return ClientReference(
                value.module_id,
                value.name,
                await self._props(value.props),
                await self._children(value.children),
                value.key,
                value.chunks,
                component=value.component,
            )
        if isinstance(value, (list, tuple)):
            return [await self.resolve(item) for item in value]
        if isinstance(value, dict):
            return await self._props(value)
        return value

    async def _element(self, element: Element) -> Any:
        element_type = element.type
        if isinstance(element_type, (str, Symbol)):
            return Element(
                element_type,
                await self._props(element.props),
                await self._children(element.children),
                element.key,
            )

        descriptor = self.registry.lookup(element_type)
        if descriptor is not None:
            self.use(descriptor)
            component = None if isinstance(element_type, ClientComponent) else element_type
            return ClientReference(
                descriptor.module_id,
                descriptor.name,
                await self._props(element.props),
                await self._children(element.children),
                element.key,
                descriptor.chunks,
                component=component,
            )

        if callable(element_type):
            kwargs = dict(element.props)
            if element.children:
                kwargs["children"] = element.children
            return await self.resolve(await invoke(element_type, **kwargs))

        msg = f"Unsupported element type {element_type!r}"
        raise ComponentError(msg)

    async def _props(self, props: Mapping[str, Any]) -> dict[str, Any]:
        resolved: dict[str, Any] = {}
        for name, value in props.items():
            if isinstance(value, (Element, ClientReference, list, tuple, dict)) or inspect.isawaitable(value):
                resolved[name] = await self.resolve(value)
            else:
                resolved[name] = value
        return resolved

    async def _children(self, children: Sequence[Any]) -> tuple[Any, ...]:
        resolved = [await self.resolve(child) for child in children]
        return tuple(flatten_children(resolved))
