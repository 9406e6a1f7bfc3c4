"""URL matching against a scanned route tree.

Route groups are transparent: their children are matched as if they
lived in the group's parent. At each level static segments win over
dynamic ones, and dynamic segments win over catch-alls. Matching
backtracks, so ``/blog/new`` still reaches ``[slug]`` when the static
``new`` directory has no page.
"""

from kestrel.routing.types import RouteMatch, RouteNode


def match_route(tree: RouteNode, url_path: str) -> RouteMatch | None:
    """Match *url_path* against *tree*.

    Returns the node chain from the root to a node with a page, plus the
    captured params, or ``None`` when nothing matches.
    """
    parts = [part for part in url_path.split("?", 1)[0].split("/") if part]
    return _match(tree, parts, (tree,), {})


def match_node(tree: RouteNode, url_path: str) -> RouteMatch | None:
    """Like :func:`match_route` but accepts nodes without a page."""
    parts = [part for part in url_path.split("?", 1)[0].split("/") if part]
    return _match(tree, parts, (tree,), {}, require_page=False)


def _match(
    node: RouteNode,
    parts: list[str],
    chain: tuple[RouteNode, ...],
    params: dict[str, str | tuple[str, ...]],
    *,
    require_page: bool = True,
) -> RouteMatch | None:
    if not parts:
        if node.page is not None or not require_page:
            return RouteMatch(nodes=chain, params=params)
        # A route group below may hold the page for this URL
        for child in node.children:
            if child.is_group:
                found = _match(child, parts, (*chain, child), params, require_page=require_page)
                if found is not None:
                    return found
        return None

    head, rest = parts[0], parts[1:]
    for child in _ordered_candidates(node):
        if child.is_group:
            found = _match(child, parts, (*chain, child), params, require_page=require_page)
        elif child.catch_all:
            found = _match(
                child,
                [],
                (*chain, child),
                {**params, child.param or "": tuple(parts)},
                require_page=require_page,
            )
        elif child.dynamic:
            found = _match(
                child,
                rest,
                (*chain, child),
                {**params, child.param or "": head},
                require_page=require_page,
            )
        elif child.segment == head:
            found = _match(child, rest, (*chain, child), params, require_page=require_page)
        else:
            found = None
        if found is not None:
            return found
    return None


def _ordered_candidates(node: RouteNode) -> list[RouteNode]:
    """Children in precedence order: static and groups, dynamic, catch-all.

    Enumeration order is kept within each class.
    """
    static = [c for c in node.children if not c.dynamic]
    dynamic = [c for c in node.children if c.dynamic and not c.catch_all]
    catch_all = [c for c in node.children if c.catch_all]
    return [*static, *dynamic, *catch_all]
