"""Route tree traversal, printing and JSON round-tripping."""

from collections.abc import Iterator
from typing import Any

from kestrel.routing.types import DynamicMode, FileRef, PageConfig, RouteNode

_FILE_FIELDS = ("page", "layout", "loading", "error", "not_found", "global_error")


def iter_routes(tree: RouteNode) -> Iterator[tuple[RouteNode, tuple[RouteNode, ...]]]:
    """Yield ``(node, chain_from_root)`` for every node, depth first."""
    stack: list[tuple[RouteNode, tuple[RouteNode, ...]]] = [(tree, (tree,))]
    while stack:
        node, chain = stack.pop()
        yield node, chain
        # Reverse so children come out in enumeration order
        for child in reversed(node.children):
            stack.append((child, (*chain, child)))


def all_route_paths(tree: RouteNode) -> list[str]:
    """Canonical paths of every node that has a page."""
    return [node.path for node, _ in iter_routes(tree) if node.page is not None]


def format_route_tree(tree: RouteNode) -> str:
    """Render the tree as indented text for the ``routes`` command."""
    lines: list[str] = []
    _format(tree, 0, lines)
    return "\n".join(lines)


def _format(node: RouteNode, indent: int, lines: list[str]) -> None:
    prefix = "  " * indent
    label = node.path if not node.is_group else f"{node.path} {node.segment}"
    lines.append(f"{prefix}{label}")
    for name in _FILE_FIELDS:
        ref: FileRef | None = getattr(node, name)
        if ref is None:
            continue
        flags = " (client)" if ref.is_client else ""
        if ref.config is not None:
            if ref.config.revalidate is not None:
                flags += f" [revalidate: {ref.config.revalidate}]"
            if ref.config.dynamic is not None:
                flags += f" [dynamic: {ref.config.dynamic.value}]"
        lines.append(f"{prefix}  - {name}: {ref.file}{flags}")
    for child in node.children:
        _format(child, indent + 1, lines)


# ---------------------------------------------------------------------------
# JSON form (persisted in the build manifest)
# ---------------------------------------------------------------------------


def route_tree_to_dict(node: RouteNode) -> dict[str, Any]:
    """Serialize *node* and its children to JSON-compatible dicts."""
    data: dict[str, Any] = {
        "segment": node.segment,
        "path": node.path,
        "dynamic": node.dynamic,
    }
    if node.param is not None:
        data["param"] = node.param
    if node.catch_all:
        data["catchAll"] = True
    for name in _FILE_FIELDS:
        ref: FileRef | None = getattr(node, name)
        if ref is not None:
            data[_camel(name)] = _file_to_dict(ref)
    data["children"] = [route_tree_to_dict(child) for child in node.children]
    return data


def route_tree_from_dict(data: dict[str, Any]) -> RouteNode:
    """Inverse of :func:`route_tree_to_dict`."""
    files = {
        name: _file_from_dict(data[_camel(name)])
        for name in _FILE_FIELDS
        if data.get(_camel(name)) is not None
    }
    return RouteNode(
        segment=data["segment"],
        path=data["path"],
        dynamic=data.get("dynamic", False),
        param=data.get("param"),
        catch_all=data.get("catchAll", False),
        children=tuple(route_tree_from_dict(child) for child in data.get("children", ())),
        **files,
    )


def _file_to_dict(ref: FileRef) -> dict[str, Any]:
    data: dict[str, Any] = {
        "file": ref.file,
        "absolutePath": ref.absolute_path,
        "isClient": ref.is_client,
    }
    if ref.config is not None:
        data["config"] = {
            "revalidate": ref.config.revalidate,
            "dynamic": ref.config.dynamic.value if ref.config.dynamic else None,
        }
    return data


def _file_from_dict(data: dict[str, Any]) -> FileRef:
    config = None
    raw = data.get("config")
    if raw is not None:
        dynamic = raw.get("dynamic")
        config = PageConfig(
            revalidate=raw.get("revalidate"),
            dynamic=DynamicMode(dynamic) if dynamic else None,
        )
    return FileRef(
        file=data["file"],
        absolute_path=data["absolutePath"],
        is_client=data.get("isClient", False),
        config=config,
    )


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)
