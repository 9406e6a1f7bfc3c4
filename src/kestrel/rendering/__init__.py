"""Route rendering: route chains to fully materialized UI trees."""

from kestrel.rendering.registry import ClientRegistry, module_id_for
from kestrel.rendering.renderer import (
    RenderResult,
    TreeRenderer,
    render_error_boundary,
    render_not_found,
    render_route,
)

__all__ = [
    "ClientRegistry",
    "RenderResult",
    "TreeRenderer",
    "module_id_for",
    "render_error_boundary",
    "render_not_found",
    "render_route",
]
