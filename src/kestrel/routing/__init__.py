"""Filesystem route trees.

The ``app/`` directory structure defines URL paths, layout nesting and
per-page configuration::

    app/
      layout.py            # Root layout
      page.py              # /
      (marketing)/
        pricing/page.py    # /pricing  (group elided)
      blog/
        [slug]/page.py     # /blog/[slug]
      docs/
        [...parts]/page.py # /docs/[...parts]
"""

from kestrel.routing.classify import is_client_module, is_client_source
from kestrel.routing.match import match_route
from kestrel.routing.params import build_path_with_params, normalize_params
from kestrel.routing.scanner import build_url_path, parse_segment, scan_app
from kestrel.routing.tree import (
    all_route_paths,
    format_route_tree,
    iter_routes,
    route_tree_from_dict,
    route_tree_to_dict,
)
from kestrel.routing.types import DynamicMode, FileRef, PageConfig, RouteMatch, RouteNode

__all__ = [
    "DynamicMode",
    "FileRef",
    "PageConfig",
    "RouteMatch",
    "RouteNode",
    "all_route_paths",
    "build_path_with_params",
    "build_url_path",
    "format_route_tree",
    "is_client_module",
    "is_client_source",
    "iter_routes",
    "match_route",
    "normalize_params",
    "parse_segment",
    "route_tree_from_dict",
    "route_tree_to_dict",
    "scan_app",
]
