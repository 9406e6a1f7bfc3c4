"""Static generation: prerendered artifacts and the build manifest."""

from kestrel.build.generator import (
    GenerationResult,
    RouteTarget,
    StaticGenerator,
    collect_param_routes,
    collect_static_routes,
)
from kestrel.build.manifest import Manifest, ManifestEntry

__all__ = [
    "GenerationResult",
    "Manifest",
    "ManifestEntry",
    "RouteTarget",
    "StaticGenerator",
    "collect_param_routes",
    "collect_static_routes",
]
