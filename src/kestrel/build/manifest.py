"""Build manifest.

Written once per build to ``<out>/manifest.json``::

    {
      "buildTime": "2026-01-01T00:00:00+00:00",
      "version": "0.1.0",
      "routeTree": {...},
      "prerendered": [
        {"routePath": "/blog/hello", "htmlPath": "static/pages/blog/hello.html",
         "flightPath": "static/flight/blog/hello.txt", "revalidate": 60, "dynamic": null}
      ]
    }

Artifact paths are relative to the output directory.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from kestrel._internal.files import atomic_write_text
from kestrel.routing.tree import route_tree_from_dict, route_tree_to_dict
from kestrel.routing.types import DynamicMode, RouteNode


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    """One prerendered route.

    Attributes:
        route_path: Concrete URL path (``/blog/hello``).
        html_path: HTML artifact, relative to the output directory.
        flight_path: Chunk stream artifact, relative to the output directory.
        revalidate: Seconds until stale; ``False`` or ``None`` for never.
        dynamic: The page's declared rendering mode.
        pattern: Route path in bracket form (``/blog/[slug]``).
    """

    route_path: str
    html_path: str
    flight_path: str
    revalidate: int | Literal[False] | None = None
    dynamic: DynamicMode | None = None
    pattern: str | None = None

    @property
    def is_force_dynamic(self) -> bool:
        return self.dynamic is DynamicMode.FORCE_DYNAMIC

    def to_dict(self) -> dict[str, Any]:
        return {
            "routePath": self.route_path,
            "htmlPath": self.html_path,
            "flightPath": self.flight_path,
            "revalidate": self.revalidate,
            "dynamic": self.dynamic.value if self.dynamic else None,
            "pattern": self.pattern,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ManifestEntry:
        dynamic = data.get("dynamic")
        return cls(
            route_path=data["routePath"],
            html_path=data["htmlPath"],
            flight_path=data["flightPath"],
            revalidate=data.get("revalidate"),
            dynamic=DynamicMode(dynamic) if dynamic else None,
            pattern=data.get("pattern"),
        )


@dataclass(frozen=True, slots=True)
class Manifest:
    """The output of one build."""

    build_time: str
    version: str
    route_tree: RouteNode | None = None
    prerendered: tuple[ManifestEntry, ...] = field(default=())

    def find(self, route_path: str) -> ManifestEntry | None:
        """Entry for a concrete route path, or ``None``."""
        for entry in self.prerendered:
            if entry.route_path == route_path:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "buildTime": self.build_time,
            "version": self.version,
            "routeTree": route_tree_to_dict(self.route_tree) if self.route_tree else None,
            "prerendered": [entry.to_dict() for entry in self.prerendered],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Manifest:
        tree = data.get("routeTree")
        return cls(
            build_time=data.get("buildTime", ""),
            version=data.get("version", ""),
            route_tree=route_tree_from_dict(tree) if tree else None,
            prerendered=tuple(ManifestEntry.from_dict(e) for e in data.get("prerendered", ())),
        )

    def write(self, path: Path) -> None:
        atomic_write_text(path, json.dumps(self.to_dict(), indent=2, ensure_ascii=False))

    @classmethod
    def load(cls, path: Path) -> Manifest:
        """Read a manifest written by :meth:`write`.

        Raises:
            FileNotFoundError: If no build has been written to *path*.
            ValueError: If the file is not a valid manifest.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            msg = f"{path} is not a build manifest"
            raise ValueError(msg)
        return cls.from_dict(data)
