"""Artifact paths.

Layout under the output directory::

    static/pages/index.html        # /
    static/pages/blog/hello.html   # /blog/hello
    static/flight/index.txt
    static/flight/blog/hello.txt
    manifest.json

Artifacts are written with :func:`kestrel._internal.files.atomic_write_text`.
"""

from pathlib import Path

PAGES_DIR = "pages"
FLIGHT_DIR = "flight"


def route_stem(route_path: str) -> str:
    """Relative file stem for a concrete route path (``/`` -> ``index``)."""
    stripped = route_path.strip("/")
    return stripped or "index"


def html_artifact_path(static_root: Path, route_path: str) -> Path:
    return static_root / PAGES_DIR / f"{route_stem(route_path)}.html"


def flight_artifact_path(static_root: Path, route_path: str) -> Path:
    return static_root / FLIGHT_DIR / f"{route_stem(route_path)}.txt"
