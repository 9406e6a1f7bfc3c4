"""Route tree scanning for the app/ directory.

Walks the app directory and builds an immutable :class:`RouteNode` tree:

- ``page.py``, ``layout.py``, ``loading.py``, ``error.py``,
  ``not-found.py`` and ``global-error.py`` attach to the directory's node
  (the underscore spellings ``not_found.py``/``global_error.py`` work too)
- ``[name]`` directories are dynamic segments, ``[...name]`` catch-alls
- ``(name)`` directories are route groups: they nest layouts but do not
  appear in the URL

Page configuration (``revalidate`` and ``dynamic``) is read from the page
source with regular expressions. Page code is never executed at scan time.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from kestrel.errors import ScanError
from kestrel.routing.classify import Classifier, is_client_module
from kestrel.routing.types import DynamicMode, FileRef, PageConfig, RouteNode, SegmentInfo

logger = logging.getLogger("kestrel.scan")

# Module stem -> RouteNode attribute
SPECIAL_FILES: dict[str, str] = {
    "page": "page",
    "layout": "layout",
    "loading": "loading",
    "error": "error",
    "not-found": "not_found",
    "not_found": "not_found",
    "global-error": "global_error",
    "global_error": "global_error",
}

SOURCE_SUFFIXES = frozenset({".py"})

_DYNAMIC_RE = re.compile(r"^\[([^\[\]/]+)\]$")
_CATCH_ALL_RE = re.compile(r"^\.\.\.(\w+)$")
_PARAM_NAME_RE = re.compile(r"^\w+$")

# Top-level assignments only; an optional annotation and trailing comment are allowed
_REVALIDATE_RE = re.compile(r"^revalidate\s*(?::[^=\n]*)?=\s*(.+?)\s*(?:#.*)?$", re.MULTILINE)
_DYNAMIC_CONFIG_RE = re.compile(r"^dynamic\s*(?::[^=\n]*)?=\s*(.+?)\s*(?:#.*)?$", re.MULTILINE)
_STRING_LITERAL_RE = re.compile(r"""^(["'])([^"']*)\1$""")


def scan_app(
    app_dir: str | Path,
    *,
    project_root: str | Path | None = None,
    classifier: Classifier = is_client_module,
) -> RouteNode:
    """Scan an app directory into a route tree.

    Args:
        app_dir: Path to the ``app/`` directory.
        project_root: Directory that ``FileRef.file`` paths are relative
            to. Defaults to the parent of *app_dir*.
        classifier: Decides client vs. server for each special file.

    Returns:
        The root :class:`RouteNode` (path ``/``).

    Raises:
        ScanError: If *app_dir* does not exist.
    """
    root = Path(app_dir).resolve()
    if not root.is_dir():
        msg = f"App directory not found: {root}"
        raise ScanError(msg)

    base = Path(project_root).resolve() if project_root is not None else root.parent
    logger.info("Scanning %s", root)
    return _scan_directory(root, base, segment="", url_path="/", classifier=classifier)


def _scan_directory(
    directory: Path,
    base: Path,
    *,
    segment: str,
    url_path: str,
    classifier: Classifier,
) -> RouteNode:
    """Build the node for *directory* and, recursively, its children."""
    info = parse_segment(segment) if segment else SegmentInfo(segment="")
    files: dict[str, FileRef] = {}
    children: list[RouteNode] = []

    with os.scandir(directory) as entries:
        for entry in entries:
            path = Path(entry.path)
            if entry.is_file():
                kind = _special_kind(path)
                if kind is None:
                    continue
                files[kind] = _file_ref(path, base, kind, classifier)
            elif entry.is_dir():
                if entry.name.startswith((".", "_")):
                    continue
                children.append(
                    _scan_directory(
                        path,
                        base,
                        segment=entry.name,
                        url_path=build_url_path(url_path, entry.name),
                        classifier=classifier,
                    )
                )

    return RouteNode(
        segment=info.segment,
        path=url_path,
        dynamic=info.dynamic,
        param=info.param,
        catch_all=info.catch_all,
        children=tuple(children),
        **files,
    )


def _special_kind(path: Path) -> str | None:
    if path.suffix not in SOURCE_SUFFIXES:
        return None
    return SPECIAL_FILES.get(path.stem)


def _file_ref(path: Path, base: Path, kind: str, classifier: Classifier) -> FileRef:
    try:
        relative = path.relative_to(base).as_posix()
    except ValueError:
        relative = path.as_posix()
    is_client = classifier(path)
    config = extract_page_config(path) if kind == "page" else None

    logger.debug(
        "  %-12s %s (%s)%s",
        kind,
        relative,
        "client" if is_client else "server",
        _describe_config(config),
    )
    return FileRef(
        file=relative,
        absolute_path=str(path),
        is_client=is_client,
        config=config,
    )


def _describe_config(config: PageConfig | None) -> str:
    if config is None:
        return ""
    parts = []
    if config.revalidate is not None:
        parts.append(f" [revalidate: {config.revalidate}]")
    if config.is_force_dynamic:
        parts.append(" [dynamic]")
    return "".join(parts)


def parse_segment(segment: str) -> SegmentInfo:
    """Parse one directory name.

    - ``about`` -> static
    - ``[id]`` -> dynamic, ``param="id"``
    - ``[...slug]`` -> dynamic catch-all, ``param="slug"``

    Anything that does not parse cleanly (``[]``, ``[...]``, ``[a-b]``)
    is a static segment. Parsing never raises.
    """
    match = _DYNAMIC_RE.match(segment)
    if match is None:
        return SegmentInfo(segment=segment)

    inner = match.group(1)
    catch_all = _CATCH_ALL_RE.match(inner)
    if catch_all is not None:
        return SegmentInfo(segment=segment, dynamic=True, param=catch_all.group(1), catch_all=True)

    if _PARAM_NAME_RE.match(inner):
        return SegmentInfo(segment=segment, dynamic=True, param=inner)

    return SegmentInfo(segment=segment)


def is_group_segment(segment: str) -> bool:
    """True for ``(name)`` route-group directories."""
    return len(segment) > 2 and segment.startswith("(") and segment.endswith(")")


def build_url_path(parent_path: str, segment: str) -> str:
    """Append *segment* to *parent_path*, eliding route groups.

    ``build_url_path("/", "(marketing)")`` is ``"/"``;
    ``build_url_path("/", "pricing")`` is ``"/pricing"``.
    """
    if is_group_segment(segment):
        return parent_path or "/"
    if not parent_path or parent_path == "/":
        return f"/{segment}"
    return f"{parent_path}/{segment}"


# ---------------------------------------------------------------------------
# Static config extraction
# ---------------------------------------------------------------------------


def extract_page_config(path: Path) -> PageConfig | None:
    """Read ``revalidate``/``dynamic`` assignments from a page's source.

    Returns ``None`` when the page declares neither.
    """
    source = path.read_text(encoding="utf-8")
    revalidate = extract_revalidate(source, origin=str(path))
    dynamic = extract_dynamic(source, origin=str(path))
    if revalidate is None and dynamic is None:
        return None
    return PageConfig(revalidate=revalidate, dynamic=dynamic)


def extract_revalidate(source: str, *, origin: str = "<source>") -> int | bool | None:
    """Extract ``revalidate = <int> | False`` from module source.

    Malformed values are logged and treated as absent.
    """
    match = _REVALIDATE_RE.search(source)
    if match is None:
        return None
    raw = match.group(1)
    if raw == "False":
        return False
    if raw.isdigit():
        return int(raw)
    logger.warning("Ignoring malformed revalidate in %s: %r", origin, raw)
    return None


def extract_dynamic(source: str, *, origin: str = "<source>") -> DynamicMode | None:
    """Extract ``dynamic = "<mode>"`` from module source.

    Malformed or unknown values are logged and treated as absent.
    """
    match = _DYNAMIC_CONFIG_RE.search(source)
    if match is None:
        return None
    raw = match.group(1)
    literal = _STRING_LITERAL_RE.match(raw)
    if literal is not None:
        try:
            return DynamicMode(literal.group(2))
        except ValueError:
            pass
    logger.warning("Ignoring malformed dynamic in %s: %r", origin, raw)
    return None
