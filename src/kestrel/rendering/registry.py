"""Client component registry.

Maps component objects to the client module descriptors the encoder
writes as ``M`` chunks. A component is client-deferred when it was
registered explicitly, is a :class:`~kestrel.flight.nodes.ClientComponent`
handle, or is defined in a file classified as a client module.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from kestrel.flight.loaders import RegistryLoader
from kestrel.flight.nodes import ClientComponent
from kestrel.routing.classify import Classifier, is_client_module
from kestrel.routing.tree import iter_routes
from kestrel.routing.types import RouteNode

logger = logging.getLogger("kestrel.render")

_ROUTE_FILES = ("page", "layout", "loading", "error", "not_found", "global_error")


def module_id_for(path: str | Path, project_root: str | Path) -> str:
    """Stable module id for *path*: ``./`` plus its project-relative POSIX path.

    Raises:
        ValueError: If *path* is outside *project_root*.
    """
    resolved = Path(path).resolve()
    root = Path(project_root).resolve()
    return "./" + resolved.relative_to(root).as_posix()


class ClientRegistry:
    """Lookup table from components to client module descriptors.

    Usage::

        registry = ClientRegistry(project_root)
        registry.register(Counter, "./components/counter.py", "Counter")
        registry.register_file(project_root / "components" / "chart.py")
    """

    __slots__ = ("_components", "_files", "project_root")

    def __init__(self, project_root: str | Path = ".") -> None:
        self.project_root = Path(project_root).resolve()
        self._components: dict[int, tuple[Any, ClientComponent]] = {}
        self._files: dict[Path, str] = {}

    def register(self, component: Any, module_id: str, name: str = "default") -> ClientComponent:
        """Mark *component* as client-deferred under ``module_id#name``."""
        descriptor = ClientComponent(module_id, name)
        # Keep the object alive so its id() stays unique
        self._components[id(component)] = (component, descriptor)
        return descriptor

    def register_file(self, path: str | Path) -> str:
        """Mark every component defined in *path* as client-deferred."""
        resolved = Path(path).resolve()
        module_id = module_id_for(resolved, self.project_root)
        self._files[resolved] = module_id
        return module_id

    def is_client_file(self, path: str | Path) -> bool:
        return Path(path).resolve() in self._files

    def lookup(self, component: Any) -> ClientComponent | None:
        """Descriptor for *component*, or ``None`` for server components."""
        if isinstance(component, ClientComponent):
            return component
        entry = self._components.get(id(component))
        if entry is not None and entry[0] is component:
            return entry[1]
        if not self._files:
            return None
        source = _source_file(component)
        if source is None:
            return None
        module_id = self._files.get(source)
        if module_id is None:
            return None
        return ClientComponent(module_id, _export_name(component))

    def loader(self) -> RegistryLoader:
        """Loader resolving the explicitly registered components."""
        return RegistryLoader(
            {(d.module_id, d.name): component for component, d in self._components.values()}
        )

    def __len__(self) -> int:
        return len(self._components) + len(self._files)

    @classmethod
    def from_route_tree(
        cls,
        tree: RouteNode,
        project_root: str | Path,
        extra_dirs: Iterable[str | Path] = (),
        *,
        classifier: Classifier = is_client_module,
    ) -> ClientRegistry:
        """Build a registry from the client files of a route tree.

        Registers every route file the scanner classified as client, plus
        every client module found under *extra_dirs*. Client modules are
        not imported.
        """
        registry = cls(project_root)
        for node, _ in iter_routes(tree):
            for kind in _ROUTE_FILES:
                ref = getattr(node, kind)
                if ref is not None and ref.is_client:
                    registry.register_file(ref.absolute_path)
        for directory in extra_dirs:
            base = Path(directory)
            if not base.is_dir():
                continue
            for path in sorted(base.rglob("*.py")):
                if "__pycache__" in path.parts:
                    continue
                if classifier(path):
                    logger.debug("Client module: %s", path)
                    registry.register_file(path)
        return registry


def _source_file(component: Any) -> Path | None:
    target = inspect.unwrap(component) if callable(component) else component
    try:
        source = inspect.getsourcefile(target)
    except TypeError:
        return None
    if source is None:
        return None
    return Path(source).resolve()


def _export_name(component: Any) -> str:
    name = getattr(component, "__name__", None)
    qualname = getattr(component, "__qualname__", name)
    if not name or qualname != name or name == "<lambda>":
        return "default"
    return name
