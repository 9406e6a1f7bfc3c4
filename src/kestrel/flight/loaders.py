"""Module loaders used by the decoder to resolve client references.

A loader maps ``(module_id, export_name)`` to the component it names and
raises :class:`LookupError` when it cannot. Two loaders ship:

- :class:`RegistryLoader`: a fixed table, built at build time from the
  components the renderer saw
- :class:`ImportLoader`: imports ``./path/to/module.py`` relative to a
  project root on first use
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from kestrel._internal.modules import load_module


class ModuleLoader(Protocol):
    """Resolves client module references."""

    def load(self, module_id: str, name: str) -> Any:
        """Return the named export, or raise :class:`LookupError`."""
        ...


class RegistryLoader:
    """Resolve references from a static ``(module_id, name) -> component`` table."""

    __slots__ = ("_components",)

    def __init__(self, components: Mapping[tuple[str, str], Any]) -> None:
        self._components = dict(components)

    def load(self, module_id: str, name: str) -> Any:
        try:
            return self._components[(module_id, name)]
        except KeyError:
            msg = f"No client module registered for {module_id}#{name}"
            raise LookupError(msg) from None

    def __len__(self) -> int:
        return len(self._components)


class ImportLoader:
    """Resolve references by importing the module file under *project_root*.

    ``name`` is looked up as a module attribute; ``"default"`` maps to the
    module's ``default`` attribute like every other export. Any failure
    while executing the module surfaces as :class:`LookupError`.
    """

    __slots__ = ("_root",)

    def __init__(self, project_root: str | Path) -> None:
        self._root = Path(project_root).resolve()

    def load(self, module_id: str, name: str) -> Any:
        path = (self._root / module_id.removeprefix("./")).resolve()
        if not path.is_relative_to(self._root):
            msg = f"Module {module_id} is outside the project root"
            raise LookupError(msg)
        try:
            module = load_module(path)
        except Exception as exc:
            msg = f"Cannot import client module {module_id}: {exc}"
            raise LookupError(msg) from exc
        try:
            return getattr(module, name)
        except AttributeError:
            msg = f"Client module {module_id} has no export {name!r}"
            raise LookupError(msg) from None
