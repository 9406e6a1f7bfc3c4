"""Load user modules by file path.

Route and component files live outside any package, so they are loaded
with ``importlib.util.spec_from_file_location``. Each file is executed
once per process; later loads return the cached module. Module names are
derived from the resolved path so two ``page.py`` files never collide in
``sys.modules``.
"""

import hashlib
import importlib.util
import sys
import threading
from pathlib import Path
from types import ModuleType

_cache: dict[Path, ModuleType] = {}
_lock = threading.RLock()


def load_module(path: str | Path) -> ModuleType:
    """Import the Python file at *path*, once.

    Raises:
        ImportError: If *path* cannot be loaded as a module.
        FileNotFoundError: If *path* does not exist.
    """
    resolved = Path(path).resolve()
    with _lock:
        cached = _cache.get(resolved)
        if cached is not None:
            return cached
        if not resolved.is_file():
            msg = f"Module file not found: {resolved}"
            raise FileNotFoundError(msg)

        module_name = _module_name(resolved)
        spec = importlib.util.spec_from_file_location(module_name, resolved)
        if spec is None or spec.loader is None:
            msg = f"Cannot load module from {resolved}"
            raise ImportError(msg)
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        _cache[resolved] = module
        return module


def clear_module_cache() -> None:
    """Forget every loaded module (tests and dev reloads)."""
    with _lock:
        for module in _cache.values():
            sys.modules.pop(module.__name__, None)
        _cache.clear()


def _module_name(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode(), usedforsecurity=False).hexdigest()[:12]
    stem = path.stem.replace("-", "_")
    return f"_kestrel_{stem}_{digest}"
