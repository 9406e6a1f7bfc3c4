"""Client/server module classification.

A module opts into client-deferred rendering by opening with the string
literal ``"use client"``, in the same place a docstring would go::

    "use client"

    from kestrel import h

    def Counter(count=0):
        ...

Blank lines, ``#`` comments and a UTF-8 BOM may precede the directive.
Classification reads source text only; the module is never imported.
"""

from pathlib import Path
from typing import Protocol

_DIRECTIVES = ('"use client"', "'use client'")


class Classifier(Protocol):
    """Decide whether the module at *path* is client-deferred."""

    def __call__(self, path: str | Path, /) -> bool: ...


def is_client_source(source: str) -> bool:
    """Return True if *source* starts with a ``"use client"`` directive."""
    text = source.removeprefix("\ufeff")
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        return stripped.startswith(_DIRECTIVES)
    return False


def is_client_module(path: str | Path) -> bool:
    """Classify the module file at *path*. Missing files are server modules."""
    file = Path(path)
    if not file.is_file():
        return False
    return is_client_source(file.read_text(encoding="utf-8"))
