"""Per-route revalidation metadata.

One JSON file per concrete route path under the metadata directory
mirroring the URL (``/`` -> ``index.json``, ``/a/b`` -> ``a/b.json``)::

    {"path": "/blog/hello", "generatedAt": 1767225600000, "revalidate": 60}

``generatedAt`` is in milliseconds since the epoch. Files are replaced
atomically, so a concurrent reader sees the old or the new record.
"""

from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from kestrel._internal.files import atomic_write_text

logger = logging.getLogger("kestrel.cache")

Revalidate = int | Literal[False] | None


@dataclass(frozen=True, slots=True)
class PageMetadata:
    """Generation record for one route.

    Attributes:
        path: Concrete route path.
        generated_at: Generation time in epoch milliseconds.
        revalidate: Seconds until stale, or ``False`` for never.
    """

    path: str
    generated_at: int
    revalidate: int | Literal[False] = False

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "generatedAt": self.generated_at, "revalidate": self.revalidate}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PageMetadata:
        return cls(
            path=data["path"],
            generated_at=int(data["generatedAt"]),
            revalidate=data.get("revalidate", False),
        )


class RevalidationStore:
    """Reads and writes :class:`PageMetadata` files.

    Args:
        directory: Where the metadata files live; created on first write.
        clock: Returns the current time in seconds (``time.time`` by default).
    """

    __slots__ = ("clock", "directory")

    def __init__(self, directory: str | Path, *, clock: Callable[[], float] = time.time) -> None:
        self.directory = Path(directory)
        self.clock = clock

    def path_for(self, route_path: str) -> Path:
        *parents, name = (route_path.strip("/") or "index").split("/")
        return self.directory.joinpath(*parents, f"{name}.json")

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    def load(self, route_path: str) -> PageMetadata | None:
        """Metadata for *route_path*, or ``None`` when missing or unreadable."""
        path = self.path_for(route_path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return PageMetadata.from_dict(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Unreadable metadata for %s: %s", route_path, exc)
            return None

    def save(self, route_path: str, revalidate: Revalidate = None) -> PageMetadata:
        """Record that *route_path* was generated now."""
        metadata = PageMetadata(
            path=route_path,
            generated_at=self.now_ms(),
            revalidate=revalidate if revalidate is not None else False,
        )
        atomic_write_text(self.path_for(route_path), json.dumps(metadata.to_dict(), indent=2))
        return metadata

    def save_batch(self, items: Iterable[tuple[str, Revalidate]]) -> list[PageMetadata]:
        """Save metadata for several routes (end of a build pass)."""
        return [self.save(route_path, revalidate) for route_path, revalidate in items]

    def touch(self, route_path: str) -> PageMetadata | None:
        """Advance ``generatedAt`` to now, keeping ``revalidate``.

        Returns ``None`` when *route_path* has no metadata yet.
        """
        current = self.load(route_path)
        if current is None:
            logger.warning("No metadata to touch for %s", route_path)
            return None
        return self.save(route_path, current.revalidate)

    def age(self, route_path: str) -> float:
        """Seconds since *route_path* was generated (``inf`` when unknown)."""
        metadata = self.load(route_path)
        if metadata is None:
            return math.inf
        return (self.now_ms() - metadata.generated_at) / 1000

    def is_stale(self, route_path: str, revalidate: Revalidate) -> bool:
        """True when a route with a revalidation period is due.

        ``False``/``None`` never go stale. Missing metadata with a numeric
        period counts as stale.
        """
        if revalidate is None or revalidate is False:
            return False
        return self.age(route_path) >= revalidate
