"""Stale-while-revalidate.

A prerendered route with ``revalidate = N`` is served from its artifact;
once the artifact is ``N`` seconds old the request still gets the stale
artifact and a background regeneration is scheduled. At most one
regeneration per route runs at a time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from kestrel.build.manifest import ManifestEntry
from kestrel.cache.metadata import RevalidationStore

logger = logging.getLogger("kestrel.cache")


class Freshness(Enum):
    """How a prerendered entry may be served."""

    FRESH = "fresh"  # Within its revalidation period
    STALE = "stale"  # Serve, then regenerate in the background
    PERMANENT = "permanent"  # No revalidation period
    DYNAMIC = "dynamic"  # force-dynamic: never served from the artifact


def check_freshness(entry: ManifestEntry, store: RevalidationStore) -> Freshness:
    if entry.is_force_dynamic:
        return Freshness.DYNAMIC
    if entry.revalidate is None or entry.revalidate is False:
        return Freshness.PERMANENT
    if store.is_stale(entry.route_path, entry.revalidate):
        return Freshness.STALE
    return Freshness.FRESH


class Revalidator:
    """Runs background regenerations, one per route at a time.

    Args:
        regenerate: Coroutine function called as
            ``regenerate(route_path, *args)``.

    Usage::

        revalidator = Revalidator(regenerate)
        if freshness is Freshness.STALE:
            revalidator.schedule(entry.route_path, entry)
    """

    __slots__ = ("_in_flight", "regenerate")

    def __init__(self, regenerate: Callable[..., Awaitable[Any]]) -> None:
        self.regenerate = regenerate
        self._in_flight: dict[str, asyncio.Task[None]] = {}

    def schedule(self, route_path: str, *args: Any) -> bool:
        """Start a regeneration unless one is already running for *route_path*.

        Returns ``True`` when a new regeneration was started. Must be
        called from a running event loop.
        """
        if route_path in self._in_flight:
            logger.debug("Regeneration already running for %s", route_path)
            return False
        task = asyncio.create_task(self._run(route_path, args))
        self._in_flight[route_path] = task
        return True

    def is_running(self, route_path: str) -> bool:
        return route_path in self._in_flight

    async def wait(self) -> None:
        """Wait for every running regeneration, including ones started meanwhile."""
        while self._in_flight:
            await asyncio.gather(*self._in_flight.values(), return_exceptions=True)

    async def _run(self, route_path: str, args: tuple[Any, ...]) -> None:
        logger.info("Regenerating %s", route_path)
        try:
            await self.regenerate(route_path, *args)
        except Exception:
            logger.exception("Regeneration failed for %s", route_path)
        finally:
            self._in_flight.pop(route_path, None)
