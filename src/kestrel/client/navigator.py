"""Client-side navigation.

Keeps the current location and tree of a page that was hydrated from a
server document, and moves between routes by fetching chunk streams
(``GET <path>?_rsc=1``) instead of full documents.

A navigation that is overtaken by a newer one never applies its tree.
When a stream cannot be fetched or decoded the navigator gives up and
asks for a full page load.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx

from kestrel.client.cache import TreeCache
from kestrel.flight.decoder import FlightDecoder
from kestrel.templating.document import extract_flight_payload

logger = logging.getLogger("kestrel.client")

SwapHandler = Callable[[str, Any], None]
ReloadHandler = Callable[[str], None]


class Navigator:
    """Fetch, cache and swap route trees.

    Args:
        base_url: Origin of the kestrel server.
        decoder: Decoder used for every stream (resolves client modules).
        http_client: Client to fetch with; one is created and owned when omitted.
        cache: Tree cache; a private one is created when omitted.
        on_swap: Called with ``(path, tree)`` when a navigation applies.
        on_full_reload: Called with the path when client navigation fails.
        rsc_param: Query marker asking the server for a chunk stream.

    Usage::

        async with Navigator("http://localhost:8000", on_swap=render) as nav:
            nav.hydrate(document_html)
            await nav.navigate("/blog/hello")
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        decoder: FlightDecoder | None = None,
        http_client: httpx.AsyncClient | None = None,
        cache: TreeCache | None = None,
        on_swap: SwapHandler | None = None,
        on_full_reload: ReloadHandler | None = None,
        rsc_param: str = "_rsc",
    ) -> None:
        self.decoder = decoder or FlightDecoder()
        self.cache = cache if cache is not None else TreeCache()
        self.on_swap = on_swap
        self.on_full_reload = on_full_reload
        self.rsc_param = rsc_param
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=base_url)
        self.current_path: str | None = None
        self.tree: Any = None
        self._history: list[str] = []
        self._index = -1
        self._generation = 0

    async def __aenter__(self) -> Navigator:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def history(self) -> tuple[str, ...]:
        return tuple(self._history)

    # -- Operations --

    def hydrate(self, document: str) -> Any:
        """Adopt the tree embedded in a server-rendered document.

        Raises:
            FlightDecodeError: If the document carries no valid stream.
        """
        stream, pathname = extract_flight_payload(document)
        tree = self.decoder.decode(stream)
        self.cache.put(pathname, tree)
        self.current_path = pathname
        self.tree = tree
        self._history = [pathname]
        self._index = 0
        logger.debug("Hydrated %s", pathname)
        return tree

    async def navigate(self, path: str) -> bool:
        """Move to *path*. Returns ``True`` when the new tree was applied.

        Navigating to the current location does nothing.
        """
        if path == self.current_path:
            return False
        if await self._go(path):
            del self._history[self._index + 1 :]
            self._history.append(path)
            self._index = len(self._history) - 1
            return True
        return False

    async def back(self) -> bool:
        if self._index <= 0:
            return False
        return await self._traverse(self._index - 1)

    async def forward(self) -> bool:
        if self._index >= len(self._history) - 1:
            return False
        return await self._traverse(self._index + 1)

    async def prefetch(self, path: str) -> bool:
        """Load *path* into the cache without navigating."""
        if path in self.cache:
            return True
        return await self._fetch(path) is not None

    # -- Internals --

    async def _traverse(self, index: int) -> bool:
        if await self._go(self._history[index]):
            self._index = index
            return True
        return False

    async def _go(self, path: str) -> bool:
        self._generation += 1
        generation = self._generation

        tree = self.cache.get(path)
        if tree is None:
            tree = await self._fetch(path)
        if generation != self._generation:
            logger.debug("Navigation to %s superseded", path)
            return False
        if tree is None:
            if self.on_full_reload is not None:
                self.on_full_reload(path)
            return False

        self.current_path = path
        self.tree = tree
        if self.on_swap is not None:
            self.on_swap(path, tree)
        return True

    async def _fetch(self, path: str) -> Any | None:
        try:
            response = await self._client.get(path, params={self.rsc_param: "1"})
            response.raise_for_status()
            tree = self.decoder.decode(response.text)
        except Exception as exc:
            # Any fetch or decode failure falls back to a full page load
            logger.warning("Cannot load %s: %s: %s", path, type(exc).__name__, exc)
            return None
        self.cache.put(path, tree)
        return tree
