"""ASGI application serving a kestrel project.

Request handling, in order:

1. match the path against the route tree (no match: not-found tree, 404)
2. a prerendered, non ``force-dynamic`` route is served from its
   artifact; a stale one also schedules a background regeneration
3. anything else is rendered per request
4. a render failure is answered with the nearest error boundary (500)

``?_rsc=1`` switches every answer from the HTML document to the chunk
stream. The ``x-kestrel-cache`` header reports ``HIT``, ``STALE`` or
``DYNAMIC`` for page responses.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import anyio

from kestrel._internal.asgi import Receive, Scope, Send
from kestrel.build.generator import StaticGenerator
from kestrel.build.manifest import Manifest, ManifestEntry
from kestrel.cache.metadata import RevalidationStore
from kestrel.cache.revalidate import Freshness, Revalidator, check_freshness
from kestrel.config import KestrelConfig
from kestrel.flight.encoder import FlightEncoder
from kestrel.flight.loaders import ImportLoader
from kestrel.http.request import Request
from kestrel.http.response import FLIGHT, HTML, PLAIN, Response
from kestrel.rendering.registry import ClientRegistry
from kestrel.rendering.renderer import RenderResult, TreeRenderer
from kestrel.routing.match import match_route
from kestrel.routing.params import ParamValue
from kestrel.routing.scanner import scan_app
from kestrel.routing.types import RouteMatch, RouteNode
from kestrel.server.sender import send_response
from kestrel.templating.document import DocumentRenderer

logger = logging.getLogger("kestrel.server")

CACHE_HEADER = "x-kestrel-cache"


class App:
    """The kestrel ASGI application.

    Without explicit collaborators the app loads the build manifest (if
    any), takes the route tree from it or scans the app directory, and
    builds a client registry from the tree.

    Usage::

        app = App(KestrelConfig(project_root="site"))
        # serve with any ASGI server, or `kestrel serve`
    """

    def __init__(
        self,
        config: KestrelConfig | None = None,
        *,
        route_tree: RouteNode | None = None,
        manifest: Manifest | None = None,
        registry: ClientRegistry | None = None,
        store: RevalidationStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or KestrelConfig()
        self.clock = clock
        self._route_tree = route_tree
        self._manifest = manifest
        self._registry = registry
        self._store = store
        self._ready = False

    # -- Setup --

    def prepare(self) -> None:
        """Load the manifest, route tree and registry. Idempotent."""
        if self._ready:
            return
        config = self.config
        if self._manifest is None and config.manifest_path.is_file():
            self._manifest = Manifest.load(config.manifest_path)
            logger.info("Loaded manifest with %d prerendered routes", len(self._manifest.prerendered))
        if self._route_tree is None:
            if self._manifest is not None and self._manifest.route_tree is not None:
                self._route_tree = self._manifest.route_tree
            else:
                self._route_tree = scan_app(config.app_path, project_root=config.root_path)
        if self._registry is None:
            self._registry = ClientRegistry.from_route_tree(
                self._route_tree, config.root_path, config.component_paths
            )
        if self._store is None:
            self._store = RevalidationStore(config.metadata_path, clock=self.clock)

        self.renderer = TreeRenderer(self._registry)
        self.documents = DocumentRenderer(config, loader=ImportLoader(config.root_path))
        self.generator = StaticGenerator(
            config, self._registry, documents=self.documents, store=self._store, clock=self.clock
        )
        self.revalidator = Revalidator(self._regenerate)
        self._ready = True

    @property
    def route_tree(self) -> RouteNode:
        self.prepare()
        assert self._route_tree is not None
        return self._route_tree

    @property
    def manifest(self) -> Manifest | None:
        self.prepare()
        return self._manifest

    @property
    def store(self) -> RevalidationStore:
        self.prepare()
        assert self._store is not None
        return self._store

    async def startup(self) -> None:
        self.prepare()

    async def shutdown(self) -> None:
        if self._ready:
            await self.revalidator.wait()

    # -- ASGI --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        request = Request.from_asgi(dict(scope))
        if request.method not in ("GET", "HEAD"):
            response = Response("Method Not Allowed", 405, PLAIN).with_header("allow", "GET, HEAD")
        else:
            response = await self.handle(request)
        await send_response(response, send, head=request.method == "HEAD")

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Request handling --

    async def handle(self, request: Request) -> Response:
        """Answer one GET request."""
        self.prepare()
        flight = request.wants_flight(self.config.rsc_param)
        path = _normalize_path(request.path)

        match = match_route(self.route_tree, path)
        if match is None:
            return await self._not_found(path, flight)

        entry = self._manifest.find(path) if self._manifest is not None else None
        if entry is not None and not match.target.page_config.is_force_dynamic:
            cached = await self._serve_artifact(entry, match, flight)
            if cached is not None:
                return cached

        return await self._render(request, path, match, flight)

    async def _serve_artifact(self, entry: ManifestEntry, match: RouteMatch, flight: bool) -> Response | None:
        freshness = await anyio.to_thread.run_sync(check_freshness, entry, self.store)
        if freshness is Freshness.DYNAMIC:
            return None
        artifact = Path(self.config.out_path) / (entry.flight_path if flight else entry.html_path)
        try:
            body = await anyio.Path(artifact).read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning("Artifact missing for %s: %s", entry.route_path, artifact)
            return None

        status = "HIT"
        if freshness is Freshness.STALE:
            status = "STALE"
            self.revalidator.schedule(entry.route_path, entry, match.nodes, match.params)
        return Response(body, content_type=FLIGHT if flight else HTML).with_header(CACHE_HEADER, status)

    async def _render(self, request: Request, path: str, match: RouteMatch, flight: bool) -> Response:
        search_params = request.query.without(self.config.rsc_param)
        try:
            result = await self.renderer.render_route(match.nodes, match.params, search_params=search_params)
        except Exception as exc:
            logger.exception("Render failed for %s", path)
            return await self._error(path, match, exc, flight)
        return self._respond(result, path, flight).with_header(CACHE_HEADER, "DYNAMIC")

    async def _error(self, path: str, match: RouteMatch, exc: Exception, flight: bool) -> Response:
        try:
            boundary = await self.renderer.render_error_boundary(match.nodes, match.params, exc)
        except Exception:
            logger.exception("Error boundary failed for %s", path)
            boundary = None
        if boundary is None:
            return Response("Internal Server Error", 500, PLAIN)
        return self._respond(boundary, path, flight, status=500)

    async def _not_found(self, path: str, flight: bool) -> Response:
        try:
            result = await self.renderer.render_not_found(self.route_tree)
        except Exception:
            logger.exception("not-found page failed for %s", path)
            result = None
        if result is None:
            return Response("Not Found", 404, PLAIN)
        return self._respond(result, path, flight, status=404)

    def _respond(self, result: RenderResult, path: str, flight: bool, *, status: int = 200) -> Response:
        encoded = FlightEncoder().encode(result.tree)
        if flight:
            return Response(encoded.stream, status, FLIGHT)
        document = self.documents.render(encoded.stream, result.client_modules, path)
        return Response(document, status, HTML)

    async def _regenerate(
        self,
        route_path: str,
        entry: ManifestEntry,
        nodes: tuple[RouteNode, ...],
        params: Mapping[str, ParamValue],
    ) -> Any:
        return await self.generator.regenerate(entry, nodes, params)


def _normalize_path(path: str) -> str:
    stripped = path.rstrip("/")
    return stripped or "/"
