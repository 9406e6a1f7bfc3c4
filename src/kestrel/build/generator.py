"""Static generation.

Prerenders every route that can be built ahead of time:

- static routes: a page, no dynamic segment on the chain
- parametrized routes: a dynamic chain whose page exports
  ``generate_static_params``, one concrete route per returned mapping

``force-dynamic`` pages are skipped. Routes are generated one after the
other; a failure is logged and reported for that route only, and the
rest of the build carries on. The manifest and the revalidation metadata
describe the routes that succeeded.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import anyio

from kestrel._internal.files import atomic_write_text
from kestrel._internal.invoke import invoke
from kestrel._internal.modules import load_module
from kestrel.build.artifacts import flight_artifact_path, html_artifact_path
from kestrel.build.manifest import Manifest, ManifestEntry
from kestrel.cache.metadata import RevalidationStore
from kestrel.config import KestrelConfig
from kestrel.errors import GenerationError
from kestrel.flight.encoder import FlightEncoder
from kestrel.flight.loaders import ImportLoader
from kestrel.rendering.registry import ClientRegistry
from kestrel.rendering.renderer import TreeRenderer
from kestrel.routing.params import ParamValue, build_path_with_params, normalize_params
from kestrel.routing.tree import iter_routes
from kestrel.routing.types import RouteNode
from kestrel.templating.document import DocumentRenderer

logger = logging.getLogger("kestrel.build")


@dataclass(frozen=True, slots=True)
class RouteTarget:
    """A concrete route to prerender.

    Attributes:
        route_path: Concrete URL path.
        nodes: Route chain from the root.
        params: Normalized params (empty for static routes).
    """

    route_path: str
    nodes: tuple[RouteNode, ...]
    params: dict[str, ParamValue] = field(default_factory=dict)

    @property
    def node(self) -> RouteNode:
        return self.nodes[-1]


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Outcome of generating one route."""

    route_path: str
    ok: bool
    entry: ManifestEntry | None = None
    error: str | None = None
    duration_ms: float = 0.0


def collect_static_routes(tree: RouteNode) -> list[RouteTarget]:
    """Routes with a page and no dynamic segment, in tree order."""
    targets: list[RouteTarget] = []
    for node, chain in iter_routes(tree):
        if node.page is None or node.page_config.is_force_dynamic:
            continue
        if any(n.dynamic for n in chain):
            continue
        targets.append(RouteTarget(route_path=node.path, nodes=chain))
    return targets


async def collect_param_routes(tree: RouteNode) -> list[RouteTarget]:
    """Concrete routes from every ``generate_static_params`` in the tree.

    A node whose expansion fails is logged and skipped; other nodes are
    still expanded.
    """
    targets: list[RouteTarget] = []
    for node, chain in iter_routes(tree):
        if node.page is None or node.page_config.is_force_dynamic:
            continue
        if not any(n.dynamic for n in chain):
            continue
        if node.page.is_client:
            logger.debug("Skipping client page %s: not executed at build time", node.path)
            continue
        try:
            targets.extend(await _expand(node, chain))
        except Exception:
            logger.exception("Cannot expand params for %s", node.path)
    return targets


async def _expand(node: RouteNode, chain: tuple[RouteNode, ...]) -> list[RouteTarget]:
    assert node.page is not None
    module = load_module(node.page.absolute_path)
    generate = getattr(module, "generate_static_params", None)
    if generate is None:
        logger.debug("%s has no generate_static_params; rendered on demand", node.path)
        return []

    param_sets = await invoke(generate)
    targets = []
    for raw in param_sets or ():
        if not isinstance(raw, Mapping):
            msg = f"generate_static_params for {node.path} returned {type(raw).__name__}, expected a mapping"
            raise GenerationError(msg)
        params = normalize_params(chain, raw)
        targets.append(
            RouteTarget(route_path=build_path_with_params(node.path, params), nodes=chain, params=params)
        )
    logger.info("%s: %d static params", node.path, len(targets))
    return targets


class StaticGenerator:
    """Prerender routes into HTML and chunk stream artifacts.

    Usage::

        generator = StaticGenerator(config, registry)
        results = await generator.generate(tree)
    """

    __slots__ = ("clock", "config", "documents", "registry", "renderer", "store")

    def __init__(
        self,
        config: KestrelConfig,
        registry: ClientRegistry,
        *,
        documents: DocumentRenderer | None = None,
        store: RevalidationStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.registry = registry
        self.renderer = TreeRenderer(registry)
        self.documents = documents or DocumentRenderer(config, loader=ImportLoader(config.root_path))
        self.clock = clock
        self.store = store or RevalidationStore(config.metadata_path, clock=clock)

    async def generate(self, tree: RouteNode) -> list[GenerationResult]:
        """Build every prerenderable route and write the manifest."""
        targets = [*collect_static_routes(tree), *await collect_param_routes(tree)]
        logger.info("Generating %d routes", len(targets))

        results = [await self.generate_target(target) for target in targets]
        entries = tuple(r.entry for r in results if r.entry is not None)

        manifest = Manifest(
            build_time=datetime.fromtimestamp(self.clock(), UTC).isoformat(),
            version=_version(),
            route_tree=tree,
            prerendered=entries,
        )
        manifest.write(self.config.manifest_path)
        self.store.save_batch((entry.route_path, entry.revalidate) for entry in entries)

        failed = sum(1 for r in results if not r.ok)
        if failed:
            logger.warning("Generated %d routes, %d failed", len(entries), failed)
        else:
            logger.info("Generated %d routes", len(entries))
        return results

    async def generate_target(self, target: RouteTarget) -> GenerationResult:
        """Generate one route; failures are captured in the result."""
        start = time.perf_counter()
        try:
            entry = await self.render_to_disk(target.route_path, target.nodes, target.params)
        except Exception as exc:
            logger.exception("Failed to generate %s", target.route_path)
            return GenerationResult(
                route_path=target.route_path,
                ok=False,
                error=f"{type(exc).__name__}: {exc}",
                duration_ms=(time.perf_counter() - start) * 1000,
            )
        duration = (time.perf_counter() - start) * 1000
        logger.debug("Generated %s in %.1fms", target.route_path, duration)
        return GenerationResult(route_path=target.route_path, ok=True, entry=entry, duration_ms=duration)

    async def regenerate(
        self,
        entry: ManifestEntry,
        nodes: Sequence[RouteNode],
        params: Mapping[str, ParamValue],
    ) -> ManifestEntry:
        """Rebuild one prerendered route in place and refresh its metadata.

        Artifacts are replaced atomically; readers never see a partial file.
        """
        fresh = await self.render_to_disk(entry.route_path, tuple(nodes), dict(params))
        self.store.save(entry.route_path, entry.revalidate)
        return fresh

    async def render_to_disk(
        self,
        route_path: str,
        nodes: tuple[RouteNode, ...],
        params: Mapping[str, ParamValue],
    ) -> ManifestEntry:
        """Render, encode and write both artifacts for one route."""
        result = await self.renderer.render_route(nodes, params)
        encoded = FlightEncoder().encode(result.tree)
        document = self.documents.render(encoded.stream, result.client_modules, route_path)

        static_root = self.config.static_path
        html_path = html_artifact_path(static_root, route_path)
        flight_path = flight_artifact_path(static_root, route_path)
        await anyio.to_thread.run_sync(atomic_write_text, html_path, document)
        await anyio.to_thread.run_sync(atomic_write_text, flight_path, encoded.stream)

        config = nodes[-1].page_config
        out = self.config.out_path
        return ManifestEntry(
            route_path=route_path,
            html_path=html_path.relative_to(out).as_posix(),
            flight_path=flight_path.relative_to(out).as_posix(),
            revalidate=config.revalidate,
            dynamic=config.dynamic,
            pattern=nodes[-1].path,
        )


def _version() -> str:
    from kestrel import __version__

    return __version__


def summarize_results(results: Sequence[GenerationResult]) -> list[dict[str, Any]]:
    """JSON summary of a build, one record per route."""
    return [
        {"routePath": r.route_path, "ok": r.ok, "error": r.error, "durationMs": round(r.duration_ms, 1)}
        for r in results
    ]
