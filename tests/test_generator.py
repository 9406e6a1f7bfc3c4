"""Tests for kestrel.build.generator: static generation."""

import json
import logging

import pytest

from kestrel.build.generator import (
    StaticGenerator,
    collect_param_routes,
    collect_static_routes,
    summarize_results,
)
from kestrel.build.manifest import Manifest
from kestrel.flight.decoder import decode
from kestrel.flight.nodes import Element
from kestrel.rendering.registry import ClientRegistry
from kestrel.routing.scanner import scan_app


@pytest.fixture
def generator(config, tree, clock):
    registry = ClientRegistry.from_route_tree(tree, config.root_path, config.component_paths)
    return StaticGenerator(config, registry, clock=clock)


def _by_path(results):
    return {r.route_path: r for r in results}


# ---------------------------------------------------------------------------
# Route collection
# ---------------------------------------------------------------------------


class TestCollectStaticRoutes:
    def test_static_pages(self, tree) -> None:
        paths = {t.route_path for t in collect_static_routes(tree)}
        assert paths == {"/", "/about", "/pricing", "/broken", "/counter", "/widgets"}

    def test_chain_includes_group(self, tree) -> None:
        target = next(t for t in collect_static_routes(tree) if t.route_path == "/pricing")
        assert [n.segment for n in target.nodes] == ["", "(marketing)", "pricing"]
        assert target.params == {}


class TestCollectParamRoutes:
    async def test_expands_static_params(self, tree) -> None:
        targets = {t.route_path: t for t in await collect_param_routes(tree)}
        assert set(targets) == {"/blog/hello", "/blog/world", "/docs/guide/intro"}
        assert targets["/blog/hello"].params == {"slug": "hello"}
        assert targets["/docs/guide/intro"].params == {"parts": ("guide", "intro")}

    async def test_page_without_generator_skipped(self, write) -> None:
        root = write({"app/[id]/page.py": "def default(params): ...\n"})
        assert await collect_param_routes(scan_app(root / "app")) == []

    async def test_failing_expansion_isolated(self, write, caplog) -> None:
        root = write(
            {
                "app/a/[id]/page.py": "def generate_static_params():\n    raise OSError('no db')\n",
                "app/b/[id]/page.py": "def generate_static_params():\n    return [{'id': 1}]\n",
                "app/c/[id]/page.py": "def generate_static_params():\n    return ['nope']\n",
            }
        )
        with caplog.at_level(logging.ERROR, logger="kestrel.build"):
            targets = await collect_param_routes(scan_app(root / "app"))
        assert [t.route_path for t in targets] == ["/b/1"]
        assert "Cannot expand params for /a/[id]" in caplog.text
        assert "Cannot expand params for /c/[id]" in caplog.text

    async def test_client_pages_not_executed(self, write) -> None:
        root = write(
            {"app/[id]/page.py": '"use client"\n\ndef generate_static_params():\n    raise SystemExit(1)\n'}
        )
        assert await collect_param_routes(scan_app(root / "app")) == []

    async def test_force_dynamic_skipped(self, write) -> None:
        root = write(
            {
                "app/[id]/page.py": (
                    'dynamic = "force-dynamic"\n\n'
                    "def generate_static_params():\n    return [{'id': 'x'}]\n"
                )
            }
        )
        assert await collect_param_routes(scan_app(root / "app")) == []


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class TestGenerate:
    async def test_generates_every_prerenderable_route(self, generator, tree) -> None:
        results = _by_path(await generator.generate(tree))
        assert set(results) == {
            "/",
            "/about",
            "/pricing",
            "/broken",
            "/counter",
            "/widgets",
            "/blog/hello",
            "/blog/world",
            "/docs/guide/intro",
        }
        assert "/live" not in results

    async def test_failure_does_not_block_siblings(self, generator, tree, config) -> None:
        results = _by_path(await generator.generate(tree))
        assert not results["/broken"].ok
        assert results["/broken"].error == "RuntimeError: database unavailable"
        assert all(r.ok for path, r in results.items() if path != "/broken")
        assert not (config.static_path / "pages" / "broken.html").exists()

    async def test_writes_artifacts(self, generator, tree, config) -> None:
        await generator.generate(tree)
        html = (config.static_path / "pages" / "blog" / "hello.html").read_text(encoding="utf-8")
        assert "<article><h1>hello</h1></article>" in html
        stream = (config.static_path / "flight" / "blog" / "hello.txt").read_text(encoding="utf-8")
        assert isinstance(decode(stream), Element)
        assert (config.static_path / "pages" / "index.html").is_file()

    async def test_client_components_prerendered_in_html(self, generator, tree, config) -> None:
        await generator.generate(tree)
        html = (config.static_path / "pages" / "widgets.html").read_text(encoding="utf-8")
        assert '<button data-start="3">Click</button>' in html
        assert '"id":"./components/counter.py"' in html

    async def test_manifest(self, generator, tree, config) -> None:
        await generator.generate(tree)
        manifest = Manifest.load(config.manifest_path)
        assert manifest.build_time == "1970-01-01T00:16:40+00:00"
        assert manifest.route_tree == tree
        assert len(manifest.prerendered) == 8
        entry = manifest.find("/blog/hello")
        assert entry.html_path == "static/pages/blog/hello.html"
        assert entry.flight_path == "static/flight/blog/hello.txt"
        assert entry.revalidate == 60
        assert entry.pattern == "/blog/[slug]"
        assert manifest.find("/broken") is None

    async def test_metadata(self, generator, tree) -> None:
        await generator.generate(tree)
        about = generator.store.load("/about")
        assert about.generated_at == 1_000_000
        assert about.revalidate == 10
        assert generator.store.load("/").revalidate is False
        assert generator.store.load("/broken") is None

    async def test_regenerate_advances_metadata(self, generator, tree, config, clock) -> None:
        await generator.generate(tree)
        target = next(t for t in collect_static_routes(tree) if t.route_path == "/about")
        entry = Manifest.load(config.manifest_path).find("/about")
        clock.advance(11)
        fresh = await generator.regenerate(entry, target.nodes, target.params)
        assert fresh == entry
        assert generator.store.load("/about").generated_at == 1_011_000


class TestSummarize:
    async def test_json_records(self, generator, tree) -> None:
        summary = summarize_results(await generator.generate(tree))
        json.dumps(summary)
        broken = next(s for s in summary if s["routePath"] == "/broken")
        assert broken["ok"] is False
        assert set(broken) == {"routePath", "ok", "error", "durationMs"}
