"""Tests for kestrel.build.manifest, kestrel.build.artifacts and atomic writes."""

import json

import pytest

from kestrel._internal.files import atomic_write_text
from kestrel.build.artifacts import flight_artifact_path, html_artifact_path, route_stem
from kestrel.build.manifest import Manifest, ManifestEntry
from kestrel.routing.types import DynamicMode


class TestArtifactPaths:
    def test_root_is_index(self, tmp_path) -> None:
        assert route_stem("/") == "index"
        assert html_artifact_path(tmp_path, "/") == tmp_path / "pages" / "index.html"

    def test_nested(self, tmp_path) -> None:
        assert html_artifact_path(tmp_path, "/blog/hello") == tmp_path / "pages" / "blog" / "hello.html"
        assert flight_artifact_path(tmp_path, "/blog/hello") == tmp_path / "flight" / "blog" / "hello.txt"


class TestAtomicWrite:
    def test_creates_parents(self, tmp_path) -> None:
        target = tmp_path / "a" / "b" / "c.txt"
        atomic_write_text(target, "hello")
        assert target.read_text(encoding="utf-8") == "hello"

    def test_replaces_without_leftovers(self, tmp_path) -> None:
        target = tmp_path / "c.txt"
        atomic_write_text(target, "old")
        atomic_write_text(target, "new")
        assert target.read_text(encoding="utf-8") == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["c.txt"]

    def test_newlines_untranslated(self, tmp_path) -> None:
        target = tmp_path / "s.txt"
        atomic_write_text(target, '1J"a"\n0J"$1"')
        assert target.read_bytes() == b'1J"a"\n0J"$1"'


class TestManifestEntry:
    def test_dict_keys(self) -> None:
        entry = ManifestEntry(
            "/blog/a", "static/pages/blog/a.html", "static/flight/blog/a.txt", 60, None, "/blog/[slug]"
        )
        assert entry.to_dict() == {
            "routePath": "/blog/a",
            "htmlPath": "static/pages/blog/a.html",
            "flightPath": "static/flight/blog/a.txt",
            "revalidate": 60,
            "dynamic": None,
            "pattern": "/blog/[slug]",
        }

    def test_from_dict(self) -> None:
        entry = ManifestEntry.from_dict(
            {"routePath": "/x", "htmlPath": "h", "flightPath": "f", "dynamic": "force-static", "revalidate": False}
        )
        assert entry.dynamic is DynamicMode.FORCE_STATIC
        assert entry.revalidate is False
        assert not entry.is_force_dynamic


class TestManifest:
    def test_write_and_load(self, tmp_path, tree) -> None:
        manifest = Manifest(
            build_time="2026-01-01T00:00:00+00:00",
            version="0.1.0",
            route_tree=tree,
            prerendered=(ManifestEntry("/", "static/pages/index.html", "static/flight/index.txt"),),
        )
        path = tmp_path / "out" / "manifest.json"
        manifest.write(path)
        assert Manifest.load(path) == manifest
        data = json.loads(path.read_text(encoding="utf-8"))
        assert set(data) == {"buildTime", "version", "routeTree", "prerendered"}

    def test_find(self) -> None:
        entry = ManifestEntry("/about", "h", "f")
        manifest = Manifest("t", "v", prerendered=(entry,))
        assert manifest.find("/about") is entry
        assert manifest.find("/nope") is None

    def test_load_missing(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            Manifest.load(tmp_path / "manifest.json")

    def test_load_invalid(self, tmp_path) -> None:
        path = tmp_path / "manifest.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError, match="not a build manifest"):
            Manifest.load(path)
