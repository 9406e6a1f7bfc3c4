"""Tests for kestrel.routing.tree: traversal, printing, JSON form."""

import json

from kestrel.routing.tree import (
    all_route_paths,
    format_route_tree,
    iter_routes,
    route_tree_from_dict,
    route_tree_to_dict,
)


class TestIterRoutes:
    def test_chains_start_at_root(self, tree) -> None:
        for node, chain in iter_routes(tree):
            assert chain[0] is tree
            assert chain[-1] is node

    def test_root_first(self, tree) -> None:
        first, chain = next(iter_routes(tree))
        assert first is tree
        assert chain == (tree,)


class TestAllRoutePaths:
    def test_pages_only(self, tree) -> None:
        assert set(all_route_paths(tree)) == {
            "/",
            "/about",
            "/pricing",
            "/blog/[slug]",
            "/docs/[...parts]",
            "/live",
            "/broken",
            "/counter",
            "/widgets",
        }


class TestFormatRouteTree:
    def test_lists_files_and_flags(self, tree) -> None:
        text = format_route_tree(tree)
        assert text.splitlines()[0] == "/"
        assert "page: app/about/page.py [revalidate: 10]" in text
        assert "page: app/counter/page.py (client)" in text
        assert "[dynamic: force-dynamic]" in text
        assert "/ (marketing)" in text


class TestJsonForm:
    def test_round_trip(self, tree) -> None:
        data = json.loads(json.dumps(route_tree_to_dict(tree)))
        assert route_tree_from_dict(data) == tree

    def test_camel_case_keys(self, tree) -> None:
        data = route_tree_to_dict(tree)
        assert "notFound" in data
        assert "globalError" in data
        assert data["page"]["isClient"] is False
