"""Tests for kestrel.flight.loaders and kestrel._internal.modules."""

import sys

import pytest

from kestrel._internal.modules import clear_module_cache, load_module
from kestrel.flight.decoder import FlightDecoder
from kestrel.flight.encoder import encode
from kestrel.flight.loaders import ImportLoader, RegistryLoader
from kestrel.flight.nodes import ClientReference, Element, MissingModule


class TestLoadModule:
    def test_loads_once(self, write) -> None:
        root = write({"counter.py": "CALLS = []\nCALLS.append(1)\n"})
        first = load_module(root / "counter.py")
        second = load_module(str(root / "counter.py"))
        assert first is second
        assert first.CALLS == [1]

    def test_same_stem_does_not_collide(self, write) -> None:
        root = write({"a/page.py": "NAME = 'a'\n", "b/page.py": "NAME = 'b'\n"})
        assert load_module(root / "a" / "page.py").NAME == "a"
        assert load_module(root / "b" / "page.py").NAME == "b"

    def test_hyphenated_stem(self, write) -> None:
        root = write({"not-found.py": "X = 1\n"})
        module = load_module(root / "not-found.py")
        assert module.__name__.startswith("_kestrel_not_found_")

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_module(tmp_path / "nope.py")

    def test_failed_import_not_cached(self, write) -> None:
        root = write({"bad.py": "raise RuntimeError('boom')\n"})
        with pytest.raises(RuntimeError):
            load_module(root / "bad.py")
        (root / "bad.py").write_text("OK = True\n", encoding="utf-8")
        assert load_module(root / "bad.py").OK

    def test_clear_cache(self, write) -> None:
        root = write({"m.py": "X = 1\n"})
        module = load_module(root / "m.py")
        clear_module_cache()
        assert module.__name__ not in sys.modules
        assert load_module(root / "m.py") is not module


class TestRegistryLoader:
    def test_lookup(self) -> None:
        component = object()
        loader = RegistryLoader({("./c.py", "C"): component})
        assert loader.load("./c.py", "C") is component
        assert len(loader) == 1

    def test_missing_raises_lookup_error(self) -> None:
        with pytest.raises(LookupError, match=r"\./c\.py#C"):
            RegistryLoader({}).load("./c.py", "C")


class TestImportLoader:
    def test_imports_export(self, project) -> None:
        counter = ImportLoader(project).load("./components/counter.py", "Counter")
        assert callable(counter)
        assert counter.__name__ == "Counter"

    def test_missing_file(self, project) -> None:
        with pytest.raises(LookupError, match="Cannot import"):
            ImportLoader(project).load("./components/nope.py", "X")

    def test_missing_export(self, project) -> None:
        with pytest.raises(LookupError, match="no export"):
            ImportLoader(project).load("./components/counter.py", "Nope")

    def test_outside_root(self, project) -> None:
        with pytest.raises(LookupError, match="outside"):
            ImportLoader(project / "app").load("../components/counter.py", "Counter")

    @pytest.mark.parametrize(
        "source",
        [
            "def Counter(:\n",
            "raise RuntimeError('module failed')\n",
            "Counter = undefined_name\n",
        ],
        ids=["syntax-error", "runtime-error", "name-error"],
    )
    def test_broken_module_raises_lookup_error(self, write, source) -> None:
        root = write({"components/bad.py": source})
        with pytest.raises(LookupError, match=r"Cannot import client module \./components/bad\.py"):
            ImportLoader(root).load("./components/bad.py", "Counter")


class TestBrokenClientModule:
    def test_decodes_to_missing_module(self, write) -> None:
        root = write({"components/bad.py": "def Counter(:\n"})
        tree = Element("div", {}, (ClientReference("./components/bad.py", "Counter"),))
        node = FlightDecoder(ImportLoader(root)).decode(encode(tree))
        assert node.type == "div"
        missing = node.children[0]
        assert isinstance(missing, MissingModule)
        assert missing.module_id == "./components/bad.py"
        assert missing.name == "Counter"
