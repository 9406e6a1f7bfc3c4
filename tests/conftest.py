"""Shared fixtures: a small kestrel project written into ``tmp_path``."""

import textwrap
from pathlib import Path

import pytest

from kestrel.config import KestrelConfig
from kestrel.routing.scanner import scan_app

PROJECT_FILES = {
    "app/layout.py": """
        from kestrel import h

        def default(children, params):
            return h(
                "html",
                {"lang": "en"},
                h("head", None, h("title", None, "Site")),
                h("body", None, children),
            )
    """,
    "app/page.py": """
        from kestrel import h

        def default():
            return h("h1", None, "Home")
    """,
    "app/not-found.py": """
        from kestrel import h

        def default():
            return h("p", {"class": "missing"}, "Nothing here")
    """,
    "app/global-error.py": """
        from kestrel import h

        def default(error):
            return h("html", None, h("body", None, h("p", None, "Global: ", error.message)))
    """,
    "app/about/page.py": """
        from kestrel import h

        revalidate = 10

        def default(search_params):
            return h("h1", None, "About ", search_params.get("ref", "-"))
    """,
    "app/(marketing)/pricing/page.py": """
        from kestrel import h

        def default():
            return h("h1", None, "Pricing")
    """,
    "app/blog/[slug]/page.py": """
        from kestrel import h

        revalidate = 60

        async def generate_static_params():
            return [{"slug": "hello"}, {"slug": "world"}]

        async def default(params):
            return h("article", None, h("h1", None, params["slug"]))
    """,
    "app/blog/[slug]/loading.py": """
        from kestrel import h

        def default():
            return h("p", None, "Loading")
    """,
    "app/docs/[...parts]/page.py": """
        from kestrel import h

        def generate_static_params():
            return [{"parts": ["guide", "intro"]}]

        def default(params):
            return h("p", None, "/".join(params["parts"]))
    """,
    "app/live/page.py": """
        from kestrel import h

        dynamic = "force-dynamic"

        def default():
            return h("p", None, "live")
    """,
    "app/broken/page.py": """
        def default():
            raise RuntimeError("database unavailable")
    """,
    "app/broken/error.py": """
        from kestrel import h

        def default(error):
            return h("div", {"class": "error"}, "Failed: ", error.message)
    """,
    "app/counter/page.py": """
        "use client"

        from kestrel import h

        def default(params):
            return h("button", None, "0")
    """,
    "app/widgets/page.py": """
        from kestrel import ClientComponent, h

        Counter = ClientComponent("./components/counter.py", "Counter")

        def Card(title, children=()):
            return h("section", None, h("h2", None, title), children)

        def default():
            return h(Card, {"title": "Widgets"}, h(Counter, {"start": 3}, "Click"))
    """,
    "components/counter.py": """
        "use client"

        from kestrel import h

        def Counter(start=0, children=()):
            return h("button", {"data-start": start}, children)
    """,
}


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Write dedented *files* under *root* and return *root*."""
    for relative, source in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
    return root


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A complete sample project; returns the project root."""
    return write_files(tmp_path / "site", PROJECT_FILES)


@pytest.fixture
def config(project: Path) -> KestrelConfig:
    return KestrelConfig(project_root=project)


@pytest.fixture
def tree(config: KestrelConfig):
    return scan_app(config.app_path, project_root=config.root_path)


class Clock:
    """Settable clock for revalidation tests."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def write(tmp_path: Path):
    """Write a ``{relative_path: source}`` mapping under ``tmp_path``."""

    def _write(files: dict[str, str]) -> Path:
        return write_files(tmp_path, files)

    return _write
