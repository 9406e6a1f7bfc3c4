"""Tests for kestrel.client: navigation between routes over chunk streams."""

import asyncio

import httpx
import pytest

from kestrel.client.cache import TreeCache
from kestrel.client.navigator import Navigator
from kestrel.flight.decoder import FlightDecoder
from kestrel.flight.encoder import encode
from kestrel.flight.loaders import ImportLoader
from kestrel.flight.nodes import ClientReference, Element, MissingModule, h
from kestrel.server import App
from kestrel.templating.document import DocumentRenderer


def _document(path: str) -> str:
    return DocumentRenderer().render(encode(h("p", None, path)), (), path)


def _text(tree) -> str:
    return tree.children[0]


class Recorder:
    """Collects swap and reload callbacks."""

    def __init__(self) -> None:
        self.swaps: list[str] = []
        self.reloads: list[str] = []

    def swap(self, path, tree) -> None:
        self.swaps.append(path)

    def reload(self, path) -> None:
        self.reloads.append(path)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def requests():
    return []


@pytest.fixture
async def http_client(requests):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/broken":
            return httpx.Response(500, text="Internal Server Error")
        if request.url.path == "/garbage":
            return httpx.Response(200, text="not a stream")
        if request.url.path == "/failed":
            return httpx.Response(200, text='1E{"message":"database unavailable","digest":"abc"}\n0J["$1"]')
        return httpx.Response(200, text=encode(h("p", None, request.url.path)))

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver") as client:
        yield client


@pytest.fixture
def navigator(http_client, recorder):
    nav = Navigator(http_client=http_client, on_swap=recorder.swap, on_full_reload=recorder.reload)
    nav.hydrate(_document("/"))
    return nav


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class TestTreeCache:
    def test_lru_eviction(self) -> None:
        cache = TreeCache(max_entries=2)
        cache.put("/a", "A")
        cache.put("/b", "B")
        cache.get("/a")
        cache.put("/c", "C")
        assert "/a" in cache
        assert "/b" not in cache
        assert len(cache) == 2

    def test_invalidate(self) -> None:
        cache = TreeCache()
        cache.put("/a", "A")
        cache.put("/b", "B")
        cache.invalidate("/a")
        assert cache.get("/a") is None
        cache.invalidate()
        assert len(cache) == 0

    def test_unbounded_by_default(self) -> None:
        cache = TreeCache()
        assert cache.max_entries is None
        for n in range(100):
            cache.put(f"/{n}", n + 1)
        assert len(cache) == 100


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


class TestHydrate:
    def test_adopts_embedded_tree(self, navigator) -> None:
        assert navigator.current_path == "/"
        assert navigator.tree == h("p", None, "/")
        assert navigator.history == ("/",)
        assert "/" in navigator.cache


class TestNavigate:
    async def test_fetches_stream(self, navigator, requests, recorder) -> None:
        assert await navigator.navigate("/about")
        assert navigator.current_path == "/about"
        assert _text(navigator.tree) == "/about"
        assert recorder.swaps == ["/about"]
        assert requests[0].url.params["_rsc"] == "1"
        assert navigator.history == ("/", "/about")

    async def test_same_path_is_noop(self, navigator, requests) -> None:
        assert not await navigator.navigate("/")
        assert requests == []

    async def test_back_and_forward_use_cache(self, navigator, requests, recorder) -> None:
        await navigator.navigate("/a")
        await navigator.navigate("/b")
        assert await navigator.back()
        assert navigator.current_path == "/a"
        assert await navigator.back()
        assert navigator.current_path == "/"
        assert not await navigator.back()
        assert await navigator.forward()
        assert navigator.current_path == "/a"
        assert len(requests) == 2
        assert recorder.swaps == ["/a", "/b", "/a", "/", "/a"]

    async def test_navigate_truncates_forward_history(self, navigator) -> None:
        await navigator.navigate("/a")
        await navigator.navigate("/b")
        await navigator.back()
        await navigator.navigate("/c")
        assert navigator.history == ("/", "/a", "/c")
        assert not await navigator.forward()

    async def test_http_error_requests_full_reload(self, navigator, recorder) -> None:
        assert not await navigator.navigate("/broken")
        assert recorder.reloads == ["/broken"]
        assert navigator.current_path == "/"
        assert navigator.history == ("/",)

    async def test_corrupt_stream_requests_full_reload(self, navigator, recorder) -> None:
        assert not await navigator.navigate("/garbage")
        assert recorder.reloads == ["/garbage"]
        assert "/garbage" not in navigator.cache

    async def test_render_error_with_raising_decoder_requests_full_reload(self, http_client, recorder) -> None:
        nav = Navigator(
            http_client=http_client,
            decoder=FlightDecoder(raise_errors=True),
            on_swap=recorder.swap,
            on_full_reload=recorder.reload,
        )
        nav.hydrate(_document("/"))
        assert not await nav.navigate("/failed")
        assert recorder.reloads == ["/failed"]
        assert recorder.swaps == []
        assert nav.current_path == "/"
        assert "/failed" not in nav.cache

    async def test_broken_client_module_still_swaps(self, write, recorder) -> None:
        root = write({"components/bad.py": "def Counter(:\n"})
        stream = encode(ClientReference("./components/bad.py", "Counter"))
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=stream))
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            nav = Navigator(
                http_client=client,
                decoder=FlightDecoder(ImportLoader(root)),
                on_swap=recorder.swap,
                on_full_reload=recorder.reload,
            )
            nav.hydrate(_document("/"))
            assert await nav.navigate("/widgets")
        assert isinstance(nav.tree, MissingModule)
        assert recorder.reloads == []

    async def test_prefetch(self, navigator, requests, recorder) -> None:
        assert await navigator.prefetch("/later")
        assert await navigator.prefetch("/later")
        assert len(requests) == 1
        assert navigator.current_path == "/"
        assert await navigator.navigate("/later")
        assert len(requests) == 1
        assert recorder.swaps == ["/later"]


class TestSupersession:
    async def test_older_navigation_never_applies(self, recorder) -> None:
        gate = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/slow":
                await gate.wait()
            return httpx.Response(200, text=encode(h("p", None, request.url.path)))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://t") as client:
            nav = Navigator(http_client=client, on_swap=recorder.swap)
            nav.hydrate(_document("/"))
            slow = asyncio.create_task(nav.navigate("/slow"))
            await asyncio.sleep(0)
            assert await nav.navigate("/fast")
            gate.set()
            assert not await slow

        assert nav.current_path == "/fast"
        assert recorder.swaps == ["/fast"]
        assert nav.history == ("/", "/fast")


class TestAgainstApp:
    async def test_navigates_a_real_app(self, config) -> None:
        app = App(config)
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            home = await client.get("/")
            async with Navigator(http_client=client) as nav:
                nav.hydrate(home.text)
                assert await nav.navigate("/blog/hello")
        assert isinstance(nav.tree, Element)
        assert nav.tree.type == "html"
        assert nav.current_path == "/blog/hello"

    async def test_owned_client_closed(self) -> None:
        nav = Navigator("http://testserver")
        await nav.aclose()
        assert nav._client.is_closed
