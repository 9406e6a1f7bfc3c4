"""Kestrel: filesystem-routed server rendering with a streaming wire format.

Routes are directories, pages are Python modules, and rendered trees
travel to the client as newline-delimited chunks.

Basic usage::

    # app/page.py
    from kestrel import h

    def default(search_params):
        return h("main", None, h("h1", None, "Hello"))

    # app/blog/[slug]/page.py
    revalidate = 60

    def generate_static_params():
        return [{"slug": "hello"}, {"slug": "world"}]

    async def default(params):
        post = await load_post(params["slug"])
        return h("article", None, h("h1", None, post.title))

Build and serve::

    kestrel build
    kestrel serve
"""

__version__ = "0.1.0"
__all__ = [
    "FRAGMENT",
    "SUSPENSE",
    "App",
    "ClientComponent",
    "ClientRegistry",
    "Element",
    "FlightDecoder",
    "KestrelConfig",
    "KestrelError",
    "RenderError",
    "StaticGenerator",
    "decode",
    "encode",
    "h",
    "scan_app",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import kestrel`` cheap for page modules that only need ``h``.
    """
    if name in ("h", "Element", "ClientComponent", "RenderError", "SUSPENSE", "FRAGMENT"):
        from kestrel.flight import nodes

        return getattr(nodes, name)

    if name in ("encode", "decode", "FlightDecoder"):
        import kestrel.flight as _flight

        return getattr(_flight, name)

    if name == "App":
        from kestrel.server.app import App

        return App

    if name == "KestrelConfig":
        from kestrel.config import KestrelConfig

        return KestrelConfig

    if name == "KestrelError":
        from kestrel.errors import KestrelError

        return KestrelError

    if name == "ClientRegistry":
        from kestrel.rendering.registry import ClientRegistry

        return ClientRegistry

    if name == "StaticGenerator":
        from kestrel.build.generator import StaticGenerator

        return StaticGenerator

    if name == "scan_app":
        from kestrel.routing.scanner import scan_app

        return scan_app

    msg = f"module 'kestrel' has no attribute {name!r}"
    raise AttributeError(msg)
