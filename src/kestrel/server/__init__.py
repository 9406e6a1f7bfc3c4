"""Request serving: the ASGI app, response sending and the test client."""

from kestrel.server.app import App
from kestrel.server.testing import TestClient

__all__ = ["App", "TestClient"]
