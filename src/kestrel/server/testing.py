"""In-process test client.

Sends requests through the ASGI interface directly and returns the same
:class:`~kestrel.http.response.Response` type the server builds.
"""

from __future__ import annotations

from typing import Any

from kestrel.http.response import Response
from kestrel.server.app import App


class TestClient:
    """Async test client for kestrel applications.

    Usage::

        async with TestClient(app) as client:
            response = await client.get("/blog/hello?_rsc=1")
            assert response.status == 200
    """

    __test__ = False  # Not a pytest test class
    __slots__ = ("app",)

    def __init__(self, app: App) -> None:
        self.app = app

    async def __aenter__(self) -> TestClient:
        await self.app.startup()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.app.shutdown()

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        return await self.request("GET", path, headers=headers)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> Response:
        """Send a request through the ASGI app."""
        path_part, _, query_string = path.partition("?")
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ]
        scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "path": path_part,
            "raw_path": path_part.encode("latin-1"),
            "query_string": query_string.encode("latin-1"),
            "root_path": "",
            "headers": raw_headers,
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 0),
        }

        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": b"", "more_body": False}

        status = 200
        response_headers: list[tuple[bytes, bytes]] = []
        body_parts: list[bytes] = []

        async def send(message: dict[str, Any]) -> None:
            nonlocal status, response_headers
            if message["type"] == "http.response.start":
                status = message["status"]
                response_headers = list(message.get("headers", []))
            elif message["type"] == "http.response.body":
                body_parts.append(message.get("body", b""))

        await self.app(scope, receive, send)

        content_type = "text/html; charset=utf-8"
        extra: list[tuple[str, str]] = []
        for name_b, value_b in response_headers:
            name, value = name_b.decode("latin-1"), value_b.decode("latin-1")
            if name == "content-type":
                content_type = value
            elif name != "content-length":
                extra.append((name, value))

        return Response(
            body=b"".join(body_parts).decode("utf-8"),
            status=status,
            content_type=content_type,
            headers=tuple(extra),
        )
