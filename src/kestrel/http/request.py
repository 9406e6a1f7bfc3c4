"""Immutable HTTP request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from kestrel.http.headers import Headers
from kestrel.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """An HTTP request as seen by the server.

    Kestrel only serves ``GET``/``HEAD``, so there is no body access.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams

    def wants_flight(self, rsc_param: str) -> bool:
        """True when the client asked for the chunk stream (``?_rsc=1``)."""
        return self.query.get(rsc_param) not in (None, "", "0")

    @property
    def url(self) -> str:
        """Path plus query string."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw.decode('latin-1')}"
        return self.path

    @classmethod
    def from_asgi(cls, scope: dict[str, Any]) -> Request:
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(tuple(scope.get("headers", ()))),
            query=QueryParams(scope.get("query_string", b"")),
        )
