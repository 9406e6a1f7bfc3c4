"""HTTP primitives for the request server."""

from kestrel.http.headers import Headers
from kestrel.http.query import QueryParams
from kestrel.http.request import Request
from kestrel.http.response import Response

__all__ = ["Headers", "QueryParams", "Request", "Response"]
