"""Chunk stream decoder.

Rebuilds the UI tree from a chunk stream. The whole stream is parsed
into a chunk table first, then the tree is resolved from chunk 0.

Every reference must point at a chunk that appears earlier in the
stream; a dangling or forward reference means the stream is corrupt and
raises :class:`~kestrel.errors.FlightDecodeError`. Client module
references are resolved through a :class:`~kestrel.flight.loaders.ModuleLoader`,
at most once per ``(module_id, name)`` within one decode session.
"""

from __future__ import annotations

import logging
from typing import Any

from kestrel.errors import FlightDecodeError, FlightRenderError
from kestrel.flight.chunks import ELEMENT_MARKER, Chunk, ChunkKind, parse_stream, parse_token
from kestrel.flight.loaders import ModuleLoader
from kestrel.flight.nodes import ClientReference, Element, MissingModule, RenderError, Symbol

logger = logging.getLogger("kestrel.flight")

_UNRESOLVED = object()


class FlightDecoder:
    """Decode chunk streams into trees.

    Args:
        loader: Resolves ``M`` chunks to components. Without one, client
            references are returned with ``component=None``.
        raise_errors: Raise :class:`FlightRenderError` for ``E`` chunks
            instead of returning :class:`RenderError` markers.

    Usage::

        decoder = FlightDecoder(ImportLoader(project_root))
        tree = decoder.decode(stream)
    """

    __slots__ = ("loader", "raise_errors")

    def __init__(self, loader: ModuleLoader | None = None, *, raise_errors: bool = False) -> None:
        self.loader = loader
        self.raise_errors = raise_errors

    def decode(self, stream: str) -> Any:
        """Decode *stream* and return the root node."""
        return _Session(self, parse_stream(stream)).root()


def decode(stream: str, loader: ModuleLoader | None = None) -> Any:
    """Decode *stream* with a one-off :class:`FlightDecoder`."""
    return FlightDecoder(loader).decode(stream)


class _Session:
    """State for a single decode: chunk table, positions and caches."""

    __slots__ = ("_chunks", "_components", "_decoder", "_positions", "_values")

    def __init__(self, decoder: FlightDecoder, chunks: list[Chunk]) -> None:
        self._decoder = decoder
        self._chunks: dict[int, Chunk] = {}
        self._positions: dict[int, int] = {}
        for position, chunk in enumerate(chunks):
            if chunk.id in self._chunks:
                msg = f"Duplicate chunk id {chunk.id}"
                raise FlightDecodeError(msg)
            self._chunks[chunk.id] = chunk
            self._positions[chunk.id] = position
        self._values: dict[int, Any] = {}
        self._components: dict[tuple[str, str], Any] = {}

    def root(self) -> Any:
        if 0 not in self._chunks:
            msg = "Stream has no root chunk"
            raise FlightDecodeError(msg)
        return self._chunk_value(0)

    # -- Chunks --

    def _chunk_value(self, chunk_id: int) -> Any:
        cached = self._values.get(chunk_id, _UNRESOLVED)
        if cached is not _UNRESOLVED:
            return cached
        chunk = self._chunks[chunk_id]
        match chunk.kind:
            case ChunkKind.JSON:
                value = self._value(chunk.payload, chunk)
            case ChunkKind.SYMBOL:
                if not isinstance(chunk.payload, str):
                    msg = f"Symbol chunk {chunk_id} payload must be a string"
                    raise FlightDecodeError(msg)
                value = Symbol(chunk.payload)
            case ChunkKind.ERROR:
                value = self._error(chunk)
            case ChunkKind.MODULE:
                msg = f"Module chunk {chunk_id} referenced as a value"
                raise FlightDecodeError(msg)
        self._values[chunk_id] = value
        return value

    def _error(self, chunk: Chunk) -> RenderError:
        payload = chunk.payload
        if not isinstance(payload, dict) or not isinstance(payload.get("message"), str):
            msg = f"Error chunk {chunk.id} has no message"
            raise FlightDecodeError(msg)
        digest = payload.get("digest")
        if self._decoder.raise_errors:
            raise FlightRenderError(payload["message"], digest)
        return RenderError(message=payload["message"], digest=digest)

    def _lookup(self, chunk_id: int, referrer: Chunk) -> Chunk:
        """Fetch the chunk *referrer* points at, enforcing stream order."""
        target = self._chunks.get(chunk_id)
        if target is None:
            msg = f"Chunk {referrer.id} references missing chunk {chunk_id}"
            raise FlightDecodeError(msg)
        if self._positions[chunk_id] >= self._positions[referrer.id]:
            msg = f"Chunk {referrer.id} references chunk {chunk_id}, which does not precede it"
            raise FlightDecodeError(msg)
        return target

    # -- Values --

    def _value(self, raw: Any, chunk: Chunk) -> Any:
        if isinstance(raw, str):
            kind, token = parse_token(raw)
            if kind == "text":
                return token
            if kind == "module":
                msg = f"Module reference {raw!r} outside an element type in chunk {chunk.id}"
                raise FlightDecodeError(msg)
            target = self._lookup(token, chunk)  # type: ignore[arg-type]
            if target.kind is ChunkKind.MODULE:
                msg = f"Chunk {chunk.id} uses {raw!r} to reference module chunk {target.id}"
                raise FlightDecodeError(msg)
            return self._chunk_value(target.id)
        if isinstance(raw, list):
            if raw and raw[0] == ELEMENT_MARKER:
                return self._element(raw, chunk)
            return [self._value(item, chunk) for item in raw]
        if isinstance(raw, dict):
            return {name: self._value(value, chunk) for name, value in raw.items()}
        return raw

    def _element(self, raw: list[Any], chunk: Chunk) -> Any:
        if len(raw) != 5:
            msg = f"Element in chunk {chunk.id} has {len(raw)} fields, expected 5"
            raise FlightDecodeError(msg)
        _, raw_type, key, raw_props, raw_children = raw
        if key is not None and not isinstance(key, str):
            msg = f"Element key in chunk {chunk.id} must be a string or null"
            raise FlightDecodeError(msg)
        if not isinstance(raw_props, dict):
            msg = f"Element props in chunk {chunk.id} must be an object"
            raise FlightDecodeError(msg)
        if not isinstance(raw_type, str):
            msg = f"Element type in chunk {chunk.id} must be a string"
            raise FlightDecodeError(msg)

        props = self._value(raw_props, chunk)
        children = self._children(raw_children, chunk)

        kind, token = parse_token(raw_type)
        if kind == "text":
            return Element(type=token, props=props, children=children, key=key)
        target = self._lookup(token, chunk)  # type: ignore[arg-type]
        if kind == "chunk":
            if target.kind is not ChunkKind.SYMBOL:
                msg = f"Element type {raw_type!r} in chunk {chunk.id} is not a symbol"
                raise FlightDecodeError(msg)
            return Element(type=self._chunk_value(target.id), props=props, children=children, key=key)
        if target.kind is not ChunkKind.MODULE:
            msg = f"Element type {raw_type!r} in chunk {chunk.id} is not a module"
            raise FlightDecodeError(msg)
        return self._client(target, props, children, key)

    def _children(self, raw: Any, chunk: Chunk) -> tuple[Any, ...]:
        value = self._value(raw, chunk)
        if not isinstance(value, list):
            msg = f"Element children in chunk {chunk.id} must be an array"
            raise FlightDecodeError(msg)
        return tuple(value)

    # -- Client modules --

    def _client(self, target: Chunk, props: dict[str, Any], children: tuple[Any, ...], key: str | None) -> Any:
        payload = target.payload
        if not isinstance(payload, dict) or not isinstance(payload.get("id"), str):
            msg = f"Module chunk {target.id} has no module id"
            raise FlightDecodeError(msg)
        module_id = payload["id"]
        name = payload.get("name") or "default"
        chunks = tuple(payload.get("chunks") or ())

        component = self._resolve(module_id, name)
        if component is None and self._decoder.loader is not None:
            return MissingModule(module_id, name, props, children, key, chunks)
        return ClientReference(module_id, name, props, children, key, chunks, component=component)

    def _resolve(self, module_id: str, name: str) -> Any:
        loader = self._decoder.loader
        if loader is None:
            return None
        cache_key = (module_id, name)
        if cache_key in self._components:
            return self._components[cache_key]
        try:
            component = loader.load(module_id, name)
        except LookupError as exc:
            logger.warning("Unresolved client module %s#%s: %s", module_id, name, exc)
            component = None
        self._components[cache_key] = component
        return component
