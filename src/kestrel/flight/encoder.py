"""Chunk stream encoder.

Walks a rendered tree once, depth first, and writes it as chunks:

- an element subtree without client boundaries collapses into its
  parent's ``J`` chunk
- each client module becomes one ``M`` chunk, however often it is used
- a client reference's children get their own ``J`` chunk
- each :class:`Symbol` becomes one ``S`` chunk
- a :class:`RenderError`, or an element whose props cannot be encoded,
  becomes an ``E`` chunk

Ids are allocated in depth-first pre-order starting with the root at 0.
Lines are written once everything they reference has been written, so a
reader never meets a forward reference. The same tree always encodes to
the same bytes.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from kestrel.flight.chunks import (
    ELEMENT_MARKER,
    Chunk,
    ChunkKind,
    chunk_ref,
    escape_string,
    format_chunk,
    module_ref,
)
from kestrel.flight.nodes import (
    ClientComponent,
    ClientReference,
    Element,
    MissingModule,
    RenderError,
    Symbol,
)

logger = logging.getLogger("kestrel.flight")


class EncodeFailure(TypeError):
    """A value inside a subtree has no wire representation."""


@dataclass(frozen=True, slots=True)
class EncodeResult:
    """Output of :meth:`FlightEncoder.encode`.

    Attributes:
        stream: The newline-delimited chunk stream.
        client_modules: One descriptor per ``M`` chunk, in stream order.
    """

    stream: str
    client_modules: tuple[ClientComponent, ...]


class FlightEncoder:
    """Serialize rendered trees into chunk streams.

    An encoder may be reused; each :meth:`encode` call starts fresh.

    Usage::

        result = FlightEncoder().encode(tree)
        write(result.stream)
    """

    __slots__ = ("_lines", "_modules", "_next_id", "_symbols")

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._modules: dict[tuple[str, str], tuple[int, ClientComponent]] = {}
        self._symbols: dict[str, int] = {}
        self._next_id = 0

    def encode(self, tree: Any) -> EncodeResult:
        """Encode *tree*. The root is always chunk 0."""
        self._lines = []
        self._modules = {}
        self._symbols = {}
        self._next_id = 0

        root_id = self._allocate()
        if isinstance(tree, RenderError):
            self._write(Chunk(root_id, ChunkKind.ERROR, _error_payload(tree)))
        else:
            try:
                value = self._encode_value(tree)
            except EncodeFailure as exc:
                self._rollback((0, root_id + 1, 0, 0))
                self._write(Chunk(root_id, ChunkKind.ERROR, _error_payload(_failure(exc))))
            else:
                self._write(Chunk(root_id, ChunkKind.JSON, value))

        modules = tuple(descriptor for _, descriptor in self._modules.values())
        return EncodeResult(stream="\n".join(self._lines), client_modules=modules)

    # -- Values --

    def _encode_value(self, value: Any) -> Any:
        if value is None or isinstance(value, (bool, int)):
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                msg = f"Cannot encode non-finite number {value!r}"
                raise EncodeFailure(msg)
            return value
        if isinstance(value, str):
            return escape_string(value)
        if isinstance(value, RenderError):
            error_id = self._allocate()
            self._write(Chunk(error_id, ChunkKind.ERROR, _error_payload(value)))
            return chunk_ref(error_id)
        if isinstance(value, (Element, ClientReference, MissingModule)):
            return self._encode_boundary(value)
        if isinstance(value, (list, tuple)):
            return [self._encode_value(item) for item in value]
        if isinstance(value, dict):
            return self._encode_props(value)
        if callable(value):
            # Event handlers and other callables have no wire form
            return None
        msg = f"Cannot encode value of type {type(value).__name__}"
        raise EncodeFailure(msg)

    def _encode_props(self, props: dict[str, Any]) -> dict[str, Any]:
        encoded: dict[str, Any] = {}
        for name, value in props.items():
            if not isinstance(name, str):
                msg = f"Prop names must be strings, got {name!r}"
                raise EncodeFailure(msg)
            encoded[name] = self._encode_value(value)
        return encoded

    # -- Elements --

    def _encode_boundary(self, node: Element | ClientReference | MissingModule) -> Any:
        """Encode an element; on failure replace it with an ``E`` chunk."""
        mark = self._mark()
        try:
            if isinstance(node, Element):
                return self._encode_element(node)
            return self._encode_client(node)
        except EncodeFailure as exc:
            self._rollback(mark)
            error_id = self._allocate()
            logger.warning("Encoding subtree as error chunk %d: %s", error_id, exc)
            self._write(Chunk(error_id, ChunkKind.ERROR, _error_payload(_failure(exc))))
            return chunk_ref(error_id)

    def _encode_element(self, element: Element) -> list[Any]:
        element_type = element.type
        if isinstance(element_type, str):
            type_token = escape_string(element_type)
        elif isinstance(element_type, Symbol):
            type_token = chunk_ref(self._symbol(element_type))
        else:
            name = getattr(element_type, "__name__", type(element_type).__name__)
            msg = f"Unrendered component {name!r} in tree; render before encoding"
            raise EncodeFailure(msg)
        return [
            ELEMENT_MARKER,
            type_token,
            element.key,
            self._encode_props(element.props),
            [self._encode_value(child) for child in element.children],
        ]

    def _encode_client(self, node: ClientReference | MissingModule) -> list[Any]:
        module_id = self._module(ClientComponent(node.module_id, node.name, node.chunks))
        props = self._encode_props(node.props)
        children: Any = []
        if node.children:
            children_id = self._allocate()
            value = [self._encode_value(child) for child in node.children]
            self._write(Chunk(children_id, ChunkKind.JSON, value))
            children = chunk_ref(children_id)
        return [ELEMENT_MARKER, module_ref(module_id), node.key, props, children]

    # -- Chunk table --

    def _allocate(self) -> int:
        chunk_id = self._next_id
        self._next_id += 1
        return chunk_id

    def _write(self, chunk: Chunk) -> None:
        self._lines.append(format_chunk(chunk))

    def _module(self, descriptor: ClientComponent) -> int:
        key = (descriptor.module_id, descriptor.name)
        existing = self._modules.get(key)
        if existing is not None:
            return existing[0]
        chunk_id = self._allocate()
        self._write(
            Chunk(
                chunk_id,
                ChunkKind.MODULE,
                {"id": descriptor.module_id, "name": descriptor.name, "chunks": list(descriptor.chunks)},
            )
        )
        self._modules[key] = (chunk_id, descriptor)
        return chunk_id

    def _symbol(self, symbol: Symbol) -> int:
        existing = self._symbols.get(symbol.name)
        if existing is not None:
            return existing
        chunk_id = self._allocate()
        self._write(Chunk(chunk_id, ChunkKind.SYMBOL, symbol.name))
        self._symbols[symbol.name] = chunk_id
        return chunk_id

    def _mark(self) -> tuple[int, int, int, int]:
        return (len(self._lines), self._next_id, len(self._modules), len(self._symbols))

    def _rollback(self, mark: tuple[int, int, int, int]) -> None:
        lines, next_id, modules, symbols = mark
        del self._lines[lines:]
        self._next_id = next_id
        for key in list(self._modules)[modules:]:
            del self._modules[key]
        for key in list(self._symbols)[symbols:]:
            del self._symbols[key]


def encode(tree: Any) -> str:
    """Encode *tree* and return the chunk stream."""
    return FlightEncoder().encode(tree).stream


def _error_payload(error: RenderError) -> dict[str, Any]:
    return {"message": error.message, "digest": error.digest}


def _failure(exc: EncodeFailure) -> RenderError:
    return RenderError(message=str(exc), digest="EncodeFailure")
