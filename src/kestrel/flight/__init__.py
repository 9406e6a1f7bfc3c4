"""Wire protocol for rendered trees.

Trees cross the server/client boundary as a stream of chunks (see
:mod:`kestrel.flight.chunks` for the grammar). :func:`encode` and
:func:`decode` are exact inverses for every tree the renderer produces.
"""

from kestrel.flight.chunks import Chunk, ChunkKind, format_chunk, parse_stream
from kestrel.flight.decoder import FlightDecoder, decode
from kestrel.flight.encoder import EncodeResult, FlightEncoder, encode
from kestrel.flight.loaders import ImportLoader, ModuleLoader, RegistryLoader
from kestrel.flight.nodes import (
    FRAGMENT,
    SUSPENSE,
    ClientComponent,
    ClientReference,
    Element,
    MissingModule,
    RenderError,
    Symbol,
    h,
)

__all__ = [
    "FRAGMENT",
    "SUSPENSE",
    "Chunk",
    "ChunkKind",
    "ClientComponent",
    "ClientReference",
    "Element",
    "EncodeResult",
    "FlightDecoder",
    "FlightEncoder",
    "ImportLoader",
    "MissingModule",
    "ModuleLoader",
    "RegistryLoader",
    "RenderError",
    "Symbol",
    "decode",
    "encode",
    "format_chunk",
    "h",
    "parse_stream",
]
