"""Chunk grammar shared by the encoder and decoder.

A chunk stream is newline-delimited text, one chunk per line::

    1M{"id":"./components/counter.py","name":"Counter","chunks":[]}
    2J["$","span",null,{},["Click"]]
    0J["$","div",null,{"class":"app"},[["$","@1",null,{"start":3},"$2"]]]

Each line is ``<id><kind><payload>``: a decimal id, one kind letter and
a compact JSON payload. Chunk 0 is the root. A chunk is always written
after every chunk it references, so the root is the last line.

Inside ``J`` payloads:

- ``["$", type, key, props, children]`` is an element
- ``"$<id>"`` references a ``J``, ``S`` or ``E`` chunk
- ``"@<id>"`` references an ``M`` chunk
- user strings starting with ``$`` or ``@`` are escaped with a leading ``$``
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from kestrel.errors import FlightDecodeError

ELEMENT_MARKER = "$"
CHUNK_REF_PREFIX = "$"
MODULE_REF_PREFIX = "@"

_LINE_RE = re.compile(r"^(\d+)([A-Z])(.*)$", re.DOTALL)
_CHUNK_REF_RE = re.compile(r"^\$(\d+)$")
_MODULE_REF_RE = re.compile(r"^@(\d+)$")


class ChunkKind(Enum):
    """Chunk kind tags."""

    JSON = "J"
    MODULE = "M"
    SYMBOL = "S"
    ERROR = "E"


@dataclass(frozen=True, slots=True)
class Chunk:
    """One addressable unit of the wire format.

    Attributes:
        id: Chunk id, referenced by later chunks.
        kind: What the payload describes.
        payload: Parsed JSON payload.
    """

    id: int
    kind: ChunkKind
    payload: Any


def dumps(value: Any) -> str:
    """Deterministic compact JSON used for every payload."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def format_chunk(chunk: Chunk) -> str:
    """Serialize *chunk* as a single line (no trailing newline)."""
    return f"{chunk.id}{chunk.kind.value}{dumps(chunk.payload)}"


def parse_line(line: str, *, lineno: int = 0) -> Chunk:
    """Parse one chunk line.

    Raises:
        FlightDecodeError: On an unknown kind, a missing id or invalid JSON.
    """
    match = _LINE_RE.match(line)
    if match is None:
        msg = f"Malformed chunk on line {lineno}: {line[:40]!r}"
        raise FlightDecodeError(msg)
    raw_id, raw_kind, raw_payload = match.groups()
    try:
        kind = ChunkKind(raw_kind)
    except ValueError:
        msg = f"Unknown chunk kind {raw_kind!r} on line {lineno}"
        raise FlightDecodeError(msg) from None
    try:
        payload = json.loads(raw_payload)
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in chunk {raw_id} on line {lineno}: {exc.msg}"
        raise FlightDecodeError(msg) from exc
    return Chunk(id=int(raw_id), kind=kind, payload=payload)


def parse_stream(stream: str) -> list[Chunk]:
    """Parse a whole chunk stream, in stream order. Blank lines are skipped."""
    chunks: list[Chunk] = []
    for lineno, line in enumerate(stream.split("\n"), start=1):
        if not line.strip():
            continue
        chunks.append(parse_line(line.rstrip("\r"), lineno=lineno))
    return chunks


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def chunk_ref(chunk_id: int) -> str:
    return f"{CHUNK_REF_PREFIX}{chunk_id}"


def module_ref(chunk_id: int) -> str:
    return f"{MODULE_REF_PREFIX}{chunk_id}"


def escape_string(value: str) -> str:
    """Escape a user string so it cannot be read as a token."""
    if value.startswith((CHUNK_REF_PREFIX, MODULE_REF_PREFIX)):
        return CHUNK_REF_PREFIX + value
    return value


def parse_token(value: str) -> tuple[str, int | str]:
    """Classify a string from a ``J`` payload.

    Returns one of ``("chunk", id)``, ``("module", id)`` or
    ``("text", unescaped)``.

    Raises:
        FlightDecodeError: For a ``$``-prefixed string that is neither an
            escape nor a chunk reference.
    """
    if value.startswith(CHUNK_REF_PREFIX):
        ref = _CHUNK_REF_RE.match(value)
        if ref is not None:
            return "chunk", int(ref.group(1))
        rest = value[1:]
        if rest.startswith((CHUNK_REF_PREFIX, MODULE_REF_PREFIX)):
            return "text", rest
        msg = f"Invalid token {value!r}"
        raise FlightDecodeError(msg)
    if value.startswith(MODULE_REF_PREFIX):
        ref = _MODULE_REF_RE.match(value)
        if ref is None:
            msg = f"Invalid module reference {value!r}"
            raise FlightDecodeError(msg)
        return "module", int(ref.group(1))
    return "text", value
