"""HTML document assembly.

Wraps the server-rendered markup of a route in a full HTML document and
embeds everything the client needs to take over without a second
request:

- ``__KESTREL_FLIGHT__``: the chunk stream and the pathname
- ``__KESTREL_DATA__``: arbitrary server data
- ``__KESTREL_MODULES__``: the client modules to load eagerly

The document template is a kida template held in memory.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from typing import Any

from kida import DictLoader, Environment
from kida.template import Markup

from kestrel.config import KestrelConfig
from kestrel.errors import FlightDecodeError
from kestrel.flight.decoder import FlightDecoder
from kestrel.flight.loaders import ModuleLoader
from kestrel.flight.nodes import ClientComponent
from kestrel.templating.markup import extract_html_parts, head_elements, render_markup

FLIGHT_SCRIPT_ID = "__KESTREL_FLIGHT__"
DATA_SCRIPT_ID = "__KESTREL_DATA__"
MODULES_SCRIPT_ID = "__KESTREL_MODULES__"
ROOT_ELEMENT_ID = "__kestrel"

DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html lang="{{ lang }}">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{{ title }}</title>
  {% for element in head %}{{ element }}
  {% end %}
</head>
<body>
  <div id="{{ root_id }}">{{ body }}</div>
  <script id="{{ flight_id }}" type="application/json">{{ flight }}</script>
  <script id="{{ data_id }}" type="application/json">{{ server_data }}</script>
  <script id="{{ modules_id }}" type="application/json">{{ modules }}</script>
  <script type="module" src="{{ entry_script }}"></script>
</body>
</html>
"""

_SCRIPT_RE = r'<script id="{id}" type="application/json">(.*?)</script>'


def script_json(value: Any) -> Markup:
    """Serialize *value* for an inline ``application/json`` script block.

    ``<`` is written as ``\\u003c`` so the payload can never close the
    script element; the result is still valid JSON.
    """
    payload = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return Markup(payload.replace("<", "\\u003c"))


def create_environment() -> Environment:
    """kida environment holding the document template."""
    return Environment(loader=DictLoader({"document.html": DOCUMENT_TEMPLATE}), autoescape=True)


class DocumentRenderer:
    """Render chunk streams into full HTML documents.

    Usage::

        documents = DocumentRenderer(config)
        page = documents.render(stream, modules, "/blog/hello")
    """

    __slots__ = ("_env", "config", "loader")

    def __init__(
        self,
        config: KestrelConfig | None = None,
        *,
        loader: ModuleLoader | None = None,
        env: Environment | None = None,
    ) -> None:
        self.config = config or KestrelConfig()
        self.loader = loader
        self._env = env or create_environment()

    def render(
        self,
        stream: str,
        client_modules: Iterable[ClientComponent],
        pathname: str,
        *,
        server_data: Mapping[str, Any] | None = None,
        loader: ModuleLoader | None = None,
    ) -> str:
        """Decode *stream*, render its markup and embed the hydration data.

        Raises:
            FlightDecodeError: If *stream* is corrupt.
        """
        tree = FlightDecoder(loader or self.loader).decode(stream)
        parts = extract_html_parts(tree)
        template = self._env.get_template("document.html")
        return template.render(
            {
                "lang": self.config.lang,
                "title": self.config.title,
                "head": [Markup(render_markup(element)) for element in head_elements(parts.head)],
                "body": Markup(render_markup(parts.body)),
                "root_id": ROOT_ELEMENT_ID,
                "flight_id": FLIGHT_SCRIPT_ID,
                "data_id": DATA_SCRIPT_ID,
                "modules_id": MODULES_SCRIPT_ID,
                "flight": script_json({"flight": stream, "pathname": pathname}),
                "server_data": script_json(dict(server_data or {})),
                "modules": script_json([module_manifest_entry(m) for m in client_modules]),
                "entry_script": self.config.entry_script,
            }
        )


def module_manifest_entry(module: ClientComponent) -> dict[str, Any]:
    return {"id": module.module_id, "name": module.name, "chunks": list(module.chunks)}


def extract_flight_payload(document: str) -> tuple[str, str]:
    """Read the embedded ``(stream, pathname)`` back out of a document.

    Raises:
        FlightDecodeError: If the document carries no valid payload.
    """
    match = re.search(_SCRIPT_RE.format(id=FLIGHT_SCRIPT_ID), document, re.DOTALL)
    if match is None:
        msg = "Document has no embedded chunk stream"
        raise FlightDecodeError(msg)
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as exc:
        msg = f"Embedded chunk stream is not valid JSON: {exc.msg}"
        raise FlightDecodeError(msg) from exc
    if not isinstance(data, dict) or not isinstance(data.get("flight"), str):
        msg = "Embedded payload has no chunk stream"
        raise FlightDecodeError(msg)
    return data["flight"], str(data.get("pathname", "/"))


def extract_server_data(document: str) -> dict[str, Any]:
    """Read the embedded server data (empty when absent)."""
    match = re.search(_SCRIPT_RE.format(id=DATA_SCRIPT_ID), document, re.DOTALL)
    if match is None:
        return {}
    return json.loads(match.group(1))
