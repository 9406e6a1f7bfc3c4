"""HTML output: static markup for trees and the hydration document."""

from kestrel.templating.document import DocumentRenderer, extract_flight_payload, extract_server_data
from kestrel.templating.markup import HTMLParts, extract_html_parts, render_markup

__all__ = [
    "DocumentRenderer",
    "HTMLParts",
    "extract_flight_payload",
    "extract_html_parts",
    "extract_server_data",
    "render_markup",
]
