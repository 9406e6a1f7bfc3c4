"""Data models for filesystem-based route trees.

Immutable frozen dataclasses representing scanned route segments, their
special files and static page configuration. Built once per scan pass;
a rescan builds a fresh tree.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

# Special file kinds a route directory may carry
FileKind = Literal["page", "layout", "loading", "error", "not_found", "global_error"]


class DynamicMode(Enum):
    """Rendering mode declared by a page's ``dynamic = "..."`` assignment."""

    AUTO = "auto"
    FORCE_DYNAMIC = "force-dynamic"
    FORCE_STATIC = "force-static"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class PageConfig:
    """Static configuration extracted from a page module's source text.

    Attributes:
        revalidate: Seconds until the generated artifact is stale,
            ``False`` for never, ``None`` when the page does not say.
        dynamic: Declared rendering mode, ``None`` when absent.
    """

    revalidate: int | Literal[False] | None = None
    dynamic: DynamicMode | None = None

    @property
    def is_force_dynamic(self) -> bool:
        return self.dynamic is DynamicMode.FORCE_DYNAMIC


@dataclass(frozen=True, slots=True)
class FileRef:
    """A special file attached to a route node.

    Attributes:
        file: Path relative to the app directory (POSIX separators).
        absolute_path: Filesystem path of the module.
        is_client: True when the module opts into client-deferred rendering.
        config: Page configuration (``page`` files only).
    """

    file: str
    absolute_path: str
    is_client: bool = False
    config: PageConfig | None = None


@dataclass(frozen=True, slots=True)
class SegmentInfo:
    """Parse result for one directory name."""

    segment: str
    dynamic: bool = False
    param: str | None = None
    catch_all: bool = False


@dataclass(frozen=True, slots=True)
class RouteNode:
    """One directory of the route tree.

    ``path`` is the canonical URL with route groups elided and dynamic
    segments kept in bracket form (``/blog/[slug]``). ``children`` keeps
    directory enumeration order.
    """

    segment: str
    path: str
    dynamic: bool = False
    param: str | None = None
    catch_all: bool = False
    page: FileRef | None = None
    layout: FileRef | None = None
    loading: FileRef | None = None
    error: FileRef | None = None
    not_found: FileRef | None = None
    global_error: FileRef | None = None
    children: tuple[RouteNode, ...] = ()

    @property
    def is_group(self) -> bool:
        """True for a parenthesized route-group directory."""
        return self.segment.startswith("(") and self.segment.endswith(")")

    @property
    def page_config(self) -> PageConfig:
        if self.page is not None and self.page.config is not None:
            return self.page.config
        return PageConfig()


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of matching a URL against the route tree.

    Attributes:
        nodes: Route nodes from the root down to the matched node.
        params: Captured parameters; catch-all values are tuples.
    """

    nodes: tuple[RouteNode, ...]
    params: dict[str, str | tuple[str, ...]]

    @property
    def target(self) -> RouteNode:
        return self.nodes[-1]
