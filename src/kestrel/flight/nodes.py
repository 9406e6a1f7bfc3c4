"""UI tree node types.

A rendered tree is built from a closed set of variants:

- :class:`Element`: a tag (or special :class:`Symbol`) with props and children
- :class:`ClientReference`: an opaque pointer to a client-deferred component
- primitives: ``str``, ``int``, ``float``, ``bool`` and ``None``

Two marker variants only appear at the edges of the protocol:

- :class:`RenderError`: a subtree that failed; encodes as an ``E`` chunk
- :class:`MissingModule`: a client reference the decoder could not load

Before rendering, an :class:`Element`'s type may also be a callable (a
server component) or a :class:`ClientComponent` handle. The renderer
replaces both, so encoded trees only carry tags, symbols and references.

Build trees with :func:`h`::

    h("ul", {"class": "posts"}, [h("li", None, title) for title in titles])
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, TypeAlias


@dataclass(frozen=True, slots=True)
class Symbol:
    """A named protocol symbol used as an element type."""

    name: str


SUSPENSE = Symbol("kestrel.suspense")
FRAGMENT = Symbol("kestrel.fragment")

ElementType: TypeAlias = "str | Symbol | ClientComponent | Callable[..., Any]"


@dataclass(frozen=True, slots=True)
class Element:
    """A UI element.

    Attributes:
        type: Tag name, :class:`Symbol`, or (before rendering) a component.
        props: Ordered property map. Values are JSON-like data or nodes.
        children: Child nodes.
        key: Optional reconciliation key.
    """

    type: ElementType
    props: dict[str, Any] = field(default_factory=dict)
    children: tuple[Any, ...] = ()
    key: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))


@dataclass(frozen=True, slots=True)
class ClientComponent:
    """Handle for a client-deferred component.

    Usable as an element type without importing the component's code::

        Counter = ClientComponent("./components/counter.py", "Counter")
        h(Counter, {"start": 3})
    """

    module_id: str
    name: str = "default"
    chunks: tuple[str, ...] = ()

    def __call__(self, *children: Any, key: str | None = None, **props: Any) -> Element:
        return h(self, props, *children, key=key)


@dataclass(frozen=True, slots=True)
class ClientReference:
    """A client-deferred component in a rendered tree.

    The referenced code is never run by the renderer. ``children`` are
    serialized separately and reattached at decode time. ``component`` is
    filled in by the decoder's loader and is ignored by equality.
    """

    module_id: str
    name: str = "default"
    props: dict[str, Any] = field(default_factory=dict)
    children: tuple[Any, ...] = ()
    key: str | None = None
    chunks: tuple[str, ...] = ()
    component: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))


@dataclass(frozen=True, slots=True)
class MissingModule:
    """Placeholder for a client reference whose module could not be loaded."""

    module_id: str
    name: str = "default"
    props: dict[str, Any] = field(default_factory=dict)
    children: tuple[Any, ...] = ()
    key: str | None = None
    chunks: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RenderError:
    """A subtree that failed to render."""

    message: str
    digest: str | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> RenderError:
        return cls(message=str(exc) or type(exc).__name__, digest=type(exc).__name__)


Node: TypeAlias = (
    "Element | ClientReference | MissingModule | RenderError | str | int | float | bool | None"
)

PRIMITIVES = (str, int, float, bool, type(None))


def h(type: ElementType, props: dict[str, Any] | None = None, *children: Any, key: str | None = None) -> Element:  # noqa: A002
    """Create an :class:`Element`.

    Nested lists and tuples of children are flattened; ``None`` and
    booleans are dropped so ``cond and h(...)`` works inline. A
    ``children`` entry in *props* is used when no positional children
    are given.
    """
    attrs = dict(props or {})
    if "key" in attrs and key is None:
        key = attrs.pop("key")
    if "children" in attrs:
        given = attrs.pop("children")
        if not children:
            children = (given,)
    return Element(type=type, props=attrs, children=tuple(flatten_children(children)), key=key)


def flatten_children(children: Iterable[Any]) -> Iterable[Any]:
    """Flatten nested child sequences, dropping ``None`` and booleans."""
    for child in children:
        if child is None or isinstance(child, bool):
            continue
        if isinstance(child, (list, tuple)):
            yield from flatten_children(child)
        else:
            yield child


def is_node(value: Any) -> bool:
    """True for any tree node variant, primitives included."""
    return isinstance(value, (Element, ClientReference, MissingModule, RenderError, *PRIMITIVES))
