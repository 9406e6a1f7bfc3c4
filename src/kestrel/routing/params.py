"""Route parameter substitution and normalisation.

Route paths keep dynamic segments in bracket form (``/blog/[slug]``,
``/docs/[...parts]``). These helpers turn a bracketed path plus a param
mapping into a concrete URL, and coerce param values to the shapes the
renderer promises: ``str`` for single segments, ``tuple[str, ...]`` for
catch-alls.
"""

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from kestrel.routing.types import RouteNode

ParamValue = str | tuple[str, ...]

_LEFTOVER_RE = re.compile(r"\[(?:\.\.\.)?\w+\]")


def build_path_with_params(path: str, params: Mapping[str, Any]) -> str:
    """Substitute *params* into a bracketed route *path*.

    Examples::

        build_path_with_params("/blog/[slug]", {"slug": "hello"})
        # "/blog/hello"
        build_path_with_params("/docs/[...parts]", {"parts": ["a", "b"]})
        # "/docs/a/b"

    Raises:
        ValueError: If a dynamic segment has no value, or a catch-all
            value is empty.
    """
    concrete = path
    for name, value in params.items():
        if _is_sequence(value):
            parts = [str(part) for part in value]
            if f"[...{name}]" in concrete and not parts:
                msg = f"Catch-all parameter {name!r} needs at least one value"
                raise ValueError(msg)
            concrete = concrete.replace(f"[...{name}]", "/".join(parts))
            concrete = concrete.replace(f"[{name}]", "/".join(parts))
        else:
            concrete = concrete.replace(f"[...{name}]", str(value))
            concrete = concrete.replace(f"[{name}]", str(value))

    leftover = _LEFTOVER_RE.search(concrete)
    if leftover is not None:
        msg = f"No value for {leftover.group(0)} in {path!r}"
        raise ValueError(msg)
    return concrete


def normalize_params(
    nodes: Iterable[RouteNode],
    params: Mapping[str, Any],
) -> dict[str, ParamValue]:
    """Coerce *params* to the shapes declared by the dynamic *nodes*.

    Catch-all values become tuples of strings (a scalar becomes a
    one-element tuple); single-segment values become strings.
    Parameters no node declares pass through as strings.

    Raises:
        ValueError: If a single-segment parameter is given a sequence.
    """
    catch_all = {node.param for node in nodes if node.dynamic and node.catch_all}
    normalized: dict[str, ParamValue] = {}
    for name, value in params.items():
        if name in catch_all:
            if _is_sequence(value):
                normalized[name] = tuple(str(part) for part in value)
            else:
                normalized[name] = tuple(str(value).split("/"))
        elif _is_sequence(value):
            msg = f"Parameter {name!r} is a single segment but got {value!r}"
            raise ValueError(msg)
        else:
            normalized[name] = str(value)
    return normalized


def params_to_json(params: Mapping[str, ParamValue]) -> dict[str, str | list[str]]:
    """JSON-friendly copy of *params* (tuples become lists)."""
    return {
        name: list(value) if isinstance(value, tuple) else value
        for name, value in params.items()
    }


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))
