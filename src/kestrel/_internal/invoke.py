"""Invoke helpers: call sync or async user code uniformly.

Page, layout and component functions can be ``def`` or ``async def``,
as can ``generate_static_params``. Everything that calls user code goes
through these helpers so the sync/async check lives in one place.

Usage::

    from kestrel._internal.invoke import invoke, call_with_injection

    tree = await call_with_injection(page, {"params": params})
"""

import inspect
from collections.abc import Mapping
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def injectable_kwargs(func: Any, available: Mapping[str, Any]) -> dict[str, Any]:
    """Select the entries of *available* that *func* declares.

    A ``**kwargs`` parameter receives everything::

        def page(params): ...               # gets params only
        def layout(children, params): ...   # gets both
        def page(**context): ...            # gets all available names
    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return {}
    params = sig.parameters
    if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in params.values()):
        return dict(available)
    return {
        name: available[name]
        for name, param in params.items()
        if name in available
        and param.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)
    }


async def call_with_injection(func: Any, available: Mapping[str, Any]) -> Any:
    """Call *func* with the keywords it declares and await the result."""
    return await invoke(func, **injectable_kwargs(func, available))
