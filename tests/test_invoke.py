"""Tests for kestrel._internal.invoke: sync/async calls and keyword injection."""

from kestrel._internal.invoke import call_with_injection, injectable_kwargs, invoke


class TestInvoke:
    async def test_sync(self) -> None:
        assert await invoke(lambda x: x * 2, 3) == 6

    async def test_async(self) -> None:
        async def double(x):
            return x * 2

        assert await invoke(double, x=4) == 8


class TestInjectableKwargs:
    def test_declared_names_only(self) -> None:
        def page(params): ...

        assert injectable_kwargs(page, {"params": 1, "children": 2}) == {"params": 1}

    def test_var_keyword_gets_everything(self) -> None:
        def page(**context): ...

        available = {"params": 1, "search_params": {}}
        assert injectable_kwargs(page, available) == available

    def test_keyword_only(self) -> None:
        def layout(*, children): ...

        assert injectable_kwargs(layout, {"children": "x"}) == {"children": "x"}

    def test_no_parameters(self) -> None:
        assert injectable_kwargs(lambda: None, {"params": 1}) == {}

    def test_positional_only_ignored(self) -> None:
        assert injectable_kwargs(len, {"obj": 1}) == {}


class TestCallWithInjection:
    async def test_passes_declared(self) -> None:
        async def layout(children, params):
            return (children, params)

        result = await call_with_injection(layout, {"children": "c", "params": {"a": "1"}, "error": None})
        assert result == ("c", {"a": "1"})
