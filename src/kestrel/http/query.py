"""Immutable query string parameters."""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs


class QueryParams(Mapping[str, str]):
    """Parsed query string; ``[]`` returns the first value for a key."""

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: bytes = b"") -> None:
        self._raw = query_string
        self._data: dict[str, list[str]] = parse_qs(query_string.decode("latin-1"), keep_blank_values=True)

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"QueryParams({{{items}}})"

    def get_list(self, key: str) -> list[str]:
        return list(self._data.get(key, []))

    def without(self, key: str) -> dict[str, str | list[str]]:
        """Search params for page rendering, minus *key*.

        Repeated keys become lists, single keys stay strings.
        """
        return {
            name: values[0] if len(values) == 1 else list(values)
            for name, values in self._data.items()
            if name != key
        }

    @property
    def raw(self) -> bytes:
        return self._raw
