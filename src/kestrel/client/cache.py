"""Navigation tree cache."""

from __future__ import annotations

from collections import OrderedDict
from typing import Any


class TreeCache:
    """Decoded trees by path, kept for the owner's lifetime.

    With *max_entries* set, the least recently used tree is evicted first.

    Owned by a :class:`~kestrel.client.navigator.Navigator`; pass one in to
    share it between navigators or to inspect it in tests.
    """

    __slots__ = ("_entries", "max_entries")

    def __init__(self, max_entries: int | None = None) -> None:
        self.max_entries = max_entries
        self._entries: OrderedDict[str, Any] = OrderedDict()

    def get(self, path: str) -> Any | None:
        tree = self._entries.get(path)
        if tree is not None:
            self._entries.move_to_end(path)
        return tree

    def put(self, path: str, tree: Any) -> None:
        self._entries[path] = tree
        self._entries.move_to_end(path)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, path: str | None = None) -> None:
        """Drop one path, or everything when *path* is ``None``."""
        if path is None:
            self._entries.clear()
        else:
            self._entries.pop(path, None)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)
