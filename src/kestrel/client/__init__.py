"""Client-side navigation between prerendered and dynamic routes."""

from kestrel.client.cache import TreeCache
from kestrel.client.navigator import Navigator

__all__ = ["Navigator", "TreeCache"]
