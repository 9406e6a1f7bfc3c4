"""Revalidation metadata and stale-while-revalidate scheduling."""

from kestrel.cache.metadata import PageMetadata, RevalidationStore
from kestrel.cache.revalidate import Freshness, Revalidator, check_freshness

__all__ = ["Freshness", "PageMetadata", "RevalidationStore", "Revalidator", "check_freshness"]
