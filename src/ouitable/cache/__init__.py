"""Cache module - on-disk artifact, conditional fetch, and refresh."""

from .fetcher import FetchResult, NotModified, Updated, fetch
from .refresh import ensure_current
from .store import CacheStore

__all__ = [
    "CacheStore",
    "FetchResult",
    "NotModified",
    "Updated",
    "fetch",
    "ensure_current",
]
