"""Resilient delivery of the enriched dataset."""

from makeready.fetch.cache import (
    CachedSnapshot,
    CacheStore,
    FileCacheStore,
    MemoryCacheStore,
    load_snapshot,
    save_snapshot,
)
from makeready.fetch.orchestrator import FetchOrchestrator, FetchResult, FetchState
from makeready.fetch.strategies import DirectStrategy, FetchStrategy, ProxyStrategy

__all__ = [
    "CacheStore",
    "CachedSnapshot",
    "DirectStrategy",
    "FetchOrchestrator",
    "FetchResult",
    "FetchState",
    "FetchStrategy",
    "FileCacheStore",
    "MemoryCacheStore",
    "ProxyStrategy",
    "load_snapshot",
    "save_snapshot",
]
