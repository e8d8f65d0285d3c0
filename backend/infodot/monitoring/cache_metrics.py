"""
Cache Metrics

Prometheus counters for the cache-aside layer. Defined once at import time
so repeated service construction never re-registers a collector.
"""

from prometheus_client import Counter

CACHE_HITS = Counter(
    "infodot_cache_hits_total",
    "Cache-aside reads served from the store",
)
CACHE_MISSES = Counter(
    "infodot_cache_misses_total",
    "Cache-aside reads that invoked the fetch function",
)
CACHE_BYPASSES = Counter(
    "infodot_cache_bypasses_total",
    "Cache-aside reads that skipped the store",
    ["reason"],
)
CACHE_INVALIDATED = Counter(
    "infodot_cache_invalidated_entries_total",
    "Entries removed by key or tag invalidation",
    ["kind"],
)
