"""Memo store — in-process LRU for recomputed views.

Used for: project rankings keyed on a content hash of the visit/project
snapshot. Identical snapshots (same records, same as_of day, same policy)
return the stored result instead of re-aggregating.

Entries never go stale on their own: the key changes whenever the input
does. Size is bounded by Settings.ranking_cache_max_entries; the least
recently used entry is dropped first. Both the switch and the bound come
from the Settings the computation ran with, so a caller passing its own
Settings controls caching for that call.
"""

import logging
import threading
from collections import OrderedDict
from typing import Any

from ..config import Settings, get_settings

log = logging.getLogger("visitrank.cache")

_store: "OrderedDict[str, Any]" = OrderedDict()
_lock = threading.Lock()
_stats = {"hits": 0, "misses": 0, "evictions": 0}


def _enabled(settings: Settings | None = None) -> bool:
    return (settings or get_settings()).ranking_cache_enabled


def get_cached(cache_key: str, settings: Settings | None = None) -> Any | None:
    """Return the stored value or None on miss.

    `settings` is the policy the caller computed with; the global settings
    are used when it is omitted.
    """
    if not _enabled(settings):
        return None
    with _lock:
        if cache_key in _store:
            _store.move_to_end(cache_key)
            _stats["hits"] += 1
            return _store[cache_key]
        _stats["misses"] += 1
        return None


def set_cached(cache_key: str, value: Any, settings: Settings | None = None) -> None:
    s = settings or get_settings()
    if not _enabled(s):
        return
    limit = max(1, s.ranking_cache_max_entries)
    with _lock:
        _store[cache_key] = value
        _store.move_to_end(cache_key)
        while len(_store) > limit:
            evicted, _ = _store.popitem(last=False)
            _stats["evictions"] += 1
            log.debug("Cache EVICT: %s", evicted)


def invalidate(cache_key: str) -> bool:
    with _lock:
        return _store.pop(cache_key, None) is not None


def invalidate_prefix(prefix: str) -> int:
    """Drop every entry whose key starts with `prefix:`. Returns the count."""
    with _lock:
        doomed = [k for k in _store if k.startswith(f"{prefix}:")]
        for k in doomed:
            del _store[k]
    if doomed:
        log.info("Cache invalidated %d entries for prefix %s", len(doomed), prefix)
    return len(doomed)


def clear_cache() -> int:
    with _lock:
        count = len(_store)
        _store.clear()
        for k in _stats:
            _stats[k] = 0
    return count


def cache_stats() -> dict:
    with _lock:
        return {"entries": len(_store), **_stats}
