"""
cache/decorators.py — Snapshot memoization decorator

Wraps get_cached/set_cached from memo_store.py. Caches the return value of a
pure computation by hashing the content of specified keyword arguments.

Usage:
    @cached_snapshot(prefix="rankings", key_params=["visits", "projects", "as_of"])
    def compute(visits, projects, as_of, ...):
        ...
"""

import functools
import hashlib
import json
import logging
from typing import Any

from pydantic import BaseModel

from ..config import Settings
from .memo_store import get_cached, set_cached

log = logging.getLogger("visitrank.cache")


def _plain(value: Any) -> Any:
    """Reduce pydantic models (and lists of them) to JSON-able data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    return value


def snapshot_key(prefix: str, **parts: Any) -> str:
    """Deterministic content key: sort dict, dump as JSON and hash."""
    key_str = json.dumps({k: _plain(v) for k, v in parts.items()}, sort_keys=True, default=str)
    key_hash = hashlib.md5(key_str.encode(), usedforsecurity=False).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_snapshot(prefix: str, key_params: list[str] | None = None):
    """Decorator that memoizes a pure function on the content of its kwargs.

    Args:
        prefix: Cache key prefix (e.g. "rankings")
        key_params: kwarg names to include in the key. If None, all kwargs
                    are used. Pass `use_cache=False` at call time to bypass.
                    A `settings` kwarg holding a Settings instance decides
                    whether the store is used and how large it may grow.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, use_cache: bool = True, **kwargs):
            if not use_cache:
                return func(*args, **kwargs)

            if key_params is not None:
                key_dict = {k: kwargs.get(k) for k in key_params}
            else:
                key_dict = dict(kwargs)
            cache_key = snapshot_key(prefix, args=list(args), **key_dict)

            policy = kwargs.get("settings")
            policy = policy if isinstance(policy, Settings) else None
            cached = get_cached(cache_key, policy)
            if cached is not None:
                log.debug("Cache HIT: %s", cache_key)
                return cached

            log.debug("Cache MISS: %s", cache_key)
            result = func(*args, **kwargs)
            set_cached(cache_key, result, policy)
            return result

        wrapper.cache_prefix = prefix
        return wrapper

    return decorator
