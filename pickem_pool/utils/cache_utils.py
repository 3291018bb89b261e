"""
Caching for computed standings

Results are stored under ``query_<namespace>_<function>_<args>`` so a whole
namespace can be dropped after scores change.
"""

import functools

from flask import current_app
from redis.exceptions import RedisError

from pickem_pool import cache


def _cache_key(namespace, f, args, kwargs):
    parts = [str(arg) for arg in args]
    parts.extend(f"{k}={v}" for k, v in sorted(kwargs.items()))
    return f"query_{namespace}_{f.__name__}_{'_'.join(parts)}"


def cached_query(namespace, timeout=300):
    """Cache a function's return value per argument list"""

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            key = _cache_key(namespace, f, args, kwargs)

            result = cache.get(key)
            if result is not None:
                current_app.logger.debug(f"Cache hit: {key}")
                return result

            result = f(*args, **kwargs)
            cache.set(key, result, timeout=timeout)
            return result

        return wrapped

    return decorator


def invalidate_cache_pattern(pattern):
    """
    Drop cached entries whose key matches a glob pattern.

    Redis backends delete only the matching keys. Backends that cannot list
    their keys (simple, null) are cleared entirely.
    """
    backend = cache.cache
    client = getattr(backend, "_write_client", None)

    if client is None:
        cache.clear()
        current_app.logger.debug(f"Cache cleared for pattern: {pattern}")
        return

    prefix = getattr(backend, "key_prefix", "") or ""
    try:
        keys = list(client.scan_iter(match=f"{prefix}{pattern}"))
        if keys:
            client.delete(*keys)
    except RedisError as e:
        # Stale standings expire on their own timeout
        current_app.logger.error(f"Failed to invalidate cache pattern {pattern}: {e}")
        return

    current_app.logger.info(f"Invalidated {len(keys)} cache keys for pattern: {pattern}")


def invalidate_model_cache(namespace):
    """Invalidate every cached result of a ``cached_query`` namespace"""
    invalidate_cache_pattern(f"query_{namespace}_*")
