"""
Route caching with prefix invalidation

Each key prefix has a generation counter stored in the cache itself. Cached
responses are keyed by prefix, generation, path and query string, so bumping
the generation retires every response under that prefix at once without
needing pattern deletes from the cache backend.
"""

import functools

from flask import current_app, request

from fanhub import cache


def _generation_key(key_prefix):
    return f"{key_prefix}:generation"


def _generation(key_prefix):
    return cache.get(_generation_key(key_prefix)) or 0


def make_cache_key(key_prefix):
    query = "&".join(f"{k}={v}" for k, v in sorted(request.args.items()))
    return f"{key_prefix}:{_generation(key_prefix)}:{request.path}?{query}"


def cached_route(timeout=300, key_prefix="view"):
    """
    Cache a view's return value per path and query string

    The view must return something picklable (a dict rather than a Response).
    Errors raised by the view are not cached.

    Args:
        timeout: Seconds to keep a response
        key_prefix: Name used with invalidate_cache_prefix()
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            cache_key = make_cache_key(key_prefix)

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Cache hit: {cache_key}")
                return result

            result = f(*args, **kwargs)
            cache.set(cache_key, result, timeout=timeout)
            return result

        return wrapped

    return decorator


def invalidate_cache_prefix(key_prefix):
    """Retire every cached response stored under key_prefix"""
    generation = _generation(key_prefix) + 1
    cache.set(_generation_key(key_prefix), generation, timeout=0)
    current_app.logger.debug(f"Cache prefix {key_prefix} moved to generation {generation}")
