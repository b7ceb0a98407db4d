"""
Cache utilities for the prediction league
Provides the route caching decorator and path revalidation used after scoring
"""

import functools
import logging

from flask import current_app, request

from app import cache

logger = logging.getLogger(__name__)


def make_cache_key(path, *args, **kwargs):
    """Generate a cache key from a request path and arguments"""
    args_str = "_".join(str(arg) for arg in args)
    kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
    return f"{path}_{args_str}_{kwargs_str}".replace("/", "_")


def cached_route(timeout=300, key_prefix="view"):
    """
    Decorator for caching route responses

    Args:
        timeout: Cache timeout in seconds (default 5 minutes)
        key_prefix: Prefix for cache key

    Only requests without a query string are cached so that the key
    matches what revalidate_path() deletes.
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            if request.query_string:
                return f(*args, **kwargs)

            cache_key = f"{key_prefix}_{make_cache_key(request.path, *args, **kwargs)}"

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Cache hit for key: {cache_key}")
                return result

            result = f(*args, **kwargs)
            cache.set(cache_key, result, timeout=timeout)
            current_app.logger.debug(f"Cache set for key: {cache_key}")

            return result

        return wrapped

    return decorator


def revalidate_path(path, key_prefix="view"):
    """Drop the cached response for a path

    Returns True when the cache accepted the delete, False on failure.
    Failures are logged and never raised: stale views are not worth failing
    a cron run for.
    """
    cache_key = f"{key_prefix}_{make_cache_key(path)}"
    try:
        cache.delete(cache_key)
        logger.info(f"Revalidated cached path {path}")
        return True
    except Exception as e:
        logger.warning(f"Failed to revalidate cached path {path}: {e}")
        return False


def revalidate_paths(*paths):
    """Revalidate several paths; returns the list of paths that failed"""
    return [path for path in paths if not revalidate_path(path)]
