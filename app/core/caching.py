"""Caching utilities."""
from functools import wraps
from app.core.extensions import cache


def make_cache_key(*args, **kwargs):
    """Create cache key from arguments."""
    key_parts = [str(arg) for arg in args]

    for key, value in sorted(kwargs.items()):
        key_parts.append(f"{key}:{value}")

    return ":".join(key_parts)


def cached_per_user(timeout=300):
    """Cache decorator for functions whose first argument is the user id."""
    def decorator(f):
        @wraps(f)
        def decorated_function(user_id, *args, **kwargs):
            cache_key = CacheManager.user_key(user_id, f.__name__, *args, **kwargs)
            result = cache.get(cache_key)

            if result is None:
                result = f(user_id, *args, **kwargs)
                cache.set(cache_key, result, timeout=timeout)

            return result
        return decorated_function
    return decorator


class CacheManager:
    """Centralized cache management.

    Keys are namespaced with a per-user generation counter, so invalidating a
    user only bumps the counter instead of scanning the backend.
    """

    @staticmethod
    def _generation_key(user_id):
        return make_cache_key("budget_generation", f"user:{user_id}")

    @staticmethod
    def user_key(user_id, name, *args, **kwargs):
        generation = cache.get(CacheManager._generation_key(user_id)) or 0
        return make_cache_key(name, f"user:{user_id}", f"gen:{generation}", *args, **kwargs)

    @staticmethod
    def invalidate_budget_cache(user_id):
        """Invalidate budget-related cache for user."""
        key = CacheManager._generation_key(user_id)
        generation = cache.get(key) or 0
        cache.set(key, generation + 1, timeout=0)


PROCESS_LOCAL_CACHES = ('simple', 'simplecache')


def is_shared_cache(config) -> bool:
    """False when CACHE_TYPE keeps entries inside one process.

    Invalidation from another process (the polling bot) never reaches such
    a cache, so its readers see old totals until the entry times out.
    """
    cache_type = str(config.get('CACHE_TYPE') or '').rsplit('.', 1)[-1].lower()
    return cache_type not in PROCESS_LOCAL_CACHES
