"""
List caching helpers.

List responses are cached under a key that embeds a per-prefix version
number; bumping the version invalidates every cached list for that prefix
without needing pattern deletion on the cache backend.
"""
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
PRODUCTS_LIST_CACHE_TTL = 120  # 2 minutes
CUSTOMERS_LIST_CACHE_TTL = 300  # 5 minutes
DASHBOARD_CACHE_TTL = 60

PRODUCTS_LIST_PREFIX = 'products_list'
CUSTOMERS_LIST_PREFIX = 'customers_list'
DASHBOARD_PREFIX = 'dashboard_kpis'


def _version_key(prefix):
    return f"{prefix}:version"


def get_list_version(prefix):
    version = cache.get(_version_key(prefix))
    if version is None:
        version = 1
        cache.add(_version_key(prefix), version, None)
    return version


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique, versioned cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:v{get_list_version(prefix)}:{key_hash}"


def get_cached_list(prefix, **filters):
    """Returns tuple: (cached_data, cache_key)"""
    cache_key = make_cache_key(prefix, **filters)
    cached_data = cache.get(cache_key)
    if cached_data is not None:
        logger.debug(f"Cache HIT for {prefix}: {cache_key}")
    return cached_data, cache_key


def cache_list(cache_key, data, ttl):
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached list: {cache_key}")


def invalidate_list_cache(prefix):
    """Invalidate every cached list for a prefix by bumping its version"""
    try:
        cache.incr(_version_key(prefix))
    except ValueError:
        cache.set(_version_key(prefix), 2, None)
    logger.info(f"Invalidated {prefix} cache")
