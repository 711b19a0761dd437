"""
Cache invalidation signals
Automatically invalidate cached lists when data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
from django.db import transaction
import logging
import threading
from contextlib import contextmanager

from .cache_utils import (
    invalidate_list_cache, PRODUCTS_LIST_PREFIX, CUSTOMERS_LIST_PREFIX, DASHBOARD_PREFIX,
)
from .signals import rows_updated

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

# model name -> cached list prefixes that include it
_PREFIXES_BY_MODEL = {
    'Product': [PRODUCTS_LIST_PREFIX, DASHBOARD_PREFIX],
    'Category': [PRODUCTS_LIST_PREFIX],
    'StockMovement': [PRODUCTS_LIST_PREFIX, DASHBOARD_PREFIX],
    'Customer': [CUSTOMERS_LIST_PREFIX, DASHBOARD_PREFIX],
    'Order': [DASHBOARD_PREFIX],
}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def _invalidate_for(model_name):
    prefixes = _PREFIXES_BY_MODEL.get(model_name)
    if not prefixes:
        return

    def invalidate_after_commit():
        for prefix in prefixes:
            invalidate_list_cache(prefix)

    # Invalidate AFTER the DB commit so the cache is not repopulated with stale rows
    transaction.on_commit(invalidate_after_commit)


@receiver([post_save, post_delete])
def invalidate_model_cache(sender, instance, **kwargs):
    """Invalidate cached lists when a cached model changes"""
    if is_suspended():
        return
    try:
        _invalidate_for(sender.__name__)
    except Exception as e:
        logger.warning(f"Error in invalidate_model_cache signal: {e}")


@receiver(rows_updated)
def invalidate_bulk_update_cache(sender, pks, **kwargs):
    """Batched updates skip post_save; invalidate for them too"""
    if is_suspended():
        return
    try:
        _invalidate_for(sender.__name__)
    except Exception as e:
        logger.warning(f"Error in invalidate_bulk_update_cache signal: {e}")
