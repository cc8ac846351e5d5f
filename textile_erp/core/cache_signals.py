"""
Cache invalidation signals
Dashboard figures are cached; any change to a business document drops the cached payload.
"""
import logging
import threading
from contextlib import contextmanager

from django.core.cache import cache
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

logger = logging.getLogger(__name__)

DASHBOARD_STATS_CACHE_KEY = 'dashboard_stats'
MASTER_DATA_STATS_CACHE_KEY = 'master_data_stats'
DASHBOARD_CACHE_TTL = 60  # seconds

DASHBOARD_MODELS = {
    'PurchaseOrder', 'GoodsReceiptNote', 'InventoryLot',
    'SalesOrder', 'SalesChallan',
}
MASTER_DATA_MODELS = {'Customer', 'Supplier', 'Category', 'Product'}

_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Temporarily suspend cache invalidation during bulk operations
    (imports, recalculations). The caller invalidates once afterwards.
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def invalidate_dashboard_cache():
    cache.delete(DASHBOARD_STATS_CACHE_KEY)
    logger.debug("Invalidated dashboard cache")


def invalidate_master_data_cache():
    cache.delete(MASTER_DATA_STATS_CACHE_KEY)
    # Master data counts are also shown on the dashboard
    cache.delete(DASHBOARD_STATS_CACHE_KEY)
    logger.debug("Invalidated master data cache")


@receiver([post_save, post_delete])
def invalidate_stats_cache(sender, instance, **kwargs):
    """Drop cached stats when a document or master record changes"""
    if is_suspended():
        return

    model_name = sender.__name__
    if model_name in DASHBOARD_MODELS:
        invalidate_dashboard_cache()
    elif model_name in MASTER_DATA_MODELS:
        invalidate_master_data_cache()
