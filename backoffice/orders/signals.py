"""
Order change publishing.

Saved and deleted orders are published to the change feed once the
surrounding transaction commits. Batched updates (``rows_updated``) publish
one UPDATE per affected order and, for status changes, append the status
history and refresh the customers' totals.
"""
import logging

from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from backoffice.core.cache_signals import is_suspended
from backoffice.core.gateway import row_from_instance
from backoffice.core.signals import rows_updated
from .models import Order
from .realtime import ChangeEvent, INSERT, UPDATE, DELETE, publish_event
from .services import record_status_history, refresh_customer_totals

logger = logging.getLogger(__name__)

TABLE = Order._meta.db_table


@receiver(post_save, sender=Order)
def publish_order_saved(sender, instance, created, **kwargs):
    if is_suspended():
        return
    event = ChangeEvent(TABLE, INSERT if created else UPDATE, new=row_from_instance(instance))
    customer_id = instance.customer_id

    def after_commit():
        publish_event(event)
        if created:
            refresh_customer_totals([customer_id])

    transaction.on_commit(after_commit)


@receiver(post_delete, sender=Order)
def publish_order_deleted(sender, instance, **kwargs):
    if is_suspended():
        return
    event = ChangeEvent(TABLE, DELETE, old=row_from_instance(instance))
    customer_id = instance.customer_id

    def after_commit():
        publish_event(event)
        refresh_customer_totals([customer_id])

    transaction.on_commit(after_commit)


@receiver(rows_updated, sender=Order)
def handle_orders_updated(sender, pks, fields, **kwargs):
    """Runs after the batched update has committed"""
    orders = list(Order.objects.filter(pk__in=pks))
    if 'status' in fields:
        try:
            record_status_history(orders, user=kwargs.get('user'), notes=kwargs.get('notes', ''))
            refresh_customer_totals([order.customer_id for order in orders])
        except Exception as e:
            logger.warning(f"Status bookkeeping failed for orders {pks}: {e}", exc_info=True)
    if is_suspended():
        return
    for order in orders:
        publish_event(ChangeEvent(TABLE, UPDATE, new=row_from_instance(order)))
