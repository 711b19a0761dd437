import logging

from django.db import transaction
from django.db.models import Count, Sum, Q
from django.utils import timezone
from decimal import Decimal

from backoffice.core.signals import rows_updated
from backoffice.parties.models import Customer
from .models import Order, OrderStatusHistory, ORDER_STATUSES

logger = logging.getLogger(__name__)


class StatusChangeError(Exception):
    pass


def status_patch(status, now=None):
    """Field values written alongside a status change"""
    if status not in ORDER_STATUSES:
        raise StatusChangeError(f"Invalid status: {status}")
    now = now or timezone.now()
    patch = {'status': status}
    if status == 'delivered':
        patch['delivered_at'] = now
    elif status == 'cancelled':
        patch['cancelled_at'] = now
    return patch


def change_status(order_ids, status, user=None, notes=''):
    """
    Move every order in ``order_ids`` to ``status`` with one batched UPDATE.

    All or nothing: unknown ids reject the whole change. Returns the number
    of orders updated. Listeners of ``rows_updated``
    (status history, customer totals, change feed) run after commit.
    """
    order_ids = list(dict.fromkeys(order_ids))
    if not order_ids:
        raise StatusChangeError("No orders selected")
    patch = status_patch(status)
    patch['updated_at'] = timezone.now()

    with transaction.atomic():
        pks = list(
            Order.objects.select_for_update().filter(pk__in=order_ids).values_list('pk', flat=True)
        )
        missing = set(order_ids) - set(pks)
        if missing:
            raise StatusChangeError(f"Orders not found: {sorted(missing)}")
        if pks:
            Order.objects.filter(pk__in=pks).update(**patch)
            transaction.on_commit(lambda: rows_updated.send(
                sender=Order, pks=pks, fields=sorted(patch), user=user, notes=notes,
            ))

    logger.info(f"Orders {pks} moved to {status}")
    return len(pks)


def record_status_history(orders, user=None, notes=''):
    OrderStatusHistory.objects.bulk_create([
        OrderStatusHistory(order=order, status=order.status, user=user, notes=notes or '')
        for order in orders
    ])


def refresh_customer_totals(customer_ids):
    """Recompute order count (non-cancelled) and amount spent (delivered)"""
    customer_ids = sorted(set(cid for cid in customer_ids if cid is not None))
    if not customer_ids:
        return
    totals = Order.objects.filter(customer_id__in=customer_ids).exclude(status='cancelled').values(
        'customer_id'
    ).annotate(
        count=Count('id'),
        spent=Sum('total', filter=Q(status='delivered')),
    )
    by_customer = {row['customer_id']: row for row in totals}
    with transaction.atomic():
        for customer_id in customer_ids:
            row = by_customer.get(customer_id, {})
            Customer.objects.filter(pk=customer_id).update(
                total_orders=row.get('count', 0),
                total_spent=row.get('spent') or Decimal('0.00'),
                updated_at=timezone.now(),
            )
        transaction.on_commit(lambda: rows_updated.send(
            sender=Customer, pks=customer_ids, fields=['total_orders', 'total_spent'],
        ))
