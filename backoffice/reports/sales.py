"""
Sales aggregation shared by reports and finance.

Revenue counts delivered orders only, dated by ``created_at``. Cost is the
sum of ``quantity * product.cost_price`` over the items of those orders;
combo lines without a product contribute no cost.
"""
from datetime import datetime, timedelta
from decimal import Decimal

from django.db.models import Sum, Count, F, DecimalField, ExpressionWrapper
from django.db.models.functions import TruncDate
from django.utils import timezone

from backoffice.orders.models import Order, OrderItem

ZERO = Decimal('0.00')

LINE_COST = ExpressionWrapper(
    F('quantity') * F('product__cost_price'),
    output_field=DecimalField(max_digits=14, decimal_places=2),
)


def parse_date_range(params, default_days=30):
    """
    Read ``date_from``/``date_to`` (``YYYY-MM-DD``) from query params.

    Missing bounds default to the last ``default_days`` days ending today.
    Raises ValueError on malformed dates.
    """
    date_from = params.get('date_from', None)
    date_to = params.get('date_to', None)

    if not date_to:
        date_to = timezone.localdate()
    else:
        date_to = datetime.strptime(date_to, '%Y-%m-%d').date()

    if not date_from:
        date_from = date_to - timedelta(days=default_days)
    else:
        date_from = datetime.strptime(date_from, '%Y-%m-%d').date()

    return date_from, date_to


def delivered_orders(date_from, date_to):
    return Order.objects.filter(
        status='delivered',
        created_at__date__gte=date_from,
        created_at__date__lte=date_to,
    )


def sales_totals(date_from, date_to):
    orders = delivered_orders(date_from, date_to)
    totals = orders.aggregate(revenue=Sum('total'), count=Count('id'))
    items = OrderItem.objects.filter(order__in=orders).aggregate(
        cost=Sum(LINE_COST),
        items_sold=Sum('quantity'),
    )
    revenue = totals['revenue'] or ZERO
    cost = items['cost'] or ZERO
    return {
        'revenue': revenue,
        'cost': cost,
        'profit': revenue - cost,
        'orders': totals['count'],
        'items_sold': items['items_sold'] or 0,
    }


def daily_breakdown(date_from, date_to):
    """Per-day revenue, order count, cost and profit, oldest day first"""
    orders = delivered_orders(date_from, date_to)

    days = {}
    for row in orders.annotate(day=TruncDate('created_at')).values('day').annotate(
        revenue=Sum('total'),
        count=Count('id'),
    ):
        days[row['day']] = {
            'date': row['day'].isoformat(),
            'revenue': row['revenue'] or ZERO,
            'orders': row['count'],
            'cost': ZERO,
        }

    cost_rows = OrderItem.objects.filter(order__in=orders).annotate(
        day=TruncDate('order__created_at')
    ).values('day').annotate(cost=Sum(LINE_COST))
    for row in cost_rows:
        if row['day'] in days:
            days[row['day']]['cost'] = row['cost'] or ZERO

    breakdown = []
    for day in sorted(days):
        entry = days[day]
        breakdown.append({
            'date': entry['date'],
            'revenue': float(entry['revenue']),
            'orders': entry['orders'],
            'cost': float(entry['cost']),
            'profit': float(entry['revenue'] - entry['cost']),
        })
    return breakdown
