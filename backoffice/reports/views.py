import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum, Count, F, DecimalField
from django.utils import timezone
from decimal import Decimal

from backoffice.catalog.models import Product
from backoffice.core.cache_utils import get_cached_list, cache_list, DASHBOARD_PREFIX, DASHBOARD_CACHE_TTL
from backoffice.orders.models import Order, OrderItem
from backoffice.parties.models import Customer
from .sales import parse_date_range, sales_totals, daily_breakdown, LINE_COST

logger = logging.getLogger('backoffice.reports')

TOP_PRODUCT_STATUSES = ['delivered', 'sent', 'preparing', 'ready_pickup']
PENDING_STATUSES = ['pending', 'preparing']


def _bad_dates():
    return Response({'error': 'Dates must be formatted as YYYY-MM-DD'}, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    """Dashboard KPIs for today"""
    today = timezone.localdate()
    cached_data, cache_key = get_cached_list(DASHBOARD_PREFIX, day=today.isoformat())
    if cached_data is not None:
        return Response(cached_data)

    today_orders = Order.objects.filter(created_at__date=today, status='delivered')
    today_totals = today_orders.aggregate(revenue=Sum('total'), count=Count('id'))

    pending = Order.objects.filter(status__in=PENDING_STATUSES)
    latest_pending = pending.select_related('customer').order_by('-created_at')[:5]

    low_stock = Product.objects.filter(
        is_active=True,
        stock_quantity__lte=F('min_stock_alert'),
    ).order_by('stock_quantity', 'name')[:5]

    data = {
        'date': today.isoformat(),
        'today_revenue': float(today_totals['revenue'] or Decimal('0.00')),
        'today_orders': today_totals['count'],
        'pending_orders': pending.count(),
        'active_products': Product.objects.filter(is_active=True).count(),
        'total_customers': Customer.objects.count(),
        'low_stock_products': [
            {
                'id': product.id,
                'name': product.name,
                'stock_quantity': product.stock_quantity,
                'min_stock_alert': product.min_stock_alert,
            }
            for product in low_stock
        ],
        'latest_pending_orders': [
            {
                'id': order.id,
                'order_number': order.order_number,
                'customer_name': order.customer.name,
                'status': order.status,
                'delivery_type': order.delivery_type,
                'total': float(order.total),
                'created_at': order.created_at.isoformat(),
            }
            for order in latest_pending
        ],
    }
    cache_list(cache_key, data, DASHBOARD_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_summary(request):
    """Sales summary report (last ``days`` days by default)"""
    try:
        days = int(request.query_params.get('days', 30))
        date_from, date_to = parse_date_range(request.query_params, default_days=days)
    except ValueError:
        return _bad_dates()

    totals = sales_totals(date_from, date_to)
    avg_order_value = totals['revenue'] / totals['orders'] if totals['orders'] else Decimal('0.00')

    return Response({
        'period': {
            'from': date_from.isoformat(),
            'to': date_to.isoformat()
        },
        'summary': {
            'total_revenue': float(totals['revenue']),
            'total_cost': float(totals['cost']),
            'total_profit': float(totals['profit']),
            'total_orders': totals['orders'],
            'total_items_sold': totals['items_sold'],
            'avg_order_value': float(round(avg_order_value, 2)),
        },
        'daily_breakdown': daily_breakdown(date_from, date_to)
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def top_products(request):
    """Top selling products by revenue"""
    try:
        limit = int(request.query_params.get('limit', 10))
        date_from, date_to = parse_date_range(request.query_params)
    except ValueError:
        return _bad_dates()

    items = OrderItem.objects.filter(
        product__isnull=False,
        order__status__in=TOP_PRODUCT_STATUSES,
        order__created_at__date__gte=date_from,
        order__created_at__date__lte=date_to,
    )

    rows = items.values(
        'product__id',
        'product__name',
        'product__sku'
    ).annotate(
        total_quantity=Sum('quantity'),
        total_revenue=Sum('total', output_field=DecimalField()),
        total_cost=Sum(LINE_COST),
        order_count=Count('order', distinct=True)
    ).order_by('-total_revenue')[:limit]

    products = []
    for row in rows:
        revenue = row['total_revenue'] or Decimal('0.00')
        cost = row['total_cost'] or Decimal('0.00')
        products.append({
            'id': row['product__id'],
            'name': row['product__name'],
            'sku': row['product__sku'],
            'quantity': row['total_quantity'],
            'revenue': float(revenue),
            'profit': float(revenue - cost),
            'orders': row['order_count'],
        })

    return Response({
        'period': {
            'from': date_from.isoformat(),
            'to': date_to.isoformat()
        },
        'products': products
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_summary(request):
    """Customer summary report"""
    first_of_month = timezone.localdate().replace(day=1)

    top_customers = Customer.objects.filter(total_orders__gt=0).order_by('-total_spent').values(
        'id', 'name', 'phone', 'total_orders', 'total_spent'
    )[:10]

    logger.debug(f"Customer summary requested by {request.user.username}")
    return Response({
        'summary': {
            'total_customers': Customer.objects.count(),
            'club_members': Customer.objects.filter(is_club_member=True).count(),
            'new_this_month': Customer.objects.filter(created_at__date__gte=first_of_month).count(),
        },
        'top_customers': [
            {**row, 'total_spent': float(row['total_spent'])} for row in top_customers
        ],
    })
