import logging
from datetime import date
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum, Count
from django.shortcuts import get_object_or_404
from django.utils import timezone
from .models import ExpenseCategory, Expense
from .serializers import ExpenseCategorySerializer, ExpenseSerializer
from backoffice.reports.sales import sales_totals

logger = logging.getLogger('backoffice.finance')


def month_bounds(value=None):
    """First and last day of a ``YYYY-MM`` month (current month by default)"""
    if value:
        year, month = (int(part) for part in value.split('-')[:2])
        first = date(year, month, 1)
    else:
        first = timezone.localdate().replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    return first, date.fromordinal(next_first.toordinal() - 1)


def _parse_month(request):
    try:
        return month_bounds(request.query_params.get('month', None)), None
    except ValueError:
        return None, Response({'error': 'month must be formatted as YYYY-MM'}, status=status.HTTP_400_BAD_REQUEST)


# ExpenseCategory views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def expense_category_list_create(request):
    if request.method == 'GET':
        categories = ExpenseCategory.objects.all()
        active = request.query_params.get('active', None)
        if active is not None:
            categories = categories.filter(is_active=active.lower() == 'true')
        return Response(ExpenseCategorySerializer(categories, many=True).data)
    else:
        serializer = ExpenseCategorySerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def expense_category_detail(request, pk):
    category = get_object_or_404(ExpenseCategory, pk=pk)

    if request.method == 'GET':
        return Response(ExpenseCategorySerializer(category).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ExpenseCategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Expense views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def expense_list_create(request):
    """Expenses of one month (``?month=YYYY-MM``, current month by default)"""
    if request.method == 'GET':
        bounds, error = _parse_month(request)
        if error:
            return error
        first, last = bounds
        expenses = Expense.objects.select_related('category').filter(
            expense_date__gte=first, expense_date__lte=last,
        )
        category = request.query_params.get('category', None)
        if category:
            expenses = expenses.filter(category_id=category)
        paid = request.query_params.get('paid', None)
        if paid is not None:
            expenses = expenses.filter(is_paid=paid.lower() == 'true')
        return Response(ExpenseSerializer(expenses, many=True).data)
    else:
        serializer = ExpenseSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save(user=request.user)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def expense_detail(request, pk):
    expense = get_object_or_404(Expense.objects.select_related('category'), pk=pk)

    if request.method == 'GET':
        return Response(ExpenseSerializer(expense).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ExpenseSerializer(expense, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        expense.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def expense_mark_paid(request, pk):
    """Mark an expense as paid today (or on ``payment_date``)"""
    expense = get_object_or_404(Expense, pk=pk)
    expense.is_paid = True
    expense.payment_date = request.data.get('payment_date') or timezone.localdate()
    expense.save(update_fields=['is_paid', 'payment_date', 'updated_at'])
    expense.refresh_from_db()
    logger.info(f"Expense {expense.pk} marked as paid on {expense.payment_date}")
    return Response(ExpenseSerializer(expense).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def finance_summary(request):
    """Revenue, expenses and balance for one month"""
    bounds, error = _parse_month(request)
    if error:
        return error
    first, last = bounds

    sales = sales_totals(first, last)
    expenses = Expense.objects.filter(expense_date__gte=first, expense_date__lte=last)
    total_expenses = expenses.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')
    paid_expenses = expenses.filter(is_paid=True).aggregate(total=Sum('amount'))['total'] or Decimal('0.00')

    by_category = expenses.values('category_id', 'category__name', 'category__color').annotate(
        total=Sum('amount'),
        count=Count('id'),
    ).order_by('-total')

    return Response({
        'period': {'from': first.isoformat(), 'to': last.isoformat()},
        'revenue': float(sales['revenue']),
        'cost': float(sales['cost']),
        'gross_profit': float(sales['profit']),
        'orders': sales['orders'],
        'expenses': float(total_expenses),
        'expenses_paid': float(paid_expenses),
        'expenses_pending': float(total_expenses - paid_expenses),
        'balance': float(sales['revenue'] - total_expenses),
        'net_profit': float(sales['profit'] - total_expenses),
        'by_category': [
            {
                'category_id': row['category_id'],
                'name': row['category__name'] or 'Uncategorized',
                'color': row['category__color'],
                'total': float(row['total']),
                'count': row['count'],
            }
            for row in by_category
        ],
    })
