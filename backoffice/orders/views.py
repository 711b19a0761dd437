from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
from .models import Order
from .serializers import OrderSerializer, OrderDetailSerializer, OrderStatusSerializer, BulkStatusSerializer
from .services import change_status, StatusChangeError
from backoffice.core.utils import create_audit_log, parse_date_param


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_list(request):
    """Orders with customer and items, newest first"""
    orders = Order.objects.select_related('customer').prefetch_related('items')

    status_filter = request.query_params.get('status', None)
    if status_filter:
        orders = orders.filter(status__in=status_filter.split(','))

    delivery_type = request.query_params.get('delivery_type', None)
    if delivery_type and delivery_type != 'all':
        orders = orders.filter(delivery_type=delivery_type)

    search = request.query_params.get('search', None)
    if search:
        query = Q(customer__name__icontains=search) | Q(customer__phone__icontains=search)
        if search.lstrip('#').isdigit():
            query |= Q(order_number=int(search.lstrip('#')))
        orders = orders.filter(query)

    try:
        date_from = parse_date_param(request.query_params, 'date_from')
        date_to = parse_date_param(request.query_params, 'date_to')
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    if date_from:
        orders = orders.filter(created_at__date__gte=date_from)
    if date_to:
        orders = orders.filter(created_at__date__lte=date_to)

    orders = orders.order_by('-created_at')
    return Response(OrderSerializer(orders, many=True).data)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    """Retrieve, annotate or delete an order. Status moves through the status endpoints."""
    order = get_object_or_404(
        Order.objects.select_related('customer').prefetch_related('items', 'status_history__user'), pk=pk
    )

    if request.method == 'GET':
        return Response(OrderDetailSerializer(order).data)
    elif request.method == 'PATCH':
        serializer = OrderDetailSerializer(order, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(
            request=request,
            action='delete',
            model_name='Order',
            object_id=order.id,
            object_name=str(order),
            changes={'status': order.status, 'total': str(order.total)},
        )
        order.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH', 'POST'])
@permission_classes([IsAuthenticated])
def order_status(request, pk):
    """Move a single order to a new status"""
    order = get_object_or_404(Order, pk=pk)
    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    new_status = serializer.validated_data['status']
    previous = order.status
    change_status([order.pk], new_status, user=request.user, notes=serializer.validated_data['notes'])

    create_audit_log(
        request=request,
        action='order_status',
        model_name='Order',
        object_id=order.id,
        object_name=str(order),
        changes={'status': {'from': previous, 'to': new_status}},
    )
    order = Order.objects.select_related('customer').prefetch_related('items').get(pk=order.pk)
    return Response(OrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_bulk_status(request):
    """Move every listed order to one status in a single write"""
    serializer = BulkStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    ids = serializer.validated_data['ids']
    new_status = serializer.validated_data['status']
    try:
        updated = change_status(ids, new_status, user=request.user, notes=serializer.validated_data['notes'])
    except StatusChangeError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='order_bulk_status',
        model_name='Order',
        object_id=",".join(str(i) for i in ids)[:100],
        object_name=f"{updated} order(s)",
        changes={'ids': ids, 'status': new_status},
    )
    return Response({'updated': updated, 'status': new_status, 'ids': ids})
