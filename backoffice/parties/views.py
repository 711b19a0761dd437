from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
from .models import Customer
from .serializers import CustomerSerializer
from backoffice.core.cache_utils import (
    get_cached_list, cache_list, CUSTOMERS_LIST_PREFIX, CUSTOMERS_LIST_CACHE_TTL,
)
from backoffice.core.utils import create_audit_log


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List all customers or create a new customer"""
    if request.method == 'GET':
        search = request.query_params.get('search', None)
        club = request.query_params.get('club', None)

        # Try cache first
        cached_data, cache_key = get_cached_list(CUSTOMERS_LIST_PREFIX, search=search or '', club=club or '')
        if cached_data is not None:
            response = Response(cached_data)
            response['Cache-Control'] = 'private, max-age=300, stale-while-revalidate=600'
            return response

        queryset = Customer.objects.all()
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(phone__icontains=search) | Q(email__icontains=search)
            )
        if club is not None and club != '':
            queryset = queryset.filter(is_club_member=club.lower() == 'true')
        response_data = CustomerSerializer(queryset, many=True).data

        cache_list(cache_key, response_data, CUSTOMERS_LIST_CACHE_TTL)
        response = Response(response_data)
        response['Cache-Control'] = 'private, max-age=300, stale-while-revalidate=600'
        return response
    else:
        serializer = CustomerSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'GET':
        return Response(CustomerSerializer(customer).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if customer.orders.exists():
            return Response(
                {'error': 'Customer has orders and cannot be deleted'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='Customer',
            object_id=customer.id,
            object_name=customer.name,
        )
        customer.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_orders(request, pk):
    """Order history of a customer, newest first"""
    from backoffice.orders.serializers import OrderSerializer

    customer = get_object_or_404(Customer, pk=pk)
    orders = customer.orders.prefetch_related('items').order_by('-created_at')
    return Response(OrderSerializer(orders, many=True).data)
