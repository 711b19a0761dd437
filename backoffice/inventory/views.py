from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from .models import StockMovement
from .serializers import StockMovementSerializer, StockMovementCreateSerializer
from .services import apply_movement, InsufficientStock
from backoffice.core.utils import create_audit_log, parse_date_param, parse_int_param


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def stock_movement_list_create(request):
    """List stock movements or register a new one"""
    if request.method == 'GET':
        movements = StockMovement.objects.select_related('product', 'user')

        product_id = request.query_params.get('product', None)
        if product_id:
            movements = movements.filter(product_id=product_id)

        movement_type = request.query_params.get('type', None)
        if movement_type:
            movements = movements.filter(movement_type=movement_type)

        try:
            date_from = parse_date_param(request.query_params, 'date_from')
            date_to = parse_date_param(request.query_params, 'date_to')
            limit = parse_int_param(request.query_params, 'limit', 100)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        if date_from:
            movements = movements.filter(created_at__date__gte=date_from)
        if date_to:
            movements = movements.filter(created_at__date__lte=date_to)

        serializer = StockMovementSerializer(movements[:limit], many=True)
        return Response(serializer.data)
    else:  # POST
        serializer = StockMovementCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        try:
            movement = apply_movement(
                product_id=data['product'].pk,
                movement_type=data['movement_type'],
                quantity=data['quantity'],
                user=request.user,
                unit_cost=data.get('unit_cost'),
                reference=data.get('reference', ''),
                notes=data.get('notes', ''),
            )
        except InsufficientStock as e:
            return Response({
                'error': 'Insufficient stock',
                'available': e.available,
                'requested': e.requested,
            }, status=status.HTTP_400_BAD_REQUEST)

        create_audit_log(
            request=request,
            action='stock_movement',
            model_name='StockMovement',
            object_id=movement.id,
            object_name=movement.product.name,
            changes={
                'movement_type': movement.movement_type,
                'quantity': movement.quantity,
                'previous_stock': movement.previous_stock,
                'new_stock': movement.new_stock,
            }
        )
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stock_movement_detail(request, pk):
    """Movements are append-only"""
    movement = get_object_or_404(StockMovement.objects.select_related('product', 'user'), pk=pk)
    return Response(StockMovementSerializer(movement).data)
