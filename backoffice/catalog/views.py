from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.db.models import Count, F
from django.shortcuts import get_object_or_404
from .models import Category, Product
from .serializers import CategorySerializer, ProductSerializer
from .filters import ProductFilter
from backoffice.core.cache_utils import (
    get_cached_list, cache_list, PRODUCTS_LIST_PREFIX, PRODUCTS_LIST_CACHE_TTL,
)
from backoffice.core.utils import create_audit_log, parse_int_param


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def category_list_create(request):
    """List all categories or create a new category"""
    if request.method == 'GET':
        categories = Category.objects.annotate(num_products=Count('products'))
        active = request.query_params.get('active', None)
        if active is not None:
            categories = categories.filter(is_active=active.lower() == 'true')
        serializer = CategorySerializer(categories, many=True)
        return Response(serializer.data)
    else:
        serializer = CategorySerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category, pk=pk)

    if request.method == 'GET':
        serializer = CategorySerializer(category)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def category_toggle(request, pk):
    category = get_object_or_404(Category, pk=pk)
    category.is_active = not category.is_active
    category.save(update_fields=['is_active', 'updated_at'])
    return Response(CategorySerializer(category).data)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List products (filtered, paginated, cached) or create a product"""
    if request.method == 'GET':
        try:
            page = parse_int_param(request.query_params, 'page', 1)
            limit = parse_int_param(request.query_params, 'limit', 50)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        cached, cache_key = get_cached_list(PRODUCTS_LIST_PREFIX, **request.query_params.dict())
        if cached is not None:
            return Response(cached)

        queryset = Product.objects.select_related('category').all()
        filterset = ProductFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.order_by('name')

        paginator = Paginator(queryset, limit)
        page_obj = paginator.get_page(page)
        serializer = ProductSerializer(page_obj, many=True)
        data = {
            'results': serializer.data,
            'count': paginator.count,
            'next': page_obj.next_page_number() if page_obj.has_next() else None,
            'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
            'page': page_obj.number,
            'page_size': limit,
            'total_pages': paginator.num_pages,
        }
        cache_list(cache_key, data, PRODUCTS_LIST_CACHE_TTL)
        return Response(data)
    else:  # POST
        serializer = ProductSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        product = serializer.save()

        create_audit_log(
            request=request,
            action='create',
            model_name='Product',
            object_id=product.id,
            object_name=product.name,
            changes={'name': product.name, 'sku': product.sku, 'sale_price': str(product.sale_price)}
        )
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product.objects.select_related('category'), pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        product = serializer.save()
        create_audit_log(
            request=request,
            action='update',
            model_name='Product',
            object_id=product.id,
            object_name=product.name,
            changes={key: str(value) for key, value in serializer.validated_data.items()}
        )
        return Response(ProductSerializer(product).data)
    else:  # DELETE
        create_audit_log(
            request=request,
            action='delete',
            model_name='Product',
            object_id=product.id,
            object_name=product.name,
        )
        product.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_toggle(request, pk):
    """Flip a product's active flag"""
    product = get_object_or_404(Product, pk=pk)
    product.is_active = not product.is_active
    product.save(update_fields=['is_active', 'updated_at'])
    return Response(ProductSerializer(product).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_low_stock(request):
    """Active products at or below their minimum stock alert"""
    products = Product.objects.select_related('category').filter(
        is_active=True,
        stock_quantity__lte=F('min_stock_alert'),
    ).order_by('stock_quantity', 'name')
    return Response(ProductSerializer(products, many=True).data)
