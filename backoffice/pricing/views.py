from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.shortcuts import get_object_or_404
from .models import Combo, Offer, OfferHistory
from .serializers import ComboSerializer, OfferSerializer, OfferHistorySerializer
from backoffice.core.models import StoreConfig
from backoffice.core.utils import create_audit_log, parse_int_param


def _combo_queryset():
    return Combo.objects.prefetch_related('items__product')


# Combo views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def combo_list_create(request):
    """List all combos or create a new combo"""
    if request.method == 'GET':
        combos = _combo_queryset()
        active = request.query_params.get('active', None)
        if active is not None:
            combos = combos.filter(is_active=active.lower() == 'true')
        return Response(ComboSerializer(combos, many=True).data)
    else:
        serializer = ComboSerializer(data=request.data)
        if serializer.is_valid():
            combo = serializer.save()
            combo = _combo_queryset().get(pk=combo.pk)
            return Response(ComboSerializer(combo).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def combo_detail(request, pk):
    """Retrieve, update or delete a combo"""
    combo = get_object_or_404(_combo_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(ComboSerializer(combo).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ComboSerializer(combo, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            combo = _combo_queryset().get(pk=pk)
            return Response(ComboSerializer(combo).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        combo.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def combo_toggle(request, pk):
    combo = get_object_or_404(_combo_queryset(), pk=pk)
    combo.is_active = not combo.is_active
    combo.save(update_fields=['is_active', 'updated_at'])
    return Response(ComboSerializer(combo).data)


# Offer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def offer_list_create(request):
    """List offers or create one (recording it in the offer history)"""
    if request.method == 'GET':
        offers = Offer.objects.select_related('product', 'combo', 'created_by')
        offer_type = request.query_params.get('type', None)
        if offer_type:
            offers = offers.filter(offer_type=offer_type)
        active = request.query_params.get('active', None)
        if active is not None:
            offers = offers.filter(is_active=active.lower() == 'true')
        return Response(OfferSerializer(offers, many=True).data)

    serializer = OfferSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if serializer.validated_data['offer_type'] == 'clube_desconto' and not StoreConfig.load().enable_club_discount:
        return Response(
            {'error': 'Club discount is disabled in the store settings'},
            status=status.HTTP_400_BAD_REQUEST
        )

    with transaction.atomic():
        offer = serializer.save(created_by=request.user)
        OfferHistory.objects.create(
            product=offer.product,
            combo=offer.combo,
            offer_name=offer.name,
            offer_type=offer.offer_type,
            original_price=offer.original_price,
            discount_type=offer.discount_type,
            discount_value=offer.discount_value,
            final_price=offer.final_price,
            applied_by=request.user,
        )

    create_audit_log(
        request=request,
        action='offer_create',
        model_name='Offer',
        object_id=offer.id,
        object_name=offer.name,
        changes={
            'target': offer.target_name,
            'discount_type': offer.discount_type,
            'discount_value': str(offer.discount_value),
            'final_price': str(offer.final_price),
        }
    )
    return Response(OfferSerializer(offer).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def offer_detail(request, pk):
    """Retrieve, update or delete an offer"""
    offer = get_object_or_404(Offer.objects.select_related('product', 'combo'), pk=pk)

    if request.method == 'GET':
        return Response(OfferSerializer(offer).data)
    elif request.method == 'PATCH':
        serializer = OfferSerializer(offer, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        offer.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def offer_toggle(request, pk):
    offer = get_object_or_404(Offer, pk=pk)
    offer.is_active = not offer.is_active
    offer.save(update_fields=['is_active', 'updated_at'])
    return Response(OfferSerializer(offer).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def offer_history_list(request):
    """Previously applied offers, optionally for one product or combo"""
    history = OfferHistory.objects.select_related('product', 'combo')
    product_id = request.query_params.get('product', None)
    if product_id:
        history = history.filter(product_id=product_id)
    combo_id = request.query_params.get('combo', None)
    if combo_id:
        history = history.filter(combo_id=combo_id)
    try:
        limit = parse_int_param(request.query_params, 'limit', 20)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(OfferHistorySerializer(history[:limit], many=True).data)
