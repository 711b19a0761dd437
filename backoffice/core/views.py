from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.shortcuts import get_object_or_404
from .models import StoreConfig, DeliveryNeighborhood, AuditLog
from .serializers import (
    UserSerializer, UserCreateSerializer,
    StoreConfigSerializer, DeliveryNeighborhoodSerializer, AuditLogSerializer
)
from .utils import create_audit_log, parse_date_param

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that treats a deleted user as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user"""
    return Response(UserSerializer(request.user).data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method == 'PATCH':
        serializer = UserSerializer(user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own user'}, status=status.HTTP_400_BAD_REQUEST)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Store config views
@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def store_config_detail(request):
    """Retrieve or update the store configuration"""
    config = StoreConfig.load()

    if request.method == 'GET':
        return Response(StoreConfigSerializer(config).data)

    was_club_enabled = config.enable_club_discount
    serializer = StoreConfigSerializer(config, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        config = serializer.save()
        deactivated = 0
        if was_club_enabled and not config.enable_club_discount:
            # Turning the club off takes its offers down with it
            from backoffice.pricing.models import Offer
            deactivated = Offer.objects.filter(offer_type='clube_desconto', is_active=True).update(is_active=False)

    create_audit_log(
        request=request,
        action='config_update',
        model_name='StoreConfig',
        object_id=config.pk,
        object_name=config.store_name,
        changes={'fields': sorted(request.data.keys()), 'club_offers_deactivated': deactivated},
    )
    data = StoreConfigSerializer(config).data
    data['club_offers_deactivated'] = deactivated
    return Response(data)


# DeliveryNeighborhood views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def neighborhood_list_create(request):
    """List all delivery neighborhoods or create a new one"""
    if request.method == 'GET':
        neighborhoods = DeliveryNeighborhood.objects.all()
        active = request.query_params.get('active', None)
        if active is not None:
            neighborhoods = neighborhoods.filter(is_active=active.lower() == 'true')
        serializer = DeliveryNeighborhoodSerializer(neighborhoods, many=True)
        return Response(serializer.data)
    else:
        serializer = DeliveryNeighborhoodSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def neighborhood_detail(request, pk):
    """Retrieve, update or delete a delivery neighborhood"""
    neighborhood = get_object_or_404(DeliveryNeighborhood, pk=pk)

    if request.method == 'GET':
        serializer = DeliveryNeighborhoodSerializer(neighborhood)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = DeliveryNeighborhoodSerializer(neighborhood, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        neighborhood.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def neighborhood_toggle(request, pk):
    """Flip a neighborhood's active flag"""
    neighborhood = get_object_or_404(DeliveryNeighborhood, pk=pk)
    neighborhood.is_active = not neighborhood.is_active
    neighborhood.save(update_fields=['is_active'])
    return Response(DeliveryNeighborhoodSerializer(neighborhood).data)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List all audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    # Filter by user if not admin
    if not request.user.is_staff:
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    try:
        date_from = parse_date_param(request.query_params, 'date_from')
        date_to = parse_date_param(request.query_params, 'date_to')
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')
    serializer = AuditLogSerializer(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if not request.user.is_staff and audit_log.user != request.user:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)
