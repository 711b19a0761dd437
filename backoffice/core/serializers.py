from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, StoreConfig, DeliveryNeighborhood, AuditLog


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'role', 'is_active', 'is_staff', 'is_superuser', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone', 'role']

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = User.objects.create(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class StoreConfigSerializer(serializers.ModelSerializer):
    class Meta:
        model = StoreConfig
        fields = [
            'id', 'store_name', 'store_phone', 'store_email', 'store_address',
            'primary_color', 'secondary_color', 'delivery_fee', 'min_order_value',
            'free_shipping_min_value', 'currency', 'low_stock_threshold',
            'enable_club_discount', 'club_discount_percentage', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_club_discount_percentage(self, value):
        if value < 0 or value > 100:
            raise serializers.ValidationError("Club discount must be between 0 and 100")
        return value


class DeliveryNeighborhoodSerializer(serializers.ModelSerializer):
    class Meta:
        model = DeliveryNeighborhood
        fields = ['id', 'name', 'fee', 'is_active', 'display_order', 'created_at']

    def validate_fee(self, value):
        if value < 0:
            raise serializers.ValidationError("Fee cannot be negative")
        return value


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'changes', 'ip_address', 'created_at']
