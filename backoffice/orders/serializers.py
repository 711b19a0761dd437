from rest_framework import serializers
from .models import Order, OrderItem, OrderStatusHistory, ORDER_STATUS_CHOICES
from backoffice.parties.models import Customer


class OrderCustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ['id', 'name', 'phone', 'email']


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'combo', 'product_name', 'quantity', 'unit_price', 'discount_amount', 'total', 'notes']


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = OrderStatusHistory
        fields = ['id', 'status', 'notes', 'user', 'user_name', 'created_at']


class OrderSerializer(serializers.ModelSerializer):
    customer = OrderCustomerSerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer', 'delivery_type', 'status', 'status_display',
            'subtotal', 'discount_amount', 'delivery_fee', 'total',
            'payment_method', 'payment_status', 'notes', 'delivery_address',
            'estimated_delivery', 'delivered_at', 'cancelled_at', 'cancel_reason',
            'items', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'order_number', 'delivery_type', 'status', 'subtotal', 'discount_amount',
            'delivery_fee', 'total', 'delivery_address', 'delivered_at', 'cancelled_at',
            'created_at', 'updated_at'
        ]


class OrderDetailSerializer(OrderSerializer):
    status_history = OrderStatusHistorySerializer(many=True, read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ['status_history']


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ORDER_STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class BulkStatusSerializer(OrderStatusSerializer):
    ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
