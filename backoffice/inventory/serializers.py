from rest_framework import serializers
from .models import StockMovement
from backoffice.catalog.models import Product


class StockMovementSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    user_name = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = StockMovement
        fields = [
            'id', 'product', 'product_name', 'movement_type', 'quantity', 'unit_cost',
            'previous_stock', 'new_stock', 'reference', 'notes', 'user', 'user_name', 'created_at'
        ]
        read_only_fields = ['previous_stock', 'new_stock', 'user', 'created_at']


class StockMovementCreateSerializer(serializers.Serializer):
    """Input for a new movement; stock levels are computed server-side"""
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    movement_type = serializers.ChoiceField(choices=StockMovement.MOVEMENT_TYPE_CHOICES)
    quantity = serializers.IntegerField(min_value=0)
    unit_cost = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['movement_type'] != 'ajuste' and attrs['quantity'] == 0:
            raise serializers.ValidationError({'quantity': 'Quantity must be greater than zero'})
        return attrs
