from django.db import transaction
from rest_framework import serializers
from .models import Combo, ComboItem, Offer, OfferHistory, calculate_final_price
from backoffice.catalog.models import Product


class ComboItemSerializer(serializers.ModelSerializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sale_price = serializers.DecimalField(source='product.sale_price', max_digits=10, decimal_places=2, read_only=True)
    product_stock = serializers.IntegerField(source='product.stock_quantity', read_only=True)

    class Meta:
        model = ComboItem
        fields = ['id', 'product', 'product_name', 'product_sale_price', 'product_stock', 'quantity']

    def validate_quantity(self, value):
        if value < 1:
            raise serializers.ValidationError("Quantity must be at least 1")
        return value


class ComboSerializer(serializers.ModelSerializer):
    items = ComboItemSerializer(many=True)
    regular_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    savings = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    savings_percent = serializers.DecimalField(max_digits=5, decimal_places=1, read_only=True)

    class Meta:
        model = Combo
        fields = [
            'id', 'name', 'slug', 'description', 'image', 'combo_price', 'regular_price',
            'savings', 'savings_percent', 'is_active', 'items', 'created_at', 'updated_at'
        ]
        read_only_fields = ['slug']

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("A combo needs at least one product")
        product_ids = [item['product'].pk for item in value]
        if len(product_ids) != len(set(product_ids)):
            raise serializers.ValidationError("A product can only appear once in a combo")
        return value

    def validate_combo_price(self, value):
        if value <= 0:
            raise serializers.ValidationError("Combo price must be greater than zero")
        return value

    def _write_items(self, combo, items_data):
        ComboItem.objects.bulk_create([
            ComboItem(combo=combo, product=item['product'], quantity=item.get('quantity', 1))
            for item in items_data
        ])

    def create(self, validated_data):
        items_data = validated_data.pop('items')
        with transaction.atomic():
            combo = Combo.objects.create(**validated_data)
            self._write_items(combo, items_data)
        return combo

    def update(self, instance, validated_data):
        items_data = validated_data.pop('items', None)
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            instance.save()
            if items_data is not None:
                # Editing replaces the whole item list
                instance.items.all().delete()
                self._write_items(instance, items_data)
        return instance


class OfferSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True, default=None)
    combo_name = serializers.CharField(source='combo.name', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Offer
        fields = [
            'id', 'name', 'offer_type', 'product', 'product_name', 'combo', 'combo_name',
            'original_price', 'discount_type', 'discount_value', 'final_price',
            'start_date', 'end_date', 'is_active', 'created_by', 'created_by_name',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['original_price', 'final_price', 'created_by', 'created_at', 'updated_at']

    def validate(self, attrs):
        product = attrs.get('product', getattr(self.instance, 'product', None))
        combo = attrs.get('combo', getattr(self.instance, 'combo', None))
        if bool(product) == bool(combo):
            raise serializers.ValidationError("An offer targets exactly one product or one combo")

        discount_type = attrs.get('discount_type', getattr(self.instance, 'discount_type', 'percentage'))
        discount_value = attrs.get('discount_value', getattr(self.instance, 'discount_value', None))
        if discount_value is None or discount_value < 0:
            raise serializers.ValidationError({'discount_value': "Discount must be zero or more"})
        if discount_type == 'percentage' and discount_value > 100:
            raise serializers.ValidationError({'discount_value': "Percentage discount cannot exceed 100"})

        start_date = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end_date = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({'end_date': "End date must be on or after start date"})

        # Original price always comes from the target's current price
        original_price = product.sale_price if product else combo.combo_price
        attrs['original_price'] = original_price
        attrs['final_price'] = calculate_final_price(original_price, discount_type, discount_value)
        return attrs


class OfferHistorySerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True, default=None)
    combo_name = serializers.CharField(source='combo.name', read_only=True, default=None)

    class Meta:
        model = OfferHistory
        fields = [
            'id', 'product', 'product_name', 'combo', 'combo_name', 'offer_name', 'offer_type',
            'original_price', 'discount_type', 'discount_value', 'final_price', 'applied_by', 'applied_at'
        ]
