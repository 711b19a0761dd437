from rest_framework import serializers
from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'description', 'icon', 'parent', 'is_active', 'display_order', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['slug']

    def get_product_count(self, obj):
        # Annotated by the list view; fall back to a query on detail views
        count = getattr(obj, 'num_products', None)
        if count is None:
            count = obj.products.count()
        return count

    def validate_display_order(self, value):
        if value < 0:
            raise serializers.ValidationError("Display order cannot be negative")
        return value


class ProductSerializer(serializers.ModelSerializer):
    # For reading: return the nested category
    category = CategorySerializer(read_only=True)
    # For writing: accept the category id
    category_id = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(),
        source='category',
        write_only=True,
        required=False,
        allow_null=True
    )
    category_name = serializers.CharField(source='category.name', read_only=True)
    profit_margin_value = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    profit_margin_percent = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'slug', 'description', 'barcode', 'ean_code', 'sku',
            'category', 'category_id', 'category_name',
            'cost_price', 'sale_price', 'profit_margin_value', 'profit_margin_percent',
            'stock_quantity', 'min_stock_alert', 'is_low_stock', 'weight', 'unit', 'image',
            'is_active', 'is_featured', 'created_at', 'updated_at'
        ]
        # stock only moves through stock movements
        read_only_fields = ['slug', 'stock_quantity']

    def validate(self, attrs):
        for field in ('cost_price', 'sale_price'):
            if field in attrs and attrs[field] < 0:
                raise serializers.ValidationError({field: "Price cannot be negative"})
        if attrs.get('min_stock_alert', 0) < 0:
            raise serializers.ValidationError({'min_stock_alert': "Minimum stock alert cannot be negative"})
        return attrs
