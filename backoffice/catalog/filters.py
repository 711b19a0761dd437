import django_filters
from django.db.models import Q, F
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Product list filters used by the products page"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    active = django_filters.CharFilter(method='filter_active', label='Active')
    featured = django_filters.BooleanFilter(field_name='is_featured')
    low_stock = django_filters.CharFilter(method='filter_low_stock', label='Low Stock')

    class Meta:
        model = Product
        fields = ['search', 'category', 'active', 'featured', 'low_stock']

    def filter_search(self, queryset, name, value):
        """Match name, barcode or SKU"""
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(barcode__icontains=value) |
            Q(sku__icontains=value)
        )

    def filter_active(self, queryset, name, value):
        if value is None or value == '':
            return queryset
        return queryset.filter(is_active=str(value).lower() in ('true', '1', 'yes'))

    def filter_low_stock(self, queryset, name, value):
        if str(value).lower() not in ('true', '1', 'yes'):
            return queryset
        return queryset.filter(stock_quantity__lte=F('min_stock_alert'))
