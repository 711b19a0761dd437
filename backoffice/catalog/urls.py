from django.urls import path
from .views import (
    category_list_create, category_detail, category_toggle,
    product_list_create, product_detail, product_toggle, product_low_stock,
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),
    path('categories/<int:pk>/toggle/', category_toggle, name='category-toggle'),

    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/low-stock/', product_low_stock, name='product-low-stock'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/toggle/', product_toggle, name='product-toggle'),
]
