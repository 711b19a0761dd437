from django.urls import path
from .views import order_list, order_detail, order_status, order_bulk_status

urlpatterns = [
    path('orders/', order_list, name='order-list'),
    path('orders/bulk-status/', order_bulk_status, name='order-bulk-status'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/status/', order_status, name='order-status'),
]
