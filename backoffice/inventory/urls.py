from django.urls import path
from .views import stock_movement_list_create, stock_movement_detail

urlpatterns = [
    path('stock-movements/', stock_movement_list_create, name='stock-movement-list-create'),
    path('stock-movements/<int:pk>/', stock_movement_detail, name='stock-movement-detail'),
]
