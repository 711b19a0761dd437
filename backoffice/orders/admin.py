from django.contrib import admin
from .models import Order, OrderItem, OrderStatusHistory


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    readonly_fields = ['status', 'notes', 'user', 'created_at']
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer', 'delivery_type', 'status', 'total', 'payment_status', 'created_at']
    list_filter = ['status', 'delivery_type', 'payment_status', 'created_at']
    search_fields = ['order_number', 'customer__name', 'customer__phone']
    ordering = ['-created_at']
    readonly_fields = ['order_number', 'delivered_at', 'cancelled_at', 'created_at', 'updated_at']
    inlines = [OrderItemInline, OrderStatusHistoryInline]
