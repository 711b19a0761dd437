from django.contrib import admin
from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'email', 'is_club_member', 'total_orders', 'total_spent', 'created_at']
    list_filter = ['is_club_member', 'address_city', 'created_at']
    search_fields = ['name', 'phone', 'email', 'cpf']
    ordering = ['name']
    readonly_fields = ['club_joined_at', 'total_orders', 'total_spent', 'created_at', 'updated_at']
