from django.contrib import admin
from .models import Combo, ComboItem, Offer, OfferHistory


class ComboItemInline(admin.TabularInline):
    model = ComboItem
    extra = 1


@admin.register(Combo)
class ComboAdmin(admin.ModelAdmin):
    list_display = ['name', 'combo_price', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']
    readonly_fields = ['slug', 'created_at', 'updated_at']
    inlines = [ComboItemInline]


@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    list_display = ['name', 'offer_type', 'product', 'combo', 'original_price', 'final_price', 'is_active', 'start_date', 'end_date']
    list_filter = ['offer_type', 'discount_type', 'is_active']
    search_fields = ['name', 'product__name', 'combo__name']
    readonly_fields = ['original_price', 'final_price', 'created_at', 'updated_at']


@admin.register(OfferHistory)
class OfferHistoryAdmin(admin.ModelAdmin):
    list_display = ['offer_name', 'offer_type', 'product', 'combo', 'final_price', 'applied_by', 'applied_at']
    list_filter = ['offer_type', 'applied_at']
    ordering = ['-applied_at']
