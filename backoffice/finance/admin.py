from django.contrib import admin
from .models import ExpenseCategory, Expense


@admin.register(ExpenseCategory)
class ExpenseCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'color', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ['description', 'category', 'amount', 'expense_date', 'due_date', 'is_paid', 'is_recurring']
    list_filter = ['is_paid', 'is_recurring', 'category', 'expense_date']
    search_fields = ['description', 'notes']
    ordering = ['-expense_date']
