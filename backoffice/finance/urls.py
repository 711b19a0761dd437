from django.urls import path
from . import views

urlpatterns = [
    path('finance/expense-categories/', views.expense_category_list_create, name='expense-category-list-create'),
    path('finance/expense-categories/<int:pk>/', views.expense_category_detail, name='expense-category-detail'),
    path('finance/expenses/', views.expense_list_create, name='expense-list-create'),
    path('finance/expenses/<int:pk>/', views.expense_detail, name='expense-detail'),
    path('finance/expenses/<int:pk>/mark-paid/', views.expense_mark_paid, name='expense-mark-paid'),
    path('finance/summary/', views.finance_summary, name='finance-summary'),
]
