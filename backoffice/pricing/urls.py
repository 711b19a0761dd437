from django.urls import path
from .views import (
    combo_list_create, combo_detail, combo_toggle,
    offer_list_create, offer_detail, offer_toggle, offer_history_list,
)

urlpatterns = [
    # Combo endpoints
    path('combos/', combo_list_create, name='combo-list-create'),
    path('combos/<int:pk>/', combo_detail, name='combo-detail'),
    path('combos/<int:pk>/toggle/', combo_toggle, name='combo-toggle'),

    # Offer endpoints
    path('offers/', offer_list_create, name='offer-list-create'),
    path('offers/history/', offer_history_list, name='offer-history-list'),
    path('offers/<int:pk>/', offer_detail, name='offer-detail'),
    path('offers/<int:pk>/toggle/', offer_toggle, name='offer-toggle'),
]
