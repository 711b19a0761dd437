from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, user_me,
    user_list_create, user_detail,
    store_config_detail,
    neighborhood_list_create, neighborhood_detail, neighborhood_toggle,
    audit_log_list, audit_log_detail,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/', user_detail, name='user-detail'),

    # Store config endpoint
    path('store-config/', store_config_detail, name='store-config'),

    # Delivery neighborhood endpoints
    path('neighborhoods/', neighborhood_list_create, name='neighborhood-list-create'),
    path('neighborhoods/<int:pk>/', neighborhood_detail, name='neighborhood-detail'),
    path('neighborhoods/<int:pk>/toggle/', neighborhood_toggle, name='neighborhood-toggle'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),
]
