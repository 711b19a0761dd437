"""
URL configuration for the back-office project.

Every app mounts its endpoints under ``api/v1/``.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Store Back-Office Admin Panel"
admin.site.site_title = "Store Back-Office Admin Portal"
admin.site.index_title = "Store administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backoffice.core.urls')),
    path('api/v1/', include('backoffice.catalog.urls')),
    path('api/v1/', include('backoffice.inventory.urls')),
    path('api/v1/', include('backoffice.parties.urls')),
    path('api/v1/', include('backoffice.pricing.urls')),
    path('api/v1/', include('backoffice.orders.urls')),
    path('api/v1/', include('backoffice.finance.urls')),
    path('api/v1/', include('backoffice.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
