"""
URL configuration for the Hong Van back office.

Every API app is mounted under ``/api/v1/``.
"""
from django.contrib import admin
from django.urls import path, include
from rest_framework.permissions import AllowAny
from rest_framework.renderers import JSONOpenAPIRenderer
from rest_framework.schemas import get_schema_view

admin.site.site_header = "Hong Van Back Office"
admin.site.site_title = "Hong Van Admin Portal"
admin.site.index_title = "Welcome to Hong Van Back Office"

schema_view = get_schema_view(
    title="Hong Van Back Office API",
    version="1.0.0",
    public=True,
    renderer_classes=[JSONOpenAPIRenderer],
    permission_classes=[AllowAny],
    authentication_classes=[],
)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/schema/', schema_view, name='openapi-schema'),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.catalog.urls')),
    path('api/v1/', include('backend.inventory.urls')),
    path('api/v1/', include('backend.parties.urls')),
    path('api/v1/', include('backend.orders.urls')),
    path('api/v1/', include('backend.reports.urls')),
    path('api/v1/', include('backend.exports.urls')),
]
