"""URL configuration for the gym class booking service.

The `urlpatterns` list routes URLs to views. It includes the Django admin,
the application-level routers provided by Django Rest Framework and the
OpenAPI schema.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView  # type: ignore

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('admin/', admin.site.urls),
    # Application URLs
    path('api/v1/classes/', include('apps.classes.urls')),
    path('api/v1/bookings/', include('apps.bookings.urls')),
    path('api/v1/admin/', include('apps.bookings.admin_urls')),
    path('api/v1/strikes/', include('apps.strikes.urls')),
    path('api/v1/notifications/', include('apps.notifications.urls')),
    # API schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
]
