"""
URL configuration for the family health records API.
"""
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from apps.core.observability.health import HealthzView, ReadyzView

urlpatterns = [
    # Health checks (no auth required)
    path('healthz', HealthzView.as_view(), name='healthz'),
    path('readyz', ReadyzView.as_view(), name='readyz'),

    # Admin
    path('admin/', admin.site.urls),

    # API (authentication required unless the view says otherwise)
    path('api/', include('apps.core.urls')),  # Auth, current user, instance settings
    path('api/', include('apps.authz.urls')),  # Registration, user administration
    path('api/v1/', include('apps.families.urls')),  # Families, members, invites
    path('api/v1/', include('apps.clinical.urls')),  # Children, measurements, visits, illnesses, attachments

    # API Schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
