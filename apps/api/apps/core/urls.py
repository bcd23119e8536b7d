"""
Core API URLs - Authentication, current user, instance settings.
"""
from django.urls import path
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

from .views import CurrentUserView, InstanceSettingsView

urlpatterns = [
    # JWT Authentication
    path('auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/token/verify/', TokenVerifyView.as_view(), name='token_verify'),
    path('auth/me/', CurrentUserView.as_view(), name='auth-me'),

    # Instance administration
    path('v1/admin/settings/', InstanceSettingsView.as_view(), name='instance-settings'),
]
