"""
Authz URLs - Registration and User Administration
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import RegisterView
from .views_users import UserAdminViewSet

router = DefaultRouter()
router.register(r'v1/admin/users', UserAdminViewSet, basename='user-admin')

urlpatterns = [
    path('auth/register/', RegisterView.as_view(), name='auth-register'),
    path('', include(router.urls)),
]
