"""
Family URLs - families, members, invites.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import FamilyViewSet, InviteAcceptView

router = DefaultRouter()
router.register(r'families', FamilyViewSet, basename='family')

urlpatterns = [
    path('invites/accept/', InviteAcceptView.as_view(), name='invite-accept'),
    path('', include(router.urls)),
]
