"""
Clinical URLs - Children, Measurements, Visits, Illnesses, Attachments.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    AttachmentViewSet,
    ChildViewSet,
    IllnessViewSet,
    MeasurementViewSet,
    VisitViewSet,
)

router = DefaultRouter()
router.register(r'children', ChildViewSet, basename='child')
router.register(r'measurements', MeasurementViewSet, basename='measurement')
router.register(r'visits', VisitViewSet, basename='visit')
router.register(r'illnesses', IllnessViewSet, basename='illness')
router.register(r'attachments', AttachmentViewSet, basename='attachment')

urlpatterns = [
    path('', include(router.urls)),
]
