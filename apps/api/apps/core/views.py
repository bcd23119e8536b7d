"""
Core views - current user profile and instance settings.
"""
import logging

from django.db import transaction
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.permissions import IsInstanceAdmin
from apps.core.models import InstanceSettings
from apps.core.observability import metrics
from apps.core.observability.logging import set_runtime_log_level
from apps.families.models import Family
from apps.families.services import memberships_of
from .serializers import InstanceSettingsSerializer, UserProfileSerializer

logger = logging.getLogger(__name__)


class CurrentUserView(APIView):
    """
    Current authenticated user profile endpoint.

    GET /api/auth/me/ - Returns profile of the authenticated user.

    Frontend calls this after a successful JWT login. The backend remains
    the authorization authority; the families list and is_instance_admin
    only decide which screens the client offers.

    Response format:
    {
        "id": "uuid",
        "email": "user@example.com",
        "username": "Sam",
        "display_name": "Sam",
        "is_active": true,
        "is_instance_admin": false,
        "families": [{"id": "uuid", "name": "My Family", "role": "owner"}]
    }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user

        roles = dict(memberships_of(user.pk))
        families = [
            {'id': family.id, 'name': family.name, 'role': roles[family.id]}
            for family in Family.objects.filter(id__in=roles.keys()).order_by('created_at')
        ]

        profile_data = {
            'id': user.id,
            'email': user.email,
            'username': user.username,
            'display_name': user.display_name,
            'is_active': user.is_active,
            'is_instance_admin': user.is_instance_admin,
            'families': families,
        }

        serializer = UserProfileSerializer(profile_data)
        return Response(serializer.data, status=status.HTTP_200_OK)


class InstanceSettingsView(APIView):
    """
    Instance settings (instance admin only).

    GET /api/v1/admin/settings/
    PATCH /api/v1/admin/settings/ - registration_enabled, default_family_name, log_level

    A log_level change is applied to the running process immediately.
    """
    permission_classes = [IsInstanceAdmin]

    def get(self, request):
        serializer = InstanceSettingsSerializer(InstanceSettings.load())
        return Response(serializer.data)

    def patch(self, request):
        with transaction.atomic():
            instance_settings = InstanceSettings.load(for_update=True)
            serializer = InstanceSettingsSerializer(instance_settings, data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            changed = sorted(
                field for field, value in serializer.validated_data.items()
                if getattr(instance_settings, field) != value
            )
            instance_settings = serializer.save()

        if 'log_level' in changed:
            set_runtime_log_level(instance_settings.log_level)

        if changed:
            metrics.instance_admin_actions_total.labels(action='update_settings').inc()
            logger.info(
                'Instance settings updated',
                extra={
                    'event': 'instance_settings_updated',
                    'actor_user_id': str(request.user.pk),
                    'changed_fields': changed,
                }
            )

        return Response(InstanceSettingsSerializer(instance_settings).data)
