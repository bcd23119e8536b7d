"""
User Administration ViewSet.
"""
from django.db import transaction
from django.db import models
from rest_framework import mixins, viewsets
from rest_framework.response import Response
from apps.authz.models import User, UserAuditLog, UserAuditActionChoices
from apps.authz.serializers_users import UserListSerializer, UserUpdateSerializer
from apps.authz.permissions import IsInstanceAdmin
from apps.authz.views import get_client_ip
from apps.core.observability import metrics

AUDITED_FIELDS = ('username', 'is_active', 'is_instance_admin')


class UserAdminViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for User Administration endpoints (instance admin only).

    Endpoints:
    - GET /api/v1/admin/users/ - List users with search
    - GET /api/v1/admin/users/{id}/ - Get user detail
    - PATCH /api/v1/admin/users/{id}/ - Update username, is_active, is_instance_admin

    Query parameters for list:
    - ?q=search_term - Search by email, username
    - ?is_active=true|false
    - ?is_instance_admin=true|false

    Users are never deleted here; deactivate instead.
    """
    permission_classes = [IsInstanceAdmin]
    http_method_names = ['get', 'patch', 'head', 'options']

    def get_queryset(self):
        queryset = User.objects.all()

        q = self.request.query_params.get('q')
        if q:
            queryset = queryset.filter(
                models.Q(email__icontains=q) |
                models.Q(username__icontains=q)
            )

        is_active = self.request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')

        is_instance_admin = self.request.query_params.get('is_instance_admin')
        if is_instance_admin is not None:
            queryset = queryset.filter(is_instance_admin=is_instance_admin.lower() == 'true')

        return queryset.order_by('-created_at')

    def get_serializer_class(self):
        if self.action in ['update', 'partial_update']:
            return UserUpdateSerializer
        return UserListSerializer

    @transaction.atomic
    def update(self, request, *args, **kwargs):
        """Update user with audit log."""
        partial = kwargs.pop('partial', True)
        instance = self.get_object()

        before_state = {field: getattr(instance, field) for field in AUDITED_FIELDS}

        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        after_state = {field: getattr(user, field) for field in AUDITED_FIELDS}

        changed_fields = {
            key: {'before': before_state[key], 'after': after_state[key]}
            for key in AUDITED_FIELDS
            if before_state[key] != after_state[key]
        }

        if changed_fields:
            action = self._classify(changed_fields, after_state)
            UserAuditLog.objects.create(
                actor_user=request.user,
                target_user=user,
                action=action,
                metadata={
                    'changed_fields': changed_fields,
                    'ip_address': get_client_ip(request),
                }
            )
            metrics.instance_admin_actions_total.labels(action=action).inc()

        return Response(UserListSerializer(user).data)

    @staticmethod
    def _classify(changed_fields, after_state):
        if 'is_instance_admin' in changed_fields:
            if after_state['is_instance_admin']:
                return UserAuditActionChoices.GRANT_INSTANCE_ADMIN
            return UserAuditActionChoices.REVOKE_INSTANCE_ADMIN
        if 'is_active' in changed_fields:
            if after_state['is_active']:
                return UserAuditActionChoices.ACTIVATE_USER
            return UserAuditActionChoices.DEACTIVATE_USER
        return UserAuditActionChoices.UPDATE_USER
