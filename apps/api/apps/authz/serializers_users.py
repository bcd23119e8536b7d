"""
User Administration Serializers.
"""
from rest_framework import serializers
from apps.authz.models import User


class UserListSerializer(serializers.ModelSerializer):
    """
    Serializer for User list/detail views (instance admin only).

    Used for:
    - GET /api/v1/admin/users/
    - GET /api/v1/admin/users/{id}/
    """
    display_name = serializers.CharField(read_only=True)
    family_count = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'username',
            'display_name',
            'is_active',
            'is_instance_admin',
            'family_count',
            'last_login',
            'created_at',
        ]
        read_only_fields = fields

    def get_family_count(self, obj):
        return obj.family_memberships.count()


class UserUpdateSerializer(serializers.ModelSerializer):
    """
    Serializer for User update (instance admin only).

    Used for:
    - PATCH /api/v1/admin/users/{id}/
    """

    class Meta:
        model = User
        fields = [
            'username',
            'is_active',
            'is_instance_admin',
        ]

    def validate(self, attrs):
        """Keep at least one active instance admin; admins cannot demote themselves."""
        request = self.context.get('request')
        acting_self = request is not None and request.user.pk == self.instance.pk

        is_deactivating = attrs.get('is_active') is False and self.instance.is_active
        is_revoking = attrs.get('is_instance_admin') is False and self.instance.is_instance_admin

        if acting_self and (is_deactivating or is_revoking):
            raise serializers.ValidationError(
                "You cannot revoke your own instance admin access or deactivate your own account."
            )

        if (is_deactivating or is_revoking) and self.instance.is_instance_admin:
            other_admins = User.objects.filter(
                is_active=True,
                is_instance_admin=True
            ).exclude(id=self.instance.id)
            if not other_admins.exists():
                raise serializers.ValidationError(
                    "Cannot deactivate or demote the last active instance admin."
                )

        return attrs
