"""
Core serializers: current user profile and instance settings.
"""
from rest_framework import serializers

from apps.core.models import InstanceSettings


class UserFamilySerializer(serializers.Serializer):
    """A family the current user belongs to, with their role."""
    id = serializers.UUIDField()
    name = serializers.CharField()
    role = serializers.CharField()


class UserProfileSerializer(serializers.Serializer):
    """
    Current user profile.

    `is_instance_admin` only drives which admin screens the client shows;
    family roles are listed per family and are what child data checks use.
    """
    id = serializers.UUIDField()
    email = serializers.EmailField()
    username = serializers.CharField(allow_blank=True)
    display_name = serializers.CharField()
    is_active = serializers.BooleanField()
    is_instance_admin = serializers.BooleanField()
    families = UserFamilySerializer(many=True)


class InstanceSettingsSerializer(serializers.ModelSerializer):
    """
    Used for:
    - GET /api/v1/admin/settings/
    - PATCH /api/v1/admin/settings/
    """

    class Meta:
        model = InstanceSettings
        fields = [
            'registration_enabled',
            'default_family_name',
            'log_level',
            'updated_at',
        ]
        read_only_fields = ['updated_at']

    def validate_default_family_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Default family name cannot be blank.')
        return value
