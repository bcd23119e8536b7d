"""
Family serializers.
"""
from rest_framework import serializers

from apps.families.models import INVITABLE_ROLES, Family, FamilyInvite, FamilyMember


class FamilySerializer(serializers.ModelSerializer):
    """Family with the caller's role (context['roles'] maps family_id -> role)."""
    role = serializers.SerializerMethodField()

    class Meta:
        model = Family
        fields = ['id', 'name', 'role', 'created_at', 'updated_at']
        read_only_fields = ['id', 'role', 'created_at', 'updated_at']

    def get_role(self, obj):
        role = self.context.get('roles', {}).get(obj.id)
        return str(role) if role is not None else None

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Family name is required.')
        return value


class FamilyMemberSerializer(serializers.ModelSerializer):
    user_id = serializers.UUIDField(source='user.id', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    username = serializers.CharField(source='user.username', read_only=True)

    class Meta:
        model = FamilyMember
        fields = ['user_id', 'email', 'username', 'role', 'created_at']
        read_only_fields = fields


class MemberRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(
        choices=[(role.value, role.label) for role in INVITABLE_ROLES],
        error_messages={'invalid_choice': 'role must be "parent" or "read_only"'},
    )


class FamilyInviteSerializer(serializers.ModelSerializer):
    created_by_email = serializers.EmailField(source='created_by.email', read_only=True, default=None)

    class Meta:
        model = FamilyInvite
        fields = ['id', 'role', 'created_by_email', 'expires_at', 'created_at']
        read_only_fields = fields


class InviteCreateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(
        choices=[(role.value, role.label) for role in INVITABLE_ROLES],
        error_messages={'invalid_choice': 'role must be "parent" or "read_only"'},
    )


class InviteAcceptSerializer(serializers.Serializer):
    token = serializers.CharField(
        max_length=128,
        trim_whitespace=True,
        error_messages={'required': 'token is required', 'blank': 'token is required'},
    )
