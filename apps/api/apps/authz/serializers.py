"""
Authz serializers for account registration.
"""
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers
from apps.authz.models import User


class RegisterSerializer(serializers.Serializer):
    """
    Serializer for self-registration.

    Used for:
    - POST /api/auth/register/
    """
    email = serializers.EmailField(max_length=255)
    password = serializers.CharField(write_only=True, min_length=8, max_length=128)
    username = serializers.CharField(max_length=150, required=False, allow_blank=True)

    def validate_email(self, value):
        """Emails are compared case-insensitively."""
        value = User.objects.normalize_email(value).lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value

    def validate(self, attrs):
        candidate = User(email=attrs['email'], username=attrs.get('username', ''))
        try:
            validate_password(attrs['password'], user=candidate)
        except DjangoValidationError as exc:
            raise serializers.ValidationError({"password": list(exc.messages)})
        return attrs


class RegisteredUserSerializer(serializers.ModelSerializer):
    """Response body for a successful registration."""

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'username',
            'is_instance_admin',
            'created_at',
        ]
        read_only_fields = fields
