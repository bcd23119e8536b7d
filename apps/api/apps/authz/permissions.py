"""
Authz permissions for instance administration endpoints.
"""
from rest_framework import permissions
from apps.authz.services import get_is_instance_admin


class IsInstanceAdmin(permissions.BasePermission):
    """
    Allows only instance admins.

    Used for user administration and instance settings. Family-scoped
    child data never consults this permission.
    """
    message = 'Instance admin access required.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        return get_is_instance_admin(request.user.pk)
