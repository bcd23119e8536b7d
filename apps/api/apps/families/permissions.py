"""
Family-scoped permissions for API endpoints.

- owner: view + edit; rename/delete family
- parent: view + edit; manage members and invites
- read_only: view only
- instance admin: no implicit access to family data
"""
from rest_framework import permissions

from apps.families.access import require_child_access
from apps.families.services import child_id_of


class ChildRecordPermission(permissions.BasePermission):
    """
    Object-level guard for children and child-scoped records.

    Querysets are already restricted to accessible children, so an
    object reaching this check is viewable; unsafe methods additionally
    require an edit role.
    """

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        require_child_access(
            request.user,
            child_id_of(obj),
            edit=request.method not in permissions.SAFE_METHODS,
        )
        return True
